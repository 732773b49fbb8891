"""
Command line entry point.

Meant for cron: prints one confirmation line on success and exits non-zero
with a message on stderr when a fetch or the delivery fails.

Examples:
  cost-notifier cost
  cost-notifier --config /etc/cost-notifier/config.toml --debug cost
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog

from cost_notifier.modules.notifications.domain import create_notifier
from cost_notifier.modules.reporting.domain.cost_report import (
    CostReportService,
    ReportOutcome,
)
from cost_notifier.shared.adapters.aws_cost_explorer import CostExplorerClient
from cost_notifier.shared.core.config import Settings, get_settings
from cost_notifier.shared.core.exceptions import (
    ConfigurationError,
    CostNotifierException,
    NetworkError,
)
from cost_notifier.shared.core.logging import setup_logging

logger = structlog.get_logger()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cost-notifier",
        description=(
            "Post yesterday's AWS cost, the per-service breakdown and the "
            "month-to-date total to Slack."
        ),
    )
    parser.add_argument(
        "--config",
        dest="config",
        type=str,
        default=None,
        help="config file (default is config.toml)",
    )
    parser.add_argument(
        "--debug", dest="debug", action="store_true", help="Verbose console logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser(
        "cost", help="Fetch AWS costs and send the report to Slack"
    )
    return parser.parse_args(argv)


async def run_cost_report(settings: Settings) -> int:
    """Run one report under the run-wide deadline and return the exit status."""
    try:
        async with asyncio.timeout(settings.RUN_TIMEOUT_SECONDS):
            service = CostReportService(
                billing=CostExplorerClient(settings),
                notifier=create_notifier(settings),
                skip_threshold=settings.COST_SKIP_THRESHOLD,
                max_services=settings.MAX_SERVICES,
            )
            result = await service.run()
    except TimeoutError as exc:
        error: CostNotifierException = NetworkError(
            f"Run exceeded the {settings.RUN_TIMEOUT_SECONDS:g}s deadline",
            code="run_deadline_exceeded",
        )
        error.__cause__ = exc
        return _report_failure(error)
    except CostNotifierException as exc:
        return _report_failure(exc)

    if result.outcome is ReportOutcome.SKIPPED:
        print(
            f"Yesterday's cost was ${result.daily.total_cost:.4f}, "
            "below the reporting threshold; notification skipped"
        )
    elif service.notifier.is_enabled():
        print("AWS cost report sent to Slack")
    else:
        print("AWS cost report generated; Slack notifications are disabled")
    return 0


def _report_failure(exc: CostNotifierException) -> int:
    logger.error("cost_report_failed", code=exc.code, error=exc.message)
    print(f"Error: {exc.message}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)

    try:
        settings = get_settings(args.config)
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    if args.debug:
        settings = settings.model_copy(update={"DEBUG": True})
    setup_logging(settings)

    if args.command == "cost":
        return asyncio.run(run_cost_report(settings))
    return 2


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
