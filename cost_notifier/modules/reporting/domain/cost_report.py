"""
Daily AWS cost report.

Fetches yesterday's spend, skips near-zero days, then adds the month-to-date
figure and posts both as a two-attachment message.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

import structlog

from cost_notifier.modules.notifications.domain.base import (
    COLOR_DANGER,
    COLOR_GOOD,
    COLOR_WARNING,
    Attachment,
    AttachmentField,
    NotificationMessage,
    Notifier,
)
from cost_notifier.schemas.costs import DailyCostSummary, MonthlyCostSummary
from cost_notifier.shared.adapters.aws_cost_explorer import CostExplorerClient

logger = structlog.get_logger()

DEFAULT_SKIP_THRESHOLD = Decimal("0.01")
DEFAULT_MAX_SERVICES = 10
DANGER_THRESHOLD = Decimal("100")
WARNING_THRESHOLD = Decimal("50")

REPORT_TEXT = "AWS Cost Report"


class ReportOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"


@dataclass(slots=True)
class ReportResult:
    outcome: ReportOutcome
    daily: DailyCostSummary
    monthly: Optional[MonthlyCostSummary] = None


def color_for_amount(amount: Decimal) -> str:
    if amount >= DANGER_THRESHOLD:
        return COLOR_DANGER
    if amount >= WARNING_THRESHOLD:
        return COLOR_WARNING
    return COLOR_GOOD


def format_usd(amount: Decimal) -> str:
    return f"${amount:.2f}"


def build_cost_message(
    daily: DailyCostSummary,
    monthly: MonthlyCostSummary,
    max_services: int = DEFAULT_MAX_SERVICES,
    timestamp: Optional[int] = None,
) -> NotificationMessage:
    service_fields = [
        AttachmentField(title=s.service, value=format_usd(s.cost), short=True)
        for s in daily.top_services(max_services)
    ]

    daily_attachment = Attachment(
        color=color_for_amount(daily.total_cost),
        title=f"Yesterday's cost ({daily.date.isoformat()})",
        text=f"*{format_usd(daily.total_cost)}* {daily.currency}",
        fields=service_fields,
    )

    monthly_attachment = Attachment(
        color=color_for_amount(monthly.month_to_date),
        title="Month to date",
        fields=[
            AttachmentField(
                title="Month start to today",
                value=format_usd(monthly.month_to_date),
                short=False,
            )
        ],
        footer=f"Forecast for the full month: {format_usd(monthly.forecast)} {monthly.currency}",
        timestamp=timestamp if timestamp is not None else int(time.time()),
    )

    return NotificationMessage(
        text=REPORT_TEXT,
        attachments=[daily_attachment, monthly_attachment],
    )


class CostReportService:
    """Runs one report: fetch, filter, format, deliver."""

    def __init__(
        self,
        billing: CostExplorerClient,
        notifier: Notifier,
        skip_threshold: Decimal = DEFAULT_SKIP_THRESHOLD,
        max_services: int = DEFAULT_MAX_SERVICES,
    ):
        self.billing = billing
        self.notifier = notifier
        self.skip_threshold = skip_threshold
        self.max_services = max_services

    async def run(self) -> ReportResult:
        daily = await self.billing.get_yesterday_cost()
        logger.debug(
            "daily_cost_total",
            date=daily.date.isoformat(),
            total_cost=str(daily.total_cost),
            currency=daily.currency,
        )

        # Cost Explorer reports tiny residual amounts on idle days
        if daily.total_cost < self.skip_threshold:
            logger.info(
                "cost_report_skipped",
                total_cost=str(daily.total_cost),
                threshold=str(self.skip_threshold),
            )
            return ReportResult(outcome=ReportOutcome.SKIPPED, daily=daily)

        monthly = await self.billing.get_monthly_forecast()
        message = build_cost_message(daily, monthly, max_services=self.max_services)
        await self.notifier.send(message)

        logger.info(
            "cost_report_sent",
            notifier_enabled=self.notifier.is_enabled(),
            services_reported=len(message.attachments[0].fields),
        )
        return ReportResult(outcome=ReportOutcome.SENT, daily=daily, monthly=monthly)
