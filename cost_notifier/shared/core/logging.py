import logging
import re
import sys
from typing import Any, cast

import structlog

from cost_notifier.shared.core.config import Settings

SENSITIVE_FIELDS = {
    "password",
    "token",
    "secret",
    "authorization",
    "api_key",
    "aws_access_key_id",
    "aws_secret_access_key",
    "webhook_url",
}
SENSITIVE_SUFFIXES = ("_token", "_secret", "_password", "_key", "_url")
SLACK_WEBHOOK_RE = re.compile(r"https://hooks\.slack\.com/\S+")


def secret_redactor(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """
    Redact credentials and webhook URLs before rendering.

    Slack webhook URLs are bearer secrets, so they are scrubbed from free text too.
    """

    def is_sensitive_key(key: Any) -> bool:
        key_norm = str(key).lower().strip().replace("-", "_")
        if key_norm in SENSITIVE_FIELDS:
            return True
        return key_norm.endswith(SENSITIVE_SUFFIXES)

    def redact_recursive(data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: ("[REDACTED]" if is_sensitive_key(k) else redact_recursive(v))
                for k, v in data.items()
            }
        elif isinstance(data, (list, tuple)):
            return [redact_recursive(item) for item in data]
        elif isinstance(data, str):
            return SLACK_WEBHOOK_RE.sub("[WEBHOOK_REDACTED]", data)
        return data

    redacted = redact_recursive(event_dict)
    if isinstance(redacted, dict):
        return cast(dict[str, Any], redacted)
    return {}


def setup_logging(settings: Settings) -> None:
    # 1. Common processors
    base_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        secret_redactor,
    ]

    # 2. Renderer per mode; stdout stays reserved for the confirmation line
    if settings.DEBUG:
        renderer: Any = structlog.dev.ConsoleRenderer()
        processors = base_processors + [renderer]
        min_level = logging.DEBUG
    else:
        renderer = structlog.processors.JSONRenderer()
        processors = base_processors + [structlog.processors.dict_tracebacks, renderer]
        min_level = logging.INFO

    structlog.configure(
        processors=cast(Any, processors),
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # 3. botocore and friends log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=min_level if settings.DEBUG else logging.WARNING,
    )
