"""
Slack incoming-webhook notifier.

The webhook URL is treated as a secret: it grants message-post capability into
the channel, so it is validated up front and never logged.

Design goals:
- Safe URL validation (HTTPS, no embedded credentials, host allowlist)
- Legacy attachment payloads (color bar, title, text, short/long fields)
- Bounded timeout, no retries; non-2xx is a delivery error
"""

from __future__ import annotations

import asyncio
import ipaddress
import math
from typing import Any
from urllib.parse import urlparse

import aiohttp
import structlog
from slack_sdk.webhook.async_client import AsyncWebhookClient

from cost_notifier.modules.notifications.domain.base import (
    Attachment,
    NotificationMessage,
    Notifier,
    SendOptions,
)
from cost_notifier.modules.notifications.domain.null import NullNotifier
from cost_notifier.shared.core.config import Settings
from cost_notifier.shared.core.duration import parse_timeout
from cost_notifier.shared.core.exceptions import (
    ConfigurationError,
    NetworkError,
    WebhookDeliveryError,
)

logger = structlog.get_logger()

_SPECIAL_MENTIONS = {"channel", "here", "everyone"}


def _is_private_or_link_local(host: str) -> bool:
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
    )


def _host_allowed(host: str, allowlist: set[str]) -> bool:
    if not allowlist:
        return True
    if host in allowlist:
        return True
    return any(host.endswith(f".{allowed}") for allowed in allowlist)


def _validate_webhook_url(url: str | None, allowlist: set[str]) -> None:
    if not url:
        raise ValueError("Slack webhook URL is not set")
    parsed = urlparse(url)
    if parsed.scheme.lower() != "https":
        raise ValueError("Slack webhook URL must use HTTPS")
    if not parsed.hostname:
        raise ValueError("Slack webhook URL must include a host")
    if parsed.username or parsed.password:
        raise ValueError("Slack webhook URL must not include credentials")

    host = parsed.hostname.lower()
    if host == "localhost" or host.endswith(".local") or _is_private_or_link_local(host):
        raise ValueError("Slack webhook URL must not target local or private addresses")
    if not _host_allowed(host, allowlist):
        raise ValueError("Slack webhook URL host is not in allowlist")


def _format_mention(mention: str) -> str:
    name = mention.strip()
    if name.startswith("<") and name.endswith(">"):
        return name
    name = name.lstrip("@")
    if name in _SPECIAL_MENTIONS:
        return f"<!{name}>"
    return f"<@{name}>"


def _attachment_to_slack(attachment: Attachment) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "color": attachment.color,
        "title": attachment.title,
        "text": attachment.text,
        "fields": [
            {"title": f.title, "value": f.value, "short": f.short}
            for f in attachment.fields
        ],
        "mrkdwn_in": ["text"],
    }
    if attachment.footer:
        payload["footer"] = attachment.footer
    if attachment.timestamp is not None:
        payload["ts"] = attachment.timestamp
    return payload


def build_slack_payload(
    message: NotificationMessage, options: SendOptions | None = None
) -> dict[str, Any]:
    """Serialize a message into Slack's incoming-webhook schema."""
    opts = options or SendOptions()

    text = message.text
    if opts.mentions:
        prefix = " ".join(_format_mention(m) for m in opts.mentions)
        text = f"{prefix} {text}" if text else prefix

    payload: dict[str, Any] = {"text": text}
    if message.attachments:
        payload["attachments"] = [_attachment_to_slack(a) for a in message.attachments]
    for key in ("channel", "username", "icon_emoji", "icon_url"):
        value = getattr(opts, key)
        if value:
            payload[key] = value
    return payload


class SlackWebhookNotifier(Notifier):
    """Posts messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout_seconds: float,
        *,
        allowed_domains: set[str] | None = None,
        default_options: SendOptions | None = None,
        client: AsyncWebhookClient | None = None,
    ):
        try:
            _validate_webhook_url(webhook_url, allowed_domains or set())
        except ValueError as exc:
            raise ConfigurationError(str(exc), code="invalid_webhook_url") from exc

        self.timeout_seconds = timeout_seconds
        self.default_options = default_options
        # Whole seconds and no retries here; send() enforces the exact timeout
        self.client = client or AsyncWebhookClient(
            url=str(webhook_url),
            timeout=max(1, math.ceil(timeout_seconds)),
            retry_handlers=[],
        )

    def is_enabled(self) -> bool:
        return True

    async def send(
        self, message: NotificationMessage, options: SendOptions | None = None
    ) -> None:
        opts = (options or SendOptions()).merged_over(self.default_options)
        payload = build_slack_payload(message, opts)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self.client.send_dict(payload)
        except (aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("slack_send_exception", error=str(exc))
            raise NetworkError(
                f"Slack webhook request failed: {str(exc) or type(exc).__name__}",
                details={"timeout_seconds": self.timeout_seconds},
            ) from exc

        if not 200 <= response.status_code < 300:
            body = str(response.body or "")[:300]
            logger.warning(
                "slack_send_failed",
                status_code=response.status_code,
                response=body,
            )
            raise WebhookDeliveryError(
                f"Slack webhook returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

        logger.info(
            "slack_message_sent",
            attachments=len(message.attachments),
            status_code=response.status_code,
        )


def create_notifier(settings: Settings) -> Notifier:
    """
    Build the notifier selected by settings.

    Never raises: an unusable webhook configuration downgrades to a
    NullNotifier with a warning.
    """
    if not settings.SLACK_ENABLED:
        logger.info("notifier_disabled", reason="slack_disabled")
        return NullNotifier()

    timeout_seconds = parse_timeout(settings.SLACK_TIMEOUT)
    default_options = SendOptions(
        channel=settings.SLACK_CHANNEL,
        username=settings.SLACK_USERNAME,
        icon_emoji=settings.SLACK_ICON_EMOJI,
    )

    try:
        return SlackWebhookNotifier(
            settings.SLACK_WEBHOOK_URL,
            timeout_seconds,
            allowed_domains=set(settings.SLACK_WEBHOOK_ALLOWED_DOMAINS),
            default_options=default_options,
        )
    except ConfigurationError as exc:
        logger.warning("slack_notifier_init_failed", error=exc.message)
        return NullNotifier()
