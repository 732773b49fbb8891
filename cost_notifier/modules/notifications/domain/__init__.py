from .base import (
    Attachment,
    AttachmentField,
    NotificationMessage,
    Notifier,
    SendOptions,
)
from .null import NullNotifier
from .slack import SlackWebhookNotifier, build_slack_payload, create_notifier

__all__ = [
    "Attachment",
    "AttachmentField",
    "NotificationMessage",
    "Notifier",
    "SendOptions",
    "NullNotifier",
    "SlackWebhookNotifier",
    "build_slack_payload",
    "create_notifier",
]
