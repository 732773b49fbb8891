"""
Notifier capability and the message structure it delivers.

A message is plain text plus ordered attachments; each attachment carries a
color tag and labeled fields. Concrete notifiers only implement `send` and
`is_enabled`; the level helpers are built on top of `send`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

COLOR_GOOD = "good"
COLOR_WARNING = "warning"
COLOR_DANGER = "danger"

LEVEL_COLORS = {
    "info": "#439FE0",
    "warning": COLOR_WARNING,
    "error": COLOR_DANGER,
    "success": COLOR_GOOD,
}


@dataclass(slots=True)
class AttachmentField:
    title: str
    value: str
    # Short fields render two per row
    short: bool = False


@dataclass(slots=True)
class Attachment:
    title: str = ""
    text: str = ""
    # good, warning, danger or a hex color
    color: str = ""
    fields: list[AttachmentField] = field(default_factory=list)
    footer: str | None = None
    timestamp: int | None = None


@dataclass(slots=True)
class NotificationMessage:
    text: str = ""
    attachments: list[Attachment] = field(default_factory=list)


@dataclass(slots=True)
class SendOptions:
    channel: str | None = None
    username: str | None = None
    icon_emoji: str | None = None
    icon_url: str | None = None
    # "@channel", "@here" or user IDs
    mentions: tuple[str, ...] = ()

    def merged_over(self, defaults: SendOptions | None) -> SendOptions:
        """Return these options with unset values taken from `defaults`."""
        if defaults is None:
            return self
        return SendOptions(
            channel=self.channel or defaults.channel,
            username=self.username or defaults.username,
            icon_emoji=self.icon_emoji or defaults.icon_emoji,
            icon_url=self.icon_url or defaults.icon_url,
            mentions=self.mentions or defaults.mentions,
        )


class Notifier(ABC):
    """Delivers formatted messages to a chat destination."""

    @abstractmethod
    async def send(
        self, message: NotificationMessage, options: SendOptions | None = None
    ) -> None:
        """Deliver a message. Raises on delivery failure."""
        raise NotImplementedError()

    @abstractmethod
    def is_enabled(self) -> bool:
        raise NotImplementedError()

    async def send_message(self, text: str, options: SendOptions | None = None) -> None:
        await self.send(NotificationMessage(text=text), options)

    async def send_attachment(
        self, attachment: Attachment, options: SendOptions | None = None
    ) -> None:
        await self.send(NotificationMessage(attachments=[attachment]), options)

    async def send_info(self, text: str, options: SendOptions | None = None) -> None:
        await self._send_level("info", text, options)

    async def send_warning(self, text: str, options: SendOptions | None = None) -> None:
        await self._send_level("warning", text, options)

    async def send_error(self, text: str, options: SendOptions | None = None) -> None:
        await self._send_level("error", text, options)

    async def send_success(self, text: str, options: SendOptions | None = None) -> None:
        await self._send_level("success", text, options)

    async def _send_level(
        self, level: str, text: str, options: SendOptions | None
    ) -> None:
        await self.send_attachment(
            Attachment(text=text, color=LEVEL_COLORS[level]), options
        )
