from cost_notifier.modules.notifications.domain.base import (
    NotificationMessage,
    Notifier,
    SendOptions,
)


class NullNotifier(Notifier):
    """Notifier used when delivery is turned off; every send succeeds and does nothing."""

    async def send(
        self, message: NotificationMessage, options: SendOptions | None = None
    ) -> None:
        return None

    def is_enabled(self) -> bool:
        return False
