# meroshare_ipo/notify/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from meroshare_ipo.core.notifications import Notification
from meroshare_ipo.utils.logger import get_logger


class NotifierError(RuntimeError):
    pass


class Notifier(ABC):
    """Delivers workflow notifications. Implementations must not raise on delivery problems."""

    @abstractmethod
    def send(self, notification: Notification) -> bool:
        ...

    def close(self) -> None:
        """Release transport resources at the end of a run."""


class NullNotifier(Notifier):
    """Used when no bot is configured or the bot could not be initialized."""

    def __init__(self) -> None:
        self.log = get_logger(__name__)

    def send(self, notification: Notification) -> bool:
        self.log.debug(f"Notification skipped (no notifier): {notification.kind.value}")
        return False


class RecordingNotifier(Notifier):
    """Keeps notifications in memory (dry runs, tests)."""

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    def send(self, notification: Notification) -> bool:
        self.sent.append(notification)
        return True

    @property
    def kinds(self) -> List[str]:
        return [n.kind.value for n in self.sent]
