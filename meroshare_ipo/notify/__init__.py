"""
Notify package
--------------
Delivery of workflow notifications (Telegram bot, or nothing).
"""

from .base import Notifier, NotifierError, NullNotifier, RecordingNotifier
from .telegram import TelegramNotifier, build_notifier, format_message

__all__ = [
    "Notifier",
    "NotifierError",
    "NullNotifier",
    "RecordingNotifier",
    "TelegramNotifier",
    "build_notifier",
    "format_message",
]
