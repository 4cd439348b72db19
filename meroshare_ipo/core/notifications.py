# meroshare_ipo/core/notifications.py
from __future__ import annotations

"""Notification kinds
--------------------
The workflow only decides which kind of message applies and which data goes
with it; formatting and delivery belong to the notifier.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class NotificationKind(str, Enum):
    ipo_available = "ipo_available"
    ipo_not_found = "ipo_not_found"
    application_status = "application_status"
    error = "error"
    open_for_review = "open_for_review"


class ApplicationStatus(str, Enum):
    success = "success"
    failed = "failed"
    unknown = "unknown"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    payload: Dict[str, Any] = field(default_factory=dict)


def ipo_available(details: Dict[str, Any]) -> Notification:
    return Notification(NotificationKind.ipo_available, dict(details))


def ipo_not_found() -> Notification:
    return Notification(NotificationKind.ipo_not_found)


def application_status(status: ApplicationStatus, message: str) -> Notification:
    return Notification(NotificationKind.application_status, {"status": status.value, "message": message})


def error(message: str) -> Notification:
    return Notification(NotificationKind.error, {"message": message})


def open_for_review(
    company_name: Optional[str],
    share_value_per_unit: Optional[float],
    min_unit: Optional[float],
    reason: str,
) -> Notification:
    return Notification(
        NotificationKind.open_for_review,
        {
            "company_name": company_name,
            "share_value_per_unit": share_value_per_unit,
            "min_unit": min_unit,
            "reason": reason,
        },
    )
