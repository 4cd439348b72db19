# meroshare_ipo/core/outcome.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union


class FailureKind(str, Enum):
    element_not_found = "element_not_found"
    action_failed = "action_failed"
    page_unavailable = "page_unavailable"
    validation_failed = "validation_failed"
    login_failed = "login_failed"
    ipo_not_found = "ipo_not_found"


@dataclass(frozen=True)
class Success:
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    reason: str
    kind: FailureKind = FailureKind.action_failed
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Success, Failure]

__all__ = ["FailureKind", "Success", "Failure", "Outcome"]
