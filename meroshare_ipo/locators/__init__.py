"""
Locators package
----------------
Ordered selector-fallback resolution against Playwright pages, plus the
action helpers built on top of it.
"""

from .locator import (
    SelectorCandidate,
    LocateRequest,
    Found,
    NotFound,
    LocateResult,
    as_candidates,
    locate,
    resolve,
)
from .actions import ElementActions

__all__ = [
    "SelectorCandidate",
    "LocateRequest",
    "Found",
    "NotFound",
    "LocateResult",
    "as_candidates",
    "locate",
    "resolve",
    "ElementActions",
]
