# meroshare_ipo/core/errors.py
from __future__ import annotations

"""Error taxonomy
----------------
Raised inside workflow steps and converted into step failures by the chain.
Only ConfigurationError is allowed to end a run.
"""

from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError


_CLOSED_MARKERS = (
    "target page, context or browser has been closed",
    "target closed",
    "page closed",
    "browser has been closed",
    "has been closed",
)


class AutomationError(RuntimeError):
    pass


class ConfigurationError(AutomationError):
    pass


class ElementNotFound(AutomationError):
    """Every candidate of a chain exhausted its wait."""

    def __init__(self, what: str, result: Any = None) -> None:
        tried = list(getattr(result, "tried_selectors", []) or [])
        super().__init__(f"Could not find {what} (tried {len(tried)} selector(s))")
        self.what = what
        self.result = result
        self.tried_selectors = tried


class ActionFailed(AutomationError):
    """A located element could not be clicked/filled/selected."""

    def __init__(self, what: str, selector: Optional[str], message: str) -> None:
        where = f" via {selector!r}" if selector else ""
        super().__init__(f"Action on {what}{where} failed: {message}")
        self.what = what
        self.selector = selector
        self.message = message


class PageUnavailable(AutomationError):
    """The page was closed or navigated away while a step was running."""


def is_target_closed(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(m in msg for m in _CLOSED_MARKERS)


def page_is_closed(scope: Any) -> bool:
    """True when the page behind `scope` (a Page or a Locator) is closed."""
    page = getattr(scope, "page", None)
    if page is None or callable(page):
        page = scope
    is_closed = getattr(page, "is_closed", None)
    if not callable(is_closed):
        return False
    try:
        return bool(is_closed())
    except PlaywrightError:
        return True


__all__ = [
    "AutomationError",
    "ConfigurationError",
    "ElementNotFound",
    "ActionFailed",
    "PageUnavailable",
    "is_target_closed",
    "page_is_closed",
]
