# meroshare_ipo/locators/actions.py
from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, TypeVar

from playwright.sync_api import Error as PlaywrightError

from meroshare_ipo.core.errors import ActionFailed, ElementNotFound, PageUnavailable, page_is_closed
from meroshare_ipo.locators.locator import CandidateLike, Found, LocateResult, NotFound, locate
from meroshare_ipo.utils.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class ElementActions:
    """
    Locator-backed actions for one page:
      - Find the first visible candidate (strict order, bounded waits)
      - Act on it (click / fill / select / check / read)
      - Turn misses into ElementNotFound and action errors into ActionFailed,
        or PageUnavailable when the page went away underneath us
    """

    def __init__(
        self,
        page: Any,
        *,
        per_candidate_timeout_ms: int = 1500,
        overall_timeout_ms: Optional[int] = None,
    ) -> None:
        self.page = page
        self.per_candidate_timeout_ms = max(1, per_candidate_timeout_ms)
        self.overall_timeout_ms = overall_timeout_ms

    # ---------- Selection ----------

    def try_find(
        self,
        candidates: Iterable[CandidateLike],
        *,
        scope: Any = None,
        require_visible: bool = True,
        per_candidate_timeout_ms: Optional[int] = None,
    ) -> LocateResult:
        return locate(
            scope if scope is not None else self.page,
            candidates,
            per_candidate_timeout_ms=per_candidate_timeout_ms or self.per_candidate_timeout_ms,
            overall_timeout_ms=self.overall_timeout_ms,
            require_visible=require_visible,
        )

    def find(self, candidates: Iterable[CandidateLike], what: str, *, scope: Any = None, **kw: Any) -> Found:
        result = self.try_find(candidates, scope=scope, **kw)
        if isinstance(result, NotFound):
            if page_is_closed(self.page):
                raise PageUnavailable(f"Page closed while looking for {what}")
            raise ElementNotFound(what, result)
        log.debug(f"{what}: matched {result.matched_selector!r} (candidate {result.index})")
        return result

    # ---------- Actions ----------

    def perform(self, what: str, found: Found, op: Callable[[], T]) -> T:
        try:
            return op()
        except PlaywrightError as e:
            if page_is_closed(self.page):
                raise PageUnavailable(f"Page closed during action on {what}: {e.message}") from e
            raise ActionFailed(what, found.matched_selector, e.message) from e

    def click(self, candidates: Iterable[CandidateLike], what: str, *, scope: Any = None) -> Found:
        found = self.find(candidates, what, scope=scope)
        self.perform(what, found, lambda: found.handle.click())
        return found

    def fill(self, candidates: Iterable[CandidateLike], text: str, what: str, *, clear: bool = True) -> Found:
        found = self.find(candidates, what)

        def _do() -> None:
            if clear:
                found.handle.clear()
            found.handle.fill(text)

        self.perform(what, found, _do)
        return found

    def select_option(self, candidates: Iterable[CandidateLike], label: str, what: str) -> Found:
        found = self.find(candidates, what)
        self.perform(what, found, lambda: found.handle.select_option(label=label))
        return found

    def check(self, candidates: Iterable[CandidateLike], what: str) -> Found:
        found = self.find(candidates, what)
        self.perform(what, found, lambda: found.handle.check())
        return found

    def read_text(self, candidates: Iterable[CandidateLike], what: str, *, scope: Any = None) -> str:
        found = self.find(candidates, what, scope=scope)
        return self.perform(what, found, lambda: found.handle.inner_text()) or ""

    def settle(self, ms: int) -> None:
        """Give the SPA a moment to re-render after navigation-like actions."""
        if ms <= 0:
            return
        try:
            self.page.wait_for_timeout(ms)
        except PlaywrightError as e:
            if page_is_closed(self.page):
                raise PageUnavailable(f"Page closed while waiting: {e.message}") from e
            raise
