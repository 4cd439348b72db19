# meroshare_ipo/locators/locator.py
from __future__ import annotations

"""Resilient element locator
---------------------------
Resolves an ordered list of selector candidates against a page (or a locator
scope), one candidate at a time, and returns the first visible match. A miss
is an expected outcome and comes back as data, never as an exception.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

from playwright.sync_api import Error as PlaywrightError, Locator
from pydantic import BaseModel, Field, field_validator, model_validator

from meroshare_ipo.utils.logger import get_logger
from meroshare_ipo.utils.timing import Deadline

log = get_logger(__name__)

DEFAULT_PER_CANDIDATE_TIMEOUT_MS = 1500


# ---------- Request models ----------


class SelectorCandidate(BaseModel):
    value: str = Field(..., description="Playwright selector (css, text=, xpath=, :has-text() ...)")
    timeout_ms: Optional[int] = Field(default=None, ge=1, description="Overrides the per-candidate wait")

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data}
        return data

    @field_validator("value")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("selector value cannot be empty")
        return v


class LocateRequest(BaseModel):
    candidates: List[SelectorCandidate] = Field(default_factory=list)
    per_candidate_timeout_ms: int = Field(default=DEFAULT_PER_CANDIDATE_TIMEOUT_MS, ge=1)
    overall_timeout_ms: Optional[int] = Field(default=None, ge=1)
    require_visible: bool = True


CandidateLike = Union[str, SelectorCandidate]


def as_candidates(candidates: Iterable[CandidateLike]) -> List[SelectorCandidate]:
    return [c if isinstance(c, SelectorCandidate) else SelectorCandidate(value=c) for c in candidates]


# ---------- Results ----------


@dataclass(frozen=True)
class Found:
    handle: Locator
    matched_selector: str
    index: int
    elapsed_ms: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    tried_selectors: List[str] = field(default_factory=list)
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return False


LocateResult = Union[Found, NotFound]


# ---------- Resolution ----------


def resolve(scope: Any, request: LocateRequest) -> LocateResult:
    """
    Probe `request.candidates` in order against `scope` (a Page or Locator).

    Each candidate gets its own bounded wait, clamped to whatever is left of
    the overall budget. Playwright errors for a candidate (timeout, closed
    target, invalid selector) are swallowed and the next candidate is tried.
    """
    deadline = Deadline(request.overall_timeout_ms)
    tried: List[str] = []
    state = "visible" if request.require_visible else "attached"

    for idx, cand in enumerate(request.candidates):
        budget = cand.timeout_ms if cand.timeout_ms is not None else request.per_candidate_timeout_ms
        if deadline.expired:
            log.debug(f"Overall budget of {request.overall_timeout_ms} ms spent after {len(tried)} candidate(s)")
            break
        budget = deadline.clamp(budget)

        tried.append(cand.value)
        try:
            handle = scope.locator(cand.value).first
            # budget >= 1: Playwright treats timeout=0 as "wait forever"
            handle.wait_for(state=state, timeout=budget)
        except PlaywrightError as e:
            log.debug(f"[{idx}] miss: {cand.value!r} ({e.__class__.__name__})")
            continue

        return Found(handle=handle, matched_selector=cand.value, index=idx, elapsed_ms=deadline.watch.elapsed_ms())

    return NotFound(tried_selectors=tried, elapsed_ms=deadline.watch.elapsed_ms())


def locate(
    scope: Any,
    candidates: Iterable[CandidateLike],
    *,
    per_candidate_timeout_ms: Optional[int] = None,
    overall_timeout_ms: Optional[int] = None,
    require_visible: bool = True,
) -> LocateResult:
    """Build a LocateRequest for this call and resolve it."""
    request = LocateRequest(
        candidates=as_candidates(candidates),
        per_candidate_timeout_ms=per_candidate_timeout_ms or DEFAULT_PER_CANDIDATE_TIMEOUT_MS,
        overall_timeout_ms=overall_timeout_ms,
        require_visible=require_visible,
    )
    return resolve(scope, request)
