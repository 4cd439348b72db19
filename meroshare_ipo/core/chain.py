# meroshare_ipo/core/chain.py
from __future__ import annotations

"""Workflow step chaining
------------------------
Runs named steps strictly in sequence. Each step receives the previous
outcome; the first Failure stops the chain. Step-level exceptions from the
error taxonomy come back as Failure values of the matching kind.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from meroshare_ipo.core.catalog import SelectorCatalog
from meroshare_ipo.core.errors import (
    ActionFailed,
    ElementNotFound,
    PageUnavailable,
    is_target_closed,
    page_is_closed,
)
from meroshare_ipo.core.models import AllotmentThresholds, ApplicantDetails, Credentials
from meroshare_ipo.core.outcome import Failure, FailureKind, Outcome, Success
from meroshare_ipo.locators.actions import ElementActions
from meroshare_ipo.utils.logger import get_logger, log_with_context
from meroshare_ipo.utils.timing import Stopwatch


@dataclass
class StepContext:
    """Everything a step may touch. Built fresh for each run."""
    page: Any
    actions: ElementActions
    catalog: SelectorCatalog
    credentials: Optional[Credentials] = None
    applicant: Optional[ApplicantDetails] = None
    thresholds: AllotmentThresholds = field(default_factory=AllotmentThresholds)
    settle_ms: int = 1000
    state: Dict[str, Any] = field(default_factory=dict)

    def page_closed(self) -> bool:
        return page_is_closed(self.page)


StepFn = Callable[[StepContext, Optional[Success]], Outcome]


@dataclass
class StepRecord:
    name: str
    outcome: Outcome
    elapsed_ms: int


@dataclass
class ChainResult:
    name: str
    records: List[StepRecord] = field(default_factory=list)

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.records[-1].outcome if self.records else None

    @property
    def ok(self) -> bool:
        return all(isinstance(r.outcome, Success) for r in self.records)

    @property
    def failure(self) -> Optional[Failure]:
        out = self.outcome
        return out if isinstance(out, Failure) else None

    @property
    def failed_step(self) -> Optional[str]:
        return self.records[-1].name if self.records and not self.ok else None

    def to_dict(self) -> dict:
        return {
            "chain": self.name,
            "ok": self.ok,
            "steps": [
                {
                    "name": r.name,
                    "ok": r.outcome.ok,
                    "elapsed_ms": r.elapsed_ms,
                    **({"reason": r.outcome.reason, "kind": r.outcome.kind.value} if isinstance(r.outcome, Failure) else {}),
                }
                for r in self.records
            ],
        }


class StepChain:
    """Ordered, fail-fast list of named steps. No retries."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.steps: List[Tuple[str, StepFn]] = []
        self.log = get_logger(__name__)

    def then(self, name: str, fn: StepFn) -> "StepChain":
        self.steps.append((name, fn))
        return self

    def run(self, ctx: StepContext, initial: Optional[Success] = None) -> ChainResult:
        result = ChainResult(name=self.name)
        previous = initial

        for idx, (name, fn) in enumerate(self.steps, start=1):
            step_log = log_with_context(self.log, chain=self.name, step=name)
            step_log.info(f"[{self.name}] step {idx}/{len(self.steps)}: {name}")

            with Stopwatch() as sw:
                outcome = self._execute(ctx, fn, previous)
            result.records.append(StepRecord(name=name, outcome=outcome, elapsed_ms=sw.elapsed_ms()))

            if isinstance(outcome, Failure):
                step_log.warning(f"[{self.name}] {name} failed ({outcome.kind.value}): {outcome.reason}")
                break

            ctx.state.update(outcome.data)
            previous = outcome

        return result

    @staticmethod
    def _execute(ctx: StepContext, fn: StepFn, previous: Optional[Success]) -> Outcome:
        try:
            outcome = fn(ctx, previous)
        except PageUnavailable as e:
            return Failure(str(e), FailureKind.page_unavailable)
        except ElementNotFound as e:
            if ctx.page_closed():
                return Failure(f"Page closed: {e}", FailureKind.page_unavailable)
            return Failure(str(e), FailureKind.element_not_found, {"tried_selectors": e.tried_selectors})
        except ActionFailed as e:
            if ctx.page_closed():
                return Failure(f"Page closed: {e}", FailureKind.page_unavailable)
            return Failure(str(e), FailureKind.action_failed, {"selector": e.selector})
        except PlaywrightError as e:
            if ctx.page_closed() or is_target_closed(e):
                return Failure(f"Page closed: {e.message}", FailureKind.page_unavailable)
            return Failure(e.message, FailureKind.action_failed)

        if outcome is None:
            return Success()
        return outcome


__all__ = ["StepContext", "StepFn", "StepRecord", "ChainResult", "StepChain"]
