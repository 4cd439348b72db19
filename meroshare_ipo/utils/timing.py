# meroshare_ipo/utils/timing.py
from __future__ import annotations

"""Wait budgets and step timing.

Playwright waits are expressed in integer milliseconds, so everything here
works in whole milliseconds on a monotonic clock.
"""

import functools
import logging
import time
from typing import Callable, Optional, TypeVar, ParamSpec

from meroshare_ipo.utils.logger import get_logger

P = ParamSpec("P")
T = TypeVar("T")


def _clock_ms() -> int:
    return time.perf_counter_ns() // 1_000_000


class Stopwatch:
    """Starts on creation (or on `with`). `elapsed_ms()` never goes negative."""

    __slots__ = ("_t0",)

    def __init__(self) -> None:
        self._t0 = _clock_ms()

    def start(self) -> "Stopwatch":
        self._t0 = _clock_ms()
        return self

    def elapsed_ms(self) -> int:
        return max(0, _clock_ms() - self._t0)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, *exc) -> None:
        return None


class Deadline:
    """
    Optional overall wait budget shared by a sequence of waits.
    A deadline without a budget never expires.
    """

    def __init__(self, budget_ms: Optional[int]) -> None:
        self.budget_ms = budget_ms
        self.watch = Stopwatch()

    def remaining_ms(self) -> Optional[int]:
        if self.budget_ms is None:
            return None
        return self.budget_ms - self.watch.elapsed_ms()

    @property
    def expired(self) -> bool:
        left = self.remaining_ms()
        return left is not None and left <= 0

    def clamp(self, wait_ms: int) -> int:
        """Shrink a single wait so it cannot outlive the deadline. Never returns 0 (Playwright reads 0 as "no timeout")."""
        left = self.remaining_ms()
        return wait_ms if left is None else max(1, min(wait_ms, left))


def measure(label: str = "", level: str = "DEBUG") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Log how long the wrapped call took, whether it returned or raised.

        @measure("fill-credentials")
        def fill_credentials(ctx, previous): ...
    """
    numeric = getattr(logging, level.upper(), logging.DEBUG)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        log = get_logger(func.__module__)
        name = label or func.__name__

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            sw = Stopwatch()
            try:
                return func(*args, **kwargs)
            finally:
                log.log(numeric, f"{name}: {sw.elapsed_ms()} ms")

        return wrapper

    return decorator


__all__ = ["Stopwatch", "Deadline", "measure"]
