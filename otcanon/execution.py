# -*- coding: utf-8 -*-
"""
Bounded Execution Helpers - OT Canon Asset Canonization

Thread-pool mapping for per-asset enrichment and a cooperative deadline for
the superlinear scans (record matching, dependency inference).

Example:
    >>> from otcanon.execution import parallel_map
    >>> parallel_map(str.upper, ["a", "b"], max_workers=2)
    ['A', 'B']

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

__all__ = [
    "Deadline",
    "parallel_map",
]

T = TypeVar("T")
R = TypeVar("R")

# Below this many items a pool costs more than it saves
_MIN_PARALLEL_ITEMS = 64


def parallel_map(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int = 1,
) -> List[R]:
    """Apply ``func`` to every item, preserving input order.

    Runs inline when ``max_workers`` <= 1 or the input is small; otherwise
    uses a ThreadPoolExecutor whose ``map`` keeps results in input order.
    Exceptions raised by ``func`` propagate to the caller.

    Args:
        func: Pure per-item function.
        items: Input items.
        max_workers: Thread pool size.

    Returns:
        Results in the same order as ``items``.
    """
    if max_workers <= 1 or len(items) < _MIN_PARALLEL_ITEMS:
        return [func(item) for item in items]

    start = time.monotonic()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(func, items))
    logger.debug(
        "parallel_map: %d items on %d workers in %.1fms",
        len(items), max_workers, (time.monotonic() - start) * 1000.0,
    )
    return results


class Deadline:
    """Cooperative time budget for long scans.

    A budget of 0 (or less) never expires.

    Example:
        >>> deadline = Deadline(0)
        >>> deadline.check("matching")
    """

    def __init__(self, seconds: float = 0.0, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.monotonic
        self._seconds = seconds
        self._expires_at = self._clock() + seconds if seconds > 0 else None

    @property
    def bounded(self) -> bool:
        return self._expires_at is not None

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    def check(self, stage: str) -> None:
        """Raise TimeoutError when the budget is exhausted.

        Args:
            stage: Name of the scan, used in the error message.

        Raises:
            TimeoutError: If the deadline has passed.
        """
        if self._expires_at is not None and self._clock() >= self._expires_at:
            raise TimeoutError(
                f"{stage} exceeded operation timeout of {self._seconds:.2f}s"
            )
