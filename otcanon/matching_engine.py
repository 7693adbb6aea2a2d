# -*- coding: utf-8 -*-
"""
Matching Engine - OT Canon Asset Canonization

Links engineering baseline records to network discovery records using
strategies executed in strict priority order, each with a fixed confidence:

    1. exact tag_id                       (100)
    2. exact IP address                   (95)
    3. case-insensitive exact hostname    (90)
    4. exact MAC address                  (85)

Within a strategy each engineering record takes the first still-unused
discovery record with an equal, non-empty key. A consumed record is never
reused by a later strategy, so every run is at-most-one-to-one. Remaining
engineering records are blind spots; remaining discovery records are orphans.

Used-record tracking lives in local index sets returned with the outcome;
the engine holds no per-run state.

Example:
    >>> from otcanon.matching_engine import MatchingEngine
    >>> from otcanon.models import NormalizedAsset
    >>> engine = MatchingEngine()
    >>> outcome = engine.match(
    ...     [NormalizedAsset(tag_id="FT-200")],
    ...     [NormalizedAsset(tag_id="FT-200", ip_address="10.0.0.5")],
    ... )
    >>> outcome.matches[0].confidence, outcome.stats.coverage
    (100, 100)

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Set, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.execution import Deadline
from otcanon.models import MatchOutcome, MatchResult, MatchStats, MatchStrategy, NormalizedAsset

logger = logging.getLogger(__name__)

__all__ = [
    "MATCH_STRATEGIES",
    "MatchingEngine",
    "coverage_percent",
]


def _key_tag(asset: NormalizedAsset) -> str:
    return asset.tag_id


def _key_ip(asset: NormalizedAsset) -> str:
    return asset.ip_address


def _key_hostname(asset: NormalizedAsset) -> str:
    return asset.hostname.lower()


def _key_mac(asset: NormalizedAsset) -> str:
    return asset.mac_address


#: (strategy, key function, confidence) in execution order.
MATCH_STRATEGIES: Tuple[Tuple[MatchStrategy, Callable[[NormalizedAsset], str], int], ...] = (
    (MatchStrategy.TAG_ID, _key_tag, 100),
    (MatchStrategy.IP_ADDRESS, _key_ip, 95),
    (MatchStrategy.HOSTNAME, _key_hostname, 90),
    (MatchStrategy.MAC_ADDRESS, _key_mac, 85),
)

# Deadline is checked every this many engineering records
_DEADLINE_STRIDE = 256


def coverage_percent(matched: int, total: int) -> int:
    """Return round(matched / total * 100) with half-up rounding; 0 when total is 0."""
    if total <= 0:
        return 0
    return (matched * 200 + total) // (2 * total)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class MatchingEngine:
    """Multi-strategy engineering/discovery record linkage engine.

    Attributes:
        _config: Active OTCanonConfig.
        _lock: Threading lock for statistics.
        _stats: Aggregate matching statistics.
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        """Initialize MatchingEngine.

        Args:
            config: Optional config; uses the global singleton when None.
        """
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "runs": 0,
            "total_matches": 0,
            "by_strategy": {s.value: 0 for s, _, _ in MATCH_STRATEGIES},
            "total_time_ms": 0.0,
        }
        logger.info(
            "MatchingEngine initialized: strategies=%s",
            ",".join(s.value for s, _, _ in MATCH_STRATEGIES),
        )

    def match(
        self,
        engineering: Sequence[NormalizedAsset],
        discovery: Sequence[NormalizedAsset],
        deadline: Optional[Deadline] = None,
    ) -> MatchOutcome:
        """Match engineering records against discovery records.

        Args:
            engineering: Engineering baseline records.
            discovery: Network discovery records.
            deadline: Optional time budget; defaults to the configured
                ``operation_timeout_seconds``.

        Returns:
            MatchOutcome with matches (in strategy order), blind spots,
            orphans, stats and the consumed index sets.

        Raises:
            TimeoutError: If the deadline expires mid-run.
        """
        start = time.monotonic()
        deadline = deadline or Deadline(self._config.operation_timeout_seconds)

        used_eng: Set[int] = set()
        used_disc: Set[int] = set()
        matches: List[MatchResult] = []
        by_strategy: Dict[str, int] = {}

        for strategy, key_fn, confidence in MATCH_STRATEGIES:
            index = self._build_index(discovery, key_fn, used_disc)
            count = 0
            for i, eng in enumerate(engineering):
                if i % _DEADLINE_STRIDE == 0:
                    deadline.check("matching")
                if i in used_eng:
                    continue
                key = key_fn(eng)
                if not key:
                    continue
                candidates = index.get(key)
                if not candidates:
                    continue
                j = candidates.popleft()
                used_eng.add(i)
                used_disc.add(j)
                matches.append(MatchResult(
                    match_id=_new_id("MTC"),
                    engineering=eng,
                    discovered=discovery[j],
                    strategy=strategy,
                    confidence=confidence,
                    engineering_index=i,
                    discovery_index=j,
                ))
                count += 1
            by_strategy[strategy.value] = count
            logger.debug("Strategy %s matched %d records", strategy.value, count)

        blind_spots = [e for i, e in enumerate(engineering) if i not in used_eng]
        orphans = [d for j, d in enumerate(discovery) if j not in used_disc]

        stats = MatchStats(
            engineering_total=len(engineering),
            discovery_total=len(discovery),
            matched=len(matches),
            blind_spots=len(blind_spots),
            orphans=len(orphans),
            coverage=coverage_percent(len(matches), len(engineering)),
            coverage_defined=len(engineering) > 0,
            by_strategy=by_strategy,
        )

        elapsed_ms = (time.monotonic() - start) * 1000.0
        with self._lock:
            self._stats["runs"] += 1
            self._stats["total_matches"] += len(matches)
            for name, count in by_strategy.items():
                self._stats["by_strategy"][name] += count
            self._stats["total_time_ms"] += elapsed_ms

        logger.info(
            "Matching complete: engineering=%d discovery=%d matched=%d "
            "blind_spots=%d orphans=%d coverage=%d%% (%.1fms)",
            stats.engineering_total, stats.discovery_total, stats.matched,
            stats.blind_spots, stats.orphans, stats.coverage, elapsed_ms,
        )

        return MatchOutcome(
            matches=matches,
            blind_spots=blind_spots,
            orphans=orphans,
            stats=stats,
            used_engineering_indices=sorted(used_eng),
            used_discovery_indices=sorted(used_disc),
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Return aggregate matching statistics."""
        with self._lock:
            stats = dict(self._stats)
            stats["by_strategy"] = dict(self._stats["by_strategy"])
            return stats

    @staticmethod
    def _build_index(
        records: Sequence[NormalizedAsset],
        key_fn: Callable[[NormalizedAsset], str],
        used: Set[int],
    ) -> Dict[str, Deque[int]]:
        """Map each non-empty key to its unused record positions, in order."""
        index: Dict[str, Deque[int]] = defaultdict(deque)
        for j, record in enumerate(records):
            if j in used:
                continue
            key = key_fn(record)
            if key:
                index[key].append(j)
        return index
