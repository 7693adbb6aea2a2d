# -*- coding: utf-8 -*-
"""
Cross-Validator - OT Canon Asset Canonization

Scores field agreement between the two sides of a matched record pair and
assembles the batch human-review queue.

Five agreement checks (both sides must be non-empty for a check to pass):

    tag_id          exact
    ip_address      exact
    hostname        case-insensitive
    device_type     engineering text contains the first four characters of
                    the discovered text (case-insensitive)
    manufacturer    case-insensitive

Verdicts: >= 3 agreements is HIGH/VERIFIED, >= 1 is MEDIUM/PARTIAL, 0 is
LOW/SUSPICIOUS. A pair with no discovered side is LOW/UNVALIDATED.

Example:
    >>> from otcanon.cross_validator import CrossValidatorEngine
    >>> from otcanon.models import NormalizedAsset
    >>> engine = CrossValidatorEngine()
    >>> result = engine.validate(
    ...     NormalizedAsset(tag_id="FT-200"),
    ...     NormalizedAsset(tag_id="FT-200", ip_address="10.0.0.5"),
    ... )
    >>> result.status.value, result.agreement_count
    ('PARTIAL', 1)

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.models import (
    CanonicalAsset,
    CrossValidation,
    MatchResult,
    NormalizedAsset,
    ReconciliationStatus,
    ReviewItem,
    ReviewQueue,
    ValidationConfidence,
    ValidationStatus,
)

logger = logging.getLogger(__name__)

__all__ = [
    "AGREEMENT_CHECKS",
    "CrossValidatorEngine",
]


def _same(a: str, b: str) -> bool:
    return bool(a and b and a == b)


def _same_ci(a: str, b: str) -> bool:
    return bool(a and b and a.lower() == b.lower())


def _type_prefix(eng: str, disc: str) -> bool:
    return bool(eng and disc and disc.lower()[:4] in eng.lower())


#: (check name, predicate over (engineering, discovered)) in evaluation order.
AGREEMENT_CHECKS: Tuple[Tuple[str, Callable[[NormalizedAsset, NormalizedAsset], bool]], ...] = (
    ("tag_id", lambda e, d: _same(e.tag_id, d.tag_id)),
    ("ip_address", lambda e, d: _same(e.ip_address, d.ip_address)),
    ("hostname", lambda e, d: _same_ci(e.hostname, d.hostname)),
    ("device_type", lambda e, d: _type_prefix(e.device_type, d.device_type)),
    ("manufacturer", lambda e, d: _same_ci(e.manufacturer, d.manufacturer)),
)

_VERIFIED_THRESHOLD = 3
_PARTIAL_THRESHOLD = 1


class CrossValidatorEngine:
    """Agreement scoring for matched pairs and review-queue assembly."""

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "validations": 0,
            ValidationStatus.VERIFIED.value: 0,
            ValidationStatus.PARTIAL.value: 0,
            ValidationStatus.SUSPICIOUS.value: 0,
            ValidationStatus.UNVALIDATED.value: 0,
            "review_queues": 0,
        }
        logger.info("CrossValidatorEngine initialized: checks=%d", len(AGREEMENT_CHECKS))

    # ------------------------------------------------------------------
    # Pair validation
    # ------------------------------------------------------------------

    def validate(
        self,
        engineering: Optional[NormalizedAsset],
        discovered: Optional[NormalizedAsset],
    ) -> CrossValidation:
        """Score agreement between an engineering record and its discovered peer.

        Args:
            engineering: Engineering side, or None for an orphan.
            discovered: Discovered side, or None for a blind spot.

        Returns:
            CrossValidation verdict with per-check results.
        """
        if engineering is None or discovered is None:
            result = CrossValidation(
                status=ValidationStatus.UNVALIDATED,
                confidence=ValidationConfidence.LOW,
                agreement_count=0,
            )
        else:
            checks = {name: check(engineering, discovered) for name, check in AGREEMENT_CHECKS}
            agreement = sum(1 for passed in checks.values() if passed)
            if agreement >= _VERIFIED_THRESHOLD:
                status, confidence = ValidationStatus.VERIFIED, ValidationConfidence.HIGH
            elif agreement >= _PARTIAL_THRESHOLD:
                status, confidence = ValidationStatus.PARTIAL, ValidationConfidence.MEDIUM
            else:
                status, confidence = ValidationStatus.SUSPICIOUS, ValidationConfidence.LOW
            result = CrossValidation(
                status=status,
                confidence=confidence,
                agreement_count=agreement,
                checks=checks,
            )

        with self._lock:
            self._stats["validations"] += 1
            self._stats[result.status.value] += 1
        return result

    def validate_match(self, match: MatchResult) -> CrossValidation:
        """Validate a MatchResult."""
        return self.validate(match.engineering, match.discovered)

    # ------------------------------------------------------------------
    # Review queue
    # ------------------------------------------------------------------

    def build_review_queue(self, assets: Iterable[CanonicalAsset]) -> ReviewQueue:
        """Collect assets that need a human decision.

        Categories, each capped by configuration:
            low_confidence: matched pairs whose validation confidence is LOW.
            suspicious_classifications: tier 3 assets with a discovered IP.
            critical_orphans: orphans classified tier 1 or 2.
            unexpected_blind_spots: tier 1 blind spots whose engineering
                record carries an IP address.

        Args:
            assets: Canonical assets of one run, in output order.

        Returns:
            ReviewQueue.
        """
        cfg = self._config
        low_confidence: List[ReviewItem] = []
        suspicious: List[ReviewItem] = []
        orphans: List[ReviewItem] = []
        blind_spots: List[ReviewItem] = []

        for asset in assets:
            tier = asset.classification.tier
            if (
                asset.status == ReconciliationStatus.MATCHED
                and asset.validation.confidence == ValidationConfidence.LOW
            ):
                _append(low_confidence, cfg.review_low_confidence_limit, asset,
                        "Matched pair has no agreeing fields")
            if tier == 3 and asset.discovered is not None and asset.discovered.ip_address:
                _append(suspicious, cfg.review_suspicious_limit, asset,
                        "Classified passive but discovered with an IP address")
            if asset.status == ReconciliationStatus.ORPHAN and tier <= 2:
                _append(orphans, cfg.review_orphan_limit, asset,
                        "Networkable device missing from engineering records")
            if (
                asset.status == ReconciliationStatus.BLIND_SPOT
                and tier == 1
                and asset.engineering is not None
                and asset.engineering.ip_address
            ):
                _append(blind_spots, cfg.review_orphan_limit, asset,
                        "Critical asset with a documented IP not seen on the network")

        queue = ReviewQueue(
            low_confidence=low_confidence,
            suspicious_classifications=suspicious,
            critical_orphans=orphans,
            unexpected_blind_spots=blind_spots,
        )
        with self._lock:
            self._stats["review_queues"] += 1
        logger.info(
            "Review queue built: low_confidence=%d suspicious=%d critical_orphans=%d "
            "unexpected_blind_spots=%d",
            len(low_confidence), len(suspicious), len(orphans), len(blind_spots),
        )
        return queue

    def get_statistics(self) -> Dict[str, Any]:
        """Return validation statistics."""
        with self._lock:
            return dict(self._stats)


def _append(bucket: List[ReviewItem], limit: int, asset: CanonicalAsset, reason: str) -> None:
    if len(bucket) >= limit:
        return
    bucket.append(ReviewItem(
        asset_id=asset.asset_id,
        tag_id=asset.tag_id,
        ip_address=asset.ip_address,
        device_type=asset.device_type,
        tier=asset.classification.tier,
        reason=reason,
    ))
