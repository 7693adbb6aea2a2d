# -*- coding: utf-8 -*-
"""
Industry Detector Engine - OT Canon Asset Canonization

Classifies the industry vertical of a dataset from textual patterns so that
industry-specific behaviour (unit knowledge, dependency templates, functional
gap analysis) only runs against an explicit or reliably detected industry.

Scoring:
    - Unit/area name patterns: weight 3
    - Equipment-type patterns: weight 2
    - Terminology patterns: weight 1

Each pattern that matches anywhere in the sample scores its weight once for
the whole match and once per capture group; repeats add nothing.

Confidence is the best industry's weight as a percentage of all weights.
Detection is reliable only when confidence >= 30 and the best weight > 10.

Example:
    >>> from otcanon.industry_detector import IndustryDetectorEngine
    >>> engine = IndustryDetectorEngine()
    >>> engine.detect_from_filename("refinery_baseline.csv")
    'oil-gas'

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from otcanon.config import OTCanonConfig, get_config
from otcanon.models import IndustryDetection, IndustryScore, NormalizedAsset

logger = logging.getLogger(__name__)

__all__ = [
    "INDUSTRY_PROFILES",
    "IndustryProfile",
    "IndustryDetectorEngine",
]


# ---------------------------------------------------------------------------
# Industry profiles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndustryProfile:
    """Detection patterns of one industry vertical."""

    industry_id: str
    name: str
    unit_patterns: Tuple[Pattern[str], ...]
    equipment_patterns: Tuple[Pattern[str], ...]
    term_patterns: Tuple[Pattern[str], ...]
    filename_pattern: Pattern[str]


def _rx(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


#: Candidate industries in tie-break order.
INDUSTRY_PROFILES: Tuple[IndustryProfile, ...] = (
    IndustryProfile(
        industry_id="oil-gas",
        name="Oil & Gas",
        unit_patterns=_rx(
            r"\b(cdu|fcc|hds|hcu|nht|reformer|alkylation|coker|visbreaker)\b",
            r"\b(crude|distillation|hydrocracker|hydrotreater)\b",
            r"\b(flare|tank.?farm|loading|offsite)\b",
            r"\b(refiner|upstream|downstream|midstream)\b",
        ),
        equipment_patterns=_rx(
            r"\b(compressor|pump|turbine|exchanger|vessel|reactor|column|tower)\b",
            r"\b(valve|transmitter|analyzer|flowmeter)\b",
            r"\b(burner|furnace|heater|boiler)\b",
        ),
        term_patterns=_rx(
            r"\b(bpd|barrel|crude|refin|petro|hydrocarbon|sulfur|h2s)\b",
            r"\b(flammable|explosive|hazardous.?area|atex|iecex)\b",
        ),
        filename_pattern=re.compile(r"refiner|oil|gas|petro|crude", re.IGNORECASE),
    ),
    IndustryProfile(
        industry_id="pharma",
        name="Pharmaceutical",
        unit_patterns=_rx(
            r"\b(api|formulation|granulation|coating|packaging)\b",
            r"\b(ferment|bioreactor|chromatograph|centrifuge)\b",
            r"\b(clean.?room|sterile|aseptic|containment)\b",
            r"\b(qc|qa|quality|validation)\b",
        ),
        equipment_patterns=_rx(
            r"\b(reactor|mixer|dryer|mill|tablet.?press)\b",
            r"\b(autoclave|lyophilizer|freeze.?dry)\b",
            r"\b(hvac|ahu|ffu|laminar)\b",
        ),
        term_patterns=_rx(
            r"\b(gmp|fda|21.?cfr|batch|lot|campaign)\b",
            r"\b(cip|sip|wfi|purified.?water)\b",
            r"\b(deviation|capa|change.?control)\b",
        ),
        filename_pattern=re.compile(r"pharma|drug|gmp|fda|batch", re.IGNORECASE),
    ),
    IndustryProfile(
        industry_id="utilities",
        name="Power & Utilities",
        unit_patterns=_rx(
            r"\b(generator|turbine|substation|switchyard)\b",
            r"\b(boiler|hrsg|condenser|cooling.?tower)\b",
            r"\b(transmission|distribution|grid|feeder)\b",
            r"\b(water.?treatment|wastewater|desal)\b",
        ),
        equipment_patterns=_rx(
            r"\b(transformer|breaker|relay|capacitor|reactor)\b",
            r"\b(inverter|rectifier|ups|battery)\b",
            r"\b(meter|ied|rtu|bay.?controller)\b",
        ),
        term_patterns=_rx(
            r"\b(mw|kv|kva|mvar|frequency|voltage)\b",
            r"\b(nerc|cip|ferc|ieee|iec.?61850)\b",
            r"\b(scada|ems|dms|oms|agc)\b",
        ),
        filename_pattern=re.compile(r"power|util|grid|generat|substation", re.IGNORECASE),
    ),
    IndustryProfile(
        industry_id="automotive",
        name="Automotive Manufacturing",
        unit_patterns=_rx(
            r"\b(body.?shop|paint|assembly|stamping|weld)\b",
            r"\b(trim|chassis|final|engine|transmission)\b",
            r"\b(agv|conveyor|robot|cell)\b",
        ),
        equipment_patterns=_rx(
            r"\b(robot|plc|drive|servo|motor)\b",
            r"\b(vision|sensor|barcode|rfid)\b",
            r"\b(press|cnc|lathe|mill)\b",
        ),
        term_patterns=_rx(
            r"\b(oem|tier.?[123]|jit|kanban|andon)\b",
            r"\b(vin|sku|bom|takt|cycle.?time)\b",
        ),
        filename_pattern=re.compile(r"auto|vehicle|assembly|robot", re.IGNORECASE),
    ),
)

_PROFILES_BY_ID: Dict[str, IndustryProfile] = {p.industry_id: p for p in INDUSTRY_PROFILES}

_UNIT_WEIGHT = 3
_EQUIPMENT_WEIGHT = 2
_TERM_WEIGHT = 1


def _count(patterns: Sequence[Pattern[str]], text: str) -> int:
    # A matching pattern counts its whole match plus each capture group, once
    return sum(1 + p.groups for p in patterns if p.search(text))


# ---------------------------------------------------------------------------
# IndustryDetectorEngine
# ---------------------------------------------------------------------------


class IndustryDetectorEngine:
    """Industry vertical detection engine.

    Attributes:
        _config: Active OTCanonConfig.
        _lock: Threading lock for statistics.
        _stats: Aggregate detection statistics.

    Example:
        >>> engine = IndustryDetectorEngine()
        >>> result = engine.detect([{"unit": "CDU", "note": "crude charge"}])
        >>> result.scores[0].industry_id
        'oil-gas'
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        """Initialize IndustryDetectorEngine.

        Args:
            config: Optional config; uses the global singleton when None.
        """
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "detections": 0,
            "reliable_detections": 0,
        }
        logger.info(
            "IndustryDetectorEngine initialized: %d industries, sample=%d, "
            "min_confidence=%d, min_weight=%d",
            len(INDUSTRY_PROFILES),
            self._config.industry_sample_size,
            self._config.industry_min_confidence,
            self._config.industry_min_weight,
        )

    def detect(
        self,
        rows: Sequence[Union[Mapping[str, Any], NormalizedAsset]],
    ) -> IndustryDetection:
        """Score every industry against a sample of rows.

        Args:
            rows: Raw or normalized rows; only the first
                ``industry_sample_size`` are examined.

        Returns:
            IndustryDetection; ``detected`` is None unless the result is
            reliable.
        """
        start = time.monotonic()
        sample = list(rows[: self._config.industry_sample_size])
        text = " ".join(self._row_text(row) for row in sample).lower()

        weights: List[Tuple[IndustryProfile, int]] = []
        for profile in INDUSTRY_PROFILES:
            weight = (
                _count(profile.unit_patterns, text) * _UNIT_WEIGHT
                + _count(profile.equipment_patterns, text) * _EQUIPMENT_WEIGHT
                + _count(profile.term_patterns, text) * _TERM_WEIGHT
            )
            weights.append((profile, weight))

        # sorted() is stable: ties keep profile order
        ranked = sorted(weights, key=lambda item: item[1], reverse=True)
        total = sum(w for _, w in ranked)
        best, best_weight = ranked[0]
        confidence = self._percent(best_weight, total)
        reliable = (
            confidence >= self._config.industry_min_confidence
            and best_weight > self._config.industry_min_weight
        )

        if reliable:
            reason = (
                f"Detected {best.name} with {confidence}% confidence "
                f"based on terminology patterns"
            )
        elif total == 0:
            reason = "No industry-specific patterns found in data"
        else:
            reason = f"Low confidence ({confidence}%) - manual selection recommended"

        result = IndustryDetection(
            detected=best.industry_id if reliable else None,
            name=best.name if reliable else None,
            confidence=confidence,
            is_reliable=reliable,
            scores=[
                IndustryScore(
                    industry_id=profile.industry_id,
                    name=profile.name,
                    score=weight,
                    percentage=self._percent(weight, total),
                )
                for profile, weight in ranked
            ],
            sample_size=len(sample),
            reason=reason,
        )

        with self._lock:
            self._stats["detections"] += 1
            if reliable:
                self._stats["reliable_detections"] += 1

        logger.info(
            "Industry detection: best=%s weight=%d confidence=%d%% reliable=%s "
            "sample=%d (%.1fms)",
            best.industry_id, best_weight, confidence, reliable,
            len(sample), (time.monotonic() - start) * 1000.0,
        )
        return result

    def detect_from_filename(self, filename: str) -> Optional[str]:
        """Return an industry id hinted by a filename, or None."""
        for profile in INDUSTRY_PROFILES:
            if profile.filename_pattern.search(filename or ""):
                return profile.industry_id
        return None

    def get_industry_info(self, industry_id: Optional[str]) -> Optional[Dict[str, str]]:
        """Return ``{"id", "name"}`` for a known industry, else None."""
        profile = _PROFILES_BY_ID.get(industry_id or "")
        if profile is None:
            return None
        return {"id": profile.industry_id, "name": profile.name}

    def list_industries(self) -> List[Dict[str, str]]:
        """Return every supported industry as ``{"id", "name"}``."""
        return [{"id": p.industry_id, "name": p.name} for p in INDUSTRY_PROFILES]

    def is_supported(self, industry_id: Optional[str]) -> bool:
        return (industry_id or "") in _PROFILES_BY_ID

    def get_statistics(self) -> Dict[str, Any]:
        """Return aggregate detection statistics."""
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_text(row: Union[Mapping[str, Any], NormalizedAsset]) -> str:
        if isinstance(row, NormalizedAsset):
            row = row.to_record()
        return " ".join(v for v in row.values() if isinstance(v, str))

    @staticmethod
    def _percent(part: int, total: int) -> int:
        if total <= 0:
            return 0
        # Half-up rounding
        return int(part * 100 / total + 0.5)
