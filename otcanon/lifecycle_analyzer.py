# -*- coding: utf-8 -*-
"""
Lifecycle Analyzer Engine - OT Canon Asset Canonization

Derives an end-of-life / end-of-support status for each asset:

    1. The manufacturer is normalized through a vendor alias table.
    2. Per-vendor model patterns identify a known product family.
    3. The family's EOL/EOS dates, replacement and severity come from a
       static vendor lifecycle table.
    4. Without a table entry, an installation date gives an estimated age
       that is compared with the typical lifespan of the device category.

Status thresholds (days relative to the reference time):
    - days_until_eos < -1095        -> obsolete
    - days_until_eos < 0            -> eos
    - days_until_eol < 0            -> eol
    - days_until_eol < 730          -> approaching_eol
    - otherwise                     -> mature

The reference time is always an explicit argument so results are
reproducible.

Example:
    >>> from datetime import datetime, timezone
    >>> from otcanon.lifecycle_analyzer import LifecycleAnalyzerEngine
    >>> engine = LifecycleAnalyzerEngine()
    >>> ref = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> result = engine.analyze({"manufacturer": "Rockwell", "model": "1756-L55"}, ref)
    >>> result.status.value, result.replacement
    ('eos', 'ControlLogix 5580')

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
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.dates import days_between, parse_datetime, to_utc
from otcanon.device_context import asset_field
from otcanon.execution import parallel_map
from otcanon.models import (
    LifecycleAssessment,
    LifecycleCriticalItem,
    LifecycleSource,
    LifecycleStatus,
    LifecycleSummary,
    Recommendation,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ProductLifecycle",
    "VENDOR_EOL_DATABASE",
    "TYPICAL_LIFESPANS",
    "VENDOR_ALIASES",
    "PRODUCT_FAMILY_PATTERNS",
    "LifecycleAnalyzerEngine",
]


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductLifecycle:
    """Published lifecycle of one product family."""

    eol: Optional[date]
    eos: Optional[date]
    replacement: Optional[str]
    severity: str
    notes: Optional[str] = None


def _life(eol: Optional[str], eos: Optional[str], replacement: Optional[str],
          severity: str, notes: Optional[str] = None) -> ProductLifecycle:
    return ProductLifecycle(
        eol=date.fromisoformat(eol) if eol else None,
        eos=date.fromisoformat(eos) if eos else None,
        replacement=replacement,
        severity=severity,
        notes=notes,
    )


#: vendor -> product family -> lifecycle
VENDOR_EOL_DATABASE: Dict[str, Dict[str, ProductLifecycle]] = {
    "rockwell": {
        "controllogix_l55": _life("2018-06-01", "2023-06-01", "ControlLogix 5580", "critical"),
        "controllogix_l61": _life("2020-12-01", "2025-12-01", "ControlLogix 5580", "high"),
        "slc_500": _life("2015-01-01", "2020-01-01", "CompactLogix", "critical"),
        "plc_5": _life("2012-01-01", "2017-01-01", "ControlLogix", "critical"),
        "rslogix_5000_v20": _life("2019-01-01", "2024-01-01", "Studio 5000 v32+", "high"),
        "panelview_plus_6": _life("2021-01-01", "2026-01-01", "PanelView Plus 7", "medium"),
    },
    "siemens": {
        "s7_300": _life("2020-10-01", "2023-10-01", "S7-1500", "critical"),
        "s7_400": _life("2020-10-01", "2025-10-01", "S7-1500", "critical"),
        "wincc_v7": _life("2022-01-01", "2027-01-01", "WinCC Unified", "medium"),
        "step7_classic": _life("2017-01-01", "2022-01-01", "TIA Portal", "high"),
    },
    "schneider": {
        "modicon_m340": _life(None, None, None, "low", "Still actively supported"),
        "modicon_premium": _life("2020-12-01", "2025-12-01", "Modicon M580", "high"),
        "quantum": _life("2020-12-01", "2028-12-01", "Modicon M580", "medium"),
    },
    "honeywell": {
        "experion_r400": _life("2019-01-01", "2024-01-01", "Experion PKS R500+", "high"),
        "c300_controller": _life(None, None, None, "low", "Current generation"),
    },
    "emerson": {
        "deltav_v11": _life("2020-01-01", "2025-01-01", "DeltaV v14+", "high"),
        "ovation": _life(None, None, None, "low", "Current generation"),
    },
    "abb": {
        "ac800m": _life(None, None, None, "low", "Current generation"),
        "ac450": _life("2018-01-01", "2023-01-01", "AC800M", "critical"),
    },
    "yokogawa": {
        "centum_vp_r5": _life("2020-01-01", "2025-01-01", "CENTUM VP R6+", "high"),
        "prosafe_rs": _life(None, None, None, "low", "Current generation"),
    },
    "ge": {
        "mark_vie": _life(None, None, None, "low", "Current generation"),
        "mark_v": _life("2015-01-01", "2020-01-01", "Mark VIe", "critical"),
    },
    "cisco": {
        "ie_2000": _life("2020-01-01", "2025-01-01", "IE 3x00 series", "high"),
        "ie_3000": _life("2022-01-01", "2027-01-01", "IE 3x00 series", "medium"),
    },
    "hirschmann": {
        "rs20": _life("2019-01-01", "2024-01-01", "RSP series", "high"),
    },
    "microsoft": {
        "windows_xp": _life("2014-04-08", "2014-04-08", "Windows 10/11", "critical"),
        "windows_7": _life("2020-01-14", "2023-01-10", "Windows 10/11", "critical"),
        "windows_server_2008": _life("2020-01-14", "2023-01-10", "Windows Server 2019+", "critical"),
        "windows_server_2012": _life("2023-10-10", "2026-10-13", "Windows Server 2022", "high"),
    },
}

#: Device category -> (min, typical, max) service life in years. Order matters.
TYPICAL_LIFESPANS: Tuple[Tuple[str, Tuple[int, int, int]], ...] = (
    ("plc", (10, 15, 20)),
    ("dcs", (15, 20, 25)),
    ("rtu", (10, 15, 20)),
    ("sis", (10, 15, 20)),
    ("hmi", (5, 8, 12)),
    ("workstation", (4, 6, 10)),
    ("server", (4, 6, 8)),
    ("switch", (5, 8, 12)),
    ("firewall", (4, 6, 8)),
    ("router", (5, 8, 12)),
    ("transmitter", (10, 15, 25)),
    ("analyzer", (8, 12, 18)),
    ("valve", (15, 20, 30)),
    ("drive", (10, 15, 20)),
)

VENDOR_ALIASES: Dict[str, str] = {
    "allen-bradley": "rockwell",
    "allen bradley": "rockwell",
    "ab": "rockwell",
    "rockwell automation": "rockwell",
    "siemens ag": "siemens",
    "schneider electric": "schneider",
    "modicon": "schneider",
    "honeywell process": "honeywell",
    "emerson process": "emerson",
    "fisher": "emerson",
    "rosemount": "emerson",
    "abb ltd": "abb",
    "yokogawa electric": "yokogawa",
    "general electric": "ge",
    "hirschmann automation": "hirschmann",
    "belden": "hirschmann",
}


def _families(*rows: Tuple[str, str]) -> Tuple[Tuple[Pattern[str], str], ...]:
    return tuple((re.compile(p, re.IGNORECASE), family) for p, family in rows)


#: vendor -> ordered (model pattern, product family); first match wins
PRODUCT_FAMILY_PATTERNS: Dict[str, Tuple[Tuple[Pattern[str], str], ...]] = {
    "rockwell": _families(
        (r"1756-l55", "controllogix_l55"),
        (r"1756-l6[1-4]", "controllogix_l61"),
        (r"1747", "slc_500"),
        (r"plc.?5", "plc_5"),
        (r"panelview.*plus.*6", "panelview_plus_6"),
        (r"rslogix.*v?20\b", "rslogix_5000_v20"),
    ),
    "siemens": _families(
        (r"s7.?300", "s7_300"),
        (r"s7.?400", "s7_400"),
        (r"6es7.?3", "s7_300"),
        (r"6es7.?4", "s7_400"),
        (r"wincc.*v?7", "wincc_v7"),
        (r"step.?7.*(classic|v5)", "step7_classic"),
    ),
    "schneider": _families(
        (r"m340", "modicon_m340"),
        (r"premium", "modicon_premium"),
        (r"quantum", "quantum"),
        (r"tsx.?p", "modicon_premium"),
    ),
    "honeywell": _families(
        (r"experion.*r4\d\d", "experion_r400"),
        (r"c300", "c300_controller"),
    ),
    "emerson": _families(
        (r"deltav.*\b(v|version\s*)?11\b", "deltav_v11"),
        (r"ovation", "ovation"),
    ),
    "abb": _families(
        (r"ac\s?800m", "ac800m"),
        (r"ac\s?450", "ac450"),
    ),
    "yokogawa": _families(
        (r"centum.*r5", "centum_vp_r5"),
        (r"prosafe", "prosafe_rs"),
    ),
    "ge": _families(
        (r"mark\s?vie", "mark_vie"),
        (r"mark\s?v\b", "mark_v"),
    ),
    "cisco": _families(
        (r"ie.?2000", "ie_2000"),
        (r"ie.?3000", "ie_3000"),
    ),
    "hirschmann": _families(
        (r"rs20", "rs20"),
    ),
    "microsoft": _families(
        (r"xp", "windows_xp"),
        (r"windows.?7", "windows_7"),
        (r"2008", "windows_server_2008"),
        (r"2012", "windows_server_2012"),
    ),
}

_STATUS_ORDER = (
    LifecycleStatus.CURRENT,
    LifecycleStatus.MATURE,
    LifecycleStatus.APPROACHING_EOL,
    LifecycleStatus.EOL,
    LifecycleStatus.EOS,
    LifecycleStatus.OBSOLETE,
    LifecycleStatus.UNKNOWN,
)


# ---------------------------------------------------------------------------
# LifecycleAnalyzerEngine
# ---------------------------------------------------------------------------


class LifecycleAnalyzerEngine:
    """Lifecycle / EOL analysis engine.

    Attributes:
        _config: Active OTCanonConfig.
        _lock: Threading lock for statistics.
        _stats: Per-status assessment counters.

    Example:
        >>> engine = LifecycleAnalyzerEngine()
        >>> engine.normalize_vendor("Allen-Bradley")
        'rockwell'
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {s.value: 0 for s in _STATUS_ORDER}
        logger.info(
            "LifecycleAnalyzerEngine initialized: %d vendors, %d product families",
            len(VENDOR_EOL_DATABASE),
            sum(len(v) for v in VENDOR_EOL_DATABASE.values()),
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def normalize_vendor(self, vendor: Optional[str]) -> Optional[str]:
        """Map a manufacturer name to its lifecycle table key.

        Returns None for an empty name; unknown vendors are returned
        lower-cased and trimmed.
        """
        if not vendor or not vendor.strip():
            return None
        name = vendor.strip().lower()
        if name in VENDOR_ALIASES:
            return VENDOR_ALIASES[name]
        if name in VENDOR_EOL_DATABASE:
            return name
        first = name.split()[0]
        if first in VENDOR_EOL_DATABASE:
            return first
        return VENDOR_ALIASES.get(first, name)

    def identify_product_family(self, vendor: Optional[str], model: Optional[str]) -> Optional[str]:
        """Return the product family of a model for a normalized vendor."""
        if not vendor or not model:
            return None
        for pattern, family in PRODUCT_FAMILY_PATTERNS.get(vendor, ()):
            if pattern.search(model):
                return family
        return None

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze(
        self,
        asset: Any,
        reference_time: datetime,
        device_category: Optional[str] = None,
    ) -> LifecycleAssessment:
        """Compute the lifecycle status of one asset.

        Args:
            asset: Object or mapping with ``manufacturer``, ``model``,
                ``install_date`` and ``device_type``.
            reference_time: Point in time the status is evaluated at.
            device_category: Inferred device type used when the
                ``device_type`` text names no known category.

        Returns:
            LifecycleAssessment; status ``unknown`` when neither a table
            entry nor an installation date is available.
        """
        ref = to_utc(reference_time)
        vendor = self.normalize_vendor(asset_field(asset, "manufacturer"))
        model = asset_field(asset, "model")
        family = self.identify_product_family(vendor, model)
        entry = VENDOR_EOL_DATABASE.get(vendor or "", {}).get(family or "")

        notes: List[str] = []
        days_until_eol: Optional[int] = None
        days_until_eos: Optional[int] = None
        if entry is not None:
            if entry.notes:
                notes.append(entry.notes)
            if entry.eol is not None:
                days_until_eol = days_between(ref, to_utc(entry.eol))
            if entry.eos is not None:
                days_until_eos = days_between(ref, to_utc(entry.eos))

        age_years, remaining_years = self._estimate_age(asset, ref, device_category, notes)

        status = LifecycleStatus.UNKNOWN
        source = LifecycleSource.NONE
        severity = entry.severity if entry is not None else "unknown"

        if days_until_eos is not None:
            source = LifecycleSource.VENDOR_DATABASE
            status = self._status_from_dates(days_until_eol, days_until_eos)
        elif remaining_years is not None:
            source = LifecycleSource.ESTIMATED
            status, severity = self._status_from_estimate(remaining_years)
        elif entry is not None:
            # Listed without published dates: actively supported
            source = LifecycleSource.VENDOR_DATABASE
            status = LifecycleStatus.CURRENT

        with self._lock:
            self._stats[status.value] += 1

        return LifecycleAssessment(
            status=status,
            source=source,
            vendor=vendor,
            product_family=family,
            eol_date=entry.eol if entry is not None else None,
            eos_date=entry.eos if entry is not None else None,
            days_until_eol=days_until_eol,
            days_until_eos=days_until_eos,
            replacement=entry.replacement if entry is not None else None,
            severity=severity,
            estimated_age_years=age_years,
            estimated_remaining_years=remaining_years,
            notes=notes,
        )

    def analyze_many(
        self,
        assets: Sequence[Any],
        reference_time: datetime,
        device_categories: Optional[Sequence[Optional[str]]] = None,
    ) -> List[LifecycleAssessment]:
        """Analyze many assets, preserving input order."""
        start = time.monotonic()
        categories = list(device_categories or [None] * len(assets))
        pairs = list(zip(assets, categories))
        results = parallel_map(
            lambda pair: self.analyze(pair[0], reference_time, pair[1]),
            pairs,
            self._config.max_workers,
        )
        logger.info(
            "Lifecycle analyzed for %d assets in %.1fms",
            len(results), (time.monotonic() - start) * 1000.0,
        )
        return results

    def summarize(
        self,
        assets: Sequence[Any],
        reference_time: Optional[datetime] = None,
    ) -> LifecycleSummary:
        """Aggregate lifecycle statuses into counts and recommendations.

        Args:
            assets: Assets carrying a ``lifecycle`` assessment, or raw assets
                to analyze against ``reference_time``.
            reference_time: Required only for assets without an assessment.

        Returns:
            LifecycleSummary with per-status counts, past-support items and
            prioritised recommendations.

        Raises:
            ValueError: If an asset needs analysis and no reference time
                was given.
        """
        counts: Dict[str, int] = {s.value: 0 for s in _STATUS_ORDER}
        critical_items: List[LifecycleCriticalItem] = []

        for asset in assets:
            lifecycle = getattr(asset, "lifecycle", None)
            if not isinstance(lifecycle, LifecycleAssessment):
                if reference_time is None:
                    raise ValueError("reference_time is required to analyze unassessed assets")
                lifecycle = self.analyze(asset, reference_time)
            counts[lifecycle.status.value] += 1

            if lifecycle.status in (LifecycleStatus.EOS, LifecycleStatus.OBSOLETE):
                critical_items.append(LifecycleCriticalItem(
                    asset_id=asset_field(asset, "asset_id") or asset_field(asset, "tag_id"),
                    manufacturer=asset_field(asset, "manufacturer"),
                    model=asset_field(asset, "model"),
                    status=lifecycle.status,
                    replacement=lifecycle.replacement,
                ))

        recommendations: List[Recommendation] = []
        if counts[LifecycleStatus.OBSOLETE.value] > 0:
            recommendations.append(Recommendation(
                priority="critical",
                title=(
                    f"{counts[LifecycleStatus.OBSOLETE.value]} obsolete assets "
                    f"require immediate replacement planning"
                ),
                action="Create migration project for obsolete equipment",
            ))
        if counts[LifecycleStatus.EOS.value] > 0:
            recommendations.append(Recommendation(
                priority="high",
                title=(
                    f"{counts[LifecycleStatus.EOS.value]} assets are past "
                    f"end-of-support with no security patches"
                ),
                action="Implement compensating controls and plan upgrades",
            ))
        if counts[LifecycleStatus.APPROACHING_EOL.value] > 0:
            recommendations.append(Recommendation(
                priority="medium",
                title=(
                    f"{counts[LifecycleStatus.APPROACHING_EOL.value]} assets "
                    f"approaching end-of-life within 2 years"
                ),
                action="Budget for replacements in next fiscal cycle",
            ))

        return LifecycleSummary(
            total=len(assets),
            counts=counts,
            critical_items=critical_items,
            recommendations=recommendations,
        )

    def get_statistics(self) -> Dict[str, int]:
        """Return per-status assessment counters."""
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _status_from_dates(
        self, days_until_eol: Optional[int], days_until_eos: int,
    ) -> LifecycleStatus:
        if days_until_eos < -self._config.obsolete_after_days:
            return LifecycleStatus.OBSOLETE
        if days_until_eos < 0:
            return LifecycleStatus.EOS
        if days_until_eol is not None and days_until_eol < 0:
            return LifecycleStatus.EOL
        if days_until_eol is not None and days_until_eol < self._config.approaching_eol_days:
            return LifecycleStatus.APPROACHING_EOL
        if days_until_eol is None:
            # Support end announced without an end-of-life date
            return LifecycleStatus.UNKNOWN
        return LifecycleStatus.MATURE

    @staticmethod
    def _status_from_estimate(remaining_years: int) -> Tuple[LifecycleStatus, str]:
        if remaining_years < -5:
            return LifecycleStatus.OBSOLETE, "high"
        if remaining_years < 0:
            return LifecycleStatus.EOL, "high"
        if remaining_years < 3:
            return LifecycleStatus.APPROACHING_EOL, "medium"
        return LifecycleStatus.CURRENT, "low"

    @staticmethod
    def _estimate_age(
        asset: Any,
        ref: datetime,
        device_category: Optional[str],
        notes: List[str],
    ) -> Tuple[Optional[int], Optional[int]]:
        installed = parse_datetime(asset_field(asset, "install_date"))
        if installed is None:
            return None, None
        age_years = days_between(installed, ref) // 365

        texts = [asset_field(asset, "device_type").lower()]
        if device_category:
            texts.append(device_category.lower())
        for text in texts:
            for category, (_, typical, _) in TYPICAL_LIFESPANS:
                if category in text:
                    notes.append(f"Typical lifespan for {category}: {typical} years")
                    return age_years, typical - age_years
        return age_years, None
