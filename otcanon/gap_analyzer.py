# -*- coding: utf-8 -*-
"""
Gap Analyzer - OT Canon Asset Canonization

Context-aware gap analysis over the canonical asset set. Three families of
findings are computed independently and merged:

    Asset gaps       blind spots, orphans and stale discovery data
    Functional gaps  expected unit functions and device types from the unit
                     knowledge base that are missing, thin or unredundant
    Coverage gaps    units and /24 subnets with little or no discovery

The merged list is stable-sorted by severity rank (critical first) and
summarised by severity, type and unit with a short list of priority
recommendations. Gaps are immutable once created.

Example:
    >>> from otcanon.gap_analyzer import GapAnalyzerEngine
    >>> engine = GapAnalyzerEngine()
    >>> report = engine.analyze(assets, industry="oil-gas",
    ...                         reference_time=datetime(2024, 1, 1, tzinfo=timezone.utc))
    >>> report.summary.by_severity["critical"]

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Pattern, Sequence

from otcanon.config import OTCanonConfig, get_config
from otcanon.dates import days_between, parse_datetime
from otcanon.dependency_mapper import get_subnet
from otcanon.device_context import DeviceContextEngine, asset_field
from otcanon.matching_engine import coverage_percent
from otcanon.models import (
    Criticality,
    DeviceContext,
    DeviceFunction,
    ExpectedDeviceType,
    ExpectedFunction,
    Gap,
    GapReport,
    GapSeverity,
    GapSummary,
    GapType,
    Recommendation,
    ReconciliationStatus,
    UnitProfile,
)
from otcanon.unit_knowledge import UNIT_KNOWLEDGE, detect_unit

logger = logging.getLogger(__name__)

__all__ = [
    "FUNCTION_PATTERNS",
    "DEVICE_TYPE_PATTERNS",
    "GapAnalyzerEngine",
    "function_pattern",
    "device_type_pattern",
]


# ---------------------------------------------------------------------------
# Function and device-type recognition tables
# ---------------------------------------------------------------------------

#: Expected-function name -> pattern over tag, device type and ISA function.
FUNCTION_PATTERNS: Dict[str, Pattern[str]] = {
    name: re.compile(regex, re.IGNORECASE)
    for name, regex in (
        ("feed_flow_control", r"flow|fic|fc|feed"),
        ("column_pressure", r"pressure|pic|pc|column"),
        ("column_temperature", r"temp|tic|tc|column"),
        ("reactor_temperature", r"reactor|temp|tic|tc"),
        ("safety", r"safety|sis|esd|psh|tsh|lsh"),
        ("overhead_pressure_safety", r"overhead|psh|psv"),
        ("bottoms_level", r"level|lic|lc|bottom"),
        ("heater_control", r"heater|furnace|fic"),
        ("reflux_control", r"reflux|fc|fic"),
        ("boiler_control", r"boiler|steam|bms"),
        ("cooling_water", r"cooling|cw|ct"),
        ("instrument_air", r"air|ia|instrument"),
        ("robot_control", r"robot|plc|cell"),
        ("conveyor_control", r"conveyor|line|transfer"),
    )
}

#: Expected device type -> pattern over device type, tag and inferred type.
DEVICE_TYPE_PATTERNS: Dict[str, Pattern[str]] = {
    name: re.compile(regex, re.IGNORECASE)
    for name, regex in (
        ("plc", r"plc|pac|programmable"),
        ("dcs", r"dcs|distributed"),
        ("sis", r"sis|safety|esd"),
        ("hmi", r"hmi|human.?machine|panel"),
        ("transmitter", r"transmitter|xmtr|tt|pt|ft|lt"),
        ("analyzer", r"analyzer|analyser"),
        ("robot", r"robot|arm"),
    )
}

# Name tokens too generic to identify a function on their own
_GENERIC_TOKENS = frozenset({"control", "system", "monitoring", "management"})
_CRITICAL_DEVICE_TYPES = ("plc", "dcs", "sis", "safety")

_BLIND_SPOT_CAUSES = [
    "Device is not connected to monitored network",
    "Device is powered off or decommissioned",
    "Discovery tool cannot reach this network segment",
    "Device uses unsupported protocol",
]
_ORPHAN_CAUSES = [
    "Recently installed device not yet documented",
    "Temporary/test equipment left in place",
    "Shadow OT/IT device",
    "Contractor equipment",
    "Documentation out of date",
]
_NO_VISIBILITY_CAUSES = [
    "Discovery tool not deployed in this area",
    "Network isolated from discovery infrastructure",
    "All devices use non-IP protocols",
    "Unit offline or decommissioned",
]

_UNKNOWN_UNIT = "Unknown"


def function_pattern(function: str) -> Pattern[str]:
    """Recognition pattern for an expected function.

    Functions without an explicit entry match on the leading four letters of
    each significant token of their name (``spot_welding`` -> ``spot|weld``).
    """
    pattern = FUNCTION_PATTERNS.get(function)
    if pattern is not None:
        return pattern
    tokens = [t for t in function.lower().split("_") if len(t) >= 3 and t not in _GENERIC_TOKENS]
    if not tokens:
        tokens = [function.lower()]
    return re.compile("|".join(re.escape(t[:4]) for t in tokens), re.IGNORECASE)


def device_type_pattern(device_type: str) -> Pattern[str]:
    """Recognition pattern for an expected device type.

    Types without an explicit entry match their own name, with underscores
    allowing a space, hyphen or nothing (``safety_plc`` -> ``safety[\\s_-]?plc``).
    """
    pattern = DEVICE_TYPE_PATTERNS.get(device_type)
    if pattern is not None:
        return pattern
    parts = [re.escape(p) for p in device_type.lower().split("_") if p]
    return re.compile(r"[\s_-]?".join(parts), re.IGNORECASE)


def _new_gap_id() -> str:
    return f"GAP-{uuid.uuid4().hex[:12]}"


def _severity_for(criticality: Criticality) -> GapSeverity:
    if criticality == Criticality.CRITICAL:
        return GapSeverity.CRITICAL
    if criticality == Criticality.HIGH:
        return GapSeverity.HIGH
    return GapSeverity.MEDIUM


def _asset_label(asset: Any) -> str:
    return asset_field(asset, "tag_id") or asset_field(asset, "asset_id") or asset_field(asset, "ip_address")


def _engineering_side(asset: Any) -> Any:
    return getattr(asset, "engineering", None)


def _discovered_side(asset: Any) -> Any:
    return getattr(asset, "discovered", None)


# ---------------------------------------------------------------------------
# GapAnalyzerEngine
# ---------------------------------------------------------------------------


class GapAnalyzerEngine:
    """Asset, functional and coverage gap analysis.

    Assets are canonical assets (anything exposing ``status``, ``unit``,
    ``tag_id``, ``device_type``, ``last_seen`` and the ``engineering`` /
    ``discovered`` source records). An asset's ``context`` is used when
    present; otherwise it is inferred.

    Attributes:
        _config: Active OTCanonConfig.
        _context_engine: DeviceContextEngine used for missing contexts.
        _lock: Threading lock for statistics.
        _stats: Aggregate analysis statistics.
    """

    def __init__(
        self,
        config: Optional[OTCanonConfig] = None,
        context_engine: Optional[DeviceContextEngine] = None,
    ) -> None:
        self._config = config or get_config()
        self._context_engine = context_engine or DeviceContextEngine(self._config)
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "analyses": 0,
            "gaps_found": 0,
            "by_type": {t.value: 0 for t in GapType},
            "total_time_ms": 0.0,
        }
        logger.info(
            "GapAnalyzerEngine initialized: stale_after=%dd escalation=%dd "
            "low_visibility=%d%%",
            self._config.stale_after_days,
            self._config.stale_escalation_days,
            self._config.low_visibility_pct,
        )

    # ------------------------------------------------------------------
    # Asset gaps
    # ------------------------------------------------------------------

    def analyze_asset_gaps(self, assets: Sequence[Any], reference_time: datetime) -> List[Gap]:
        """Blind spot, orphan and stale-data gaps.

        Args:
            assets: Canonical assets.
            reference_time: Point in time staleness is measured against.

        Returns:
            Gaps in asset order: reconciliation gaps first, then stale data.
        """
        gaps: List[Gap] = []
        for asset in assets:
            status = getattr(asset, "status", None)
            if status == ReconciliationStatus.BLIND_SPOT:
                gaps.append(self._blind_spot_gap(asset))
            elif status == ReconciliationStatus.ORPHAN:
                gaps.append(self._orphan_gap(asset))

        for asset in assets:
            stale = self._stale_gap(asset, reference_time)
            if stale is not None:
                gaps.append(stale)
        return gaps

    def _blind_spot_gap(self, asset: Any) -> Gap:
        context = self._context(asset)
        critical = context.criticality == Criticality.CRITICAL
        return Gap(
            gap_id=_new_gap_id(),
            gap_type=GapType.BLIND_SPOT,
            severity=_severity_for(context.criticality),
            unit=asset_field(asset, "unit") or None,
            tag_id=asset_field(asset, "tag_id") or asset_field(asset, "asset_id") or None,
            device_type=asset_field(asset, "device_type") or None,
            reason="Asset exists in engineering baseline but was not discovered on the network",
            recommendation=(
                "Verify physical status and network connectivity immediately"
                if critical else "Include in next scheduled verification"
            ),
            possible_causes=list(_BLIND_SPOT_CAUSES),
            details={"criticality": context.criticality.value, "category": context.category},
        )

    def _orphan_gap(self, asset: Any) -> Gap:
        context = self._context(asset)
        has_network = bool(asset_field(asset, "ip_address") or asset_field(asset, "mac_address"))
        severity = GapSeverity.HIGH if has_network else GapSeverity.MEDIUM
        if context.is_safety_related:
            severity = GapSeverity.CRITICAL
        return Gap(
            gap_id=_new_gap_id(),
            gap_type=GapType.ORPHAN,
            severity=severity,
            unit=asset_field(asset, "unit") or _UNKNOWN_UNIT,
            tag_id=_asset_label(asset) or None,
            device_type=asset_field(asset, "device_type") or None,
            reason="Device discovered on network but not in engineering baseline",
            recommendation=(
                "Investigate immediately - undocumented networked device poses security risk"
                if has_network else "Update engineering documentation to include this device"
            ),
            possible_causes=list(_ORPHAN_CAUSES),
            details={"ip_address": asset_field(asset, "ip_address")},
        )

    def _stale_gap(self, asset: Any, reference_time: datetime) -> Optional[Gap]:
        last_seen = parse_datetime(asset_field(asset, "last_seen"))
        if last_seen is None:
            return None
        days = days_between(last_seen, reference_time)
        if days <= self._config.stale_after_days:
            return None
        escalated = days > self._config.stale_escalation_days
        return Gap(
            gap_id=_new_gap_id(),
            gap_type=GapType.STALE_DATA,
            severity=GapSeverity.HIGH if escalated else GapSeverity.MEDIUM,
            unit=asset_field(asset, "unit") or None,
            tag_id=_asset_label(asset) or None,
            device_type=asset_field(asset, "device_type") or None,
            reason=f"Device has not been seen for {days} days",
            recommendation="Verify device status and discovery tool connectivity",
            details={"last_seen": asset_field(asset, "last_seen"), "days_since_last_seen": days},
        )

    # ------------------------------------------------------------------
    # Functional gaps
    # ------------------------------------------------------------------

    def analyze_functional_gaps(self, assets: Sequence[Any], industry: Optional[str]) -> List[Gap]:
        """Compare each recognised unit against its expected functions and device types.

        Assets are grouped by the knowledge-base unit their unit field
        resolves to; units that do not resolve are skipped. An unknown
        industry yields no functional gaps.
        """
        if not industry or industry not in UNIT_KNOWLEDGE:
            return []

        groups: Dict[str, Dict[str, Any]] = OrderedDict()
        for asset in assets:
            unit_field = asset_field(asset, "unit")
            if not unit_field:
                continue
            profile = detect_unit(unit_field, industry)
            if profile is None:
                continue
            group = groups.setdefault(profile.unit_id, {
                "profile": profile, "name": unit_field, "assets": [],
            })
            group["assets"].append(asset)

        gaps: List[Gap] = []
        for group in groups.values():
            profile: UnitProfile = group["profile"]
            for expected in profile.expected_functions:
                gaps.extend(self._function_gaps(group["name"], profile, expected, group["assets"]))
            for expected_type in profile.expected_device_types:
                gap = self._device_type_gap(group["name"], profile, expected_type, group["assets"])
                if gap is not None:
                    gaps.append(gap)
        return gaps

    def _function_gaps(
        self,
        unit_name: str,
        profile: UnitProfile,
        expected: ExpectedFunction,
        members: Sequence[Any],
    ) -> List[Gap]:
        pattern = function_pattern(expected.function)
        serving = [a for a in members if self._serves_function(a, pattern)]
        base = {
            "unit_id": profile.unit_id,
            "function": expected.function,
            "function_description": expected.description,
            "expected_min_devices": expected.min_devices,
            "actual_devices": len(serving),
        }

        gaps: List[Gap] = []
        if not serving:
            gaps.append(Gap(
                gap_id=_new_gap_id(),
                gap_type=GapType.MISSING_FUNCTION,
                severity=_severity_for(expected.criticality),
                unit=unit_name,
                reason=(
                    f"No devices found performing {expected.description} function "
                    f"in {unit_name}"
                ),
                recommendation=f"Verify {expected.description} capability exists in this unit",
                details=base,
            ))
        elif len(serving) < expected.min_devices:
            gaps.append(Gap(
                gap_id=_new_gap_id(),
                gap_type=GapType.INSUFFICIENT_COVERAGE,
                severity=(
                    GapSeverity.HIGH if expected.criticality == Criticality.CRITICAL
                    else GapSeverity.MEDIUM
                ),
                unit=unit_name,
                reason=(
                    f"Only {len(serving)} of {expected.min_devices} expected "
                    f"{expected.description} devices found"
                ),
                recommendation="Review if additional devices exist but were not discovered",
                details=dict(base, found_assets=[_asset_label(a) for a in serving]),
            ))

        if expected.criticality == Criticality.CRITICAL and len(serving) == 1:
            gaps.append(Gap(
                gap_id=_new_gap_id(),
                gap_type=GapType.NO_REDUNDANCY,
                severity=GapSeverity.HIGH,
                unit=unit_name,
                tag_id=_asset_label(serving[0]) or None,
                reason=f"Critical function {expected.description} has no redundancy",
                recommendation="Consider adding backup/redundant system for this critical function",
                details=dict(base, single_point_of_failure=_asset_label(serving[0])),
            ))
        return gaps

    def _device_type_gap(
        self,
        unit_name: str,
        profile: UnitProfile,
        expected: ExpectedDeviceType,
        members: Sequence[Any],
    ) -> Optional[Gap]:
        pattern = device_type_pattern(expected.device_type)
        count = sum(1 for a in members if self._is_device_type(a, pattern))
        if count >= expected.min_count:
            return None
        critical_type = any(t in expected.device_type for t in _CRITICAL_DEVICE_TYPES)
        return Gap(
            gap_id=_new_gap_id(),
            gap_type=GapType.MISSING_FUNCTION if count == 0 else GapType.INSUFFICIENT_COVERAGE,
            severity=GapSeverity.HIGH if critical_type else GapSeverity.MEDIUM,
            unit=unit_name,
            device_type=expected.device_type,
            reason=(
                f"Expected at least {expected.min_count} {expected.device_type} "
                f"device(s), found {count}"
            ),
            recommendation=(
                f"Verify {expected.description} exists in this unit"
                if count == 0 else "Review if additional devices were missed by discovery"
            ),
            details={
                "unit_id": profile.unit_id,
                "device_description": expected.description,
                "expected_min_count": expected.min_count,
                "actual_count": count,
            },
        )

    def _serves_function(self, asset: Any, pattern: Pattern[str]) -> bool:
        context = self._context(asset)
        return bool(
            pattern.search(asset_field(asset, "tag_id"))
            or pattern.search(asset_field(asset, "device_type"))
            or (context.function != DeviceFunction.UNKNOWN and pattern.search(context.function.value))
        )

    def _is_device_type(self, asset: Any, pattern: Pattern[str]) -> bool:
        context = self._context(asset)
        return bool(
            pattern.search(asset_field(asset, "device_type"))
            or pattern.search(asset_field(asset, "tag_id"))
            or (context.device_type != "unknown" and pattern.search(context.device_type))
        )

    # ------------------------------------------------------------------
    # Coverage gaps
    # ------------------------------------------------------------------

    def analyze_coverage_gaps(self, assets: Sequence[Any], industry: Optional[str]) -> List[Gap]:
        """Unit visibility and subnet blind-spot gaps.

        Engineering assets are those with an engineering record (matched or
        blind spot); discovered assets are those with a discovery record
        (matched or orphan).
        """
        cfg = self._config
        unit_stats: Dict[str, Dict[str, int]] = OrderedDict()
        subnet_engineering: Dict[str, List[str]] = OrderedDict()
        discovered_subnets = set()

        for asset in assets:
            unit = asset_field(asset, "unit") or _UNKNOWN_UNIT
            stats = unit_stats.setdefault(unit, {"engineering": 0, "discovered": 0})
            engineering = _engineering_side(asset)
            discovered = _discovered_side(asset)
            if engineering is not None:
                stats["engineering"] += 1
                subnet = get_subnet(engineering.ip_address)
                if subnet:
                    subnet_engineering.setdefault(subnet, []).append(_asset_label(asset))
            if discovered is not None:
                stats["discovered"] += 1
                subnet = get_subnet(discovered.ip_address)
                if subnet:
                    discovered_subnets.add(subnet)

        gaps: List[Gap] = []
        for unit, stats in unit_stats.items():
            engineering_count = stats["engineering"]
            discovered_count = stats["discovered"]
            if engineering_count == 0:
                continue
            pct = coverage_percent(discovered_count, engineering_count)
            details = {
                "engineering_count": engineering_count,
                "discovered_count": discovered_count,
                "coverage_percent": pct,
            }
            if discovered_count == 0:
                profile = detect_unit(unit, industry)
                critical_unit = profile is not None and profile.criticality == Criticality.CRITICAL
                if profile is not None:
                    details["unit_id"] = profile.unit_id
                gaps.append(Gap(
                    gap_id=_new_gap_id(),
                    gap_type=GapType.NO_VISIBILITY,
                    severity=GapSeverity.CRITICAL if critical_unit else GapSeverity.HIGH,
                    unit=unit,
                    reason=(
                        f"No devices discovered in {unit} despite "
                        f"{engineering_count} documented assets"
                    ),
                    recommendation="Deploy discovery capability or verify unit status",
                    possible_causes=list(_NO_VISIBILITY_CAUSES),
                    details=details,
                ))
            elif pct < cfg.low_visibility_pct and engineering_count > cfg.low_visibility_min_assets:
                gaps.append(Gap(
                    gap_id=_new_gap_id(),
                    gap_type=GapType.LOW_VISIBILITY,
                    severity=GapSeverity.MEDIUM,
                    unit=unit,
                    reason=f"Only {pct}% of documented assets discovered in {unit}",
                    recommendation="Review discovery tool deployment and network architecture",
                    details=details,
                ))

        for subnet, labels in subnet_engineering.items():
            if subnet in discovered_subnets or len(labels) <= cfg.network_blind_spot_min_assets:
                continue
            gaps.append(Gap(
                gap_id=_new_gap_id(),
                gap_type=GapType.NETWORK_BLIND_SPOT,
                severity=GapSeverity.HIGH,
                reason=(
                    f"Subnet {subnet}.0/24 has {len(labels)} documented assets "
                    f"but no discovery data"
                ),
                recommendation="Verify discovery tool can reach this network segment",
                details={
                    "subnet": f"{subnet}.0/24",
                    "asset_count": len(labels),
                    "sample_assets": labels[:5],
                },
            ))
        return gaps

    # ------------------------------------------------------------------
    # Full analysis
    # ------------------------------------------------------------------

    def analyze(
        self,
        assets: Sequence[Any],
        industry: Optional[str],
        reference_time: datetime,
    ) -> GapReport:
        """Run all three gap families and summarise.

        Args:
            assets: Canonical assets of one run.
            industry: Industry id, or None when undetected.
            reference_time: Point in time staleness is measured against.

        Returns:
            GapReport with the merged list stable-sorted by severity.
        """
        start = time.monotonic()
        asset_gaps = self.analyze_asset_gaps(assets, reference_time)
        functional_gaps = self.analyze_functional_gaps(assets, industry)
        coverage_gaps = self.analyze_coverage_gaps(assets, industry)

        merged = sorted(
            asset_gaps + functional_gaps + coverage_gaps,
            key=lambda g: g.severity.rank,
        )
        summary = self._summarize(merged)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        with self._lock:
            self._stats["analyses"] += 1
            self._stats["gaps_found"] += len(merged)
            for gap in merged:
                self._stats["by_type"][gap.gap_type.value] += 1
            self._stats["total_time_ms"] += elapsed_ms

        logger.info(
            "Gap analysis complete: industry=%s assets=%d gaps=%d "
            "(asset=%d functional=%d coverage=%d) critical=%d (%.1fms)",
            industry, len(assets), len(merged), len(asset_gaps),
            len(functional_gaps), len(coverage_gaps),
            summary.by_severity[GapSeverity.CRITICAL.value], elapsed_ms,
        )
        return GapReport(
            gaps=merged,
            asset_gaps=asset_gaps,
            functional_gaps=functional_gaps,
            coverage_gaps=coverage_gaps,
            summary=summary,
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Return gap analysis statistics."""
        with self._lock:
            stats = dict(self._stats)
            stats["by_type"] = dict(self._stats["by_type"])
            return stats

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _context(self, asset: Any) -> DeviceContext:
        context = getattr(asset, "context", None)
        if isinstance(context, DeviceContext):
            return context
        return self._context_engine.infer(asset)

    @staticmethod
    def _summarize(gaps: Sequence[Gap]) -> GapSummary:
        by_severity = {s.value: 0 for s in GapSeverity}
        by_type = {t.value: 0 for t in GapType}
        units: List[str] = []
        for gap in gaps:
            by_severity[gap.severity.value] += 1
            by_type[gap.gap_type.value] += 1
            if gap.unit and gap.unit not in units:
                units.append(gap.unit)

        recommendations: List[Recommendation] = []
        critical = [g for g in gaps if g.severity == GapSeverity.CRITICAL]
        if critical:
            recommendations.append(Recommendation(
                priority="critical",
                title=f"Address {len(critical)} critical gaps immediately",
                action=(
                    "Critical gaps include missing safety functions and "
                    "undocumented critical devices"
                ),
                assets=[g.tag_id or g.unit or g.gap_id for g in critical[:5]],
            ))
        orphans = [g for g in gaps if g.gap_type == GapType.ORPHAN]
        if len(orphans) > 10:
            recommendations.append(Recommendation(
                priority="high",
                title=f"Investigate {len(orphans)} undocumented devices",
                action=(
                    "Large number of orphan devices may indicate documentation "
                    "or shadow IT issues"
                ),
                assets=[g.tag_id or g.gap_id for g in orphans[:5]],
            ))
        blind_units = [g for g in gaps if g.gap_type == GapType.NO_VISIBILITY]
        if blind_units:
            recommendations.append(Recommendation(
                priority="high",
                title=f"Extend discovery to {len(blind_units)} blind areas",
                action="Some units have no discovery visibility",
                assets=[g.unit or g.gap_id for g in blind_units],
            ))

        return GapSummary(
            total=len(gaps),
            by_severity=by_severity,
            by_type=by_type,
            affected_units=units,
            top_recommendations=recommendations,
        )
