# -*- coding: utf-8 -*-
"""
Risk Engine - OT Canon Asset Canonization

Context-aware risk scoring. A PLC is not inherently risky; a PLC in a
critical unit with end-of-support firmware and network exposure is. Every
contribution is a row in one declarative rule table evaluated by a single
scorer, so each rule can be tested in isolation:

    device criticality      25 / 15 / 8 / 2
    safety related          20
    unit criticality        15 / 10 / 5 / 2
    lifecycle status        obsolete 25, eos 20, eol 15, approaching 10,
                            mature 3, current 0, unknown 5
    network exposure        15
    internet reachable      30   (IP outside RFC1918 and loopback)
    remote access           10
    undocumented            15   (orphan)
    no discovery            10   (blind spot)
    stale data              8
    single point of failure 12   (critical/safety asset with no peer)
    high downstream impact  10   (more than five outgoing edges)

The raw sum is normalized against a fixed denominator (150 by default),
clamped to 0-100 and leveled: >= 70 critical, >= 50 high, >= 30 medium,
>= 10 low, else info.

Example:
    >>> from otcanon.risk_engine import RiskEngine, is_private_ip
    >>> is_private_ip("8.8.8.8")
    False
    >>> engine = RiskEngine()
    >>> report = engine.assess_portfolio(assets, reference_time=ref, industry="oil-gas")
    >>> report.distribution["critical"]

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import ipaddress
import logging
import re
import threading
import time
from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.dates import days_between, parse_datetime
from otcanon.dependency_mapper import asset_node_id
from otcanon.device_context import DeviceContextEngine, asset_field
from otcanon.execution import parallel_map
from otcanon.lifecycle_analyzer import LifecycleAnalyzerEngine
from otcanon.models import (
    DependencyMap,
    DeviceContext,
    FactorFrequency,
    LifecycleAssessment,
    PortfolioRiskReport,
    Recommendation,
    ReconciliationStatus,
    RiskAssessment,
    RiskFactor,
    RiskFactorType,
    RiskLevel,
    UnitProfile,
    UnitRisk,
)
from otcanon.unit_knowledge import detect_unit

logger = logging.getLogger(__name__)

__all__ = [
    "RISK_RULES",
    "RiskInput",
    "RiskRule",
    "RiskEngine",
    "is_private_ip",
    "risk_level_for",
]


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

DEVICE_CRITICALITY_WEIGHTS: Dict[str, int] = {"critical": 25, "high": 15, "medium": 8, "low": 2}
UNIT_CRITICALITY_WEIGHTS: Dict[str, int] = {"critical": 15, "high": 10, "medium": 5, "low": 2}
LIFECYCLE_WEIGHTS: Dict[str, int] = {
    "obsolete": 25,
    "eos": 20,
    "eol": 15,
    "approaching_eol": 10,
    "mature": 3,
    "current": 0,
    "unknown": 5,
}

_PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(n)
    for n in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "127.0.0.0/8")
)

_REMOTE_HINT = re.compile(r"vpn|remote|jump|bastion", re.IGNORECASE)
_REMOTE_HINT_FIELDS = ("tag_id", "hostname", "device_type", "model", "network_segment")

# Lifecycle factor score at or above which an asset counts as an EOL concern
_EOL_CONCERN_SCORE = 15


def is_private_ip(ip_address: Optional[str]) -> bool:
    """True for RFC1918 and loopback IPv4 addresses.

    Empty, malformed and non-IPv4 values count as private.
    """
    if not ip_address:
        return True
    try:
        addr = ipaddress.ip_address(ip_address.strip())
    except ValueError:
        return True
    if addr.version != 4:
        return True
    return any(addr in network for network in _PRIVATE_NETWORKS)


def risk_level_for(score: int) -> RiskLevel:
    """Map a normalized 0-100 score to its risk level."""
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 30:
        return RiskLevel.MEDIUM
    if score >= 10:
        return RiskLevel.LOW
    return RiskLevel.INFO


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RiskInput:
    """Everything the scorer needs about one asset."""

    asset_id: str
    unit: str
    device_type: str
    ip_address: str
    context: DeviceContext
    lifecycle: LifecycleAssessment
    unit_profile: Optional[UnitProfile] = None
    remote_access: bool = False
    is_orphan: bool = False
    is_blind_spot: bool = False
    days_since_seen: Optional[int] = None
    last_seen: str = ""
    stale_after_days: int = 30
    downstream_count: int = 0
    downstream_threshold: int = 5
    has_peer: bool = False

    @property
    def is_stale(self) -> bool:
        return self.days_since_seen is not None and self.days_since_seen > self.stale_after_days


@dataclass(frozen=True)
class RiskRule:
    """One scoring rule.

    Attributes:
        factor: Factor the rule contributes.
        max_score: Largest contribution the rule can make.
        score: Returns the contribution for an input (0 = not applied).
        explain: Returns (description, details) for an applied rule.
    """

    factor: RiskFactorType
    max_score: int
    score: Callable[[RiskInput], int]
    explain: Callable[[RiskInput], Tuple[str, str]]


def _lifecycle_details(r: RiskInput) -> str:
    if r.lifecycle.eos_date is not None:
        return f"End of support: {r.lifecycle.eos_date.isoformat()}"
    if r.lifecycle.notes:
        return r.lifecycle.notes[0]
    return "Lifecycle status based on typical equipment lifespan"


def _is_spof_candidate(r: RiskInput) -> bool:
    return r.context.is_safety_related or r.context.criticality.value == "critical"


RISK_RULES: Tuple[RiskRule, ...] = (
    RiskRule(
        RiskFactorType.DEVICE_CRITICALITY, 25,
        lambda r: DEVICE_CRITICALITY_WEIGHTS.get(r.context.criticality.value, 0),
        lambda r: (
            f"Device criticality: {r.context.criticality.value}",
            f"{r.context.device_type if r.context.device_type != 'unknown' else r.device_type or 'device'}"
            f" is classified as {r.context.criticality.value} criticality",
        ),
    ),
    RiskRule(
        RiskFactorType.SAFETY_RELATED, 20,
        lambda r: 20 if r.context.is_safety_related else 0,
        lambda r: (
            "Safety-related device",
            "This device is involved in safety functions (SIS, ESD, F&G, BMS)",
        ),
    ),
    RiskRule(
        RiskFactorType.UNIT_CRITICALITY, 15,
        lambda r: UNIT_CRITICALITY_WEIGHTS.get(r.unit_profile.criticality.value, 0) if r.unit_profile else 0,
        lambda r: (
            f"Located in {r.unit_profile.criticality.value} criticality unit",
            f"{r.unit_profile.name} is a {r.unit_profile.criticality.value} criticality process unit",
        ),
    ),
    RiskRule(
        RiskFactorType.EOL_STATUS, 25,
        lambda r: LIFECYCLE_WEIGHTS.get(r.lifecycle.status.value, LIFECYCLE_WEIGHTS["unknown"]),
        lambda r: (f"Lifecycle status: {r.lifecycle.status.value}", _lifecycle_details(r)),
    ),
    RiskRule(
        RiskFactorType.NETWORK_EXPOSURE, 15,
        lambda r: 15 if r.ip_address else 0,
        lambda r: ("Network-connected device", f"IP address: {r.ip_address}"),
    ),
    RiskRule(
        RiskFactorType.INTERNET_REACHABLE, 30,
        lambda r: 30 if r.ip_address and not is_private_ip(r.ip_address) else 0,
        lambda r: (
            "Potentially internet-reachable",
            f"IP {r.ip_address} appears to be a public IP address",
        ),
    ),
    RiskRule(
        RiskFactorType.REMOTE_ACCESS, 10,
        lambda r: 10 if r.remote_access else 0,
        lambda r: ("Remote access enabled", "This device may be accessible remotely"),
    ),
    RiskRule(
        RiskFactorType.UNDOCUMENTED, 15,
        lambda r: 15 if r.is_orphan else 0,
        lambda r: (
            "Undocumented device",
            "Device was discovered but is not in engineering documentation",
        ),
    ),
    RiskRule(
        RiskFactorType.NO_DISCOVERY, 10,
        lambda r: 10 if r.is_blind_spot else 0,
        lambda r: (
            "No discovery data",
            "Device is documented but was not found by discovery tools",
        ),
    ),
    RiskRule(
        RiskFactorType.STALE_DATA, 8,
        lambda r: 8 if r.is_stale else 0,
        lambda r: ("Stale discovery data", f"Last seen: {r.last_seen or 'unknown'}"),
    ),
    RiskRule(
        RiskFactorType.SINGLE_POINT_OF_FAILURE, 12,
        lambda r: 12 if _is_spof_candidate(r) and not r.has_peer else 0,
        lambda r: (
            "Single point of failure",
            "No redundant device found for this critical function",
        ),
    ),
    RiskRule(
        RiskFactorType.HIGH_DOWNSTREAM_IMPACT, 10,
        lambda r: 10 if r.downstream_count > r.downstream_threshold else 0,
        lambda r: (
            "High downstream impact",
            f"This device has {r.downstream_count} dependent downstream devices",
        ),
    ),
)


def _peer_key(asset: Any) -> Tuple[str, str]:
    return (asset_field(asset, "unit"), asset_field(asset, "device_type").lower())


# ---------------------------------------------------------------------------
# RiskEngine
# ---------------------------------------------------------------------------


class RiskEngine:
    """Per-asset and portfolio risk scoring.

    Attributes:
        _config: Active OTCanonConfig.
        _context_engine: Used when an asset carries no device context.
        _lifecycle_engine: Used when an asset carries no lifecycle result.
        _lock: Threading lock for statistics.
        _stats: Aggregate scoring statistics.
    """

    def __init__(
        self,
        config: Optional[OTCanonConfig] = None,
        context_engine: Optional[DeviceContextEngine] = None,
        lifecycle_engine: Optional[LifecycleAnalyzerEngine] = None,
    ) -> None:
        self._config = config or get_config()
        self._context_engine = context_engine or DeviceContextEngine(self._config)
        self._lifecycle_engine = lifecycle_engine or LifecycleAnalyzerEngine(self._config)
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "assessments": 0,
            "portfolios": 0,
            "by_level": {level.value: 0 for level in RiskLevel},
            "total_time_ms": 0.0,
        }
        logger.info(
            "RiskEngine initialized: rules=%d denominator=%.1f",
            len(RISK_RULES), self._config.risk_score_denominator,
        )

    # ------------------------------------------------------------------
    # Single asset
    # ------------------------------------------------------------------

    def assess_asset(
        self,
        asset: Any,
        reference_time: datetime,
        industry: Optional[str] = None,
        dependency_map: Optional[DependencyMap] = None,
        peer_counts: Optional[Dict[Tuple[str, str], int]] = None,
    ) -> RiskAssessment:
        """Score one asset.

        Args:
            asset: Canonical asset (or normalized record).
            reference_time: Point in time staleness and lifecycle use.
            industry: Industry id for unit criticality; None skips it.
            dependency_map: Graph used for downstream impact.
            peer_counts: Count of assets per (unit, device type); when
                omitted the asset is its own only peer.

        Returns:
            RiskAssessment with factors sorted by contribution.
        """
        downstream = Counter(d.source for d in dependency_map.dependencies) if dependency_map else Counter()
        if peer_counts is None:
            peer_counts = {_peer_key(asset): 1}
        risk_input = self._build_input(asset, reference_time, industry, downstream, peer_counts)
        return self._score(risk_input)

    def _build_input(
        self,
        asset: Any,
        reference_time: datetime,
        industry: Optional[str],
        downstream: Counter,
        peer_counts: Dict[Tuple[str, str], int],
    ) -> RiskInput:
        context = getattr(asset, "context", None)
        if not isinstance(context, DeviceContext):
            context = self._context_engine.infer(asset)
        lifecycle = getattr(asset, "lifecycle", None)
        if not isinstance(lifecycle, LifecycleAssessment):
            lifecycle = self._lifecycle_engine.analyze(asset, reference_time, context.category)

        status = getattr(asset, "status", None)
        last_seen_text = asset_field(asset, "last_seen")
        last_seen = parse_datetime(last_seen_text)
        unit = asset_field(asset, "unit")
        remote = bool(getattr(asset, "remote_access", False)) or any(
            _REMOTE_HINT.search(asset_field(asset, name)) for name in _REMOTE_HINT_FIELDS
        )

        return RiskInput(
            asset_id=asset_node_id(asset),
            unit=unit,
            device_type=asset_field(asset, "device_type"),
            ip_address=asset_field(asset, "ip_address"),
            context=context,
            lifecycle=lifecycle,
            unit_profile=detect_unit(unit, industry) if industry else None,
            remote_access=remote,
            is_orphan=status == ReconciliationStatus.ORPHAN,
            is_blind_spot=status == ReconciliationStatus.BLIND_SPOT,
            days_since_seen=days_between(last_seen, reference_time) if last_seen else None,
            last_seen=last_seen_text,
            stale_after_days=self._config.stale_after_days,
            downstream_count=downstream.get(asset_node_id(asset), 0),
            downstream_threshold=self._config.high_downstream_threshold,
            has_peer=peer_counts.get(_peer_key(asset), 0) > 1,
        )

    def _score(self, risk_input: RiskInput) -> RiskAssessment:
        factors: List[RiskFactor] = []
        for rule in RISK_RULES:
            score = rule.score(risk_input)
            if score <= 0:
                continue
            description, details = rule.explain(risk_input)
            factors.append(RiskFactor(
                factor=rule.factor, score=score, description=description, details=details,
            ))

        factors.sort(key=lambda f: f.score, reverse=True)
        raw = sum(f.score for f in factors)
        denominator = self._config.risk_score_denominator
        normalized = min(100, max(0, int(raw * 100.0 / denominator + 0.5)))
        level = risk_level_for(normalized)

        with self._lock:
            self._stats["assessments"] += 1
            self._stats["by_level"][level.value] += 1

        return RiskAssessment(
            asset_id=risk_input.asset_id,
            unit=risk_input.unit,
            raw_score=raw,
            max_possible_score=denominator,
            normalized_score=normalized,
            risk_level=level,
            factors=factors,
            top_factors=factors[:3],
        )

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def assess_portfolio(
        self,
        assets: Sequence[Any],
        reference_time: datetime,
        industry: Optional[str] = None,
        dependency_map: Optional[DependencyMap] = None,
    ) -> PortfolioRiskReport:
        """Score every asset and aggregate.

        Assessments are returned in input order; ``top_risks`` and
        ``unit_risks`` are sorted by score (stable for ties).
        """
        start = time.monotonic()
        downstream = Counter(d.source for d in dependency_map.dependencies) if dependency_map else Counter()
        peer_counts: Dict[Tuple[str, str], int] = Counter(_peer_key(a) for a in assets)

        inputs = parallel_map(
            lambda a: self._build_input(a, reference_time, industry, downstream, peer_counts),
            list(assets),
            self._config.max_workers,
        )
        assessments = parallel_map(self._score, inputs, self._config.max_workers)

        distribution = {level.value: 0 for level in RiskLevel}
        for assessment in assessments:
            distribution[assessment.risk_level.value] += 1
        average = (
            int(sum(a.normalized_score for a in assessments) / len(assessments) + 0.5)
            if assessments else 0
        )
        ranked = sorted(assessments, key=lambda a: a.normalized_score, reverse=True)

        report = PortfolioRiskReport(
            total_assets=len(assessments),
            assessments=assessments,
            distribution=distribution,
            average_score=average,
            top_risks=ranked[: self._config.top_risk_limit],
            unit_risks=self._unit_risks(assessments),
            factor_frequency=self._factor_frequency(assessments),
            recommendations=self._recommendations(inputs, assessments),
        )

        elapsed_ms = (time.monotonic() - start) * 1000.0
        with self._lock:
            self._stats["portfolios"] += 1
            self._stats["total_time_ms"] += elapsed_ms
        logger.info(
            "Portfolio risk assessed: assets=%d average=%d critical=%d high=%d (%.1fms)",
            report.total_assets, report.average_score,
            distribution[RiskLevel.CRITICAL.value], distribution[RiskLevel.HIGH.value],
            elapsed_ms,
        )
        return report

    def get_statistics(self) -> Dict[str, Any]:
        """Return scoring statistics."""
        with self._lock:
            stats = dict(self._stats)
            stats["by_level"] = dict(self._stats["by_level"])
            return stats

    # ------------------------------------------------------------------
    # Aggregation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _unit_risks(assessments: Sequence[RiskAssessment]) -> List[UnitRisk]:
        groups: Dict[str, List[RiskAssessment]] = OrderedDict()
        for assessment in assessments:
            groups.setdefault(assessment.unit or "Unknown", []).append(assessment)

        units: List[UnitRisk] = []
        for unit, members in groups.items():
            scores = [m.normalized_score for m in members]
            average = int(sum(scores) / len(scores) + 0.5)
            critical = sum(1 for m in members if m.risk_level == RiskLevel.CRITICAL)
            high = sum(1 for m in members if m.risk_level == RiskLevel.HIGH)
            if critical:
                level = RiskLevel.CRITICAL
            elif high:
                level = RiskLevel.HIGH
            elif average > 50:
                level = RiskLevel.MEDIUM
            else:
                level = RiskLevel.LOW
            units.append(UnitRisk(
                unit=unit,
                assets=len(members),
                average_score=average,
                max_score=max(scores),
                critical_count=critical,
                high_count=high,
                risk_level=level,
            ))
        units.sort(key=lambda u: u.max_score, reverse=True)
        return units

    @staticmethod
    def _factor_frequency(assessments: Sequence[RiskAssessment]) -> List[FactorFrequency]:
        counts: Dict[RiskFactorType, List[int]] = OrderedDict()
        for assessment in assessments:
            for factor in assessment.factors:
                entry = counts.setdefault(factor.factor, [0, 0])
                entry[0] += 1
                entry[1] += factor.score
        frequency = [
            FactorFrequency(
                factor=factor,
                count=count,
                total_score=total,
                average_contribution=int(total / count + 0.5),
            )
            for factor, (count, total) in counts.items()
        ]
        frequency.sort(key=lambda f: f.total_score, reverse=True)
        return frequency

    @staticmethod
    def _recommendations(
        inputs: Sequence[RiskInput],
        assessments: Sequence[RiskAssessment],
    ) -> List[Recommendation]:
        pairs = list(zip(inputs, assessments))
        recommendations: List[Recommendation] = []

        critical = [a for _, a in pairs if a.risk_level == RiskLevel.CRITICAL]
        if critical:
            recommendations.append(Recommendation(
                priority="critical",
                title=f"{len(critical)} assets require immediate attention",
                action="Conduct detailed risk assessment and implement compensating controls",
                assets=[a.asset_id for a in critical[:5]],
            ))

        eol = [
            a for _, a in pairs
            if any(f.factor == RiskFactorType.EOL_STATUS and f.score >= _EOL_CONCERN_SCORE for f in a.factors)
        ]
        if len(eol) > 5:
            recommendations.append(Recommendation(
                priority="high",
                title=f"{len(eol)} assets have lifecycle concerns",
                action="Develop technology refresh roadmap for obsolete equipment",
                assets=[a.asset_id for a in eol[:5]],
            ))

        undocumented = [a for _, a in pairs if a.has_factor(RiskFactorType.UNDOCUMENTED)]
        if undocumented:
            recommendations.append(Recommendation(
                priority="high",
                title=f"{len(undocumented)} undocumented devices found",
                action="Investigate and document or remove unauthorized devices",
                assets=[a.asset_id for a in undocumented[:5]],
            ))

        exposed = [
            a for r, a in pairs
            if r.context.criticality.value == "critical"
            and a.has_factor(RiskFactorType.NETWORK_EXPOSURE)
        ]
        if exposed:
            recommendations.append(Recommendation(
                priority="high",
                title=f"{len(exposed)} critical assets are network-connected",
                action="Review network segmentation and implement defense-in-depth controls",
                assets=[a.asset_id for a in exposed[:5]],
            ))
        return recommendations
