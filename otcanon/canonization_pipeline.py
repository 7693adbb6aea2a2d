# -*- coding: utf-8 -*-
"""
Canonization Pipeline Engine - OT Canon Asset Canonization

Orchestrates one canonization run by composing the component engines into a
deterministic, synchronous pipeline:

    1. INGEST     -- route sources, normalize rows, checksum every source
    2. INDUSTRY   -- use the explicit industry or detect it on a sample
    3. MATCH      -- link engineering rows to discovery rows
    4. CANONIZE   -- classify, cross-validate, infer context and lifecycle
    5. DEPEND     -- build the dependency map
    6. GAPS       -- asset, functional and coverage gaps
    7. RISK       -- per-asset and portfolio risk, attached to each asset
    8. REVIEW     -- review queue, lifecycle summary, audit package

Every stage is observed by a ProvenanceTracker scoped to the run. An
unexpected stage failure is logged, recorded as an ERROR event and returned
as a FAILED result carrying the audit package; invalid caller arguments
raise ValueError before the run starts.

Example:
    >>> from datetime import datetime, timezone
    >>> from otcanon.canonization_pipeline import CanonizationPipelineEngine
    >>> engine = CanonizationPipelineEngine()
    >>> result = engine.run(
    ...     engineering=[{"tag_id": "FT-200"}],
    ...     discovery=[{"tag_id": "FT-200", "ip_address": "10.0.0.5"}],
    ...     reference_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
    ... )
    >>> result.match_stats.coverage
    100

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from otcanon import metrics as _metrics_mod
from otcanon.config import OTCanonConfig, get_config
from otcanon.cross_validator import CrossValidatorEngine
from otcanon.dates import to_utc
from otcanon.dependency_mapper import DependencyMapperEngine
from otcanon.device_context import DeviceContextEngine
from otcanon.execution import Deadline, parallel_map
from otcanon.gap_analyzer import GapAnalyzerEngine
from otcanon.industry_detector import IndustryDetectorEngine
from otcanon.lifecycle_analyzer import LifecycleAnalyzerEngine
from otcanon.matching_engine import MatchingEngine
from otcanon.models import (
    CanonicalAsset,
    CanonizationResult,
    IndustryDetection,
    MatchStrategy,
    NormalizedAsset,
    OutputLevel,
    ProvenanceEventType,
    ReconciliationStatus,
    RunStatus,
    SourceDataset,
    SourceType,
)
from otcanon.normalizer import FieldNormalizer, detect_source_type
from otcanon.provenance import ProvenanceTracker
from otcanon.risk_engine import RiskEngine
from otcanon.tier_classifier import classify_asset

logger = logging.getLogger(__name__)

__all__ = [
    "BASIC_ASSET_FIELDS",
    "STANDARD_ASSET_FIELDS",
    "CanonizationPipelineEngine",
]

#: Input accepted for one side of a run.
SourceInput = Union[None, SourceDataset, Sequence[SourceDataset], Sequence[Mapping[str, Any]]]


# ---------------------------------------------------------------------------
# Field preference
# ---------------------------------------------------------------------------

# Network identity prefers discovery
_NETWORK_FIELDS = ("ip_address", "mac_address", "hostname")
# Engineering attributes prefer the engineering baseline
_ENGINEERING_FIELDS = (
    "tag_id", "plant", "unit", "device_type", "manufacturer", "model",
    "install_date",
)
# Operational state prefers discovery
_OPERATIONAL_FIELDS = (
    "first_seen", "last_seen", "is_managed", "remote_access",
    "vulnerabilities", "firmware_version", "network_segment",
)

_ID_FIELDS = ("tag_id", "ip_address", "hostname", "mac_address")


# ---------------------------------------------------------------------------
# Output views
# ---------------------------------------------------------------------------

BASIC_ASSET_FIELDS: Tuple[str, ...] = (
    "asset_id", "tag_id", "unit", "device_type", "manufacturer", "model",
    "ip_address", "hostname", "mac_address", "plant", "last_seen",
)

STANDARD_ASSET_FIELDS: Tuple[str, ...] = (
    "asset_id", "tag_id", "unit", "device_type", "manufacturer", "model",
    "ip_address", "hostname", "plant", "is_managed", "match_confidence",
)

_BLIND_SPOT_FIELDS = ("asset_id", "tag_id", "unit", "device_type", "ip_address")
_ORPHAN_FIELDS = ("asset_id", "ip_address", "hostname", "device_type", "mac_address")

_STANDARD_RESIDUAL_LIMIT = 100
_PREMIUM_RESIDUAL_LIMIT = 500


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


def _prefer(primary: Optional[NormalizedAsset], secondary: Optional[NormalizedAsset], name: str) -> Any:
    """Return the primary side's value unless it is empty."""
    for record in (primary, secondary):
        if record is not None:
            value = getattr(record, name)
            if value:
                return value
    return getattr(primary or secondary, name)


def _headers(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    return list(seen)


@dataclass(frozen=True)
class _Candidate:
    """One canonical asset to build: a match or an unmatched residual."""

    asset_id: str
    status: ReconciliationStatus
    engineering: Optional[NormalizedAsset]
    discovered: Optional[NormalizedAsset]
    strategy: Optional[MatchStrategy] = None
    confidence: int = 0


# ============================================================================
# CanonizationPipelineEngine
# ============================================================================


class CanonizationPipelineEngine:
    """Runs the full canonization pipeline over one engineering/discovery pair.

    Attributes:
        _config: Active OTCanonConfig.
        _normalizer: FieldNormalizer.
        _industry: IndustryDetectorEngine.
        _matching: MatchingEngine.
        _validator: CrossValidatorEngine.
        _context: DeviceContextEngine.
        _lifecycle: LifecycleAnalyzerEngine.
        _dependencies: DependencyMapperEngine.
        _gaps: GapAnalyzerEngine.
        _risk: RiskEngine.
        _lock: Threading lock for statistics.
        _stats: Aggregate run statistics.
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        """Initialize CanonizationPipelineEngine with all sub-engines.

        Args:
            config: Optional OTCanonConfig override. Falls back to the
                singleton from ``get_config()``.
        """
        self._config = config or get_config()
        cfg = self._config

        self._normalizer = FieldNormalizer()
        self._industry = IndustryDetectorEngine(cfg)
        self._matching = MatchingEngine(cfg)
        self._validator = CrossValidatorEngine(cfg)
        self._context = DeviceContextEngine(cfg)
        self._lifecycle = LifecycleAnalyzerEngine(cfg)
        self._dependencies = DependencyMapperEngine(cfg)
        self._gaps = GapAnalyzerEngine(cfg, context_engine=self._context)
        self._risk = RiskEngine(
            cfg, context_engine=self._context, lifecycle_engine=self._lifecycle,
        )

        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "runs": 0,
            "by_status": {s.value: 0 for s in RunStatus},
            "assets_produced": 0,
            "total_time_ms": 0.0,
        }
        logger.info(
            "CanonizationPipelineEngine initialized: max_records=%d max_workers=%d "
            "timeout=%.1fs provenance=%s metrics=%s",
            cfg.max_records, cfg.max_workers, cfg.operation_timeout_seconds,
            cfg.enable_provenance, cfg.enable_metrics,
        )

    # ------------------------------------------------------------------
    # 1. run - Full pipeline execution
    # ------------------------------------------------------------------

    def run(
        self,
        engineering: SourceInput = None,
        discovery: SourceInput = None,
        other: Optional[Sequence[SourceDataset]] = None,
        industry: Optional[str] = None,
        output_level: Optional[str] = None,
        reference_time: Optional[datetime] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> CanonizationResult:
        """Execute one canonization run.

        Args:
            engineering: Engineering baseline: a SourceDataset, a list of
                them, or a plain list of row mappings.
            discovery: Network discovery feed, in the same forms.
            other: Unlabelled sources; each is routed by its declared or
                detected type, and ``other`` sources are ingested for
                provenance only.
            industry: Explicit industry id; detected from the data when None.
            output_level: basic, standard or premium (recorded with the run).
            reference_time: Point in time staleness and lifecycle are
                evaluated at; defaults to the current UTC time.
            provenance: Tracker to record into; a new one keyed by the run
                id is created when omitted and provenance is enabled.

        Returns:
            CanonizationResult. Status is PENDING_REVIEW when the review
            queue is non-empty, COMPLETE otherwise, FAILED on a stage error.

        Raises:
            ValueError: If ``output_level`` is unknown or a side exceeds
                ``max_records`` rows.
        """
        cfg = self._config
        level = self._resolve_level(output_level)
        ref = to_utc(reference_time) if reference_time is not None else _utcnow()

        eng_sources = self._coerce_sources(engineering, SourceType.ENGINEERING)
        disc_sources = self._coerce_sources(discovery, SourceType.DISCOVERY)
        routed = [
            (self._coerce_sources(source, SourceType.OTHER)[0], self._route(source))
            for source in (other or [])
        ]
        eng_rows = sum(len(s.rows) for s in eng_sources) + sum(
            len(s.rows) for s, t in routed if t == SourceType.ENGINEERING
        )
        disc_rows = sum(len(s.rows) for s in disc_sources) + sum(
            len(s.rows) for s, t in routed if t == SourceType.DISCOVERY
        )
        for side, count in (("engineering", eng_rows), ("discovery", disc_rows)):
            if count > cfg.max_records:
                raise ValueError(
                    f"{side} input has {count} rows, exceeding max_records={cfg.max_records}"
                )

        run_id = provenance.session_id if provenance is not None else _new_id("RUN")
        tracker = provenance
        if tracker is None and cfg.enable_provenance:
            tracker = ProvenanceTracker(session_id=run_id, genesis=cfg.genesis_hash)

        start = time.monotonic()
        stage = "ingest"
        self._set_active_runs(1)
        logger.info(
            "Run %s starting: engineering=%d discovery=%d other=%d industry=%s level=%s",
            run_id, eng_rows, disc_rows, len(routed), industry or "auto", level.value,
        )

        try:
            if tracker is not None:
                tracker.record(
                    ProvenanceEventType.PIPELINE_START,
                    {"industry": industry, "output_level": level.value},
                )

            # -- Stage 1: INGEST --
            stage_start = time.monotonic()
            sources = (
                [(s, SourceType.ENGINEERING) for s in eng_sources]
                + [(s, SourceType.DISCOVERY) for s in disc_sources]
                + routed
            )
            eng_assets: List[NormalizedAsset] = []
            disc_assets: List[NormalizedAsset] = []
            filenames: List[str] = []
            for source, source_type in sources:
                rows = self._ingest(source, source_type, tracker)
                filenames.append(source.filename)
                if source_type == SourceType.ENGINEERING:
                    eng_assets.extend(rows)
                elif source_type == SourceType.DISCOVERY:
                    disc_assets.extend(rows)
            if tracker is not None:
                tracker.record(
                    ProvenanceEventType.INGESTION_COMPLETE,
                    {"engineering": len(eng_assets), "discovery": len(disc_assets)},
                )
            self._observe(stage, stage_start)

            # -- Stage 2: INDUSTRY --
            stage = "industry"
            detection: Optional[IndustryDetection] = None
            if industry is None:
                detection = self._industry.detect(eng_assets + disc_assets)
                industry = detection.detected or self._industry_from_filenames(filenames)
            elif not self._industry.is_supported(industry):
                logger.warning(
                    "Run %s: industry %s has no reference data; industry rules are skipped",
                    run_id, industry,
                )

            # -- Stage 3: MATCH --
            stage = "match"
            stage_start = time.monotonic()
            deadline = Deadline(cfg.operation_timeout_seconds)
            outcome = self._matching.match(eng_assets, disc_assets, deadline)
            candidates = self._candidates(outcome)
            if tracker is not None:
                for candidate in candidates:
                    if candidate.status != ReconciliationStatus.MATCHED:
                        continue
                    tracker.record_match(
                        candidate.asset_id,
                        candidate.strategy.value if candidate.strategy else "",
                        candidate.engineering.source_id if candidate.engineering else None,
                        candidate.discovered.source_id if candidate.discovered else None,
                        candidate.confidence,
                    )
                tracker.record(
                    ProvenanceEventType.MATCHING_COMPLETE,
                    outcome.stats.model_dump(mode="json"),
                )
            if cfg.enable_metrics:
                for name, count in outcome.stats.by_strategy.items():
                    _metrics_mod.inc_matches(name, count)
                _metrics_mod.set_coverage(outcome.stats.coverage)
            self._observe(stage, stage_start)

            # -- Stage 4: CANONIZE --
            stage = "canonize"
            stage_start = time.monotonic()
            assets = parallel_map(
                lambda c: self._build_asset(c, ref), candidates, cfg.max_workers,
            )
            if tracker is not None:
                for asset in assets:
                    tracker.record_classification(
                        asset.asset_id, asset.classification.tier, asset.classification.reason,
                    )
            self._observe(stage, stage_start)

            # -- Stage 5: DEPEND --
            stage = "dependencies"
            stage_start = time.monotonic()
            dependency_map = self._dependencies.build_map(assets, industry, deadline)
            self._observe(stage, stage_start)

            # -- Stage 6: GAPS --
            stage = "gaps"
            stage_start = time.monotonic()
            gap_report = self._gaps.analyze(assets, industry, ref)
            if cfg.enable_metrics:
                for gap in gap_report.gaps:
                    _metrics_mod.inc_gaps(gap.gap_type.value, gap.severity.value)
            self._observe(stage, stage_start)

            # -- Stage 7: RISK --
            stage = "risk"
            stage_start = time.monotonic()
            risk_report = self._risk.assess_portfolio(assets, ref, industry, dependency_map)
            assets = [
                asset.model_copy(update={"risk": assessment})
                for asset, assessment in zip(assets, risk_report.assessments)
            ]
            if cfg.enable_metrics:
                for assessment in risk_report.assessments:
                    _metrics_mod.inc_risk_assessments(assessment.risk_level.value)
                    _metrics_mod.observe_risk_score(assessment.normalized_score)
            self._observe(stage, stage_start)

            # -- Stage 8: REVIEW --
            stage = "review"
            review = self._validator.build_review_queue(assets)
            lifecycle_summary = self._lifecycle.summarize(assets)
            status = RunStatus.PENDING_REVIEW if review.count > 0 else RunStatus.COMPLETE
            if cfg.enable_metrics:
                _metrics_mod.set_pending_reviews(review.count)

            duration_ms = _elapsed_ms(start)
            audit = None
            if tracker is not None:
                tracker.record(
                    ProvenanceEventType.PIPELINE_COMPLETE,
                    {
                        "status": status.value,
                        "assets": len(assets),
                        "gaps": gap_report.summary.total,
                        "pending_review": review.count,
                        "duration_ms": round(duration_ms, 3),
                    },
                )
                audit = tracker.generate_audit_package(
                    len(assets), _kpis(assets, outcome.stats.model_dump(), review.count, gap_report.summary.total),
                )

            result = CanonizationResult(
                run_id=run_id,
                status=status,
                industry=industry,
                industry_detection=detection,
                assets=assets,
                match_stats=outcome.stats,
                review=review,
                dependency_map=dependency_map,
                gap_report=gap_report,
                risk_report=risk_report,
                lifecycle_summary=lifecycle_summary,
                audit=audit,
                reference_time=ref.isoformat(),
                duration_ms=duration_ms,
            )
            logger.info(
                "Run %s %s: assets=%d matched=%d blind_spots=%d orphans=%d "
                "coverage=%d%% gaps=%d review=%d (%.1fms)",
                run_id, status.value, len(assets), outcome.stats.matched,
                outcome.stats.blind_spots, outcome.stats.orphans,
                outcome.stats.coverage, gap_report.summary.total, review.count,
                duration_ms,
            )

        except Exception as exc:
            logger.error("Run %s failed at stage %s: %s", run_id, stage, exc, exc_info=True)
            if cfg.enable_metrics:
                _metrics_mod.inc_errors(stage)
            audit = None
            if tracker is not None:
                tracker.record(
                    ProvenanceEventType.ERROR,
                    {"stage": stage, "error": str(exc), "error_type": type(exc).__name__},
                )
                audit = tracker.generate_audit_package(0, {"failed_stage": stage})
            result = CanonizationResult(
                run_id=run_id,
                status=RunStatus.FAILED,
                industry=industry,
                audit=audit,
                errors=[f"{stage}: {exc}"],
                reference_time=ref.isoformat(),
                duration_ms=_elapsed_ms(start),
            )
        finally:
            self._set_active_runs(-1)

        if cfg.enable_metrics:
            _metrics_mod.inc_runs(result.status.value)
        with self._lock:
            self._stats["runs"] += 1
            self._stats["by_status"][result.status.value] += 1
            self._stats["assets_produced"] += len(result.assets)
            self._stats["total_time_ms"] += result.duration_ms
        return result

    # ------------------------------------------------------------------
    # 2. assemble_output - Level-specific views
    # ------------------------------------------------------------------

    def assemble_output(
        self,
        result: CanonizationResult,
        level: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Assemble the JSON-ready view of a run for one output level.

        basic: identity fields of every asset.
        standard: prioritisation fields plus the first 100 blind spots and
            orphans, the gap summary and the risk distribution.
        premium: full asset records, the first 500 blind spots and orphans,
            every report and the audit package.

        Args:
            result: Completed (or failed) canonization result.
            level: Output level; defaults to ``default_output_level``.

        Returns:
            Plain dictionary safe for ``json.dumps``.

        Raises:
            ValueError: If ``level`` is unknown.
        """
        resolved = self._resolve_level(level)
        response: Dict[str, Any] = {
            "run_id": result.run_id,
            "status": result.status.value,
            "output_level": resolved.value,
            "industry": result.industry,
            "reference_time": result.reference_time,
            "summary": _summary(result),
            "review": {
                **result.review.model_dump(mode="json"),
                "count": result.review.count,
            },
            "errors": list(result.errors),
        }

        if resolved == OutputLevel.BASIC:
            response["assets"] = [_view(a, BASIC_ASSET_FIELDS) for a in result.assets]
            return response

        if resolved == OutputLevel.STANDARD:
            response["assets"] = [_standard_view(a) for a in result.assets]
            response["blind_spots"] = [
                _view(a, _BLIND_SPOT_FIELDS)
                for a in result.blind_spots[:_STANDARD_RESIDUAL_LIMIT]
            ]
            response["orphans"] = [
                _view(a, _ORPHAN_FIELDS)
                for a in result.orphans[:_STANDARD_RESIDUAL_LIMIT]
            ]
            response["gap_summary"] = result.gap_report.summary.model_dump(mode="json")
            response["risk_summary"] = {
                "distribution": dict(result.risk_report.distribution),
                "average_score": result.risk_report.average_score,
            }
            return response

        response["assets"] = [a.model_dump(mode="json") for a in result.assets]
        response["blind_spots"] = [
            a.model_dump(mode="json") for a in result.blind_spots[:_PREMIUM_RESIDUAL_LIMIT]
        ]
        response["orphans"] = [
            a.model_dump(mode="json") for a in result.orphans[:_PREMIUM_RESIDUAL_LIMIT]
        ]
        response["industry_detection"] = (
            result.industry_detection.model_dump(mode="json")
            if result.industry_detection is not None else None
        )
        response["dependency_map"] = result.dependency_map.model_dump(mode="json")
        response["gap_report"] = result.gap_report.model_dump(mode="json")
        response["risk_report"] = result.risk_report.model_dump(mode="json")
        response["lifecycle_summary"] = result.lifecycle_summary.model_dump(mode="json")
        response["audit"] = result.audit.model_dump(mode="json") if result.audit is not None else None
        return response

    def get_statistics(self) -> Dict[str, Any]:
        """Return aggregate run statistics."""
        with self._lock:
            stats = dict(self._stats)
            stats["by_status"] = dict(self._stats["by_status"])
            return stats

    def get_engine_statistics(self) -> Dict[str, Any]:
        """Return the statistics of every sub-engine keyed by engine name."""
        return {
            "normalizer": self._normalizer.get_statistics(),
            "industry_detector": self._industry.get_statistics(),
            "matching": self._matching.get_statistics(),
            "cross_validator": self._validator.get_statistics(),
            "device_context": self._context.get_statistics(),
            "lifecycle": self._lifecycle.get_statistics(),
            "dependency_mapper": self._dependencies.get_statistics(),
            "gap_analyzer": self._gaps.get_statistics(),
            "risk": self._risk.get_statistics(),
        }

    # ------------------------------------------------------------------
    # Ingestion helpers
    # ------------------------------------------------------------------

    def _resolve_level(self, level: Optional[str]) -> OutputLevel:
        value = level if level is not None else self._config.default_output_level
        try:
            return OutputLevel(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown output level '{value}'; expected one of "
                f"{[lvl.value for lvl in OutputLevel]}"
            ) from None

    @staticmethod
    def _coerce_sources(source: Any, default_type: SourceType) -> List[SourceDataset]:
        """Turn one side's input into a list of SourceDataset."""
        if source is None:
            return []
        if isinstance(source, SourceDataset):
            datasets = [source]
        else:
            items = list(source)
            if not items:
                return []
            if all(isinstance(item, SourceDataset) for item in items):
                datasets = items
            else:
                datasets = [SourceDataset(rows=[dict(row) for row in items], source_type=default_type)]
        return [
            d if d.source_id else d.model_copy(update={"source_id": _new_id("SRC")})
            for d in datasets
        ]

    @staticmethod
    def _route(source: SourceDataset) -> SourceType:
        if source.source_type is not None:
            return source.source_type
        return detect_source_type(_headers(source.rows), source.filename)

    def _ingest(
        self,
        source: SourceDataset,
        source_type: SourceType,
        tracker: Optional[ProvenanceTracker],
    ) -> List[NormalizedAsset]:
        rows = self._normalizer.normalize_dataset(source.rows, source.source_id)
        if tracker is not None:
            tracker.record_source_ingestion(
                source.source_id,
                source.filename,
                tracker.build_hash(source.rows),
                len(rows),
                source_type.value,
            )
        if self._config.enable_metrics:
            _metrics_mod.inc_records_normalized(source_type.value, len(rows))
        logger.debug(
            "Ingested source %s (%s): %d rows as %s",
            source.source_id, source.filename or "<unnamed>", len(rows), source_type.value,
        )
        return rows

    def _industry_from_filenames(self, filenames: Iterable[str]) -> Optional[str]:
        for filename in filenames:
            hinted = self._industry.detect_from_filename(filename)
            if hinted is not None:
                logger.info("Industry %s inferred from filename %s", hinted, filename)
                return hinted
        return None

    # ------------------------------------------------------------------
    # Canonical asset construction
    # ------------------------------------------------------------------

    @staticmethod
    def _candidates(outcome: Any) -> List[_Candidate]:
        """Matched pairs first, then blind spots, then orphans, with unique ids."""
        taken: Dict[str, int] = {}

        def assign(primary: Optional[NormalizedAsset], secondary: Optional[NormalizedAsset]) -> str:
            base = ""
            for name in _ID_FIELDS:
                base = _prefer(primary, secondary, name)
                if base:
                    break
            if not base:
                base = (primary or secondary).source_ref
            count = taken.get(base, 0)
            taken[base] = count + 1
            return base if count == 0 else f"{base}#{count + 1}"

        candidates: List[_Candidate] = []
        for match in outcome.matches:
            candidates.append(_Candidate(
                asset_id=assign(match.engineering, match.discovered),
                status=ReconciliationStatus.MATCHED,
                engineering=match.engineering,
                discovered=match.discovered,
                strategy=match.strategy,
                confidence=match.confidence,
            ))
        for record in outcome.blind_spots:
            candidates.append(_Candidate(
                asset_id=assign(record, None),
                status=ReconciliationStatus.BLIND_SPOT,
                engineering=record,
                discovered=None,
            ))
        for record in outcome.orphans:
            candidates.append(_Candidate(
                asset_id=assign(None, record),
                status=ReconciliationStatus.ORPHAN,
                engineering=None,
                discovered=record,
            ))
        return candidates

    def _build_asset(self, candidate: _Candidate, reference_time: datetime) -> CanonicalAsset:
        eng, disc = candidate.engineering, candidate.discovered
        fields: Dict[str, Any] = {"asset_id": candidate.asset_id}
        for name in _NETWORK_FIELDS + _OPERATIONAL_FIELDS:
            fields[name] = _prefer(disc, eng, name)
        for name in _ENGINEERING_FIELDS:
            fields[name] = _prefer(eng, disc, name)

        context = self._context.infer(fields)
        lifecycle = self._lifecycle.analyze(
            fields, reference_time, context.device_type if context.is_inferred else None,
        )
        return CanonicalAsset(
            status=candidate.status,
            match_strategy=candidate.strategy,
            match_confidence=candidate.confidence,
            classification=classify_asset(eng if eng is not None else disc),
            validation=self._validator.validate(eng, disc),
            context=context,
            lifecycle=lifecycle,
            engineering=eng,
            discovered=disc,
            provenance={
                "engineering": eng.source_ref if eng is not None else None,
                "discovery": disc.source_ref if disc is not None else None,
            },
            **fields,
        )

    # ------------------------------------------------------------------
    # Metrics helpers
    # ------------------------------------------------------------------

    def _observe(self, stage: str, stage_start: float) -> None:
        if self._config.enable_metrics:
            _metrics_mod.observe_duration(stage, time.monotonic() - stage_start)

    def _set_active_runs(self, delta: int) -> None:
        if self._config.enable_metrics:
            _metrics_mod.set_active_runs(delta)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _tier_counts(assets: Sequence[CanonicalAsset]) -> Dict[str, int]:
    counts = {"tier1": 0, "tier2": 0, "tier3": 0}
    for asset in assets:
        counts[f"tier{asset.classification.tier}"] += 1
    return counts


def _kpis(
    assets: Sequence[CanonicalAsset],
    match_stats: Dict[str, Any],
    pending_review: int,
    gap_count: int,
) -> Dict[str, Any]:
    return {
        "total": match_stats["engineering_total"],
        "matched": match_stats["matched"],
        "blind_spots": match_stats["blind_spots"],
        "orphans": match_stats["orphans"],
        "coverage": match_stats["coverage"],
        **_tier_counts(assets),
        "gaps": gap_count,
        "pending_review": pending_review,
    }


def _summary(result: CanonizationResult) -> Dict[str, Any]:
    stats = result.match_stats
    return {
        "total": stats.engineering_total,
        "discovered": stats.discovery_total,
        "matched": stats.matched,
        "blind_spots": stats.blind_spots,
        "orphans": stats.orphans,
        "coverage": stats.coverage,
        "coverage_defined": stats.coverage_defined,
        "assets": len(result.assets),
        **_tier_counts(result.assets),
    }


def _view(asset: CanonicalAsset, fields: Sequence[str]) -> Dict[str, Any]:
    return {name: getattr(asset, name) for name in fields}


def _standard_view(asset: CanonicalAsset) -> Dict[str, Any]:
    view = _view(asset, STANDARD_ASSET_FIELDS)
    view.update({
        "status": asset.status.value,
        "security_tier": asset.classification.tier,
        "tier_label": asset.classification.label,
        "validation_status": asset.validation.status.value,
        "lifecycle_status": asset.lifecycle.status.value,
        "risk_score": asset.risk.normalized_score if asset.risk is not None else None,
        "risk_level": asset.risk.risk_level.value if asset.risk is not None else None,
    })
    return view
