# -*- coding: utf-8 -*-
"""
OT Canon Service Setup - OT Canon Asset Canonization

Provides the ``OTCanonService`` facade which wires the canonization pipeline
behind a small programmatic API: run a canonization, assemble level-specific
output, look up per-asset provenance, record human review decisions and
report health and statistics. Runs and their provenance trackers are kept in
memory for the lifetime of the service.

Also exposes the thread-safe ``get_service()`` / ``reset_service()``
singleton accessors.

Usage:
    >>> from otcanon.setup import get_service
    >>> service = get_service()
    >>> output = service.run_pipeline(
    ...     engineering=[{"tag_id": "TIC-101", "device_type": "PLC"}],
    ...     discovery=[],
    ...     output_level="basic",
    ... )
    >>> output["summary"]["blind_spots"]
    1

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from otcanon.canonization_pipeline import CanonizationPipelineEngine, SourceInput
from otcanon.config import OTCanonConfig, get_config
from otcanon.models import (
    AuditPackage,
    CanonizationResult,
    ProvenanceEvent,
    SourceDataset,
)
from otcanon.provenance import ProvenanceTracker

logger = logging.getLogger(__name__)

__all__ = [
    "OTCanonService",
    "get_service",
    "reset_service",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# ===================================================================
# OTCanonService facade
# ===================================================================


class OTCanonService:
    """Facade service for the OT Canon canonization core.

    Attributes:
        config: Active OTCanonConfig.
        _pipeline: CanonizationPipelineEngine, created by ``startup()``.
        _results: Canonization results keyed by run id, oldest first
            and capped at ``config.max_stored_runs``.
        _trackers: Provenance trackers keyed by run id.
        _stats: Aggregate service counters.
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        """Initialize OTCanonService.

        Args:
            config: Optional configuration; defaults to the global singleton.
        """
        self.config = config or get_config()
        self._pipeline: Optional[CanonizationPipelineEngine] = None

        # In-memory stores
        self._results: Dict[str, CanonizationResult] = {}
        self._trackers: Dict[str, ProvenanceTracker] = {}
        self._lock = threading.Lock()

        # Aggregate counters
        self._stats = {
            "total_runs": 0,
            "failed_runs": 0,
            "total_assets": 0,
            "total_gaps": 0,
            "total_reviews": 0,
        }

        self._started = False
        logger.info("OTCanonService created")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Initialize the pipeline engine."""
        if self._pipeline is None:
            self._pipeline = CanonizationPipelineEngine(config=self.config)
        self._started = True
        logger.info("OTCanonService started")

    def shutdown(self) -> None:
        """Shutdown the service."""
        self._started = False
        logger.info("OTCanonService shutdown")

    # ------------------------------------------------------------------
    # Health & Statistics
    # ------------------------------------------------------------------

    def health_check(self) -> Dict[str, Any]:
        """Return service health status.

        Returns:
            Dictionary with service status, engine availability and store
            sizes.
        """
        return {
            "status": "healthy" if self._started else "starting",
            "service": "otcanon",
            "engines": {
                "pipeline": self._pipeline is not None,
            },
            "stores": {
                "runs": len(self._results),
                "trackers": len(self._trackers),
            },
            "timestamp": _utcnow().isoformat(),
        }

    def get_stats(self) -> Dict[str, Any]:
        """Return service statistics.

        Returns:
            Dictionary with aggregate counts, store sizes and per-engine
            statistics.
        """
        with self._lock:
            stats = dict(self._stats)
            provenance_entries = sum(t.entry_count for t in self._trackers.values())
            runs_stored = len(self._results)
        return {
            **stats,
            "runs_stored": runs_stored,
            "provenance_entries": provenance_entries,
            "engines": (
                self._pipeline.get_engine_statistics()
                if self._pipeline is not None else {}
            ),
            "timestamp": _utcnow().isoformat(),
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Alias for get_stats()."""
        return self.get_stats()

    def get_health(self) -> Dict[str, Any]:
        """Alias for health_check()."""
        return self.health_check()

    # ------------------------------------------------------------------
    # Canonization
    # ------------------------------------------------------------------

    def canonize(
        self,
        engineering: SourceInput = None,
        discovery: SourceInput = None,
        other: Optional[Sequence[SourceDataset]] = None,
        industry: Optional[str] = None,
        output_level: Optional[str] = None,
        reference_time: Optional[datetime] = None,
    ) -> CanonizationResult:
        """Run one canonization and keep its result and provenance.

        Args:
            engineering: Engineering baseline source(s) or rows.
            discovery: Network discovery source(s) or rows.
            other: Unlabelled sources routed by detected type.
            industry: Explicit industry id, or None to detect.
            output_level: Output level recorded with the run.
            reference_time: Evaluation time; defaults to now.

        Returns:
            The CanonizationResult.

        Raises:
            ValueError: On invalid arguments (see the pipeline).
        """
        if self._pipeline is None:
            self.startup()

        tracker = ProvenanceTracker(
            session_id=f"RUN-{uuid4().hex[:12]}",
            genesis=self.config.genesis_hash,
        )
        result = self._pipeline.run(
            engineering=engineering,
            discovery=discovery,
            other=other,
            industry=industry,
            output_level=output_level,
            reference_time=reference_time,
            provenance=tracker,
        )

        with self._lock:
            self._results[result.run_id] = result
            self._trackers[result.run_id] = tracker
            self._stats["total_runs"] += 1
            if result.errors:
                self._stats["failed_runs"] += 1
            self._stats["total_assets"] += len(result.assets)
            self._stats["total_gaps"] += result.gap_report.summary.total
            evicted = self._evict_oldest_runs()

        logger.info(
            "Service run %s stored: status=%s assets=%d",
            result.run_id, result.status.value, len(result.assets),
        )
        if evicted:
            logger.info(
                "Evicted %d stored run(s) over cap %d: %s",
                len(evicted), self.config.max_stored_runs, ", ".join(evicted),
            )
        return result

    def _evict_oldest_runs(self) -> List[str]:
        """Drop the oldest stored runs beyond the configured cap.

        Must be called with ``_lock`` held.
        """
        evicted: List[str] = []
        while len(self._results) > self.config.max_stored_runs:
            run_id = next(iter(self._results))
            del self._results[run_id]
            self._trackers.pop(run_id, None)
            evicted.append(run_id)
        return evicted

    def run_pipeline(
        self,
        engineering: SourceInput = None,
        discovery: SourceInput = None,
        other: Optional[Sequence[SourceDataset]] = None,
        industry: Optional[str] = None,
        output_level: Optional[str] = None,
        reference_time: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Run one canonization and return the assembled output.

        Returns:
            Dictionary view of the run at ``output_level``.
        """
        result = self.canonize(
            engineering=engineering,
            discovery=discovery,
            other=other,
            industry=industry,
            output_level=output_level,
            reference_time=reference_time,
        )
        return self._pipeline.assemble_output(result, output_level)

    def assemble_output(self, run_id: str, level: Optional[str] = None) -> Dict[str, Any]:
        """Assemble a stored run at ``level``.

        Raises:
            KeyError: If the run is unknown.
        """
        if self._pipeline is None:
            self.startup()
        return self._pipeline.assemble_output(self.get_result(run_id), level)

    def get_result(self, run_id: str) -> CanonizationResult:
        """Return a stored run.

        Raises:
            KeyError: If the run is unknown.
        """
        with self._lock:
            if run_id not in self._results:
                raise KeyError(f"Unknown run: {run_id}")
            return self._results[run_id]

    def list_runs(self) -> List[Dict[str, Any]]:
        """Return a short summary of every stored run, oldest first."""
        with self._lock:
            results = list(self._results.values())
        return [
            {
                "run_id": r.run_id,
                "status": r.status.value,
                "industry": r.industry,
                "assets": len(r.assets),
                "reference_time": r.reference_time,
            }
            for r in results
        ]

    # ------------------------------------------------------------------
    # Provenance and review
    # ------------------------------------------------------------------

    def get_asset_provenance(self, run_id: str, asset_id: str) -> List[ProvenanceEvent]:
        """Return every provenance event of ``asset_id`` within a run."""
        return self._tracker(run_id).get_asset_provenance(asset_id)

    def record_review(
        self,
        run_id: str,
        asset_id: str,
        decision: str,
        reviewer: str = "user",
    ) -> ProvenanceEvent:
        """Record a human review decision for an asset of a stored run.

        Args:
            run_id: Run the asset belongs to.
            asset_id: Canonical asset id.
            decision: Free-text decision (e.g. ``confirmed``, ``rejected``).
            reviewer: Reviewer identity.

        Returns:
            The recorded HUMAN_REVIEW event.

        Raises:
            KeyError: If the run or the asset is unknown.
        """
        result = self.get_result(run_id)
        if not any(a.asset_id == asset_id for a in result.assets):
            raise KeyError(f"Unknown asset {asset_id} in run {run_id}")
        event = self._tracker(run_id).record_human_review(asset_id, decision, reviewer)
        with self._lock:
            self._stats["total_reviews"] += 1
        logger.info(
            "Review recorded: run=%s asset=%s decision=%s reviewer=%s",
            run_id, asset_id, decision, reviewer,
        )
        return event

    def get_audit_package(self, run_id: str) -> AuditPackage:
        """Regenerate the audit package of a run, including later reviews."""
        result = self.get_result(run_id)
        tracker = self._tracker(run_id)
        return tracker.generate_audit_package(
            len(result.assets),
            {
                "run_status": result.status.value,
                "coverage": result.match_stats.coverage,
                "pending_review": result.review.count,
                "gaps": result.gap_report.summary.total,
            },
        )

    def verify_run(self, run_id: str) -> bool:
        """Verify the provenance chain of a run."""
        return self._tracker(run_id).verify_chain()

    def export_provenance(self, run_id: str) -> str:
        """Export the provenance events of a run as JSON."""
        return self._tracker(run_id).export_json()

    def _tracker(self, run_id: str) -> ProvenanceTracker:
        with self._lock:
            if run_id not in self._trackers:
                raise KeyError(f"Unknown run: {run_id}")
            return self._trackers[run_id]


# ---------------------------------------------------------------------------
# Thread-safe singleton
# ---------------------------------------------------------------------------

_service_instance: Optional[OTCanonService] = None
_service_lock = threading.Lock()


def get_service() -> OTCanonService:
    """Return the singleton OTCanonService.

    Thread-safe lazy initialization. Returns the same instance on every
    call within the process.

    Returns:
        The global OTCanonService singleton.
    """
    global _service_instance
    if _service_instance is None:
        with _service_lock:
            if _service_instance is None:
                _service_instance = OTCanonService()
                _service_instance.startup()
    return _service_instance


def reset_service() -> OTCanonService:
    """Reset and return a new singleton instance.

    Returns:
        A fresh OTCanonService singleton.
    """
    global _service_instance
    with _service_lock:
        _service_instance = OTCanonService()
        _service_instance.startup()
    return _service_instance
