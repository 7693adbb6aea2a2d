# -*- coding: utf-8 -*-
"""
Tests for CanonizationPipelineEngine.

Runs the full pipeline over a small refinery baseline and discovery export
and checks the reconciled register, the analysis reports attached to it,
output assembly and failure handling.
"""

import json

import pytest

from otcanon.canonization_pipeline import (
    BASIC_ASSET_FIELDS,
    STANDARD_ASSET_FIELDS,
    CanonizationPipelineEngine,
)
from otcanon.config import OTCanonConfig
from otcanon.models import (
    GapSeverity,
    GapType,
    MatchStrategy,
    ProvenanceEventType,
    ReconciliationStatus,
    RiskFactorType,
    RunStatus,
    SourceDataset,
    SourceType,
)
from otcanon.provenance import ProvenanceTracker


@pytest.fixture
def pipeline():
    """Pipeline with metrics disabled."""
    return CanonizationPipelineEngine(OTCanonConfig(enable_metrics=False))


@pytest.fixture
def result(pipeline, engineering_rows, discovery_rows, reference_time):
    """One complete run over the shared fixture rows."""
    return pipeline.run(
        engineering=engineering_rows,
        discovery=discovery_rows,
        reference_time=reference_time,
    )


def _asset(result, asset_id):
    return next(a for a in result.assets if a.asset_id == asset_id)


class TestReconciliation:
    """Test matching and canonical asset construction."""

    def test_partition(self, result):
        """Test every input row lands in exactly one bucket."""
        stats = result.match_stats
        assert stats.engineering_total == 3
        assert stats.discovery_total == 3
        assert stats.matched == 2
        assert stats.blind_spots == 1
        assert stats.orphans == 1
        assert stats.coverage == 67
        assert len(result.assets) == 4

    def test_asset_ids(self, result):
        """Test ids prefer the tag, then the IP address."""
        assert [a.asset_id for a in result.assets] == [
            "FT-200", "PT-300", "TIC-101", "10.1.9.99",
        ]

    def test_tag_match(self, result):
        """Test a case-insensitive tag match with full confidence."""
        asset = _asset(result, "FT-200")
        assert asset.status == ReconciliationStatus.MATCHED
        assert asset.match_strategy == MatchStrategy.TAG_ID
        assert asset.match_confidence == 100
        assert asset.validation.agreement_count >= 1

    def test_ip_match_merges_fields(self, result):
        """Test an IP match keeps engineering attributes and discovery identity."""
        asset = _asset(result, "PT-300")
        assert asset.match_strategy == MatchStrategy.IP_ADDRESS
        assert asset.match_confidence == 95
        assert asset.unit == "FCC"
        assert asset.model == "EJA110E"
        assert asset.hostname == "fcc-pt300"
        assert asset.mac_address == "00:1D:9C:AA:BB:02"
        assert asset.engineering is not None
        assert asset.discovered is not None

    def test_blind_spot(self, result):
        """Test an undiscovered PLC is a tier 1 blind spot."""
        asset = _asset(result, "TIC-101")
        assert asset.status == ReconciliationStatus.BLIND_SPOT
        assert asset.classification.tier == 1
        assert asset.discovered is None
        assert asset.provenance["discovery"] is None
        assert asset.match_confidence == 0

    def test_orphan(self, result):
        """Test a discovery-only workstation is an orphan."""
        asset = _asset(result, "10.1.9.99")
        assert asset.status == ReconciliationStatus.ORPHAN
        assert asset.engineering is None
        assert asset.hostname == "unknown-host"

    def test_result_views(self, result):
        """Test the status views partition the assets."""
        assert [a.asset_id for a in result.blind_spots] == ["TIC-101"]
        assert [a.asset_id for a in result.orphans] == ["10.1.9.99"]
        assert len(result.matched) == 2

    def test_every_asset_has_a_tier(self, result):
        """Test classification is total."""
        assert all(a.classification.tier in (1, 2, 3) for a in result.assets)

    def test_lifecycle_attached(self, result):
        """Test the vendor table is consulted for the 1756-L55."""
        asset = _asset(result, "TIC-101")
        assert asset.lifecycle.product_family is not None
        assert asset.lifecycle.replacement == "ControlLogix 5580"


class TestAnalysis:
    """Test the reports produced for a run."""

    def test_industry_detected(self, result):
        """Test refinery vocabulary selects oil & gas."""
        assert result.industry == "oil-gas"
        assert result.industry_detection is not None
        assert result.industry_detection.is_reliable is True

    def test_explicit_industry_skips_detection(self, pipeline, engineering_rows, reference_time):
        """Test an explicit industry is used as given."""
        result = pipeline.run(
            engineering=engineering_rows, industry="oil-gas", reference_time=reference_time,
        )
        assert result.industry == "oil-gas"
        assert result.industry_detection is None

    def test_unsupported_industry_is_kept(self, pipeline, engineering_rows, reference_time):
        """Test an industry without reference data does not fail the run."""
        result = pipeline.run(
            engineering=engineering_rows, industry="aerospace", reference_time=reference_time,
        )
        assert result.status != RunStatus.FAILED
        assert result.industry == "aerospace"
        assert result.gap_report.functional_gaps == []

    def test_filename_hint(self, pipeline, reference_time):
        """Test the filename is used when the content is not conclusive."""
        source = SourceDataset(filename="refinery_baseline.csv", rows=[{"tag_id": "X-1"}])
        result = pipeline.run(engineering=source, reference_time=reference_time)
        assert result.industry_detection.is_reliable is False
        assert result.industry == "oil-gas"

    def test_blind_spot_gap(self, result):
        """Test the undiscovered PLC is a critical blind spot gap."""
        gaps = [
            g for g in result.gap_report.asset_gaps
            if g.gap_type == GapType.BLIND_SPOT and g.tag_id == "TIC-101"
        ]
        assert len(gaps) == 1
        assert gaps[0].severity == GapSeverity.CRITICAL

    def test_orphan_gap(self, result):
        """Test the networked orphan is a high severity gap."""
        orphan_gaps = [
            g for g in result.gap_report.asset_gaps if g.gap_type == GapType.ORPHAN
        ]
        assert len(orphan_gaps) == 1
        assert orphan_gaps[0].severity == GapSeverity.HIGH

    def test_gaps_sorted_by_severity(self, result):
        """Test the combined gap list is ordered most severe first."""
        ranks = [g.severity.rank for g in result.gap_report.gaps]
        assert ranks == sorted(ranks)
        assert result.gap_report.summary.total == len(result.gap_report.gaps)

    def test_risk_attached(self, result):
        """Test every asset carries a bounded risk assessment."""
        for asset in result.assets:
            assert asset.risk is not None
            assert asset.risk.asset_id == asset.asset_id
            assert 0 <= asset.risk.normalized_score <= 100
        assert result.risk_report.total_assets == 4

    def test_orphan_is_undocumented(self, result):
        """Test the orphan carries the undocumented factor."""
        factors = {f.factor for f in _asset(result, "10.1.9.99").risk.factors}
        assert RiskFactorType.UNDOCUMENTED in factors

    def test_blind_spot_has_no_discovery_factor(self, result):
        """Test the blind spot carries the no-discovery factor."""
        factors = {f.factor for f in _asset(result, "TIC-101").risk.factors}
        assert RiskFactorType.NO_DISCOVERY in factors

    def test_lifecycle_summary(self, result):
        """Test every asset is counted in the lifecycle summary."""
        assert result.lifecycle_summary.total == 4
        assert sum(result.lifecycle_summary.counts.values()) == 4

    def test_status_follows_review_queue(self, result):
        """Test the run status reflects pending review items."""
        expected = RunStatus.PENDING_REVIEW if result.review.count else RunStatus.COMPLETE
        assert result.status == expected


class TestSources:
    """Test input coercion and routing."""

    def test_duplicate_ids_are_suffixed(self, pipeline, reference_time):
        """Test repeated tags give unique asset ids."""
        result = pipeline.run(
            engineering=[{"tag_id": "FT-1"}, {"tag_id": "FT-1"}],
            reference_time=reference_time,
        )
        assert [a.asset_id for a in result.assets] == ["FT-1", "FT-1#2"]

    def test_unlabelled_source_is_routed(self, pipeline, reference_time):
        """Test an unlabelled discovery export joins the discovery side."""
        other = SourceDataset(
            filename="scan.csv",
            rows=[{"ip": "10.0.0.9", "last_seen": "2023-12-31T00:00:00Z"}],
        )
        result = pipeline.run(other=[other], reference_time=reference_time)
        assert result.match_stats.discovery_total == 1
        assert result.match_stats.orphans == 1

    def test_slot_role_wins(self, pipeline, reference_time):
        """Test the argument a source is passed in decides its role."""
        source = SourceDataset(rows=[{"tag_id": "FT-1"}], source_type=SourceType.DISCOVERY)
        result = pipeline.run(engineering=source, reference_time=reference_time)
        assert result.match_stats.engineering_total == 1
        assert result.match_stats.discovery_total == 0

    def test_empty_inputs(self, pipeline, reference_time):
        """Test a run with no data completes with nothing to report."""
        result = pipeline.run(reference_time=reference_time)
        assert result.status == RunStatus.COMPLETE
        assert result.assets == []
        assert result.match_stats.coverage == 0
        assert result.match_stats.coverage_defined is False

    def test_max_records(self, reference_time):
        """Test an oversized side is rejected before the run starts."""
        engine = CanonizationPipelineEngine(
            OTCanonConfig(enable_metrics=False, max_records=2),
        )
        with pytest.raises(ValueError, match="max_records"):
            engine.run(
                engineering=[{"tag_id": f"FT-{i}"} for i in range(3)],
                reference_time=reference_time,
            )

    def test_invalid_output_level(self, pipeline):
        """Test an unknown output level is rejected."""
        with pytest.raises(ValueError, match="Unknown output level"):
            pipeline.run(output_level="gold")

    def test_parallel_workers_keep_order(self, engineering_rows, discovery_rows, reference_time):
        """Test a worker pool produces the same register."""
        engine = CanonizationPipelineEngine(
            OTCanonConfig(enable_metrics=False, max_workers=4),
        )
        result = engine.run(
            engineering=engineering_rows,
            discovery=discovery_rows,
            reference_time=reference_time,
        )
        assert [a.asset_id for a in result.assets] == [
            "FT-200", "PT-300", "TIC-101", "10.1.9.99",
        ]


class TestProvenance:
    """Test the provenance trail of a run."""

    def test_events_recorded(self, pipeline, engineering_rows, discovery_rows, reference_time):
        """Test every stage is recorded into the supplied tracker."""
        tracker = ProvenanceTracker(session_id="RUN-fixed")
        result = pipeline.run(
            engineering=engineering_rows,
            discovery=discovery_rows,
            reference_time=reference_time,
            provenance=tracker,
        )
        counts = tracker.count_by_type()
        assert result.run_id == "RUN-fixed"
        assert counts[ProvenanceEventType.PIPELINE_START.value] == 1
        assert counts[ProvenanceEventType.SOURCE_INGESTED.value] == 2
        assert counts[ProvenanceEventType.ASSET_MATCHED.value] == 2
        assert counts[ProvenanceEventType.CLASSIFICATION.value] == 4
        assert counts[ProvenanceEventType.PIPELINE_COMPLETE.value] == 1
        assert tracker.verify_chain() is True

    def test_audit_package(self, result):
        """Test the audit package accompanies the result."""
        assert result.audit is not None
        assert result.audit.session_id == result.run_id
        assert result.audit.summary["sources_ingested"] == 2
        assert len(result.audit.evidence_hash) == 64

    def test_provenance_disabled(self, engineering_rows, reference_time):
        """Test no audit package is built without provenance."""
        engine = CanonizationPipelineEngine(
            OTCanonConfig(enable_metrics=False, enable_provenance=False),
        )
        result = engine.run(engineering=engineering_rows, reference_time=reference_time)
        assert result.audit is None
        assert result.run_id.startswith("RUN-")


class TestFailures:
    """Test stage failures produce a FAILED result."""

    def test_stage_error(self, pipeline, engineering_rows, reference_time, monkeypatch):
        """Test an unexpected error is captured with its stage."""
        def boom(*args, **kwargs):
            raise RuntimeError("analysis exploded")

        monkeypatch.setattr(pipeline._gaps, "analyze", boom)
        result = pipeline.run(engineering=engineering_rows, reference_time=reference_time)
        assert result.status == RunStatus.FAILED
        assert result.errors == ["gaps: analysis exploded"]
        assert result.assets == []
        assert result.audit is not None
        assert result.audit.summary[ProvenanceEventType.ERROR.value] == 1

    def test_timeout(self, pipeline, engineering_rows, reference_time, monkeypatch):
        """Test an expired deadline fails the run at the matching stage."""
        def expired(*args, **kwargs):
            raise TimeoutError("operation deadline exceeded")

        monkeypatch.setattr(pipeline._matching, "match", expired)
        result = pipeline.run(engineering=engineering_rows, reference_time=reference_time)
        assert result.status == RunStatus.FAILED
        assert result.errors[0].startswith("match: ")

    def test_statistics(self, pipeline, engineering_rows, reference_time, monkeypatch):
        """Test run statistics count every status."""
        pipeline.run(engineering=engineering_rows, reference_time=reference_time)
        def boom(*args, **kwargs):
            raise RuntimeError("risk exploded")

        monkeypatch.setattr(pipeline._risk, "assess_portfolio", boom)
        pipeline.run(engineering=engineering_rows, reference_time=reference_time)
        stats = pipeline.get_statistics()
        assert stats["runs"] == 2
        assert stats["by_status"][RunStatus.FAILED.value] == 1
        assert stats["assets_produced"] == 3


class TestAssembleOutput:
    """Test level-specific output views."""

    def test_basic(self, pipeline, result):
        """Test basic output carries identity fields only."""
        output = pipeline.assemble_output(result, "basic")
        assert output["output_level"] == "basic"
        assert set(output["assets"][0]) == set(BASIC_ASSET_FIELDS)
        assert "gap_summary" not in output
        assert output["summary"]["matched"] == 2
        assert output["summary"]["tier1"] >= 1

    def test_standard(self, pipeline, result):
        """Test standard output adds prioritisation fields and summaries."""
        output = pipeline.assemble_output(result, "standard")
        asset = output["assets"][0]
        assert set(STANDARD_ASSET_FIELDS) <= set(asset)
        assert {"security_tier", "risk_score", "lifecycle_status"} <= set(asset)
        assert [b["asset_id"] for b in output["blind_spots"]] == ["TIC-101"]
        assert [o["asset_id"] for o in output["orphans"]] == ["10.1.9.99"]
        assert output["gap_summary"]["total"] == result.gap_report.summary.total
        assert "distribution" in output["risk_summary"]
        assert "audit" not in output

    def test_premium(self, pipeline, result):
        """Test premium output carries every report and the audit package."""
        output = pipeline.assemble_output(result, "PREMIUM")
        for key in (
            "dependency_map", "gap_report", "risk_report",
            "lifecycle_summary", "industry_detection", "audit",
        ):
            assert key in output
        assert output["assets"][0]["classification"]["tier"] in (1, 2, 3)
        json.dumps(output)

    def test_default_level(self, pipeline, result):
        """Test the configured default level is used."""
        assert pipeline.assemble_output(result)["output_level"] == "standard"

    def test_unknown_level(self, pipeline, result):
        """Test an unknown level is rejected."""
        with pytest.raises(ValueError):
            pipeline.assemble_output(result, "platinum")


class TestMinimalInputs:
    """Test single-record runs end to end."""

    def test_undiscovered_plc(self, pipeline, reference_time):
        """Test a lone PLC without discovery is a critical tier 1 blind spot."""
        result = pipeline.run(
            engineering=[{"tag_id": "TIC-101", "device_type": "PLC"}],
            reference_time=reference_time,
        )
        asset = result.assets[0]
        assert asset.status == ReconciliationStatus.BLIND_SPOT
        assert asset.classification.tier == 1
        gap = result.gap_report.asset_gaps[0]
        assert gap.gap_type == GapType.BLIND_SPOT
        assert gap.severity == GapSeverity.CRITICAL

    def test_tag_pair(self, pipeline, reference_time):
        """Test identical tags match with full confidence and agreement."""
        result = pipeline.run(
            engineering=[{"tag_id": "FT-200"}],
            discovery=[{"tag_id": "FT-200", "ip_address": "10.0.0.5"}],
            reference_time=reference_time,
        )
        asset = result.assets[0]
        assert asset.match_strategy == MatchStrategy.TAG_ID
        assert asset.match_confidence == 100
        assert asset.validation.agreement_count >= 1
        assert asset.ip_address == "10.0.0.5"

    def test_addressed_orphan(self, pipeline, reference_time):
        """Test a discovery-only address is a high severity undocumented orphan."""
        result = pipeline.run(
            discovery=[{"ip_address": "10.0.0.7"}],
            reference_time=reference_time,
        )
        asset = result.assets[0]
        assert asset.status == ReconciliationStatus.ORPHAN
        orphan_gaps = [g for g in result.gap_report.asset_gaps if g.gap_type == GapType.ORPHAN]
        assert orphan_gaps[0].severity == GapSeverity.HIGH
        assert RiskFactorType.UNDOCUMENTED in {f.factor for f in asset.risk.factors}
