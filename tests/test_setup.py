# -*- coding: utf-8 -*-
"""
Tests for OTCanonService and the service singleton.
"""

import json

import pytest

from otcanon.config import OTCanonConfig
from otcanon.models import ProvenanceEventType, RunStatus
from otcanon.setup import OTCanonService, get_service, reset_service


@pytest.fixture
def run(service, engineering_rows, discovery_rows, reference_time):
    """A stored run of the shared fixture rows."""
    return service.canonize(
        engineering=engineering_rows,
        discovery=discovery_rows,
        reference_time=reference_time,
    )


class TestLifecycle:
    """Test startup, health and statistics."""

    def test_health_before_startup(self):
        """Test a new service reports it is still starting."""
        health = OTCanonService().health_check()
        assert health["status"] == "starting"
        assert health["engines"]["pipeline"] is False

    def test_health_after_startup(self, service):
        """Test a started service is healthy."""
        health = service.get_health()
        assert health["status"] == "healthy"
        assert health["service"] == "otcanon"
        assert health["engines"]["pipeline"] is True

    def test_canonize_starts_lazily(self, engineering_rows, reference_time):
        """Test canonize creates the pipeline on first use."""
        svc = OTCanonService()
        result = svc.canonize(engineering=engineering_rows, reference_time=reference_time)
        assert result.status != RunStatus.FAILED
        assert svc.health_check()["engines"]["pipeline"] is True

    def test_stats(self, service, run):
        """Test aggregate counters and per-engine statistics."""
        stats = service.get_statistics()
        assert stats["total_runs"] == 1
        assert stats["failed_runs"] == 0
        assert stats["total_assets"] == 4
        assert stats["runs_stored"] == 1
        assert stats["provenance_entries"] > 0
        assert "matching" in stats["engines"]


class TestRuns:
    """Test running and retrieving canonizations."""

    def test_result_is_stored(self, service, run):
        """Test a run can be fetched by id."""
        assert service.get_result(run.run_id) is run
        assert service.list_runs() == [{
            "run_id": run.run_id,
            "status": run.status.value,
            "industry": "oil-gas",
            "assets": 4,
            "reference_time": run.reference_time,
        }]

    def test_unknown_run(self, service):
        """Test an unknown run id raises KeyError."""
        with pytest.raises(KeyError):
            service.get_result("RUN-missing")
        with pytest.raises(KeyError):
            service.verify_run("RUN-missing")

    def test_run_pipeline_returns_output(self, service, engineering_rows, reference_time):
        """Test run_pipeline assembles the requested level."""
        output = service.run_pipeline(
            engineering=engineering_rows,
            discovery=[],
            output_level="basic",
            reference_time=reference_time,
        )
        assert output["output_level"] == "basic"
        assert output["summary"]["blind_spots"] == 3
        assert service.get_result(output["run_id"]).run_id == output["run_id"]

    def test_assemble_stored_run(self, service, run):
        """Test a stored run can be re-assembled at another level."""
        output = service.assemble_output(run.run_id, "premium")
        assert output["audit"]["session_id"] == run.run_id

    def test_invalid_level(self, service, engineering_rows):
        """Test an invalid output level is rejected."""
        with pytest.raises(ValueError):
            service.run_pipeline(engineering=engineering_rows, output_level="gold")


    def test_oldest_runs_are_evicted(self, engineering_rows, reference_time):
        """Test the run store keeps only the newest runs up to the cap."""
        svc = OTCanonService(OTCanonConfig(max_stored_runs=2))
        runs = [
            svc.canonize(engineering=engineering_rows, reference_time=reference_time)
            for _ in range(3)
        ]
        with pytest.raises(KeyError):
            svc.get_result(runs[0].run_id)
        with pytest.raises(KeyError):
            svc.verify_run(runs[0].run_id)
        assert [r["run_id"] for r in svc.list_runs()] == [runs[1].run_id, runs[2].run_id]
        assert svc.verify_run(runs[2].run_id) is True
        stats = svc.get_statistics()
        assert stats["total_runs"] == 3
        assert stats["runs_stored"] == 2


class TestProvenanceAndReview:
    """Test per-run provenance, reviews and audit packages."""

    def test_verify_run(self, service, run):
        """Test the chain of a stored run verifies."""
        assert service.verify_run(run.run_id) is True

    def test_asset_provenance(self, service, run):
        """Test a matched asset has match and classification events."""
        events = service.get_asset_provenance(run.run_id, "FT-200")
        types = [e.event_type for e in events]
        assert ProvenanceEventType.ASSET_MATCHED in types
        assert ProvenanceEventType.CLASSIFICATION in types

    def test_record_review(self, service, run):
        """Test a review decision is appended to the run trail."""
        event = service.record_review(run.run_id, "TIC-101", "confirmed", reviewer="j.doe")
        assert event.event_type == ProvenanceEventType.HUMAN_REVIEW
        assert event.asset_id == "TIC-101"
        assert event.payload["decision"] == "confirmed"
        assert service.verify_run(run.run_id) is True
        assert service.get_stats()["total_reviews"] == 1

    def test_review_unknown_asset(self, service, run):
        """Test reviewing an asset outside the run raises KeyError."""
        with pytest.raises(KeyError):
            service.record_review(run.run_id, "NOPE-1", "confirmed")

    def test_audit_package_includes_reviews(self, service, run):
        """Test the regenerated audit package counts later reviews."""
        before = service.get_audit_package(run.run_id)
        service.record_review(run.run_id, "10.1.9.99", "rejected")
        after = service.get_audit_package(run.run_id)
        assert before.summary[ProvenanceEventType.HUMAN_REVIEW.value] == 0
        assert after.summary[ProvenanceEventType.HUMAN_REVIEW.value] == 1
        assert after.summary["total_events"] == before.summary["total_events"] + 1

    def test_export_provenance(self, service, run):
        """Test exported provenance is a JSON list of events."""
        exported = json.loads(service.export_provenance(run.run_id))
        assert isinstance(exported, list)
        assert exported[0]["event_type"] == ProvenanceEventType.PIPELINE_START.value


class TestSingleton:
    """Test the module level service accessors."""

    def test_get_service_is_cached(self):
        """Test get_service returns one instance."""
        assert get_service() is get_service()

    def test_reset_service(self):
        """Test reset_service replaces the instance."""
        first = get_service()
        second = reset_service()
        assert second is not first
        assert get_service() is second
