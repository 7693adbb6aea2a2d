# -*- coding: utf-8 -*-
"""
Test suite for GapAnalyzerEngine

Tests asset gaps (blind spots, orphans, stale data), functional gaps
against the unit knowledge base, coverage gaps and the merged report.
"""

from types import SimpleNamespace

import pytest

from otcanon.gap_analyzer import GapAnalyzerEngine, device_type_pattern, function_pattern
from otcanon.models import GapSeverity, GapType, ReconciliationStatus
from otcanon.normalizer import FieldNormalizer

MATCHED = ReconciliationStatus.MATCHED
BLIND_SPOT = ReconciliationStatus.BLIND_SPOT
ORPHAN = ReconciliationStatus.ORPHAN


@pytest.fixture
def analyzer():
    return GapAnalyzerEngine()


def _asset(status, tag="", device_type="", unit="", ip="", mac="", last_seen=""):
    record = FieldNormalizer().normalize_record({
        "tag": tag, "type": device_type, "unit": unit,
        "ip": ip, "mac": mac, "last_seen": last_seen,
    })
    return SimpleNamespace(
        asset_id=tag or ip or mac,
        status=status,
        tag_id=record.tag_id,
        device_type=device_type,
        unit=unit,
        ip_address=ip,
        mac_address=record.mac_address,
        last_seen=last_seen,
        engineering=record if status in (MATCHED, BLIND_SPOT) else None,
        discovered=record if status in (MATCHED, ORPHAN) else None,
    )


def _of_type(gaps, gap_type):
    return [g for g in gaps if g.gap_type == gap_type]


class TestPatterns:
    """Test function and device type recognition patterns."""

    def test_explicit_function_pattern(self):
        """Test listed functions use their explicit pattern."""
        assert function_pattern("heater_control").search("FIC-100")

    def test_derived_function_pattern(self):
        """Test unlisted functions match the leading letters of their tokens."""
        pattern = function_pattern("spot_welding")
        assert pattern.search("Spot welder cell")
        assert pattern.search("WELD-ROBOT")
        assert not pattern.search("paint booth")

    def test_generic_tokens_are_ignored(self):
        """Test generic words do not drive recognition."""
        pattern = function_pattern("hvac_control")
        assert pattern.search("HVAC unit")
        assert not pattern.search("controller")

    def test_derived_device_type_pattern(self):
        """Test underscores allow a space, hyphen or nothing."""
        pattern = device_type_pattern("safety_plc")
        for text in ("Safety PLC", "safety-plc", "SafetyPLC", "safety_plc"):
            assert pattern.search(text)


class TestAssetGaps:
    """Test reconciliation and staleness gaps."""

    def test_critical_blind_spot(self, analyzer, reference_time):
        """Test a PLC missing from discovery is a critical blind spot."""
        gaps = analyzer.analyze_asset_gaps(
            [_asset(BLIND_SPOT, "TIC-101", "PLC", "CDU")], reference_time,
        )
        assert len(gaps) == 1
        gap = gaps[0]
        assert gap.gap_type == GapType.BLIND_SPOT
        assert gap.severity == GapSeverity.CRITICAL
        assert gap.tag_id == "TIC-101"
        assert gap.recommendation == "Verify physical status and network connectivity immediately"
        assert len(gap.possible_causes) == 4

    def test_passive_blind_spot(self, analyzer, reference_time):
        """Test a gauge blind spot is only medium."""
        gaps = analyzer.analyze_asset_gaps(
            [_asset(BLIND_SPOT, "PG-100", "Pressure Gauge", "CDU")], reference_time,
        )
        assert gaps[0].severity == GapSeverity.MEDIUM
        assert gaps[0].recommendation == "Include in next scheduled verification"

    def test_networked_orphan(self, analyzer, reference_time):
        """Test an undocumented addressed device is a high orphan gap."""
        gaps = analyzer.analyze_asset_gaps(
            [_asset(ORPHAN, device_type="Workstation", ip="10.0.0.50")], reference_time,
        )
        gap = gaps[0]
        assert gap.gap_type == GapType.ORPHAN
        assert gap.severity == GapSeverity.HIGH
        assert gap.unit == "Unknown"
        assert gap.tag_id == "10.0.0.50"
        assert gap.recommendation.startswith("Investigate immediately")

    def test_orphan_without_address(self, analyzer, reference_time):
        """Test an orphan without IP or MAC is medium."""
        gaps = analyzer.analyze_asset_gaps(
            [_asset(ORPHAN, "XX-900", "Gauge")], reference_time,
        )
        assert gaps[0].severity == GapSeverity.MEDIUM

    def test_safety_orphan_is_critical(self, analyzer, reference_time):
        """Test a safety system orphan is critical."""
        gaps = analyzer.analyze_asset_gaps(
            [_asset(ORPHAN, device_type="SIS Logic Solver", ip="10.0.0.60")], reference_time,
        )
        assert gaps[0].severity == GapSeverity.CRITICAL

    @pytest.mark.parametrize("last_seen,severity", [
        ("2023-12-20T00:00:00Z", None),
        ("2023-11-01T00:00:00Z", GapSeverity.MEDIUM),
        ("2023-09-01T00:00:00Z", GapSeverity.HIGH),
        ("not a date", None),
    ])
    def test_stale_data(self, analyzer, reference_time, last_seen, severity):
        """Test staleness thresholds and escalation."""
        asset = _asset(MATCHED, "FT-200", "Transmitter", "CDU", last_seen=last_seen)
        stale = _of_type(analyzer.analyze_asset_gaps([asset], reference_time), GapType.STALE_DATA)
        if severity is None:
            assert stale == []
        else:
            assert len(stale) == 1
            assert stale[0].severity == severity
            assert stale[0].details["days_since_last_seen"] > 30


class TestFunctionalGaps:
    """Test comparison against expected unit functions."""

    def test_sparse_unit(self, analyzer):
        """Test a CDU holding only one controller."""
        gaps = analyzer.analyze_functional_gaps(
            [_asset(MATCHED, "TIC-101", "PLC", "CDU")], "oil-gas",
        )
        missing = {
            g.details.get("function"): g for g in _of_type(gaps, GapType.MISSING_FUNCTION)
            if "function" in g.details
        }
        assert missing["heater_control"].severity == GapSeverity.CRITICAL
        assert missing["feed_flow_control"].severity == GapSeverity.HIGH
        assert missing["reflux_control"].severity == GapSeverity.MEDIUM

        insufficient = _of_type(gaps, GapType.INSUFFICIENT_COVERAGE)
        temp = [g for g in insufficient if g.details.get("function") == "column_temperature"]
        assert temp[0].details["actual_devices"] == 1
        assert temp[0].details["expected_min_devices"] == 5

        type_gaps = {g.device_type: g for g in gaps if g.device_type}
        assert "plc" not in type_gaps
        assert type_gaps["sis"].severity == GapSeverity.HIGH
        assert type_gaps["hmi"].severity == GapSeverity.MEDIUM

    def test_single_critical_device_has_no_redundancy(self, analyzer):
        """Test a critical function served by one device."""
        gaps = analyzer.analyze_functional_gaps(
            [_asset(MATCHED, "FIC-150", "Heater firing controller", "CDU")], "oil-gas",
        )
        redundancy = [
            g for g in _of_type(gaps, GapType.NO_REDUNDANCY)
            if g.details["function"] == "heater_control"
        ]
        assert len(redundancy) == 1
        assert redundancy[0].severity == GapSeverity.HIGH
        assert redundancy[0].details["single_point_of_failure"] == "FIC-150"

    def test_unknown_units_and_industries(self, analyzer):
        """Test unresolved units and industries are skipped."""
        assets = [_asset(MATCHED, "TIC-101", "PLC", "Mystery Area")]
        assert analyzer.analyze_functional_gaps(assets, "oil-gas") == []
        assert analyzer.analyze_functional_gaps(assets, None) == []
        assert analyzer.analyze_functional_gaps(assets, "mining") == []


class TestCoverageGaps:
    """Test unit visibility and subnet gaps."""

    def test_no_visibility_in_critical_unit(self, analyzer):
        """Test a critical unit with nothing discovered."""
        assets = [
            _asset(BLIND_SPOT, "TIC-101", "PLC", "CDU"),
            _asset(BLIND_SPOT, "FT-200", "Transmitter", "CDU"),
        ]
        gaps = _of_type(analyzer.analyze_coverage_gaps(assets, "oil-gas"), GapType.NO_VISIBILITY)
        assert len(gaps) == 1
        assert gaps[0].severity == GapSeverity.CRITICAL
        assert gaps[0].details["unit_id"] == "cdu"

    def test_no_visibility_without_industry(self, analyzer):
        """Test unknown units are high rather than critical."""
        gaps = analyzer.analyze_coverage_gaps(
            [_asset(BLIND_SPOT, "TIC-101", "PLC", "CDU")], None,
        )
        assert gaps[0].severity == GapSeverity.HIGH

    def test_low_visibility(self, analyzer):
        """Test a large unit with low discovered share."""
        assets = [_asset(BLIND_SPOT, f"TT-{100 + i}", "Transmitter", "Area 9") for i in range(6)]
        assets.append(_asset(MATCHED, "TT-200", "Transmitter", "Area 9"))
        gaps = analyzer.analyze_coverage_gaps(assets, None)
        low = _of_type(gaps, GapType.LOW_VISIBILITY)
        assert len(low) == 1
        assert low[0].details["coverage_percent"] == 14

    def test_network_blind_spot(self, analyzer):
        """Test an undiscovered subnet holding several documented assets."""
        assets = [
            _asset(BLIND_SPOT, f"PT-{300 + i}", "Transmitter", "FCC", ip=f"10.5.5.{i + 1}")
            for i in range(3)
        ]
        assets.append(_asset(MATCHED, "PT-400", "Transmitter", "FCC", ip="10.6.6.1"))
        gaps = _of_type(analyzer.analyze_coverage_gaps(assets, None), GapType.NETWORK_BLIND_SPOT)
        assert len(gaps) == 1
        assert gaps[0].details["subnet"] == "10.5.5.0/24"
        assert gaps[0].details["asset_count"] == 3


class TestAnalyze:
    """Test the merged report."""

    def test_report_is_sorted_by_severity(self, analyzer, reference_time):
        """Test merged gaps are sorted by severity and summarised."""
        assets = [
            _asset(ORPHAN, device_type="Workstation", ip="10.0.0.50"),
            _asset(BLIND_SPOT, "TIC-101", "PLC", "CDU"),
            _asset(MATCHED, "FT-200", "Transmitter", "CDU", last_seen="2023-11-01"),
        ]
        report = analyzer.analyze(assets, "oil-gas", reference_time)
        ranks = [g.severity.rank for g in report.gaps]
        assert ranks == sorted(ranks)
        assert report.summary.total == len(report.gaps)
        assert len(report.gaps) == (
            len(report.asset_gaps) + len(report.functional_gaps) + len(report.coverage_gaps)
        )
        assert sum(report.summary.by_severity.values()) == report.summary.total
        assert report.summary.top_recommendations[0].priority == "critical"
        assert "CDU" in report.summary.affected_units

    def test_equal_severity_keeps_family_order(self, analyzer, reference_time):
        """Test gaps of one severity keep their order across gap families."""
        assets = [
            _asset(BLIND_SPOT, f"PT-{300 + i}", "Transmitter", "FCC", ip=f"10.5.5.{i + 1}")
            for i in range(3)
        ]
        assets.append(_asset(MATCHED, "PT-400", "Transmitter", "FCC", ip="10.6.6.1"))
        assets.append(_asset(ORPHAN, device_type="Workstation", ip="10.0.0.50"))
        assets.append(_asset(ORPHAN, device_type="Workstation", ip="10.0.0.51"))
        report = analyzer.analyze(assets, None, reference_time)

        high = [g for g in report.gaps if g.severity == GapSeverity.HIGH]
        keyed = [
            (g.gap_type, g.details.get("ip_address") or g.details.get("subnet"))
            for g in high if g.gap_type in (GapType.ORPHAN, GapType.NETWORK_BLIND_SPOT)
        ]
        assert keyed == [
            (GapType.ORPHAN, "10.0.0.50"),
            (GapType.ORPHAN, "10.0.0.51"),
            (GapType.NETWORK_BLIND_SPOT, "10.5.5.0/24"),
        ]

        families = report.asset_gaps + report.functional_gaps + report.coverage_gaps
        for severity in GapSeverity:
            expected = [g.gap_id for g in families if g.severity == severity]
            actual = [g.gap_id for g in report.gaps if g.severity == severity]
            assert actual == expected

    def test_empty_input(self, analyzer, reference_time):
        """Test no assets means no gaps."""
        report = analyzer.analyze([], None, reference_time)
        assert report.gaps == []
        assert report.summary.total == 0
        assert report.summary.top_recommendations == []
