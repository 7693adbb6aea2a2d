# -*- coding: utf-8 -*-
"""
Test suite for LifecycleAnalyzerEngine

Tests vendor normalization, product family identification, date-driven
and estimate-driven lifecycle status, and portfolio summaries.
"""

from datetime import date, datetime, timezone

import pytest

from otcanon import lifecycle_analyzer
from otcanon.lifecycle_analyzer import LifecycleAnalyzerEngine, ProductLifecycle
from otcanon.models import LifecycleSource, LifecycleStatus


@pytest.fixture
def engine():
    return LifecycleAnalyzerEngine()


def _at(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestVendorLookup:
    """Test vendor and product family resolution."""

    @pytest.mark.parametrize("name,expected", [
        ("Allen-Bradley", "rockwell"),
        ("Rockwell", "rockwell"),
        ("Siemens AG", "siemens"),
        ("Schneider Electric", "schneider"),
        ("Rosemount", "emerson"),
        ("Acme Controls", "acme controls"),
    ])
    def test_normalize_vendor(self, engine, name, expected):
        """Test aliases, first-word matches and unknown vendors."""
        assert engine.normalize_vendor(name) == expected

    def test_empty_vendor(self, engine):
        """Test blank vendors normalize to None."""
        assert engine.normalize_vendor("  ") is None

    def test_identify_product_family(self, engine):
        """Test model patterns map to product families."""
        assert engine.identify_product_family("rockwell", "1756-L55") == "controllogix_l55"
        assert engine.identify_product_family("siemens", "6ES7 315-2AG10") == "s7_300"
        assert engine.identify_product_family("rockwell", "unknown") is None
        assert engine.identify_product_family(None, "1756-L55") is None


class TestVendorDates:
    """Test status derived from published dates."""

    def test_controllogix_l55_past_support(self, engine, reference_time):
        """Test a 1756-L55 in 2024 is past end-of-support."""
        result = engine.analyze(
            {"manufacturer": "Rockwell", "model": "1756-L55"}, reference_time,
        )
        assert result.status == LifecycleStatus.EOS
        assert result.source == LifecycleSource.VENDOR_DATABASE
        assert result.replacement == "ControlLogix 5580"
        assert result.severity == "critical"
        assert result.days_until_eos < 0

    def test_eol_before_eos(self, engine, reference_time):
        """Test end-of-life passed but support continuing."""
        result = engine.analyze(
            {"manufacturer": "Allen-Bradley", "model": "1756-L61"}, reference_time,
        )
        assert result.status == LifecycleStatus.EOL

    def test_approaching_eol(self, engine):
        """Test end-of-life within the approach horizon."""
        result = engine.analyze(
            {"manufacturer": "Rockwell", "model": "1756-L61"}, _at(2019, 6, 1),
        )
        assert result.status == LifecycleStatus.APPROACHING_EOL

    def test_mature(self, engine):
        """Test distant end-of-life is mature."""
        result = engine.analyze(
            {"manufacturer": "Rockwell", "model": "1756-L61"}, _at(2017, 1, 1),
        )
        assert result.status == LifecycleStatus.MATURE

    def test_obsolete(self, engine, reference_time):
        """Test support ended long before the reference time."""
        result = engine.analyze(
            {"manufacturer": "Microsoft", "model": "Windows XP"}, reference_time,
        )
        assert result.status == LifecycleStatus.OBSOLETE

    def test_listed_without_dates_is_current(self, engine, reference_time):
        """Test actively supported families without dates."""
        result = engine.analyze(
            {"manufacturer": "Schneider Electric", "model": "M340"}, reference_time,
        )
        assert result.status == LifecycleStatus.CURRENT
        assert result.source == LifecycleSource.VENDOR_DATABASE
        assert result.notes == ["Still actively supported"]

    def test_support_end_without_eol_is_unknown(self, engine, reference_time, monkeypatch):
        """Test a future support end with no end-of-life date stays unknown."""
        monkeypatch.setitem(
            lifecycle_analyzer.VENDOR_EOL_DATABASE["schneider"], "modicon_m340",
            ProductLifecycle(eol=None, eos=date(2030, 1, 1), replacement=None, severity="low"),
        )
        result = engine.analyze(
            {"manufacturer": "Schneider Electric", "model": "M340", "install_date": "2000-01-01"},
            reference_time,
        )
        assert result.status == LifecycleStatus.UNKNOWN
        assert result.source == LifecycleSource.VENDOR_DATABASE
        assert result.days_until_eol is None
        assert result.days_until_eos > 0


class TestEstimates:
    """Test status estimated from installation age."""

    def test_old_plc_is_obsolete(self, engine, reference_time):
        """Test a PLC far beyond its typical lifespan."""
        result = engine.analyze(
            {"device_type": "PLC", "install_date": "2000-01-01"}, reference_time,
        )
        assert result.source == LifecycleSource.ESTIMATED
        assert result.estimated_age_years == 24
        assert result.estimated_remaining_years == -9
        assert result.status == LifecycleStatus.OBSOLETE
        assert result.severity == "high"

    def test_young_hmi_is_current(self, engine, reference_time):
        """Test an HMI well inside its lifespan."""
        result = engine.analyze(
            {"device_type": "HMI", "install_date": "2020-01-01"}, reference_time,
        )
        assert result.status == LifecycleStatus.CURRENT
        assert result.severity == "low"

    def test_device_category_fallback(self, engine, reference_time):
        """Test the inferred category supplies the lifespan."""
        result = engine.analyze(
            {"device_type": "Controller box", "install_date": "2010-01-01"},
            reference_time,
            device_category="plc",
        )
        assert result.estimated_remaining_years == 1
        assert result.status == LifecycleStatus.APPROACHING_EOL

    def test_unknown_without_data(self, engine, reference_time):
        """Test nothing to go on."""
        result = engine.analyze({"device_type": "widget"}, reference_time)
        assert result.status == LifecycleStatus.UNKNOWN
        assert result.source == LifecycleSource.NONE


class TestSummarize:
    """Test lifecycle summaries."""

    def test_counts_and_recommendations(self, engine, reference_time):
        """Test per-status counts, critical items and ordered recommendations."""
        assets = [
            {"tag_id": "PLC-1", "manufacturer": "Rockwell", "model": "1756-L55"},
            {"tag_id": "WS-1", "manufacturer": "Microsoft", "model": "Windows XP"},
            {"tag_id": "X-1", "device_type": "widget"},
        ]
        summary = engine.summarize(assets, reference_time)
        assert summary.total == 3
        assert summary.counts["eos"] == 1
        assert summary.counts["obsolete"] == 1
        assert summary.counts["unknown"] == 1
        assert [i.asset_id for i in summary.critical_items] == ["PLC-1", "WS-1"]
        assert summary.critical_items[0].replacement == "ControlLogix 5580"
        assert [r.priority for r in summary.recommendations] == ["critical", "high"]

    def test_reference_time_required_for_raw_assets(self, engine):
        """Test raw assets cannot be summarized without a reference time."""
        with pytest.raises(ValueError, match="reference_time"):
            engine.summarize([{"model": "1756-L55"}])
