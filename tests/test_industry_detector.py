# -*- coding: utf-8 -*-
"""
Test suite for IndustryDetectorEngine

Tests weighted pattern scoring, reliability thresholds, sampling and the
filename hint.
"""

import pytest

from otcanon.config import OTCanonConfig
from otcanon.industry_detector import IndustryDetectorEngine


@pytest.fixture
def detector():
    return IndustryDetectorEngine()


REFINERY_ROWS = [
    {"unit": "CDU", "description": "Crude distillation column"},
    {"unit": "FCC", "description": "Reactor feed pump"},
]


class TestDetect:
    """Test content based detection."""

    def test_refinery_terms_detect_oil_gas(self, detector):
        """Test refinery units and equipment give a reliable oil & gas result."""
        result = detector.detect(REFINERY_ROWS)
        assert result.detected == "oil-gas"
        assert result.is_reliable is True
        assert result.confidence >= 30
        assert result.scores[0].industry_id == "oil-gas"
        assert "Oil & Gas" in result.reason

    @pytest.mark.parametrize("rows", [
        [{"unit": "CDU"}, {"unit": "FCC"}, {"description": "crude"}],
        [{"unit": "CDU", "area": "FCC", "note": "crude feed"}],
    ])
    def test_unit_names_and_crude_are_reliable(self, detector, rows):
        """Test CDU, FCC and crude alone are enough for oil & gas."""
        result = detector.detect(rows)
        assert result.detected == "oil-gas"
        assert result.is_reliable is True
        assert result.confidence == 100
        assert result.scores[0].score == 14

    def test_pattern_scores_once(self, detector):
        """Test repeating a matched word does not add weight."""
        once = detector.detect([{"unit": "CDU"}])
        repeated = detector.detect([{"unit": "CDU"}] * 5)
        assert once.scores[0].score == 6
        assert repeated.scores[0].score == 6
        assert repeated.is_reliable is False

    def test_scores_cover_every_industry(self, detector):
        """Test every supported industry is scored."""
        result = detector.detect(REFINERY_ROWS)
        assert {s.industry_id for s in result.scores} == {
            "oil-gas", "pharma", "utilities", "automotive",
        }

    def test_no_patterns(self, detector):
        """Test data without industry vocabulary is unreliable."""
        result = detector.detect([{"unit": "X1", "description": "thing"}])
        assert result.detected is None
        assert result.is_reliable is False
        assert result.confidence == 0
        assert result.reason == "No industry-specific patterns found in data"

    def test_low_weight_is_unreliable(self, detector):
        """Test a single weak match does not pass the weight threshold."""
        result = detector.detect([{"note": "batch"}])
        assert result.detected is None
        assert result.reason.startswith("Low confidence (")

    def test_empty_input(self, detector):
        """Test an empty dataset."""
        result = detector.detect([])
        assert result.sample_size == 0
        assert result.detected is None

    def test_sample_size_limits_rows(self):
        """Test only the configured number of rows is examined."""
        engine = IndustryDetectorEngine(OTCanonConfig(industry_sample_size=1))
        rows = [{"unit": "X"}] + REFINERY_ROWS
        result = engine.detect(rows)
        assert result.sample_size == 1
        assert result.detected is None

    def test_statistics(self, detector):
        """Test detection counters."""
        detector.detect(REFINERY_ROWS)
        detector.detect([])
        stats = detector.get_statistics()
        assert stats["detections"] == 2
        assert stats["reliable_detections"] == 1


class TestCatalog:
    """Test filename hints and industry lookup."""

    def test_filename_hint(self, detector):
        """Test filename keywords map to industries."""
        assert detector.detect_from_filename("refinery_baseline.csv") == "oil-gas"
        assert detector.detect_from_filename("gmp_assets.csv") == "pharma"
        assert detector.detect_from_filename("substation.csv") == "utilities"
        assert detector.detect_from_filename("inventory.csv") is None

    def test_industry_info(self, detector):
        """Test id to name lookup."""
        assert detector.get_industry_info("pharma") == {
            "id": "pharma", "name": "Pharmaceutical",
        }
        assert detector.get_industry_info("mining") is None
        assert detector.is_supported("automotive")
        assert not detector.is_supported(None)
        assert len(detector.list_industries()) == 4
