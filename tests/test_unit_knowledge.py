# -*- coding: utf-8 -*-
"""
Test suite for the process unit knowledge base

Tests unit lookup by id and alias, free-text unit detection and the
expected function / device type accessors.
"""

from otcanon.models import Criticality
from otcanon.unit_knowledge import (
    UNIT_KNOWLEDGE,
    detect_unit,
    get_expected_device_types,
    get_expected_functions,
    get_industry_units,
    get_unit_info,
)


class TestCatalogue:
    """Test catalogue structure."""

    def test_every_industry_has_units(self):
        """Test each supported industry carries unit profiles."""
        assert set(UNIT_KNOWLEDGE) == {"oil-gas", "pharma", "utilities", "automotive"}
        for industry, units in UNIT_KNOWLEDGE.items():
            assert units
            assert all(u.industry == industry for u in units)

    def test_unknown_industry_is_empty(self):
        """Test unknown industries yield no units."""
        assert get_industry_units("mining") == []
        assert get_industry_units(None) == []


class TestLookup:
    """Test unit lookup."""

    def test_lookup_by_id(self):
        """Test exact unit id lookup."""
        unit = get_unit_info("oil-gas", "cdu")
        assert unit is not None
        assert unit.name == "Crude Distillation Unit"
        assert unit.criticality == Criticality.CRITICAL

    def test_lookup_by_alias(self):
        """Test alias lookup is case-insensitive."""
        assert get_unit_info("oil-gas", "FCCU").unit_id == "fcc"

    def test_lookup_miss(self):
        """Test missing units return None."""
        assert get_unit_info("oil-gas", "") is None
        assert get_unit_info("pharma", "nowhere") is None


class TestDetectUnit:
    """Test free-text unit detection."""

    def test_substring_detection(self):
        """Test a unit id embedded in a longer field."""
        assert detect_unit("Unit 1 CDU", "oil-gas").unit_id == "cdu"

    def test_alias_detection(self):
        """Test alias substrings resolve units."""
        assert detect_unit("Crude Unit North", "oil-gas").unit_id == "cdu"

    def test_space_variant_matches_underscore_id(self):
        """Test spaces fold to underscores when matching ids."""
        assert detect_unit("Tank Farm 3", "oil-gas").unit_id == "tank_farm"

    def test_no_industry(self):
        """Test detection needs an industry."""
        assert detect_unit("CDU", None) is None
        assert detect_unit(None, "oil-gas") is None


class TestExpectations:
    """Test expected function and device type accessors."""

    def test_expected_functions(self):
        """Test CDU expected functions include heater control."""
        functions = get_expected_functions("oil-gas", "cdu")
        names = [f.function for f in functions]
        assert "heater_control" in names
        heater = functions[names.index("heater_control")]
        assert heater.criticality == Criticality.CRITICAL

    def test_expected_device_types(self):
        """Test CDU expects a safety instrumented system."""
        types = [d.device_type for d in get_expected_device_types("oil-gas", "cdu")]
        assert types == ["plc", "dcs", "sis", "hmi"]

    def test_unknown_unit(self):
        """Test unknown units have no expectations."""
        assert get_expected_functions("oil-gas", "moon_base") == []
        assert get_expected_device_types("oil-gas", "moon_base") == []
