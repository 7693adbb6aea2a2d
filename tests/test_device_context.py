# -*- coding: utf-8 -*-
"""
Test suite for DeviceContextEngine

Tests ISA-5.1 tag decoding, ordered device pattern matching, criticality
raising, protocol probing and the device_type substring fallback.
"""

import pytest

from otcanon.device_context import DeviceContextEngine, parse_isa_tag
from otcanon.models import Criticality, DeviceFunction


@pytest.fixture
def engine():
    return DeviceContextEngine()


class TestParseIsaTag:
    """Test ISA-5.1 tag decoding."""

    def test_controller_tag(self):
        """Test an indicating controller tag."""
        info = parse_isa_tag("FIC-201A")
        assert info.letters == "FIC"
        assert info.variable == "flow"
        assert info.functions == ["indicator", "controller"]
        assert info.device_function == DeviceFunction.CONTROL
        assert info.loop_number == 201
        assert info.suffix == "A"

    def test_final_element_wins_over_control(self):
        """Test a control valve tag is a final element."""
        info = parse_isa_tag("lcv102")
        assert info.tag == "LCV102"
        assert info.device_function == DeviceFunction.FINAL_ELEMENT

    def test_safety_letters(self):
        """Test high-high switch letters mark safety."""
        info = parse_isa_tag("LSHH-101")
        assert info.is_safety_related is True
        assert info.device_function == DeviceFunction.SAFETY

    @pytest.mark.parametrize("tag", ["", None, "PLC_MAIN", "TT-1", "ABCDE-100"])
    def test_non_isa_tags(self, tag):
        """Test tags outside the grammar are rejected."""
        assert parse_isa_tag(tag) is None


class TestInfer:
    """Test context inference."""

    def test_plc_is_critical_controller(self, engine):
        """Test the PLC pattern raises criticality to critical."""
        ctx = engine.infer({
            "tag_id": "TIC-101", "device_type": "PLC",
            "manufacturer": "Rockwell", "model": "1756-L55",
        })
        assert ctx.device_type == "plc"
        assert ctx.category == "controller"
        assert ctx.criticality == Criticality.CRITICAL
        assert ctx.function == DeviceFunction.CONTROL
        assert ctx.process_variable == "temperature"
        assert ctx.inference_sources == ["isa_tag", "device_pattern"]

    def test_transmitter(self, engine):
        """Test a flow transmitter is a medium criticality measurement."""
        ctx = engine.infer({"tag_id": "FT-200", "device_type": "Flow Transmitter"})
        assert ctx.device_type == "transmitter"
        assert ctx.function == DeviceFunction.MEASUREMENT
        assert ctx.criticality == Criticality.MEDIUM

    def test_safety_category_flags_safety(self, engine):
        """Test safety pattern categories mark the device safety related."""
        ctx = engine.infer({"device_type": "Emergency Shutdown Logic Solver"})
        assert ctx.device_type == "sis"
        assert ctx.is_safety_related is True
        assert ctx.function == DeviceFunction.SAFETY

    def test_device_type_fallback(self, engine):
        """Test the raw device_type substring fallback."""
        ctx = engine.infer({"device_type": "Motorvalve"})
        assert ctx.device_type == "valve"
        assert ctx.category == "final_element"
        assert ctx.inference_sources == ["device_type_field"]

    def test_protocol_detection(self, engine):
        """Test protocol detection from device text."""
        ctx = engine.infer({"device_type": "Modbus gateway"})
        assert ctx.protocol == "Modbus"
        assert ctx.device_type == "router"

    def test_nothing_inferred(self, engine):
        """Test unknown devices keep unknown defaults."""
        ctx = engine.infer({"device_type": "widget"})
        assert ctx.device_type == "unknown"
        assert ctx.is_inferred is False
        assert ctx.criticality == Criticality.LOW

    def test_infer_many_preserves_order(self, engine):
        """Test batch inference keeps input order."""
        contexts = engine.infer_many([
            {"device_type": "PLC"}, {"device_type": "HMI"}, {"device_type": "widget"},
        ])
        assert [c.device_type for c in contexts] == ["plc", "hmi", "unknown"]
        stats = engine.get_statistics()
        assert stats["inferred"] == 2
        assert stats["uninferred"] == 1
