# -*- coding: utf-8 -*-
"""
Test suite for DependencyMapperEngine

Tests control, network and industry template inference, breadth-first
blast radius and critical path ranking.
"""

import pytest

from otcanon.config import OTCanonConfig
from otcanon.dependency_mapper import (
    DependencyMapperEngine,
    extract_loop_number,
    get_subnet,
    normalize_unit_name,
)
from otcanon.execution import Deadline
from otcanon.models import Dependency, DependencyDirection, DependencyType


@pytest.fixture
def mapper():
    return DependencyMapperEngine()


@pytest.fixture
def plant_assets():
    return [
        {"asset_id": "PLC-101", "tag_id": "PLC-101", "device_type": "PLC",
         "unit": "CDU", "ip_address": "10.0.1.10"},
        {"asset_id": "FT-101", "tag_id": "FT-101", "device_type": "Flow Transmitter",
         "unit": "CDU", "ip_address": "10.0.1.20"},
        {"asset_id": "FV-205", "tag_id": "FV-205", "device_type": "Control Valve",
         "unit": "CDU", "ip_address": "10.0.1.21"},
        {"asset_id": "TT-300", "tag_id": "TT-300", "device_type": "Temperature Transmitter",
         "unit": "FCC", "ip_address": "10.0.2.5"},
        {"asset_id": "SW-1", "device_type": "Network Switch",
         "unit": "CDU", "ip_address": "10.0.1.1"},
    ]


def _edge(source, target):
    return Dependency(
        source=source,
        target=target,
        dependency_type=DependencyType.CONTROL,
        direction=DependencyDirection.DOWNSTREAM,
        confidence="high",
    )


class TestHelpers:
    """Test parsing helpers."""

    def test_extract_loop_number(self):
        """Test the first three or four digit run is the loop."""
        assert extract_loop_number("FIC-2011") == "2011"
        assert extract_loop_number("TT-1") is None
        assert extract_loop_number(None) is None

    def test_get_subnet(self):
        """Test /24 prefixes of dotted IPv4 addresses."""
        assert get_subnet("10.0.0.1") == "10.0.0"
        assert get_subnet("fe80::1") is None
        assert get_subnet("") is None

    def test_normalize_unit_name(self):
        """Test unit names fold to lower-case identifiers."""
        assert normalize_unit_name("Tank Farm-2") == "tank_farm_2"
        assert normalize_unit_name(None) == "unknown"


class TestInference:
    """Test dependency inference."""

    def test_control_dependencies(self, mapper, plant_assets):
        """Test loop and subnet evidence link controllers to field devices."""
        deps = mapper.infer_control_dependencies(plant_assets)
        assert [(d.source, d.target, d.confidence) for d in deps] == [
            ("PLC-101", "FT-101", "high"),
            ("PLC-101", "FV-205", "medium"),
        ]
        assert all(d.unit == "CDU" for d in deps)

    def test_control_requires_shared_evidence(self, mapper):
        """Test missing tags and IPs never count as equal."""
        assets = [
            {"asset_id": "C-1", "device_type": "PLC", "unit": "U"},
            {"asset_id": "V-1", "device_type": "Valve", "unit": "U"},
        ]
        assert mapper.infer_control_dependencies(assets) == []

    def test_network_dependencies(self, mapper, plant_assets):
        """Test network devices supply every asset on their subnet."""
        deps = mapper.infer_network_dependencies(plant_assets)
        assert [d.target for d in deps] == ["PLC-101", "FT-101", "FV-205"]
        assert all(d.source == "SW-1" and d.subnet == "10.0.1" for d in deps)

    def test_industry_templates(self, mapper, plant_assets):
        """Test template edges are emitted only between present units."""
        deps = mapper.apply_industry_templates(plant_assets, "oil-gas")
        flows = [(d.source, d.target) for d in deps if d.dependency_type == DependencyType.PROCESS_FLOW]
        assert flows == [("cdu", "fcc")]
        safety = [d for d in deps if d.dependency_type == DependencyType.SAFETY]
        assert {(d.source, d.target) for d in safety} == {
            ("esd", "cdu"), ("esd", "fcc"), ("fire_gas", "cdu"),
            ("fire_gas", "fcc"), ("bms", "cdu"),
        }
        assert all(d.is_unit_level for d in deps)

    def test_unknown_industry_has_no_templates(self, mapper, plant_assets):
        """Test unknown industries emit nothing."""
        assert mapper.apply_industry_templates(plant_assets, "mining") == []
        assert mapper.apply_industry_templates(plant_assets, None) == []


class TestImpact:
    """Test blast radius and critical path."""

    def test_blast_radius_distances(self, mapper):
        """Test breadth-first hop distances and unresolved nodes."""
        assets = [{"asset_id": "A", "unit": "U1"}, {"asset_id": "B", "unit": "U1"},
                  {"asset_id": "C", "unit": "U2"}]
        deps = [_edge("A", "B"), _edge("B", "C"), _edge("B", "ghost"), _edge("C", "A")]
        radius = mapper.blast_radius("A", deps, assets)
        assert [(i.asset_id, i.distance) for i in radius.impacted_assets] == [("B", 1), ("C", 2)]
        assert radius.directly_affected == 1
        assert radius.total_affected == 2
        assert radius.impacted_units == ["U1", "U2"]
        assert radius.unresolved_nodes == ["ghost"]

    def test_critical_path_ranking(self, mapper, plant_assets):
        """Test ranking by downstream count plus five per impacted unit."""
        dep_map = mapper.build_map(plant_assets, "oil-gas")
        ranking = [(e.asset_id, e.score) for e in dep_map.critical_path]
        assert ranking == [("SW-1", 8), ("PLC-101", 7)]
        assert dep_map.summary["control_dependencies"] == 2
        assert dep_map.summary["network_dependencies"] == 3
        assert dep_map.summary["total_dependencies"] == len(dep_map.dependencies)

    def test_critical_path_limit(self, plant_assets):
        """Test the ranking is capped by configuration."""
        mapper = DependencyMapperEngine(OTCanonConfig(critical_path_limit=1))
        dep_map = mapper.build_map(plant_assets)
        assert len(dep_map.critical_path) == 1

    def test_build_map_deadline(self, mapper, plant_assets):
        """Test an expired deadline aborts mapping."""
        now = [0.0]
        deadline = Deadline(1, clock=lambda: now[0])
        now[0] = 5.0
        with pytest.raises(TimeoutError):
            mapper.build_map(plant_assets, deadline=deadline)
