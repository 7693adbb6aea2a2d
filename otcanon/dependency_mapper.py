# -*- coding: utf-8 -*-
"""
Dependency Mapper - OT Canon Asset Canonization

Answers "what else fails when this fails?" by building a directed
dependency graph from three independent sources:

    1. Control edges: controllers to field devices in the same unit when
       their tag loop numbers or /24 subnets match.
    2. Network edges: switches, routers, gateways and firewalls to the
       IP-bearing assets that share their /24 subnet.
    3. Industry templates: process-flow, utility and safety relationships
       between named units, emitted only when the units are present.

Blast radius is a breadth-first traversal of outgoing edges with real hop
distances; the critical path ranks assets by downstream count plus five
times the number of distinct impacted units.

Example:
    >>> from otcanon.dependency_mapper import DependencyMapperEngine
    >>> engine = DependencyMapperEngine()
    >>> dep_map = engine.build_map(assets, industry="oil-gas")
    >>> dep_map.summary["control_dependencies"]

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import threading
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.device_context import asset_field
from otcanon.execution import Deadline
from otcanon.models import (
    BlastRadius,
    CriticalPathEntry,
    Criticality,
    Dependency,
    DependencyDirection,
    DependencyMap,
    DependencyType,
    ImpactedAsset,
)
from otcanon.unit_knowledge import detect_unit

logger = logging.getLogger(__name__)

__all__ = [
    "DEPENDENCY_TEMPLATES",
    "IndustryDependencyTemplate",
    "DependencyMapperEngine",
    "asset_node_id",
    "extract_loop_number",
    "get_subnet",
    "normalize_unit_name",
]


# ---------------------------------------------------------------------------
# Industry dependency templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndustryDependencyTemplate:
    """Static unit-level relationships for one industry.

    Attributes:
        process_flow: (from unit, to unit, type, direction) edges.
        utilities: (utility, consumer units) supply relationships.
        safety: (safety system, protected units) relationships.
    """

    process_flow: Tuple[Tuple[str, str, DependencyType, DependencyDirection], ...]
    utilities: Tuple[Tuple[str, Tuple[str, ...]], ...]
    safety: Tuple[Tuple[str, Tuple[str, ...]], ...]


_PF = DependencyType.PROCESS_FLOW
_UT = DependencyType.UTILITY
_DOWN = DependencyDirection.DOWNSTREAM
_UP = DependencyDirection.UPSTREAM
_SUPPLIES = DependencyDirection.SUPPLIES

DEPENDENCY_TEMPLATES: Dict[str, IndustryDependencyTemplate] = {
    "oil-gas": IndustryDependencyTemplate(
        process_flow=(
            ("cdu", "hydrotreater", _PF, _DOWN),
            ("cdu", "fcc", _PF, _DOWN),
            ("cdu", "coker", _PF, _DOWN),
            ("fcc", "alky", _PF, _DOWN),
            ("fcc", "hydrotreater", _PF, _DOWN),
            ("tank_farm", "cdu", _PF, _UP),
            ("hydrotreater", "tank_farm", _PF, _DOWN),
        ),
        utilities=(
            ("steam", ("cdu", "fcc", "hydrotreater", "coker")),
            ("cooling_water", ("cdu", "fcc", "hydrotreater")),
            ("instrument_air", ("cdu", "fcc", "hydrotreater", "tank_farm")),
            ("hydrogen", ("hydrotreater", "hydrocracker")),
            ("fuel_gas", ("cdu", "fcc")),
        ),
        safety=(
            ("esd", ("cdu", "fcc", "hydrotreater")),
            ("fire_gas", ("cdu", "fcc", "hydrotreater", "tank_farm")),
            ("bms", ("cdu",)),
        ),
    ),
    "pharma": IndustryDependencyTemplate(
        process_flow=(
            ("api_synthesis", "formulation", _PF, _DOWN),
            ("formulation", "packaging", _PF, _DOWN),
            ("wfi_system", "api_synthesis", _UT, _SUPPLIES),
            ("wfi_system", "formulation", _UT, _SUPPLIES),
        ),
        utilities=(
            ("wfi", ("api_synthesis", "formulation", "cip")),
            ("clean_steam", ("api_synthesis", "formulation")),
            ("hvac", ("clean_room", "api_synthesis", "formulation")),
            ("nitrogen", ("api_synthesis",)),
        ),
        safety=(
            ("ems", ("clean_room",)),
            ("containment", ("api_synthesis",)),
        ),
    ),
    "utilities": IndustryDependencyTemplate(
        process_flow=(
            ("generation", "substation", _PF, _DOWN),
            ("substation", "distribution", _PF, _DOWN),
            ("intake", "water_treatment", _PF, _UP),
            ("water_treatment", "distribution", _PF, _DOWN),
        ),
        utilities=(
            ("fuel", ("generation",)),
            ("cooling_water", ("generation",)),
            ("auxiliary_power", ("generation", "substation")),
        ),
        safety=(
            ("protection_relay", ("substation", "generation")),
            ("turbine_protection", ("generation",)),
        ),
    ),
    "automotive": IndustryDependencyTemplate(
        process_flow=(
            ("stamping", "body_shop", _PF, _DOWN),
            ("body_shop", "paint_shop", _PF, _DOWN),
            ("paint_shop", "assembly", _PF, _DOWN),
            ("assembly", "test", _PF, _DOWN),
        ),
        utilities=(
            ("compressed_air", ("body_shop", "paint_shop", "assembly")),
            ("power", ("body_shop", "paint_shop", "assembly", "stamping")),
            ("paint_supply", ("paint_shop",)),
            ("cooling", ("body_shop",)),
        ),
        safety=(
            ("robot_safety", ("body_shop", "paint_shop")),
            ("fire_suppression", ("paint_shop",)),
        ),
    ),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_CONTROLLER_TYPE = re.compile(r"plc|dcs|controller|rtu", re.IGNORECASE)
_CONTROLLER_TAG = re.compile(r"plc|dcs", re.IGNORECASE)
_FIELD_DEVICE = re.compile(r"transmitter|valve|actuator|analyzer|drive", re.IGNORECASE)
_NETWORK_DEVICE = re.compile(r"switch|router|gateway|firewall", re.IGNORECASE)
_LOOP_NUMBER = re.compile(r"\d{3,4}")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_REPEATED_UNDERSCORE = re.compile(r"_+")

_UNKNOWN_UNIT = "unknown"

# Deadline is checked every this many pair comparisons
_DEADLINE_STRIDE = 1024


def asset_node_id(asset: Any) -> str:
    """Graph node id of an asset: asset id, tag, IP, then hostname."""
    return (
        asset_field(asset, "asset_id")
        or asset_field(asset, "tag_id")
        or asset_field(asset, "ip_address")
        or asset_field(asset, "hostname")
    )


def extract_loop_number(tag_id: Optional[str]) -> Optional[str]:
    """First run of three or four digits in a tag, or None."""
    if not tag_id:
        return None
    match = _LOOP_NUMBER.search(tag_id)
    return match.group(0) if match else None


def get_subnet(ip_address: Optional[str]) -> Optional[str]:
    """First three octets of a dotted IPv4 address, or None."""
    if not ip_address:
        return None
    parts = ip_address.strip().split(".")
    if len(parts) != 4:
        return None
    return ".".join(parts[:3])


def normalize_unit_name(unit: Optional[str]) -> str:
    """Lower-case a unit name with every non-alphanumeric run as ``_``."""
    if not unit:
        return _UNKNOWN_UNIT
    return _REPEATED_UNDERSCORE.sub("_", _NON_ALNUM.sub("_", unit.lower()))


# ---------------------------------------------------------------------------
# DependencyMapperEngine
# ---------------------------------------------------------------------------


class DependencyMapperEngine:
    """Dependency graph inference and impact analysis.

    Attributes:
        _config: Active OTCanonConfig.
        _lock: Threading lock for statistics.
        _stats: Aggregate mapping statistics.
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "maps_built": 0,
            "dependencies_inferred": 0,
            "blast_radius_queries": 0,
            "total_time_ms": 0.0,
        }
        logger.info(
            "DependencyMapperEngine initialized: templates=%s",
            ",".join(sorted(DEPENDENCY_TEMPLATES)),
        )

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def infer_control_dependencies(
        self,
        assets: Sequence[Any],
        deadline: Optional[Deadline] = None,
    ) -> List[Dependency]:
        """Link controllers to field devices within each unit.

        A controller has ``plc|dcs|controller|rtu`` in its device type or
        ``plc|dcs`` in its tag; a field device has
        ``transmitter|valve|actuator|analyzer|drive`` in its device type.
        An edge is emitted when both tags carry the same loop number or both
        IPs share a /24 subnet. Confidence is ``high`` when both hold.

        Raises:
            TimeoutError: If the deadline expires mid-scan.
        """
        deadline = deadline or Deadline(self._config.operation_timeout_seconds)
        by_unit: Dict[str, List[Any]] = OrderedDict()
        for asset in assets:
            by_unit.setdefault(asset_field(asset, "unit") or _UNKNOWN_UNIT, []).append(asset)

        dependencies: List[Dependency] = []
        comparisons = 0
        for unit, members in by_unit.items():
            controllers = [
                a for a in members
                if _CONTROLLER_TYPE.search(asset_field(a, "device_type"))
                or _CONTROLLER_TAG.search(asset_field(a, "tag_id"))
            ]
            field_devices = [a for a in members if _FIELD_DEVICE.search(asset_field(a, "device_type"))]

            for controller in controllers:
                ctrl_id = asset_node_id(controller)
                ctrl_loop = extract_loop_number(asset_field(controller, "tag_id"))
                ctrl_subnet = get_subnet(asset_field(controller, "ip_address"))
                for device in field_devices:
                    comparisons += 1
                    if comparisons % _DEADLINE_STRIDE == 0:
                        deadline.check("dependency inference")
                    if device is controller:
                        continue
                    dev_loop = extract_loop_number(asset_field(device, "tag_id"))
                    dev_subnet = get_subnet(asset_field(device, "ip_address"))
                    same_loop = ctrl_loop is not None and ctrl_loop == dev_loop
                    same_subnet = ctrl_subnet is not None and ctrl_subnet == dev_subnet
                    if not (same_loop or same_subnet):
                        continue
                    dev_id = asset_node_id(device)
                    if not ctrl_id or not dev_id:
                        continue
                    dependencies.append(Dependency(
                        source=ctrl_id,
                        target=dev_id,
                        dependency_type=DependencyType.CONTROL,
                        direction=DependencyDirection.DOWNSTREAM,
                        confidence="high" if same_loop and same_subnet else "medium",
                        unit=unit,
                    ))

        logger.debug("Inferred %d control dependencies", len(dependencies))
        return dependencies

    def infer_network_dependencies(
        self,
        assets: Sequence[Any],
        deadline: Optional[Deadline] = None,
    ) -> List[Dependency]:
        """Link network devices to the IP-bearing assets on their /24 subnet.

        Raises:
            TimeoutError: If the deadline expires mid-scan.
        """
        deadline = deadline or Deadline(self._config.operation_timeout_seconds)
        network_devices = [a for a in assets if _NETWORK_DEVICE.search(asset_field(a, "device_type"))]
        network_ids = {id(a) for a in network_devices}

        subnets: Dict[str, List[Any]] = {}
        for asset in assets:
            if id(asset) in network_ids:
                continue
            subnet = get_subnet(asset_field(asset, "ip_address"))
            if subnet:
                subnets.setdefault(subnet, []).append(asset)

        dependencies: List[Dependency] = []
        for net_device in network_devices:
            deadline.check("dependency inference")
            subnet = get_subnet(asset_field(net_device, "ip_address"))
            if not subnet or subnet not in subnets:
                continue
            source = asset_node_id(net_device)
            for peer in subnets[subnet]:
                target = asset_node_id(peer)
                if not source or not target:
                    continue
                dependencies.append(Dependency(
                    source=source,
                    target=target,
                    dependency_type=DependencyType.NETWORK,
                    direction=DependencyDirection.SUPPLIES,
                    confidence="medium",
                    subnet=subnet,
                ))

        logger.debug("Inferred %d network dependencies", len(dependencies))
        return dependencies

    def apply_industry_templates(
        self,
        assets: Sequence[Any],
        industry: Optional[str],
    ) -> List[Dependency]:
        """Emit template edges whose units are present among the assets.

        A unit is present when some asset's unit field resolves to it through
        the unit knowledge base or normalizes to the same name. Unknown
        industries yield no edges.
        """
        template = DEPENDENCY_TEMPLATES.get(industry or "")
        if template is None:
            return []

        present: Set[str] = set()
        for asset in assets:
            raw_unit = asset_field(asset, "unit")
            present.add(normalize_unit_name(raw_unit))
            profile = detect_unit(raw_unit, industry)
            if profile is not None:
                present.add(profile.unit_id)

        dependencies: List[Dependency] = []
        for source, target, dep_type, direction in template.process_flow:
            if normalize_unit_name(source) in present and normalize_unit_name(target) in present:
                dependencies.append(Dependency(
                    source=source,
                    target=target,
                    dependency_type=dep_type,
                    direction=direction,
                    confidence="industry_pattern",
                    is_unit_level=True,
                ))

        for utility, consumers in template.utilities:
            for consumer in consumers:
                if normalize_unit_name(consumer) in present:
                    dependencies.append(Dependency(
                        source=utility,
                        target=consumer,
                        dependency_type=DependencyType.UTILITY,
                        direction=DependencyDirection.SUPPLIES,
                        confidence="industry_pattern",
                        is_unit_level=True,
                    ))

        for system, protected in template.safety:
            for unit in protected:
                if normalize_unit_name(unit) in present:
                    dependencies.append(Dependency(
                        source=system,
                        target=unit,
                        dependency_type=DependencyType.SAFETY,
                        direction=DependencyDirection.SUPPLIES,
                        confidence="industry_pattern",
                        is_unit_level=True,
                        criticality=Criticality.CRITICAL,
                    ))

        logger.debug("Applied %d %s template dependencies", len(dependencies), industry)
        return dependencies

    # ------------------------------------------------------------------
    # Impact analysis
    # ------------------------------------------------------------------

    def blast_radius(
        self,
        asset_id: str,
        dependencies: Sequence[Dependency],
        assets: Sequence[Any],
    ) -> BlastRadius:
        """Breadth-first downstream impact of ``asset_id`` failing.

        Args:
            asset_id: Starting node id.
            dependencies: Edge list.
            assets: Assets used to resolve reached node ids.

        Returns:
            BlastRadius; reached nodes that are not assets are listed in
            ``unresolved_nodes``.
        """
        with self._lock:
            self._stats["blast_radius_queries"] += 1
        return self._blast_radius(asset_id, _adjacency(dependencies), _asset_index(assets))

    def critical_path(
        self,
        dependencies: Sequence[Dependency],
        assets: Sequence[Any],
        deadline: Optional[Deadline] = None,
    ) -> List[CriticalPathEntry]:
        """Rank assets by downstream count + 5 x distinct impacted units.

        Assets with no downstream impact are omitted. The ranking is stable
        for equal scores and capped at ``critical_path_limit``.
        """
        deadline = deadline or Deadline(self._config.operation_timeout_seconds)
        adjacency = _adjacency(dependencies)
        index = _asset_index(assets)

        entries: List[CriticalPathEntry] = []
        for node_id in index:
            if node_id not in adjacency:
                continue
            deadline.check("critical path")
            radius = self._blast_radius(node_id, adjacency, index)
            units = len(radius.impacted_units)
            score = radius.total_affected + units * 5
            if score <= 0:
                continue
            entries.append(CriticalPathEntry(
                asset_id=node_id,
                downstream_count=radius.total_affected,
                impacted_units=units,
                score=score,
            ))

        entries.sort(key=lambda e: e.score, reverse=True)
        return entries[: self._config.critical_path_limit]

    def build_map(
        self,
        assets: Sequence[Any],
        industry: Optional[str] = None,
        deadline: Optional[Deadline] = None,
    ) -> DependencyMap:
        """Infer every dependency source and rank the critical path.

        Args:
            assets: Canonical (or normalized) assets.
            industry: Industry id for templates; None skips templates.
            deadline: Optional shared time budget.

        Returns:
            DependencyMap with edges, critical path and per-source counts.

        Raises:
            TimeoutError: If the deadline expires.
        """
        start = time.monotonic()
        deadline = deadline or Deadline(self._config.operation_timeout_seconds)

        control = self.infer_control_dependencies(assets, deadline)
        network = self.infer_network_dependencies(assets, deadline)
        templates = self.apply_industry_templates(assets, industry)
        dependencies = control + network + templates
        critical = self.critical_path(dependencies, assets, deadline)

        elapsed_ms = (time.monotonic() - start) * 1000.0
        with self._lock:
            self._stats["maps_built"] += 1
            self._stats["dependencies_inferred"] += len(dependencies)
            self._stats["total_time_ms"] += elapsed_ms

        logger.info(
            "Dependency map built: assets=%d control=%d network=%d industry=%d "
            "critical_path=%d (%.1fms)",
            len(assets), len(control), len(network), len(templates),
            len(critical), elapsed_ms,
        )
        return DependencyMap(
            dependencies=dependencies,
            critical_path=critical,
            summary={
                "total_dependencies": len(dependencies),
                "control_dependencies": len(control),
                "network_dependencies": len(network),
                "industry_dependencies": len(templates),
            },
        )

    def get_statistics(self) -> Dict[str, Any]:
        """Return mapping statistics."""
        with self._lock:
            return dict(self._stats)

    @staticmethod
    def _blast_radius(
        asset_id: str,
        adjacency: Dict[str, List[str]],
        index: Dict[str, Any],
    ) -> BlastRadius:
        distances: Dict[str, int] = {asset_id: 0}
        queue = deque([asset_id])
        order: List[str] = []
        while queue:
            current = queue.popleft()
            for target in adjacency.get(current, ()):
                if target in distances:
                    continue
                distances[target] = distances[current] + 1
                order.append(target)
                queue.append(target)

        impacted: List[ImpactedAsset] = []
        unresolved: List[str] = []
        units: List[str] = []
        for node in order:
            asset = index.get(node)
            if asset is None:
                unresolved.append(node)
                continue
            unit = asset_field(asset, "unit")
            impacted.append(ImpactedAsset(asset_id=node, unit=unit, distance=distances[node]))
            if unit and unit not in units:
                units.append(unit)

        return BlastRadius(
            source_asset=asset_id,
            directly_affected=sum(1 for a in impacted if a.distance == 1),
            total_affected=len(impacted),
            impacted_assets=impacted,
            impacted_units=units,
            unresolved_nodes=unresolved,
        )


def _adjacency(dependencies: Sequence[Dependency]) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for dep in dependencies:
        adjacency.setdefault(dep.source, []).append(dep.target)
    return adjacency


def _asset_index(assets: Sequence[Any]) -> Dict[str, Any]:
    index: Dict[str, Any] = OrderedDict()
    for asset in assets:
        node_id = asset_node_id(asset)
        if node_id and node_id not in index:
            index[node_id] = asset
    return index
