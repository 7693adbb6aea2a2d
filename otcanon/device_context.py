# -*- coding: utf-8 -*-
"""
Device Context Inferencer - OT Canon Asset Canonization

Best-effort inference of what a device is and what it does, from its tag
identifier and free text:

    - ISA-5.1 tag grammar (``TIC-101``, ``FIC-201A``, ``PSH-301``): the first
      letter is the measured variable, following letters are function
      modifiers; HH/LL/SH/SL style letter runs flag safety relevance.
    - An ordered table of device-type regex patterns over
      ``tag device_type manufacturer model`` (first match wins), each with a
      category and intrinsic criticality.
    - Protocol detection by substring (HART, PROFIBUS, Modbus, Ethernet/IP,
      Foundation Fieldbus).

Inference never raises; nothing matched leaves every field ``"unknown"``
with an empty ``inference_sources`` list.

Example:
    >>> from otcanon.device_context import parse_isa_tag
    >>> info = parse_isa_tag("TIC-101")
    >>> info.variable, info.device_function.value
    ('temperature', 'control')

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

from otcanon.config import OTCanonConfig, get_config
from otcanon.execution import parallel_map
from otcanon.models import (
    CRITICALITY_ORDER,
    Criticality,
    DeviceContext,
    DeviceFunction,
    IsaTagInfo,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ISA_FIRST_LETTER",
    "ISA_MODIFIER_LETTERS",
    "DEVICE_TYPE_PATTERNS",
    "DevicePattern",
    "DeviceContextEngine",
    "parse_isa_tag",
    "asset_field",
    "asset_text",
]


# ---------------------------------------------------------------------------
# ISA-5.1 letter tables
# ---------------------------------------------------------------------------

#: First letter -> (measured variable, description)
ISA_FIRST_LETTER: Dict[str, Tuple[str, str]] = {
    "A": ("analysis", "Composition, concentration"),
    "B": ("burner", "Burner, combustion"),
    "C": ("conductivity", "User choice (often conductivity)"),
    "D": ("density", "Density, specific gravity"),
    "E": ("voltage", "Voltage, EMF"),
    "F": ("flow", "Flow rate"),
    "G": ("gauging", "Gaging, position"),
    "H": ("hand", "Hand, manual"),
    "I": ("current", "Current, electrical"),
    "J": ("power", "Power"),
    "K": ("time", "Time, schedule"),
    "L": ("level", "Level"),
    "M": ("moisture", "Moisture, humidity"),
    "N": ("user", "User defined"),
    "O": ("user", "User defined"),
    "P": ("pressure", "Pressure, vacuum"),
    "Q": ("quantity", "Quantity, event"),
    "R": ("radiation", "Radiation"),
    "S": ("speed", "Speed, frequency"),
    "T": ("temperature", "Temperature"),
    "U": ("multivariable", "Multivariable"),
    "V": ("vibration", "Vibration, analysis"),
    "W": ("weight", "Weight, force"),
    "X": ("unclassified", "Unclassified"),
    "Y": ("event", "Event, state"),
    "Z": ("position", "Position, dimension"),
}

#: Modifier letter -> (function, function type)
ISA_MODIFIER_LETTERS: Dict[str, Tuple[str, str]] = {
    "I": ("indicator", "readout"),
    "R": ("recorder", "readout"),
    "G": ("gauge", "readout"),
    "T": ("transmitter", "measurement"),
    "E": ("element", "measurement"),
    "S": ("switch", "discrete"),
    "C": ("controller", "control"),
    "V": ("valve", "final_element"),
    "Y": ("relay", "auxiliary"),
    "K": ("control_station", "control"),
    "A": ("alarm", "safety"),
    "H": ("high", "limit"),
    "L": ("low", "limit"),
}

_ISA_TAG = re.compile(r"^([A-Z]{1,4})-?(\d{2,4})([A-Z])?$")
_ISA_SAFETY = re.compile(r"HH|LL|SH|SL|PSV|PSH|PSL|TSH|TSL|LSH|LSL|ESD")


# ---------------------------------------------------------------------------
# Device type pattern table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DevicePattern:
    """One row of the ordered device-type pattern table."""

    device_type: str
    category: str
    criticality: Criticality
    description: str
    pattern: Pattern[str]


def _pattern(device_type: str, category: str, criticality: str, description: str, regex: str) -> DevicePattern:
    return DevicePattern(
        device_type=device_type,
        category=category,
        criticality=Criticality(criticality),
        description=description,
        pattern=re.compile(regex, re.IGNORECASE),
    )


#: Ordered; the first matching row wins.
DEVICE_TYPE_PATTERNS: Tuple[DevicePattern, ...] = (
    # Controllers
    _pattern("plc", "controller", "critical", "Programmable Logic Controller",
             r"\b(plc|pac|rtplc|safety.?plc|sil.?plc)\b"),
    _pattern("dcs", "controller", "critical", "Distributed Control System",
             r"\b(dcs|distributed.?control)\b"),
    _pattern("rtu", "controller", "high", "Remote Terminal Unit",
             r"\b(rtu|remote.?terminal)\b"),
    # Safety systems
    _pattern("sis", "safety", "critical", "Safety Instrumented System",
             r"\b(sis|safety.?instrumented|esd|emergency.?shutdown)\b"),
    _pattern("fire_gas", "safety", "critical", "Fire & Gas Detection",
             r"\b(f.?g|fire.?gas|flame|smoke)\b"),
    _pattern("bms", "safety", "critical", "Burner Management System",
             r"\b(bms|burner.?management)\b"),
    _pattern("psv", "safety", "critical", "Pressure Safety Valve",
             r"\bpsv\b|pressure.?safety.?valve"),
    # Operator interfaces
    _pattern("hmi", "interface", "high", "Human-Machine Interface",
             r"\b(hmi|human.?machine|operator.?interface)\b"),
    _pattern("workstation", "interface", "high", "Operator Workstation",
             r"\b(ows|operator.?workstation|console)\b"),
    _pattern("engineering_ws", "interface", "high", "Engineering Workstation",
             r"\b(ews|engineering.?workstation)\b"),
    # Network infrastructure
    _pattern("switch", "network", "high", "Network Switch",
             r"\b(switch|ethernet.?switch|network.?switch)\b"),
    _pattern("router", "network", "high", "Router/Gateway",
             r"\b(router|gateway)\b"),
    _pattern("firewall", "network", "critical", "Firewall",
             r"\b(firewall|fw)\b"),
    # Field devices
    _pattern("transmitter", "measurement", "medium", "Process Transmitter",
             r"\b(transmitter|xmtr|tt|pt|ft|lt|at)\b"),
    _pattern("analyzer", "measurement", "medium", "Process Analyzer",
             r"\b(analyzer|analyser|chromatograph|spectrometer)\b"),
    _pattern("valve", "final_element", "medium", "Control/Isolation Valve",
             r"\b(valve|cv|fv|pv|tv|mov|sov)\b"),
    _pattern("drive", "motor_control", "medium", "Variable Frequency Drive",
             r"\b(vfd|vsd|drive|inverter)\b"),
    _pattern("mcc", "motor_control", "high", "Motor Control Center",
             r"\b(mcc|motor.?control.?center)\b"),
    # Servers
    _pattern("historian", "server", "high", "Data Historian",
             r"\b(historian|pi.?server|ip21|aspen)\b"),
    _pattern("opc_server", "server", "high", "OPC Server",
             r"\b(opc|opc.?server|opc.?ua)\b"),
)

# Raw device_type fallback: (substring, device_type, category)
_FIELD_FALLBACK: Tuple[Tuple[str, str, str], ...] = (
    ("transmitter", "transmitter", "measurement"),
    ("valve", "valve", "final_element"),
    ("switch", "switch", "network"),
)

# Ordered protocol patterns over the lower-cased asset text
_PROTOCOLS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"hart"), "HART"),
    (re.compile(r"profibus"), "PROFIBUS"),
    (re.compile(r"modbus"), "Modbus"),
    (re.compile(r"ethernet|\bip\b"), "Ethernet/IP"),
    (re.compile(r"foundation"), "FF"),
)

# Pattern category -> device function when no ISA tag decided it
_CATEGORY_FUNCTION: Dict[str, DeviceFunction] = {
    "controller": DeviceFunction.CONTROL,
    "safety": DeviceFunction.SAFETY,
    "measurement": DeviceFunction.MEASUREMENT,
    "final_element": DeviceFunction.FINAL_ELEMENT,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def asset_field(asset: Any, name: str) -> str:
    """Read ``name`` from a model or mapping as text (missing is "")."""
    if asset is None:
        return ""
    if isinstance(asset, Mapping):
        value = asset.get(name)
    else:
        value = getattr(asset, name, None)
    return "" if value is None else str(value)


def asset_text(asset: Any) -> str:
    """Return the lower-cased ``tag device_type manufacturer model`` text."""
    return " ".join(
        asset_field(asset, name)
        for name in ("tag_id", "device_type", "manufacturer", "model")
    ).lower()


def _raise_criticality(current: Criticality, candidate: Criticality) -> Criticality:
    if CRITICALITY_ORDER.index(candidate.value) > CRITICALITY_ORDER.index(current.value):
        return candidate
    return current


def parse_isa_tag(tag: Optional[str]) -> Optional[IsaTagInfo]:
    """Decode an ISA-5.1 style instrument tag.

    Args:
        tag: Tag such as ``TT-101``, ``FIC-201A`` or ``LCV102``.

    Returns:
        IsaTagInfo, or None when the tag does not follow the grammar.
    """
    if not tag or not isinstance(tag, str):
        return None
    upper = tag.strip().upper()
    match = _ISA_TAG.match(upper)
    if match is None:
        return None

    letters, number, suffix = match.groups()
    variable, variable_description = ISA_FIRST_LETTER.get(letters[0], ("unknown", "Unknown"))

    modifiers = [ISA_MODIFIER_LETTERS[c] for c in letters[1:] if c in ISA_MODIFIER_LETTERS]
    modifier_types = {kind for _, kind in modifiers}
    is_safety = _ISA_SAFETY.search(letters) is not None

    # Later checks take precedence
    device_function = DeviceFunction.MEASUREMENT
    if "control" in modifier_types:
        device_function = DeviceFunction.CONTROL
    if "final_element" in modifier_types:
        device_function = DeviceFunction.FINAL_ELEMENT
    if "safety" in modifier_types or is_safety:
        device_function = DeviceFunction.SAFETY

    return IsaTagInfo(
        tag=upper,
        letters=letters,
        variable=variable,
        variable_description=variable_description,
        functions=[name for name, _ in modifiers],
        device_function=device_function,
        is_safety_related=is_safety,
        loop_number=int(number),
        suffix=suffix,
    )


# ---------------------------------------------------------------------------
# DeviceContextEngine
# ---------------------------------------------------------------------------


class DeviceContextEngine:
    """Device context inference engine.

    Attributes:
        _config: Active OTCanonConfig.
        _lock: Threading lock for statistics.
        _stats: Aggregate inference statistics.
    """

    def __init__(self, config: Optional[OTCanonConfig] = None) -> None:
        self._config = config or get_config()
        self._lock = threading.Lock()
        self._stats: Dict[str, int] = {
            "inferred": 0,
            "isa_tags": 0,
            "pattern_matches": 0,
            "uninferred": 0,
        }
        logger.info(
            "DeviceContextEngine initialized: %d device patterns",
            len(DEVICE_TYPE_PATTERNS),
        )

    def infer(self, asset: Any) -> DeviceContext:
        """Infer device context from an asset's tag and free text.

        Args:
            asset: NormalizedAsset, CanonicalAsset or a mapping carrying
                ``tag_id``, ``device_type``, ``manufacturer``, ``model``.

        Returns:
            DeviceContext; unmatched fields stay ``"unknown"``.
        """
        tag_id = asset_field(asset, "tag_id")
        device_type = asset_field(asset, "device_type")
        text = asset_text(asset)

        sources: List[str] = []
        function = DeviceFunction.UNKNOWN
        criticality = Criticality.LOW
        is_safety = False
        process_variable = "unknown"

        isa = parse_isa_tag(tag_id)
        if isa is not None:
            sources.append("isa_tag")
            function = isa.device_function
            is_safety = isa.is_safety_related
            process_variable = isa.variable
            if isa.is_safety_related:
                criticality = Criticality.CRITICAL
            elif isa.device_function == DeviceFunction.CONTROL:
                criticality = Criticality.HIGH
            else:
                criticality = Criticality.MEDIUM

        inferred_type = "unknown"
        category = "unknown"
        description = "unknown"
        for row in DEVICE_TYPE_PATTERNS:
            if row.pattern.search(text):
                sources.append("device_pattern")
                inferred_type = row.device_type
                category = row.category
                description = row.description
                criticality = _raise_criticality(criticality, row.criticality)
                if row.category == "safety":
                    is_safety = True
                if function == DeviceFunction.UNKNOWN:
                    function = _CATEGORY_FUNCTION.get(row.category, DeviceFunction.UNKNOWN)
                break

        if inferred_type == "unknown" and device_type:
            lowered = device_type.lower()
            for needle, fallback_type, fallback_category in _FIELD_FALLBACK:
                if needle in lowered:
                    sources.append("device_type_field")
                    inferred_type = fallback_type
                    category = fallback_category
                    break

        protocol_text = f"{text} {asset_field(asset, 'protocol').lower()}"
        protocol = "unknown"
        for pattern, name in _PROTOCOLS:
            if pattern.search(protocol_text):
                protocol = name
                break

        with self._lock:
            if sources:
                self._stats["inferred"] += 1
            else:
                self._stats["uninferred"] += 1
            if isa is not None:
                self._stats["isa_tags"] += 1
            if "device_pattern" in sources:
                self._stats["pattern_matches"] += 1

        return DeviceContext(
            device_type=inferred_type,
            category=category,
            description=description,
            function=function,
            criticality=criticality,
            is_safety_related=is_safety,
            process_variable=process_variable,
            protocol=protocol,
            isa=isa,
            inference_sources=sources,
        )

    def infer_many(self, assets: Sequence[Any]) -> List[DeviceContext]:
        """Infer context for many assets, preserving input order."""
        start = time.monotonic()
        contexts = parallel_map(self.infer, list(assets), self._config.max_workers)
        logger.info(
            "Device context inferred for %d assets in %.1fms",
            len(contexts), (time.monotonic() - start) * 1000.0,
        )
        return contexts

    def get_statistics(self) -> Dict[str, int]:
        """Return aggregate inference statistics."""
        with self._lock:
            return dict(self._stats)
