# -*- coding: utf-8 -*-
"""
Unit Knowledge Base - OT Canon Asset Canonization

Static, versioned reference data describing what each process unit of an
industry should contain: its criticality, the functions it must perform with
minimum device counts, the device types it is expected to hold, typical asset
counts, applicable regulations and safety notes. Drives functional gap
analysis, unit-level risk and industry dependency templates.

Example:
    >>> from otcanon.unit_knowledge import detect_unit
    >>> detect_unit("CDU-1 Atmospheric", "oil-gas").unit_id
    'cdu'

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from otcanon.models import Criticality, ExpectedDeviceType, ExpectedFunction, UnitProfile

logger = logging.getLogger(__name__)

__all__ = [
    "KNOWLEDGE_VERSION",
    "UNIT_KNOWLEDGE",
    "get_unit_info",
    "detect_unit",
    "get_industry_units",
    "get_expected_functions",
    "get_expected_device_types",
]

KNOWLEDGE_VERSION = "2026.10"

# (function, criticality, min_devices, description)
_FunctionRow = Tuple[str, str, int, str]
# (device_type, min_count, description)
_DeviceRow = Tuple[str, int, str]


def _unit(
    industry: str,
    unit_id: str,
    name: str,
    aliases: Sequence[str],
    criticality: str,
    description: str,
    functions: Sequence[_FunctionRow],
    devices: Sequence[_DeviceRow],
    typical: Tuple[int, int, int],
    regulations: Sequence[str],
    safety_notes: str,
) -> UnitProfile:
    return UnitProfile(
        unit_id=unit_id,
        industry=industry,
        name=name,
        aliases=list(aliases),
        criticality=Criticality(criticality),
        description=description,
        expected_functions=[
            ExpectedFunction(
                function=f, criticality=Criticality(c), min_devices=n, description=d,
            )
            for f, c, n, d in functions
        ],
        expected_device_types=[
            ExpectedDeviceType(device_type=t, min_count=n, description=d)
            for t, n, d in devices
        ],
        typical_asset_count={"min": typical[0], "max": typical[1], "typical": typical[2]},
        regulations=list(regulations),
        safety_notes=safety_notes,
    )


# ---------------------------------------------------------------------------
# Oil & gas refinery units
# ---------------------------------------------------------------------------

_OIL_GAS: Tuple[UnitProfile, ...] = (
    _unit(
        "oil-gas", "cdu", "Crude Distillation Unit",
        ["crude", "distillation", "atmospheric", "adu", "topping"],
        "critical",
        "Primary separation of crude oil into fractions. Plant cannot operate without it.",
        [
            ("feed_flow_control", "high", 1, "Crude feed rate control"),
            ("column_pressure", "high", 1, "Atmospheric column pressure"),
            ("column_temperature", "high", 5, "Column temperature profile"),
            ("overhead_pressure_safety", "critical", 1, "Overhead safety systems"),
            ("bottoms_level", "high", 1, "Column bottoms level"),
            ("heater_control", "critical", 1, "Crude heater firing control"),
            ("reflux_control", "medium", 1, "Overhead reflux"),
        ],
        [
            ("plc", 1, "Process control"),
            ("dcs", 1, "Distributed control"),
            ("sis", 1, "Safety instrumented system"),
            ("hmi", 1, "Operator interface"),
        ],
        (40, 120, 70),
        ["OSHA_PSM", "EPA_RMP", "API_RP_584"],
        "High temperature, high pressure, flammable materials",
    ),
    _unit(
        "oil-gas", "fcc", "Fluid Catalytic Cracker",
        ["cat cracker", "cracker", "fccu"],
        "critical",
        "Converts heavy oils to lighter products. Major margin driver.",
        [
            ("reactor_temperature", "critical", 5, "Reactor temperature profile"),
            ("regenerator_temperature", "critical", 5, "Regenerator temperature"),
            ("catalyst_circulation", "critical", 2, "Catalyst flow control"),
            ("air_blower_control", "high", 1, "Main air blower"),
            ("reactor_pressure", "high", 1, "Reactor pressure control"),
            ("slide_valve_control", "critical", 2, "Catalyst slide valves"),
            ("feed_preheat", "medium", 1, "Feed preheat control"),
        ],
        [
            ("plc", 2, "Process and safety control"),
            ("sis", 1, "Safety system"),
            ("analyzer", 2, "Process analyzers"),
            ("hmi", 2, "Operator interfaces"),
        ],
        (60, 150, 100),
        ["OSHA_PSM", "EPA_RMP", "API_RP_584"],
        "Very high temperature, catalyst handling, potential for thermal runaway",
    ),
    _unit(
        "oil-gas", "hydrotreater", "Hydrotreater",
        ["hds", "hdn", "nht", "dht", "hydrotreating"],
        "high",
        "Removes sulfur and nitrogen from hydrocarbon streams.",
        [
            ("reactor_temperature", "high", 3, "Reactor bed temperatures"),
            ("hydrogen_flow", "high", 1, "Hydrogen makeup flow"),
            ("reactor_pressure", "high", 1, "Reactor pressure control"),
            ("recycle_gas", "medium", 1, "Recycle gas compressor"),
            ("product_sulfur", "high", 1, "Product sulfur monitoring"),
        ],
        [
            ("plc", 1, "Process control"),
            ("analyzer", 1, "Sulfur analyzer"),
        ],
        (30, 80, 50),
        ["OSHA_PSM", "EPA_RMP"],
        "High pressure hydrogen, catalyst handling",
    ),
    _unit(
        "oil-gas", "tank_farm", "Tank Farm",
        ["storage", "tankage", "terminals"],
        "medium",
        "Storage for crude and products. Less time-critical but large asset count.",
        [
            ("tank_level", "high", 10, "Tank level measurement"),
            ("tank_temperature", "medium", 5, "Tank temperature"),
            ("transfer_control", "medium", 3, "Product transfer"),
            ("overfill_protection", "critical", 5, "High level alarms"),
        ],
        [
            ("plc", 1, "Tank gauging control"),
            ("transmitter", 10, "Level transmitters"),
        ],
        (50, 200, 100),
        ["EPA_SPCC", "API_2350"],
        "Flammable storage, environmental containment",
    ),
    _unit(
        "oil-gas", "utilities", "Utilities",
        ["utility", "steam", "power", "cooling", "air"],
        "high",
        "Steam, power, cooling water, instrument air systems.",
        [
            ("boiler_control", "high", 2, "Steam generation"),
            ("cooling_water", "high", 2, "Cooling water system"),
            ("instrument_air", "high", 1, "Instrument air supply"),
            ("power_distribution", "high", 1, "Electrical distribution"),
        ],
        [
            ("plc", 1, "Utilities control"),
            ("bms", 1, "Burner management"),
        ],
        (30, 100, 60),
        ["OSHA_PSM", "EPA_CAA"],
        "High pressure steam, rotating equipment",
    ),
)


# ---------------------------------------------------------------------------
# Pharmaceutical manufacturing units
# ---------------------------------------------------------------------------

_PHARMA: Tuple[UnitProfile, ...] = (
    _unit(
        "pharma", "api_synthesis", "API Synthesis",
        ["api", "synthesis", "chemical", "reaction"],
        "critical",
        "Active Pharmaceutical Ingredient production. Core manufacturing.",
        [
            ("reactor_temperature", "critical", 3, "Reaction temperature control"),
            ("reactor_pressure", "high", 1, "Reactor pressure"),
            ("agitation_control", "high", 1, "Agitator speed"),
            ("batch_charging", "high", 2, "Material charging"),
            ("inerting_system", "critical", 1, "Nitrogen blanketing"),
        ],
        [
            ("plc", 1, "Batch control"),
            ("hmi", 1, "Operator interface"),
            ("analyzer", 1, "In-process analysis"),
        ],
        (30, 100, 60),
        ["FDA_21CFR", "GMP", "ICH_Q7"],
        "Potent compounds, solvent handling, batch integrity",
    ),
    _unit(
        "pharma", "formulation", "Formulation",
        ["form", "dosage", "drug_product", "dp"],
        "critical",
        "Drug product formulation and mixing.",
        [
            ("blending_control", "high", 1, "Powder blending"),
            ("granulation", "high", 1, "Wet/dry granulation"),
            ("drying_control", "high", 2, "Drying operations"),
            ("weight_control", "high", 2, "Material weighing"),
        ],
        [
            ("plc", 1, "Process control"),
            ("hmi", 1, "Batch interface"),
        ],
        (20, 80, 45),
        ["FDA_21CFR", "GMP"],
        "Dust explosion potential, containment requirements",
    ),
    _unit(
        "pharma", "clean_room", "Clean Room / HVAC",
        ["hvac", "cleanroom", "environmental", "ahu"],
        "high",
        "Environmental control for GMP manufacturing.",
        [
            ("temperature_control", "high", 5, "Room temperature"),
            ("humidity_control", "high", 3, "Relative humidity"),
            ("pressure_differential", "critical", 5, "Room pressurization"),
            ("particle_monitoring", "high", 2, "Particle counts"),
        ],
        [
            ("plc", 1, "BMS/HVAC control"),
            ("transmitter", 10, "Environmental sensors"),
        ],
        (30, 100, 50),
        ["FDA_21CFR", "GMP", "ISO_14644"],
        "Critical environmental control, product quality impact",
    ),
    _unit(
        "pharma", "wfi_system", "Water for Injection",
        ["wfi", "pure_water", "purified_water", "pw"],
        "critical",
        "Pharmaceutical grade water production.",
        [
            ("conductivity", "critical", 3, "Water conductivity"),
            ("toc_monitoring", "critical", 1, "Total organic carbon"),
            ("temperature_control", "high", 2, "Storage temperature"),
            ("flow_control", "high", 2, "Distribution flow"),
        ],
        [
            ("plc", 1, "Water system control"),
            ("analyzer", 2, "Quality analyzers"),
        ],
        (15, 50, 30),
        ["FDA_21CFR", "USP", "GMP"],
        "Microbial control, endotoxin monitoring",
    ),
)


# ---------------------------------------------------------------------------
# Power & utilities units
# ---------------------------------------------------------------------------

_UTILITIES: Tuple[UnitProfile, ...] = (
    _unit(
        "utilities", "generation", "Power Generation",
        ["gen", "turbine", "generator", "powerhouse"],
        "critical",
        "Electricity generation from turbines/generators.",
        [
            ("turbine_control", "critical", 3, "Turbine speed/load"),
            ("generator_protection", "critical", 2, "Generator protection"),
            ("excitation_control", "high", 1, "AVR control"),
            ("vibration_monitoring", "high", 4, "Machine vibration"),
            ("lube_oil_system", "high", 2, "Lubrication system"),
        ],
        [
            ("plc", 1, "Turbine control"),
            ("dcs", 1, "Plant control"),
            ("sis", 1, "Turbine protection"),
        ],
        (50, 150, 80),
        ["NERC_CIP", "IEEE_C37"],
        "High speed rotating equipment, high voltage",
    ),
    _unit(
        "utilities", "substation", "Electrical Substation",
        ["sub", "switchyard", "transformer", "electrical"],
        "critical",
        "Power transformation and distribution.",
        [
            ("transformer_monitoring", "high", 2, "Transformer health"),
            ("breaker_control", "critical", 5, "Circuit breaker control"),
            ("protection_relay", "critical", 10, "Protective relaying"),
            ("metering", "high", 3, "Power metering"),
        ],
        [
            ("rtu", 1, "Substation automation"),
            ("relay", 5, "Protection relays"),
            ("switch", 1, "Substation network"),
        ],
        (30, 100, 50),
        ["NERC_CIP", "IEEE_C37", "IEC_61850"],
        "High voltage, arc flash hazard",
    ),
    _unit(
        "utilities", "water_treatment", "Water/Wastewater Treatment",
        ["water", "wastewater", "wwtp", "wtp", "treatment"],
        "high",
        "Water treatment and distribution.",
        [
            ("chemical_dosing", "high", 3, "Chemical treatment"),
            ("flow_measurement", "high", 5, "Plant flow"),
            ("quality_monitoring", "critical", 4, "Water quality"),
            ("pump_control", "high", 5, "Pumping stations"),
        ],
        [
            ("plc", 2, "Process control"),
            ("analyzer", 3, "Quality analyzers"),
            ("rtu", 1, "Remote monitoring"),
        ],
        (40, 120, 70),
        ["EPA_SDWA", "EPA_CWA", "AWIA"],
        "Chemical handling, public health critical",
    ),
)


# ---------------------------------------------------------------------------
# Automotive manufacturing units
# ---------------------------------------------------------------------------

_AUTOMOTIVE: Tuple[UnitProfile, ...] = (
    _unit(
        "automotive", "stamping", "Stamping Shop",
        ["stamp", "press", "blanking", "metal_forming"],
        "critical",
        "High-tonnage presses forming body panels from steel/aluminum coils.",
        [
            ("press_control", "critical", 8, "Press stroke control"),
            ("die_monitoring", "high", 10, "Die position and force"),
            ("coil_feed", "high", 4, "Coil feed systems"),
            ("transfer_automation", "critical", 6, "Part transfer robots"),
            ("quality_vision", "high", 8, "Defect detection cameras"),
            ("safety_curtains", "critical", 20, "Light curtains and guards"),
            ("tonnage_monitoring", "high", 8, "Press force sensors"),
        ],
        [
            ("plc", 15, "Press line controllers"),
            ("servo", 30, "Servo drives"),
            ("hmi", 8, "Operator panels"),
            ("robot", 12, "Transfer robots"),
            ("camera", 8, "Vision systems"),
            ("safety_plc", 4, "Safety controllers"),
        ],
        (150, 400, 280),
        ["OSHA_1910", "ANSI_B11", "ISO_13849"],
        "High-tonnage presses, pinch points, noise exposure",
    ),
    _unit(
        "automotive", "body_shop", "Body Shop (BIW)",
        ["body", "welding", "biw", "body_in_white", "weld"],
        "critical",
        "Robotic welding cells assembling body structure. 400-600 robots typical.",
        [
            ("spot_welding", "critical", 200, "Spot weld robots"),
            ("arc_welding", "high", 40, "MIG/MAG weld robots"),
            ("weld_quality", "critical", 50, "Weld monitoring"),
            ("geometry_station", "critical", 20, "Body geometry check"),
            ("conveyor_control", "high", 30, "Body transfer"),
            ("fixture_clamp", "high", 100, "Welding fixtures"),
            ("adhesive_apply", "medium", 15, "Structural adhesive"),
            ("safety_zone", "critical", 80, "Cell safety systems"),
        ],
        [
            ("robot", 300, "Welding robots (Fanuc/Kawasaki)"),
            ("plc", 50, "Cell controllers"),
            ("weld_controller", 200, "Weld controllers"),
            ("hmi", 30, "Cell interfaces"),
            ("camera", 40, "Vision systems"),
            ("safety_plc", 25, "Safety controllers"),
            ("servo", 150, "Servo actuators"),
        ],
        (600, 1500, 950),
        ["OSHA_1910", "ISO_45001", "RIA_TR_R15.306"],
        "High-speed robots, weld fume extraction, arc flash",
    ),
    _unit(
        "automotive", "paint_shop", "Paint Shop",
        ["paint", "coating", "finish", "ecoat", "topcoat", "clearcoat"],
        "critical",
        "Multi-stage coating: E-coat, primer, basecoat, clearcoat with cure ovens.",
        [
            ("pretreatment", "high", 20, "Phosphate/E-coat prep"),
            ("ecoat_control", "critical", 15, "Electrocoat bath"),
            ("booth_hvac", "critical", 40, "Booth temperature/humidity"),
            ("paint_robots", "critical", 60, "Paint application"),
            ("oven_control", "high", 25, "Cure oven zones"),
            ("color_change", "high", 20, "Color change systems"),
            ("voc_monitoring", "high", 15, "VOC/RTO emissions"),
            ("sealer_apply", "medium", 10, "Sealer robots"),
            ("quality_inspection", "high", 12, "Paint defect detection"),
        ],
        [
            ("robot", 80, "Paint robots (Fanuc)"),
            ("plc", 35, "Process controllers"),
            ("hvac_controller", 20, "Booth HVAC"),
            ("analyzer", 15, "Environment/VOC analyzers"),
            ("hmi", 20, "Operator stations"),
            ("vfd", 60, "Fan/pump drives"),
            ("temperature_controller", 40, "Oven controllers"),
        ],
        (300, 800, 520),
        ["EPA_CAA", "OSHA_1910", "NFPA_33"],
        "Flammable solvents, VOC exposure, fire hazard",
    ),
    _unit(
        "automotive", "plastics", "Plastics Shop",
        ["injection", "molding", "bumper", "fascia", "interior_trim"],
        "high",
        "Injection molding for bumpers, fascias, interior trim parts.",
        [
            ("injection_control", "high", 20, "Molding machines"),
            ("material_drying", "high", 10, "Resin dryers"),
            ("mold_temperature", "high", 15, "Mold heating/cooling"),
            ("robot_extract", "medium", 15, "Part extraction"),
            ("paint_prep", "medium", 8, "Flame treatment"),
        ],
        [
            ("plc", 15, "Machine controllers"),
            ("robot", 20, "Extraction robots"),
            ("hmi", 10, "Operator panels"),
            ("temperature_controller", 25, "TCUs"),
        ],
        (80, 200, 140),
        ["OSHA_1910", "ISO_45001"],
        "Hot surfaces, high pressure hydraulics",
    ),
    _unit(
        "automotive", "assembly", "Final Assembly",
        ["final", "trim", "chassis", "tcf", "general_assembly", "ga"],
        "critical",
        "Trim-Chassis-Final: Install interior, powertrain, wheels, fluid fill.",
        [
            ("main_conveyor", "critical", 25, "Main assembly line"),
            ("torque_tools", "critical", 200, "DC torque tools"),
            ("agv_delivery", "high", 40, "AGV material delivery"),
            ("marriage_station", "critical", 5, "Body-chassis marriage"),
            ("fluid_fill", "high", 15, "Fluid fill stations"),
            ("andon_system", "high", 50, "Andon pull cords"),
            ("error_proofing", "high", 100, "Poka-yoke sensors"),
            ("tracking_system", "critical", 30, "Vehicle tracking"),
            ("windshield_install", "high", 4, "Glass installation"),
            ("seat_delivery", "high", 8, "JIT seat sequencing"),
        ],
        [
            ("plc", 60, "Station controllers"),
            ("torque_controller", 150, "Torque tool controllers"),
            ("agv", 50, "AGV fleet"),
            ("hmi", 80, "Station displays"),
            ("scanner", 200, "Barcode scanners"),
            ("robot", 30, "Assembly robots"),
            ("andon", 50, "Andon boards"),
        ],
        (500, 1200, 850),
        ["OSHA_1910", "ISO_45001"],
        "Ergonomics, moving conveyors, overhead cranes",
    ),
    _unit(
        "automotive", "quality", "Quality & Testing",
        ["test", "eol", "quality", "inspection", "audit", "roll_test"],
        "critical",
        "End-of-line testing: roll test, water test, alignment, emissions.",
        [
            ("roll_test", "critical", 10, "Chassis dyno test"),
            ("alignment_check", "high", 6, "Wheel alignment"),
            ("water_test", "high", 4, "Water leak test"),
            ("adas_calibration", "high", 8, "ADAS sensor calibration"),
            ("ecu_programming", "critical", 12, "ECU flashing"),
            ("emissions_test", "high", 4, "Emissions analyzer"),
            ("squeak_rattle", "medium", 4, "Road simulation"),
            ("headlamp_aim", "high", 4, "Headlamp alignment"),
        ],
        [
            ("plc", 20, "Test equipment controllers"),
            ("dynamometer", 6, "Chassis dynos"),
            ("camera", 30, "Vision systems"),
            ("hmi", 15, "Test stations"),
            ("programmer", 10, "ECU programmers"),
            ("analyzer", 8, "Test equipment"),
        ],
        (100, 300, 180),
        ["EPA_FTP", "FMVSS", "SAE_J1939"],
        "Moving vehicles, high-speed dynos, exhaust fumes",
    ),
    _unit(
        "automotive", "powertrain", "Powertrain Assembly",
        ["engine", "transmission", "motor", "drivetrain", "axle"],
        "critical",
        "Engine/transmission/motor assembly and machining.",
        [
            ("machining_center", "critical", 30, "CNC machining"),
            ("engine_assembly", "critical", 40, "Engine build"),
            ("torque_monitoring", "critical", 80, "Critical torques"),
            ("hot_test", "high", 8, "Engine hot test"),
            ("cold_test", "high", 6, "Engine cold test"),
            ("leak_test", "high", 12, "Oil/coolant leak"),
            ("vision_inspection", "high", 20, "Assembly verification"),
        ],
        [
            ("cnc", 40, "CNC machines"),
            ("plc", 35, "Line controllers"),
            ("robot", 25, "Assembly robots"),
            ("torque_controller", 60, "DC torque tools"),
            ("hmi", 25, "Station displays"),
            ("dyno", 10, "Engine dynos"),
        ],
        (250, 600, 420),
        ["OSHA_1910", "ISO_45001"],
        "Heavy parts, rotating equipment, cutting fluids",
    ),
    _unit(
        "automotive", "battery", "Battery Pack Assembly",
        ["battery", "ev_pack", "cell", "module", "bms"],
        "critical",
        "EV battery module and pack assembly for electric vehicles.",
        [
            ("cell_handling", "critical", 20, "Cell loading/sorting"),
            ("module_assembly", "critical", 15, "Module build"),
            ("laser_welding", "critical", 12, "Cell interconnect"),
            ("thermal_paste", "high", 8, "TIM application"),
            ("bms_programming", "critical", 6, "BMS configuration"),
            ("eol_test", "critical", 10, "Pack testing"),
            ("insulation_test", "critical", 8, "HiPot testing"),
            ("dry_room", "high", 15, "Humidity control"),
        ],
        [
            ("plc", 25, "Line controllers"),
            ("robot", 30, "Assembly robots"),
            ("laser", 10, "Welding lasers"),
            ("tester", 15, "Battery testers"),
            ("hvac_controller", 10, "Dry room HVAC"),
            ("safety_plc", 8, "HV safety systems"),
        ],
        (150, 400, 280),
        ["OSHA_1910", "UN38.3", "UL2580", "NFPA_855"],
        "High voltage, thermal runaway risk, lithium fires",
    ),
    _unit(
        "automotive", "logistics", "Logistics & Material Handling",
        ["warehouse", "logistics", "receiving", "shipping", "material"],
        "high",
        "Parts receiving, sequencing, JIT delivery, finished vehicle shipping.",
        [
            ("receiving_dock", "high", 15, "Dock door control"),
            ("asrs_system", "high", 20, "Automated storage"),
            ("agv_fleet", "high", 30, "AGV navigation"),
            ("sequence_tower", "high", 10, "Parts sequencing"),
            ("shipping_line", "medium", 12, "Vehicle shipping"),
            ("yard_management", "medium", 8, "Yard tracking"),
        ],
        [
            ("plc", 20, "Conveyor controllers"),
            ("agv", 40, "AGV fleet"),
            ("asrs", 15, "Storage systems"),
            ("scanner", 50, "Barcode readers"),
            ("hmi", 15, "Operator stations"),
        ],
        (100, 300, 180),
        ["OSHA_1910", "ISO_45001"],
        "Forklift traffic, AGV zones, loading docks",
    ),
    _unit(
        "automotive", "plant_utilities", "Plant Utilities",
        ["utilities", "facilities", "power", "hvac", "compressed_air", "chiller"],
        "high",
        "Power distribution, HVAC, compressed air, chilled water, fire protection.",
        [
            ("power_distribution", "critical", 20, "Electrical substations"),
            ("compressed_air", "high", 15, "Air compressors"),
            ("hvac_control", "high", 30, "Building HVAC"),
            ("chilled_water", "high", 10, "Process cooling"),
            ("fire_protection", "critical", 25, "Fire alarm/suppression"),
            ("wastewater", "medium", 8, "Wastewater treatment"),
            ("natural_gas", "high", 6, "Gas distribution"),
        ],
        [
            ("plc", 15, "Utility controllers"),
            ("vfd", 40, "Motor drives"),
            ("bms", 5, "Building management"),
            ("fire_panel", 10, "Fire alarm panels"),
            ("meter", 30, "Energy meters"),
        ],
        (100, 250, 160),
        ["NFPA_70", "NFPA_72", "ASHRAE"],
        "High voltage, rotating equipment, confined spaces",
    ),
)


#: Industry id -> ordered unit profiles. Order drives detection precedence.
UNIT_KNOWLEDGE: Dict[str, Tuple[UnitProfile, ...]] = {
    "oil-gas": _OIL_GAS,
    "pharma": _PHARMA,
    "utilities": _UTILITIES,
    "automotive": _AUTOMOTIVE,
}


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------


def get_industry_units(industry: Optional[str]) -> List[UnitProfile]:
    """Return every unit profile of an industry (empty when unknown)."""
    return list(UNIT_KNOWLEDGE.get(industry or "", ()))


def get_unit_info(industry: Optional[str], unit_id: Optional[str]) -> Optional[UnitProfile]:
    """Look up a unit by id, then by alias equality or alias containment.

    Args:
        industry: Industry id.
        unit_id: Unit id or free-text unit name.

    Returns:
        Matching UnitProfile or None.
    """
    units = UNIT_KNOWLEDGE.get(industry or "")
    if not units or not unit_id:
        return None
    wanted = unit_id.strip().lower()
    for unit in units:
        if unit.unit_id == wanted:
            return unit
    for unit in units:
        if any(alias == wanted or alias in wanted for alias in unit.aliases):
            return unit
    return None


def detect_unit(unit_field: Optional[str], industry: Optional[str]) -> Optional[UnitProfile]:
    """Detect the knowledge-base unit named by a free-text unit/area field.

    Units are tried in catalogue order; for each, the unit id and then its
    aliases are searched as substrings of the lower-cased field. Spaces and
    hyphens in the field are also tried as underscores so ``"Tank Farm"``
    resolves to ``tank_farm``.

    Args:
        unit_field: Raw unit/area value of an asset.
        industry: Industry id.

    Returns:
        UnitProfile or None when the field or industry is unknown.
    """
    if not unit_field or not industry:
        return None
    units = UNIT_KNOWLEDGE.get(industry)
    if not units:
        return None

    text = unit_field.strip().lower()
    candidates = {text, text.replace(" ", "_").replace("-", "_")}
    for unit in units:
        if any(unit.unit_id in c for c in candidates):
            return unit
        if any(alias in c for alias in unit.aliases for c in candidates):
            return unit
    return None


def get_expected_functions(industry: Optional[str], unit_id: Optional[str]) -> List[ExpectedFunction]:
    """Return the expected functions of a unit (empty when unknown)."""
    unit = get_unit_info(industry, unit_id)
    return list(unit.expected_functions) if unit else []


def get_expected_device_types(industry: Optional[str], unit_id: Optional[str]) -> List[ExpectedDeviceType]:
    """Return the expected device types of a unit (empty when unknown)."""
    unit = get_unit_info(industry, unit_id)
    return list(unit.expected_device_types) if unit else []
