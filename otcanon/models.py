# -*- coding: utf-8 -*-
"""
OT Canon Data Models

Pydantic v2 data models for the OT asset canonization core. Covers the
records flowing through every stage of a run: raw and normalized source
rows, match results, security tier classification, cross-validation,
device context, lifecycle assessment, dependency graph, gap findings, risk
assessment, provenance events and the final canonization result.

Enumerations (17):
    - SourceType, MatchStrategy, ReconciliationStatus, ValidationStatus,
      ValidationConfidence, Criticality, DeviceFunction, LifecycleStatus,
      LifecycleSource, DependencyType, DependencyDirection, GapType,
      GapSeverity, RiskLevel, RiskFactorType, ProvenanceEventType,
      OutputLevel, RunStatus

Core models:
    - RawRecord, NormalizedAsset, SourceDataset, MatchResult, MatchStats,
      MatchOutcome, TierClassification, CrossValidation, ReviewItem,
      ReviewQueue, IsaTagInfo, DeviceContext, LifecycleAssessment,
      LifecycleSummary, Dependency, ImpactedAsset, BlastRadius,
      CriticalPathEntry, DependencyMap, Gap, GapSummary, GapReport,
      RiskFactor, RiskAssessment, UnitRisk, FactorFrequency,
      PortfolioRiskReport, ExpectedFunction, ExpectedDeviceType,
      UnitProfile, IndustryScore, IndustryDetection, ProvenanceEvent,
      AuditPackage, CanonicalAsset, CanonizationResult

Example:
    >>> from otcanon.models import NormalizedAsset
    >>> asset = NormalizedAsset(tag_id="TIC-101", device_type="PLC")
    >>> asset.has_network_address
    False

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Ordering tables
# ---------------------------------------------------------------------------

#: Numeric rank per gap severity; lower sorts first.
SEVERITY_RANK: Dict[str, int] = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
    "info": 4,
}

#: Criticality order used when a later rule may only raise criticality.
CRITICALITY_ORDER: List[str] = ["low", "medium", "high", "critical"]


# =============================================================================
# Enumerations
# =============================================================================


class SourceType(str, Enum):
    """Role of an input file in a canonization run.

    ENGINEERING: Design / CMMS baseline records.
    DISCOVERY: Network scanner or agent export.
    OTHER: Unrecognised; ingested for provenance only.
    """

    ENGINEERING = "engineering"
    DISCOVERY = "discovery"
    OTHER = "other"


class MatchStrategy(str, Enum):
    """Record linkage strategies, in execution priority order."""

    TAG_ID = "tag_id"
    IP_ADDRESS = "ip_address"
    HOSTNAME = "hostname"
    MAC_ADDRESS = "mac_address"


class ReconciliationStatus(str, Enum):
    """Where a canonical asset came from.

    MATCHED: Present in both engineering and discovery.
    BLIND_SPOT: Engineering only.
    ORPHAN: Discovery only.
    """

    MATCHED = "matched"
    BLIND_SPOT = "blind_spot"
    ORPHAN = "orphan"


class ValidationStatus(str, Enum):
    """Cross-validation verdict for a matched record pair."""

    VERIFIED = "VERIFIED"
    PARTIAL = "PARTIAL"
    SUSPICIOUS = "SUSPICIOUS"
    UNVALIDATED = "UNVALIDATED"


class ValidationConfidence(str, Enum):
    """Confidence band attached to a cross-validation verdict."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Criticality(str, Enum):
    """Criticality shared by devices, units and expected functions."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DeviceFunction(str, Enum):
    """Functional role inferred from an ISA-5.1 tag."""

    MEASUREMENT = "measurement"
    CONTROL = "control"
    FINAL_ELEMENT = "final_element"
    SAFETY = "safety"
    UNKNOWN = "unknown"


class LifecycleStatus(str, Enum):
    """Support lifecycle state of an asset.

    CURRENT: Fully supported.
    MATURE: Supported but not the latest generation.
    APPROACHING_EOL: End-of-life within the approach horizon.
    EOL: End of life, limited support.
    EOS: End of support, no patches.
    OBSOLETE: Long past end of support.
    UNKNOWN: Cannot determine.
    """

    CURRENT = "current"
    MATURE = "mature"
    APPROACHING_EOL = "approaching_eol"
    EOL = "eol"
    EOS = "eos"
    OBSOLETE = "obsolete"
    UNKNOWN = "unknown"


class LifecycleSource(str, Enum):
    """How a lifecycle status was determined."""

    VENDOR_DATABASE = "vendor_database"
    ESTIMATED = "estimated"
    NONE = "none"


class DependencyType(str, Enum):
    """Kind of relationship carried by a dependency edge."""

    PROCESS_FLOW = "process_flow"
    CONTROL = "control"
    SAFETY = "safety"
    POWER = "power"
    UTILITY = "utility"
    NETWORK = "network"
    DATA = "data"


class DependencyDirection(str, Enum):
    """Direction of a dependency edge relative to its source node."""

    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"
    BIDIRECTIONAL = "bidirectional"
    SUPPLIES = "supplies"
    RECEIVES = "receives"


class GapType(str, Enum):
    """Gap finding types across the asset, functional and coverage families."""

    BLIND_SPOT = "blind_spot"
    ORPHAN = "orphan"
    STALE_DATA = "stale_data"
    MISSING_FUNCTION = "missing_function"
    INSUFFICIENT_COVERAGE = "insufficient_coverage"
    NO_REDUNDANCY = "no_redundancy"
    NO_VISIBILITY = "no_visibility"
    LOW_VISIBILITY = "low_visibility"
    NETWORK_BLIND_SPOT = "network_blind_spot"


class GapSeverity(str, Enum):
    """Ordered gap severity (critical first)."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank; critical is 0."""
        return SEVERITY_RANK[self.value]


class RiskLevel(str, Enum):
    """Risk band derived from a normalized 0-100 score."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class RiskFactorType(str, Enum):
    """Independent contributors to an asset risk score."""

    DEVICE_CRITICALITY = "device_criticality"
    SAFETY_RELATED = "safety_related"
    UNIT_CRITICALITY = "unit_criticality"
    EOL_STATUS = "eol_status"
    NETWORK_EXPOSURE = "network_exposure"
    INTERNET_REACHABLE = "internet_reachable"
    REMOTE_ACCESS = "remote_access"
    UNDOCUMENTED = "undocumented"
    NO_DISCOVERY = "no_discovery"
    STALE_DATA = "stale_data"
    SINGLE_POINT_OF_FAILURE = "single_point_of_failure"
    HIGH_DOWNSTREAM_IMPACT = "high_downstream_impact"


class ProvenanceEventType(str, Enum):
    """Pipeline actions recorded in the provenance log."""

    PIPELINE_START = "PIPELINE_START"
    SOURCE_INGESTED = "SOURCE_INGESTED"
    INGESTION_COMPLETE = "INGESTION_COMPLETE"
    ASSET_MATCHED = "ASSET_MATCHED"
    MATCHING_COMPLETE = "MATCHING_COMPLETE"
    CLASSIFICATION = "CLASSIFICATION"
    HUMAN_REVIEW = "HUMAN_REVIEW"
    PIPELINE_COMPLETE = "PIPELINE_COMPLETE"
    ERROR = "ERROR"


class OutputLevel(str, Enum):
    """Detail level of an assembled canonization output."""

    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class RunStatus(str, Enum):
    """Overall status of a canonization run."""

    COMPLETE = "COMPLETE"
    PENDING_REVIEW = "PENDING_REVIEW"
    FAILED = "FAILED"


# =============================================================================
# Source records
# =============================================================================


class RawRecord(BaseModel):
    """One source row before normalization.

    Attributes:
        source_id: Identifier of the source dataset.
        row_index: Zero-based row position within the source.
        values: Column name to value mapping as parsed.
    """

    source_id: str = Field(default="", description="Source dataset identifier")
    row_index: int = Field(default=0, ge=0, description="Zero-based row index")
    values: Dict[str, Any] = Field(
        default_factory=dict, description="Raw column to value mapping",
    )

    model_config = {"extra": "forbid"}


class NormalizedAsset(BaseModel):
    """Canonical schema for one source row.

    Every field has a typed default so normalization is total; absent
    values are empty strings, zero or False.
    """

    tag_id: str = Field(default="", description="Trimmed upper-case tag")
    ip_address: str = Field(default="", description="IPv4 address")
    mac_address: str = Field(default="", description="Upper-case MAC address")
    hostname: str = Field(default="", description="Network hostname")
    plant: str = Field(default="", description="Plant or site")
    unit: str = Field(default="", description="Process unit or area")
    device_type: str = Field(default="", description="Free-text device type")
    manufacturer: str = Field(default="", description="Vendor name")
    model: str = Field(default="", description="Product model")
    criticality: str = Field(default="", description="Source criticality")
    security_tier: str = Field(default="", description="Source security tier")
    vulnerabilities: int = Field(default=0, description="Known vulnerability count")
    is_managed: bool = Field(default=False, description="Managed by an agent")
    remote_access: bool = Field(default=False, description="Remote access enabled")
    firmware_version: str = Field(default="", description="Firmware version")
    patch_level: str = Field(default="", description="Patch or OS level")
    install_date: str = Field(default="", description="Installation date")
    first_seen: str = Field(default="", description="First discovery timestamp")
    last_seen: str = Field(default="", description="Last discovery timestamp")
    network_segment: str = Field(default="", description="VLAN or zone")
    protocol: str = Field(default="", description="Reported protocol(s)")
    source_id: str = Field(default="", description="Originating source id")
    row_index: int = Field(default=0, description="Originating row index")

    model_config = {"extra": "forbid"}

    @property
    def has_network_address(self) -> bool:
        """True when the record carries an IP or MAC address."""
        return bool(self.ip_address or self.mac_address)

    @property
    def source_ref(self) -> str:
        """``source_id:row_index`` back-reference."""
        return f"{self.source_id}:{self.row_index}"

    def to_record(self) -> Dict[str, Any]:
        """Return the canonical fields as a plain row mapping."""
        return self.model_dump(exclude={"source_id", "row_index"})


class SourceDataset(BaseModel):
    """A parsed input file handed to the pipeline.

    Attributes:
        source_id: Identifier; generated by the pipeline when empty.
        filename: Original file name (used for type/industry hints).
        rows: Parsed row mappings.
        source_type: Declared role; detected from headers when None.
    """

    source_id: str = Field(default="", description="Source identifier")
    filename: str = Field(default="", description="Original filename")
    rows: List[Dict[str, Any]] = Field(
        default_factory=list, description="Parsed row mappings",
    )
    source_type: Optional[SourceType] = Field(
        default=None, description="Declared source role",
    )

    model_config = {"extra": "forbid"}


# =============================================================================
# Matching
# =============================================================================


class MatchResult(BaseModel):
    """Pairing of one engineering record with zero or one discovery record."""

    match_id: str = Field(..., description="Unique match identifier")
    engineering: NormalizedAsset = Field(..., description="Engineering side")
    discovered: Optional[NormalizedAsset] = Field(
        default=None, description="Discovery side, if any",
    )
    strategy: Optional[MatchStrategy] = Field(
        default=None, description="Strategy that produced the pairing",
    )
    confidence: int = Field(default=0, ge=0, le=100, description="Fixed strategy confidence")
    engineering_index: int = Field(..., ge=0, description="Engineering row position")
    discovery_index: Optional[int] = Field(
        default=None, description="Discovery row position",
    )

    model_config = {"extra": "forbid"}


class MatchStats(BaseModel):
    """Summary counts of a matching run.

    ``coverage_defined`` is False when there were no engineering rows, in
    which case ``coverage`` is reported as 0.
    """

    engineering_total: int = Field(default=0, ge=0)
    discovery_total: int = Field(default=0, ge=0)
    matched: int = Field(default=0, ge=0)
    blind_spots: int = Field(default=0, ge=0)
    orphans: int = Field(default=0, ge=0)
    coverage: int = Field(default=0, ge=0, le=100)
    coverage_defined: bool = Field(default=False)
    by_strategy: Dict[str, int] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class MatchOutcome(BaseModel):
    """Complete output of one matching run, including its consumed indices."""

    matches: List[MatchResult] = Field(default_factory=list)
    blind_spots: List[NormalizedAsset] = Field(default_factory=list)
    orphans: List[NormalizedAsset] = Field(default_factory=list)
    stats: MatchStats = Field(default_factory=MatchStats)
    used_engineering_indices: List[int] = Field(default_factory=list)
    used_discovery_indices: List[int] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Classification and validation
# =============================================================================


class TierClassification(BaseModel):
    """Security-management tier (1 must secure, 2 should secure, 3 inventory)."""

    tier: int = Field(..., ge=1, le=3, description="Security tier")
    label: str = Field(..., description="Tier label")
    reason: str = Field(..., description="Why the tier was assigned")

    model_config = {"extra": "forbid"}


class CrossValidation(BaseModel):
    """Field agreement between the two sides of a match."""

    status: ValidationStatus = Field(...)
    confidence: ValidationConfidence = Field(...)
    agreement_count: int = Field(default=0, ge=0, le=5)
    checks: Dict[str, bool] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class ReviewItem(BaseModel):
    """One asset queued for human review."""

    asset_id: str = Field(..., description="Canonical asset id")
    tag_id: str = Field(default="")
    ip_address: str = Field(default="")
    device_type: str = Field(default="")
    tier: Optional[int] = Field(default=None)
    reason: str = Field(..., description="Why review is required")

    model_config = {"extra": "forbid"}


class ReviewQueue(BaseModel):
    """Batch-level review flags raised by cross-validation."""

    low_confidence: List[ReviewItem] = Field(default_factory=list)
    suspicious_classifications: List[ReviewItem] = Field(default_factory=list)
    critical_orphans: List[ReviewItem] = Field(default_factory=list)
    unexpected_blind_spots: List[ReviewItem] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def count(self) -> int:
        """Total queued items across all categories."""
        return (
            len(self.low_confidence)
            + len(self.suspicious_classifications)
            + len(self.critical_orphans)
            + len(self.unexpected_blind_spots)
        )


# =============================================================================
# Device context and lifecycle
# =============================================================================


class IsaTagInfo(BaseModel):
    """Decoded ISA-5.1 instrument tag."""

    tag: str = Field(..., description="Upper-case tag")
    letters: str = Field(..., description="Letter prefix")
    variable: str = Field(default="unknown", description="Measured variable")
    variable_description: str = Field(default="Unknown")
    functions: List[str] = Field(default_factory=list, description="Modifier functions")
    device_function: DeviceFunction = Field(default=DeviceFunction.MEASUREMENT)
    is_safety_related: bool = Field(default=False)
    loop_number: int = Field(..., ge=0)
    suffix: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}


class DeviceContext(BaseModel):
    """Best-effort inferred device context.

    ``inference_sources`` lists the rules that fired (``isa_tag``,
    ``device_pattern``, ``device_type_field``); an empty list means nothing
    could be inferred.
    """

    device_type: str = Field(default="unknown")
    category: str = Field(default="unknown")
    description: str = Field(default="unknown")
    function: DeviceFunction = Field(default=DeviceFunction.UNKNOWN)
    criticality: Criticality = Field(default=Criticality.LOW)
    is_safety_related: bool = Field(default=False)
    process_variable: str = Field(default="unknown")
    protocol: str = Field(default="unknown")
    isa: Optional[IsaTagInfo] = Field(default=None)
    inference_sources: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def is_inferred(self) -> bool:
        """True when at least one inference rule fired."""
        return bool(self.inference_sources)


class LifecycleAssessment(BaseModel):
    """Lifecycle status of one asset at an explicit reference time."""

    status: LifecycleStatus = Field(default=LifecycleStatus.UNKNOWN)
    source: LifecycleSource = Field(default=LifecycleSource.NONE)
    vendor: Optional[str] = Field(default=None)
    product_family: Optional[str] = Field(default=None)
    eol_date: Optional[date] = Field(default=None)
    eos_date: Optional[date] = Field(default=None)
    days_until_eol: Optional[int] = Field(default=None)
    days_until_eos: Optional[int] = Field(default=None)
    replacement: Optional[str] = Field(default=None)
    severity: str = Field(default="unknown")
    estimated_age_years: Optional[int] = Field(default=None)
    estimated_remaining_years: Optional[int] = Field(default=None)
    notes: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class LifecycleCriticalItem(BaseModel):
    """Asset past end-of-support listed in a lifecycle summary."""

    asset_id: str = Field(...)
    manufacturer: str = Field(default="")
    model: str = Field(default="")
    status: LifecycleStatus = Field(...)
    replacement: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}


class Recommendation(BaseModel):
    """Prioritised action item produced by a summary."""

    priority: str = Field(..., description="critical, high or medium")
    title: str = Field(..., description="Headline")
    action: str = Field(default="", description="Suggested action")
    assets: List[str] = Field(default_factory=list, description="Sample asset ids")

    model_config = {"extra": "forbid"}


class LifecycleSummary(BaseModel):
    """Portfolio lifecycle counts and recommendations."""

    total: int = Field(default=0, ge=0)
    counts: Dict[str, int] = Field(default_factory=dict)
    critical_items: List[LifecycleCriticalItem] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Dependencies
# =============================================================================


class Dependency(BaseModel):
    """Directed dependency edge between two nodes (assets or units)."""

    source: str = Field(..., description="Upstream node id")
    target: str = Field(..., description="Downstream node id")
    dependency_type: DependencyType = Field(...)
    direction: DependencyDirection = Field(...)
    confidence: str = Field(..., description="high, medium or industry_pattern")
    unit: Optional[str] = Field(default=None)
    subnet: Optional[str] = Field(default=None)
    is_unit_level: bool = Field(default=False)
    criticality: Optional[Criticality] = Field(default=None)

    model_config = {"extra": "forbid"}


class ImpactedAsset(BaseModel):
    """Asset reached by a blast-radius traversal."""

    asset_id: str = Field(...)
    unit: str = Field(default="")
    distance: int = Field(..., ge=1, description="Hop count from the source")

    model_config = {"extra": "forbid"}


class BlastRadius(BaseModel):
    """Downstream impact of one asset failing."""

    source_asset: str = Field(...)
    directly_affected: int = Field(default=0, ge=0)
    total_affected: int = Field(default=0, ge=0)
    impacted_assets: List[ImpactedAsset] = Field(default_factory=list)
    impacted_units: List[str] = Field(default_factory=list)
    unresolved_nodes: List[str] = Field(
        default_factory=list,
        description="Reached node ids that are not assets (e.g. unit nodes)",
    )

    model_config = {"extra": "forbid"}


class CriticalPathEntry(BaseModel):
    """Asset ranked by downstream impact."""

    asset_id: str = Field(...)
    downstream_count: int = Field(default=0, ge=0)
    impacted_units: int = Field(default=0, ge=0)
    score: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class DependencyMap(BaseModel):
    """All inferred dependency edges plus the critical path ranking."""

    dependencies: List[Dependency] = Field(default_factory=list)
    critical_path: List[CriticalPathEntry] = Field(default_factory=list)
    summary: Dict[str, int] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def outgoing(self, node_id: str) -> List[Dependency]:
        """Return edges whose source is ``node_id``."""
        return [d for d in self.dependencies if d.source == node_id]


# =============================================================================
# Gaps
# =============================================================================


class Gap(BaseModel):
    """A typed, immutable gap finding."""

    gap_id: str = Field(..., description="Unique gap identifier")
    gap_type: GapType = Field(...)
    severity: GapSeverity = Field(...)
    unit: Optional[str] = Field(default=None)
    tag_id: Optional[str] = Field(default=None)
    device_type: Optional[str] = Field(default=None)
    reason: str = Field(...)
    recommendation: str = Field(default="")
    possible_causes: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid", "frozen": True}


class GapSummary(BaseModel):
    """Counts by severity, type and unit, with priority recommendations."""

    total: int = Field(default=0, ge=0)
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    affected_units: List[str] = Field(default_factory=list)
    top_recommendations: List[Recommendation] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class GapReport(BaseModel):
    """Merged, severity-sorted gap list with its family breakdown."""

    gaps: List[Gap] = Field(default_factory=list)
    asset_gaps: List[Gap] = Field(default_factory=list)
    functional_gaps: List[Gap] = Field(default_factory=list)
    coverage_gaps: List[Gap] = Field(default_factory=list)
    summary: GapSummary = Field(default_factory=GapSummary)

    model_config = {"extra": "forbid"}


# =============================================================================
# Risk
# =============================================================================


class RiskFactor(BaseModel):
    """One contributing factor in an asset risk score."""

    factor: RiskFactorType = Field(...)
    score: int = Field(..., ge=0)
    description: str = Field(...)
    details: str = Field(default="")

    model_config = {"extra": "forbid"}


class RiskAssessment(BaseModel):
    """Per-asset risk score."""

    asset_id: str = Field(...)
    unit: str = Field(default="")
    raw_score: int = Field(default=0, ge=0)
    max_possible_score: float = Field(..., gt=0)
    normalized_score: int = Field(default=0, ge=0, le=100)
    risk_level: RiskLevel = Field(default=RiskLevel.INFO)
    factors: List[RiskFactor] = Field(default_factory=list)
    top_factors: List[RiskFactor] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    def has_factor(self, factor: RiskFactorType) -> bool:
        """True when ``factor`` contributed to the score."""
        return any(f.factor == factor for f in self.factors)


class UnitRisk(BaseModel):
    """Risk aggregated over the assets of one unit."""

    unit: str = Field(...)
    assets: int = Field(default=0, ge=0)
    average_score: int = Field(default=0, ge=0, le=100)
    max_score: int = Field(default=0, ge=0, le=100)
    critical_count: int = Field(default=0, ge=0)
    high_count: int = Field(default=0, ge=0)
    risk_level: RiskLevel = Field(default=RiskLevel.LOW)

    model_config = {"extra": "forbid"}


class FactorFrequency(BaseModel):
    """How often a risk factor contributed across the portfolio."""

    factor: RiskFactorType = Field(...)
    count: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, ge=0)
    average_contribution: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}


class PortfolioRiskReport(BaseModel):
    """Portfolio-level risk aggregation."""

    total_assets: int = Field(default=0, ge=0)
    assessments: List[RiskAssessment] = Field(default_factory=list)
    distribution: Dict[str, int] = Field(default_factory=dict)
    average_score: int = Field(default=0, ge=0, le=100)
    top_risks: List[RiskAssessment] = Field(default_factory=list)
    unit_risks: List[UnitRisk] = Field(default_factory=list)
    factor_frequency: List[FactorFrequency] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Reference data
# =============================================================================


class ExpectedFunction(BaseModel):
    """Function a process unit is expected to perform."""

    function: str = Field(...)
    criticality: Criticality = Field(...)
    min_devices: int = Field(..., ge=0)
    description: str = Field(...)

    model_config = {"extra": "forbid", "frozen": True}


class ExpectedDeviceType(BaseModel):
    """Device type a process unit is expected to contain."""

    device_type: str = Field(...)
    min_count: int = Field(..., ge=0)
    description: str = Field(...)

    model_config = {"extra": "forbid", "frozen": True}


class UnitProfile(BaseModel):
    """Static knowledge about one process unit of an industry."""

    unit_id: str = Field(...)
    industry: str = Field(...)
    name: str = Field(...)
    aliases: List[str] = Field(default_factory=list)
    criticality: Criticality = Field(...)
    description: str = Field(default="")
    expected_functions: List[ExpectedFunction] = Field(default_factory=list)
    expected_device_types: List[ExpectedDeviceType] = Field(default_factory=list)
    typical_asset_count: Dict[str, int] = Field(default_factory=dict)
    regulations: List[str] = Field(default_factory=list)
    safety_notes: str = Field(default="")

    model_config = {"extra": "forbid", "frozen": True}


# =============================================================================
# Industry detection
# =============================================================================


class IndustryScore(BaseModel):
    """Pattern weight of one candidate industry."""

    industry_id: str = Field(...)
    name: str = Field(...)
    score: int = Field(default=0, ge=0)
    percentage: int = Field(default=0, ge=0, le=100)

    model_config = {"extra": "forbid"}


class IndustryDetection(BaseModel):
    """Industry detection verdict; ``detected`` is None unless reliable."""

    detected: Optional[str] = Field(default=None)
    name: Optional[str] = Field(default=None)
    confidence: int = Field(default=0, ge=0, le=100)
    is_reliable: bool = Field(default=False)
    scores: List[IndustryScore] = Field(default_factory=list)
    sample_size: int = Field(default=0, ge=0)
    reason: str = Field(default="")

    model_config = {"extra": "forbid"}


# =============================================================================
# Provenance
# =============================================================================


class ProvenanceEvent(BaseModel):
    """One append-only, chain-hashed provenance event."""

    sequence: int = Field(..., ge=0)
    session_id: str = Field(...)
    event_type: ProvenanceEventType = Field(...)
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp")
    asset_id: Optional[str] = Field(default=None)
    payload: Dict[str, Any] = Field(default_factory=dict)
    chain_hash: str = Field(...)

    model_config = {"extra": "forbid", "frozen": True}


class AuditPackage(BaseModel):
    """Tamper-evident audit package for a session."""

    session_id: str = Field(...)
    start_time: str = Field(...)
    end_time: str = Field(...)
    evidence_hash: str = Field(...)
    chain_hash: str = Field(..., description="Hash of the last event")
    summary: Dict[str, int] = Field(default_factory=dict)
    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    events: List[ProvenanceEvent] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Canonical output
# =============================================================================


class CanonicalAsset(BaseModel):
    """Reconciled asset enriched with every analysis result of a run.

    Network identity prefers the discovery side, engineering attributes the
    engineering side and operational state the discovery side.
    """

    asset_id: str = Field(...)
    status: ReconciliationStatus = Field(...)
    tag_id: str = Field(default="")
    ip_address: str = Field(default="")
    mac_address: str = Field(default="")
    hostname: str = Field(default="")
    plant: str = Field(default="")
    unit: str = Field(default="")
    device_type: str = Field(default="")
    manufacturer: str = Field(default="")
    model: str = Field(default="")
    install_date: str = Field(default="")
    first_seen: str = Field(default="")
    last_seen: str = Field(default="")
    is_managed: bool = Field(default=False)
    remote_access: bool = Field(default=False)
    vulnerabilities: int = Field(default=0)
    firmware_version: str = Field(default="")
    network_segment: str = Field(default="")
    match_strategy: Optional[MatchStrategy] = Field(default=None)
    match_confidence: int = Field(default=0, ge=0, le=100)
    classification: TierClassification = Field(...)
    validation: CrossValidation = Field(...)
    context: DeviceContext = Field(default_factory=DeviceContext)
    lifecycle: LifecycleAssessment = Field(default_factory=LifecycleAssessment)
    risk: Optional[RiskAssessment] = Field(default=None)
    engineering: Optional[NormalizedAsset] = Field(default=None)
    discovered: Optional[NormalizedAsset] = Field(default=None)
    provenance: Dict[str, Optional[str]] = Field(default_factory=dict)

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def has_network_address(self) -> bool:
        """True when the asset carries an IP or MAC address."""
        return bool(self.ip_address or self.mac_address)


class CanonizationResult(BaseModel):
    """Complete output of one canonization run."""

    run_id: str = Field(...)
    status: RunStatus = Field(...)
    industry: Optional[str] = Field(default=None)
    industry_detection: Optional[IndustryDetection] = Field(default=None)
    assets: List[CanonicalAsset] = Field(default_factory=list)
    match_stats: MatchStats = Field(default_factory=MatchStats)
    review: ReviewQueue = Field(default_factory=ReviewQueue)
    dependency_map: DependencyMap = Field(default_factory=DependencyMap)
    gap_report: GapReport = Field(default_factory=GapReport)
    risk_report: PortfolioRiskReport = Field(default_factory=PortfolioRiskReport)
    lifecycle_summary: LifecycleSummary = Field(default_factory=LifecycleSummary)
    audit: Optional[AuditPackage] = Field(default=None)
    errors: List[str] = Field(default_factory=list)
    reference_time: str = Field(...)
    duration_ms: float = Field(default=0.0, ge=0.0)

    model_config = {"extra": "forbid"}

    @property
    def blind_spots(self) -> List[CanonicalAsset]:
        """Canonical assets found only in the engineering baseline."""
        return [a for a in self.assets if a.status == ReconciliationStatus.BLIND_SPOT]

    @property
    def orphans(self) -> List[CanonicalAsset]:
        """Canonical assets found only by discovery."""
        return [a for a in self.assets if a.status == ReconciliationStatus.ORPHAN]

    @property
    def matched(self) -> List[CanonicalAsset]:
        """Canonical assets present in both inventories."""
        return [a for a in self.assets if a.status == ReconciliationStatus.MATCHED]


__all__ = [
    "SEVERITY_RANK",
    "CRITICALITY_ORDER",
    "SourceType",
    "MatchStrategy",
    "ReconciliationStatus",
    "ValidationStatus",
    "ValidationConfidence",
    "Criticality",
    "DeviceFunction",
    "LifecycleStatus",
    "LifecycleSource",
    "DependencyType",
    "DependencyDirection",
    "GapType",
    "GapSeverity",
    "RiskLevel",
    "RiskFactorType",
    "ProvenanceEventType",
    "OutputLevel",
    "RunStatus",
    "RawRecord",
    "NormalizedAsset",
    "SourceDataset",
    "MatchResult",
    "MatchStats",
    "MatchOutcome",
    "TierClassification",
    "CrossValidation",
    "ReviewItem",
    "ReviewQueue",
    "IsaTagInfo",
    "DeviceContext",
    "LifecycleAssessment",
    "LifecycleCriticalItem",
    "Recommendation",
    "LifecycleSummary",
    "Dependency",
    "ImpactedAsset",
    "BlastRadius",
    "CriticalPathEntry",
    "DependencyMap",
    "Gap",
    "GapSummary",
    "GapReport",
    "RiskFactor",
    "RiskAssessment",
    "UnitRisk",
    "FactorFrequency",
    "PortfolioRiskReport",
    "ExpectedFunction",
    "ExpectedDeviceType",
    "UnitProfile",
    "IndustryScore",
    "IndustryDetection",
    "ProvenanceEvent",
    "AuditPackage",
    "CanonicalAsset",
    "CanonizationResult",
]
