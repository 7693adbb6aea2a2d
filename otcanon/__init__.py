# -*- coding: utf-8 -*-
"""
OT Canon: OT Asset Canonization Core
====================================

This package reconciles an engineering baseline (design / CMMS records) with
a network discovery feed (scanner / agent output) into one canonical,
risk-scored register of industrial control-system assets. It supports:

- Field normalization of arbitrary source columns onto a canonical schema,
  with source-type detection for unlabelled files
- Industry detection (oil & gas, pharmaceutical, power & utilities,
  automotive) from terminology patterns, plus a per-industry unit knowledge
  base of expected functions and device types
- Multi-strategy record matching (tag, IP, hostname, MAC) producing matched
  pairs, blind spots and orphans
- Security tier classification and cross-validation of matched pairs, with a
  human review queue
- Device context inference from ISA-5.1 tags and device text, and lifecycle
  (EOL/EOS) analysis against a vendor reference table
- Dependency mapping (control, network and industry template edges), blast
  radius and critical path ranking
- Asset, functional and coverage gap analysis
- Per-asset and portfolio risk scoring
- SHA-256 chain-hashed provenance with a tamper-evident audit package
- 11 Prometheus metrics for observability

Key Components:
    - config: OTCanonConfig with OTC_ env prefix
    - models: Pydantic v2 data models
    - normalizer: Canonical field normalization
    - industry_detector: Industry vertical detection
    - unit_knowledge: Per-industry process unit reference data
    - device_context: ISA-5.1 and device pattern inference
    - lifecycle_analyzer: EOL/EOS lifecycle analysis
    - matching_engine: Engineering/discovery record linkage
    - tier_classifier: Security tier classification
    - cross_validator: Match agreement scoring and review queue
    - dependency_mapper: Dependency graph, blast radius, critical path
    - gap_analyzer: Asset, functional and coverage gaps
    - risk_engine: Asset and portfolio risk scoring
    - provenance: SHA-256 chain-hashed audit trail
    - canonization_pipeline: End-to-end orchestration
    - setup: Service facade

Example:
    >>> from otcanon import OTCanonService
    >>> service = OTCanonService()
    >>> service.startup()
    >>> result = service.canonize(
    ...     engineering=[{"tag_id": "FT-200"}],
    ...     discovery=[{"tag_id": "FT-200", "ip_address": "10.0.0.5"}],
    ... )
    >>> result.match_stats.matched
    1

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from otcanon.config import (
    OTCanonConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from otcanon.models import (
    CanonicalAsset,
    CanonizationResult,
    Gap,
    NormalizedAsset,
    RiskAssessment,
    SourceDataset,
)

# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------
from otcanon.provenance import ProvenanceTracker

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from otcanon.normalizer import FieldNormalizer
from otcanon.industry_detector import IndustryDetectorEngine
from otcanon.device_context import DeviceContextEngine, parse_isa_tag
from otcanon.lifecycle_analyzer import LifecycleAnalyzerEngine
from otcanon.matching_engine import MatchingEngine
from otcanon.tier_classifier import classify_security_tier
from otcanon.cross_validator import CrossValidatorEngine
from otcanon.dependency_mapper import DependencyMapperEngine
from otcanon.gap_analyzer import GapAnalyzerEngine
from otcanon.risk_engine import RiskEngine, is_private_ip
from otcanon.canonization_pipeline import CanonizationPipelineEngine

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from otcanon.setup import (
    OTCanonService,
    get_service,
    reset_service,
)


__all__ = [
    "__version__",
    # Configuration
    "OTCanonConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
    "CanonicalAsset",
    "CanonizationResult",
    "Gap",
    "NormalizedAsset",
    "RiskAssessment",
    "SourceDataset",
    # Provenance
    "ProvenanceTracker",
    # Engines
    "FieldNormalizer",
    "IndustryDetectorEngine",
    "DeviceContextEngine",
    "parse_isa_tag",
    "LifecycleAnalyzerEngine",
    "MatchingEngine",
    "classify_security_tier",
    "CrossValidatorEngine",
    "DependencyMapperEngine",
    "GapAnalyzerEngine",
    "RiskEngine",
    "is_private_ip",
    "CanonizationPipelineEngine",
    # Service
    "OTCanonService",
    "get_service",
    "reset_service",
]
