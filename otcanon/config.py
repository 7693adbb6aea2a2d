# -*- coding: utf-8 -*-
"""
OT Canon Service Configuration

Centralized configuration for the OT asset canonization core covering:
- Run limits (record cap, worker pool size, operation deadline)
- Industry detection thresholds (sample size, confidence, weight)
- Staleness and lifecycle horizons
- Coverage and visibility thresholds for gap analysis
- Risk scoring normalisation and report limits
- Review queue limits and default output level
- Provenance and metrics switches, logging

All settings can be overridden via environment variables with the
``OTC_`` prefix (e.g. ``OTC_STALE_AFTER_DAYS``).

Example:
    >>> from otcanon.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.stale_after_days, cfg.risk_score_denominator)

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "OTC_"

_OUTPUT_LEVELS = ("basic", "standard", "premium")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# OTCanonConfig
# ---------------------------------------------------------------------------


@dataclass
class OTCanonConfig:
    """Complete configuration for the OT Canon reconciliation core.

    Attributes are grouped by concern: run limits, industry detection,
    staleness and lifecycle, coverage thresholds, risk scoring, review
    limits, provenance and logging.

    All attributes can be overridden via environment variables using the
    ``OTC_`` prefix.

    Attributes:
        max_records: Maximum rows accepted per side in a single run.
        max_workers: Thread pool size for per-asset enrichment (1 = serial).
        operation_timeout_seconds: Deadline for matching and dependency
            inference; 0 disables the deadline.
        industry_sample_size: Rows sampled for industry detection.
        industry_min_confidence: Minimum confidence percentage for a
            reliable industry detection.
        industry_min_weight: Best-industry weight that must be exceeded
            for a reliable detection.
        stale_after_days: Days since last seen before an asset is stale.
        stale_escalation_days: Days since last seen before staleness
            escalates to HIGH severity.
        approaching_eol_days: Days before end-of-life that count as
            approaching end-of-life.
        obsolete_after_days: Days past end-of-support that count as
            obsolete.
        low_visibility_pct: Unit coverage percentage below which a
            LOW_VISIBILITY gap is raised.
        low_visibility_min_assets: Engineering asset count a unit must
            exceed before LOW_VISIBILITY applies.
        network_blind_spot_min_assets: Engineering IP count a /24 subnet
            must exceed before NETWORK_BLIND_SPOT applies.
        high_downstream_threshold: Outgoing dependency count above which
            the high downstream risk factor applies.
        risk_score_denominator: Fixed raw-score denominator used to
            normalise risk to 0-100.
        critical_path_limit: Maximum entries in the critical path list.
        top_risk_limit: Maximum entries in the portfolio top-risk list.
        review_low_confidence_limit: Cap for low-confidence review items.
        review_suspicious_limit: Cap for suspicious classification items.
        review_orphan_limit: Cap for critical orphan and unexpected blind
            spot review items.
        default_output_level: Output level used when none is requested.
        max_stored_runs: Runs the service keeps in memory; the oldest is
            evicted first.
        enable_provenance: Whether pipeline runs record provenance events.
        enable_metrics: Whether engines update Prometheus metrics.
        genesis_hash: Seed string for the provenance chain genesis hash.
        log_level: Logging level for the service.
    """

    # -- Run limits ----------------------------------------------------------
    max_records: int = 100_000
    max_workers: int = 1
    operation_timeout_seconds: float = 0.0

    # -- Industry detection --------------------------------------------------
    industry_sample_size: int = 500
    industry_min_confidence: int = 30
    industry_min_weight: int = 10

    # -- Staleness and lifecycle ---------------------------------------------
    stale_after_days: int = 30
    stale_escalation_days: int = 90
    approaching_eol_days: int = 730
    obsolete_after_days: int = 1095

    # -- Coverage thresholds -------------------------------------------------
    low_visibility_pct: int = 30
    low_visibility_min_assets: int = 5
    network_blind_spot_min_assets: int = 2

    # -- Risk scoring --------------------------------------------------------
    high_downstream_threshold: int = 5
    risk_score_denominator: float = 150.0
    critical_path_limit: int = 20
    top_risk_limit: int = 10

    # -- Review queue --------------------------------------------------------
    review_low_confidence_limit: int = 30
    review_suspicious_limit: int = 20
    review_orphan_limit: int = 20
    default_output_level: str = "standard"
    max_stored_runs: int = 100

    # -- Provenance and metrics ----------------------------------------------
    enable_provenance: bool = True
    enable_metrics: bool = True
    genesis_hash: str = "otcanon-asset-canonization-genesis"

    # -- Logging -------------------------------------------------------------
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate field constraints after construction.

        Raises:
            ValueError: If any field holds an out-of-range value.
        """
        errors: List[str] = []

        if self.max_records <= 0:
            errors.append("max_records must be > 0")
        if self.max_workers < 1:
            errors.append("max_workers must be >= 1")
        if self.operation_timeout_seconds < 0:
            errors.append("operation_timeout_seconds must be >= 0")
        if self.industry_sample_size <= 0:
            errors.append("industry_sample_size must be > 0")
        if not 0 <= self.industry_min_confidence <= 100:
            errors.append("industry_min_confidence must be in [0, 100]")
        if self.industry_min_weight < 0:
            errors.append("industry_min_weight must be >= 0")
        if self.stale_after_days <= 0:
            errors.append("stale_after_days must be > 0")
        if self.stale_escalation_days < self.stale_after_days:
            errors.append(
                "stale_escalation_days must be >= stale_after_days"
            )
        if self.approaching_eol_days < 0:
            errors.append("approaching_eol_days must be >= 0")
        if self.obsolete_after_days < 0:
            errors.append("obsolete_after_days must be >= 0")
        if not 0 <= self.low_visibility_pct <= 100:
            errors.append("low_visibility_pct must be in [0, 100]")
        if self.low_visibility_min_assets < 0:
            errors.append("low_visibility_min_assets must be >= 0")
        if self.network_blind_spot_min_assets < 0:
            errors.append("network_blind_spot_min_assets must be >= 0")
        if self.high_downstream_threshold < 0:
            errors.append("high_downstream_threshold must be >= 0")
        if self.risk_score_denominator <= 0:
            errors.append("risk_score_denominator must be > 0")
        for name in (
            "critical_path_limit",
            "top_risk_limit",
            "review_low_confidence_limit",
            "review_suspicious_limit",
            "review_orphan_limit",
            "max_stored_runs",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name} must be > 0")
        if self.default_output_level not in _OUTPUT_LEVELS:
            errors.append(
                f"default_output_level must be one of {_OUTPUT_LEVELS}, "
                f"got '{self.default_output_level}'"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            errors.append(
                f"log_level must be one of {_LOG_LEVELS}, "
                f"got '{self.log_level}'"
            )

        if errors:
            raise ValueError(
                "OTCanonConfig validation failed: " + "; ".join(errors)
            )

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> OTCanonConfig:
        """Build an OTCanonConfig from environment variables.

        Every field can be overridden via ``OTC_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Integer values are parsed via ``int()``.
        Float values are parsed via ``float()``.

        Returns:
            Populated OTCanonConfig instance.

        Raises:
            ValueError: If the resulting values fail validation.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _float(name: str, default: float) -> float:
            val = _env(name)
            if val is None:
                return default
            try:
                return float(val)
            except ValueError:
                logger.warning(
                    "Invalid float for %s%s=%s, using default %f",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None:
                return default
            return val

        config = cls(
            # Run limits
            max_records=_int("MAX_RECORDS", cls.max_records),
            max_workers=_int("MAX_WORKERS", cls.max_workers),
            operation_timeout_seconds=_float(
                "OPERATION_TIMEOUT_SECONDS", cls.operation_timeout_seconds,
            ),
            # Industry detection
            industry_sample_size=_int(
                "INDUSTRY_SAMPLE_SIZE", cls.industry_sample_size,
            ),
            industry_min_confidence=_int(
                "INDUSTRY_MIN_CONFIDENCE", cls.industry_min_confidence,
            ),
            industry_min_weight=_int(
                "INDUSTRY_MIN_WEIGHT", cls.industry_min_weight,
            ),
            # Staleness and lifecycle
            stale_after_days=_int("STALE_AFTER_DAYS", cls.stale_after_days),
            stale_escalation_days=_int(
                "STALE_ESCALATION_DAYS", cls.stale_escalation_days,
            ),
            approaching_eol_days=_int(
                "APPROACHING_EOL_DAYS", cls.approaching_eol_days,
            ),
            obsolete_after_days=_int(
                "OBSOLETE_AFTER_DAYS", cls.obsolete_after_days,
            ),
            # Coverage thresholds
            low_visibility_pct=_int(
                "LOW_VISIBILITY_PCT", cls.low_visibility_pct,
            ),
            low_visibility_min_assets=_int(
                "LOW_VISIBILITY_MIN_ASSETS", cls.low_visibility_min_assets,
            ),
            network_blind_spot_min_assets=_int(
                "NETWORK_BLIND_SPOT_MIN_ASSETS",
                cls.network_blind_spot_min_assets,
            ),
            # Risk scoring
            high_downstream_threshold=_int(
                "HIGH_DOWNSTREAM_THRESHOLD", cls.high_downstream_threshold,
            ),
            risk_score_denominator=_float(
                "RISK_SCORE_DENOMINATOR", cls.risk_score_denominator,
            ),
            critical_path_limit=_int(
                "CRITICAL_PATH_LIMIT", cls.critical_path_limit,
            ),
            top_risk_limit=_int("TOP_RISK_LIMIT", cls.top_risk_limit),
            # Review queue
            review_low_confidence_limit=_int(
                "REVIEW_LOW_CONFIDENCE_LIMIT",
                cls.review_low_confidence_limit,
            ),
            review_suspicious_limit=_int(
                "REVIEW_SUSPICIOUS_LIMIT", cls.review_suspicious_limit,
            ),
            review_orphan_limit=_int(
                "REVIEW_ORPHAN_LIMIT", cls.review_orphan_limit,
            ),
            default_output_level=_str(
                "DEFAULT_OUTPUT_LEVEL", cls.default_output_level,
            ),
            max_stored_runs=_int("MAX_STORED_RUNS", cls.max_stored_runs),
            # Provenance and metrics
            enable_provenance=_bool(
                "ENABLE_PROVENANCE", cls.enable_provenance,
            ),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            genesis_hash=_str("GENESIS_HASH", cls.genesis_hash),
            # Logging
            log_level=_str("LOG_LEVEL", cls.log_level),
        )

        logger.info(
            "OTCanonConfig loaded: max_records=%d, workers=%d, timeout=%.1fs, "
            "industry=[sample=%d conf=%d weight=%d], stale=%d/%d days, "
            "eol=[approaching=%d obsolete=%d], visibility=[pct=%d min=%d "
            "subnet=%d], risk=[downstream=%d denom=%.1f], output=%s, "
            "provenance=%s, metrics=%s",
            config.max_records,
            config.max_workers,
            config.operation_timeout_seconds,
            config.industry_sample_size,
            config.industry_min_confidence,
            config.industry_min_weight,
            config.stale_after_days,
            config.stale_escalation_days,
            config.approaching_eol_days,
            config.obsolete_after_days,
            config.low_visibility_pct,
            config.low_visibility_min_assets,
            config.network_blind_spot_min_assets,
            config.high_downstream_threshold,
            config.risk_score_denominator,
            config.default_output_level,
            config.enable_provenance,
            config.enable_metrics,
        )
        return config


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[OTCanonConfig] = None
_config_lock = threading.Lock()


def get_config() -> OTCanonConfig:
    """Return the singleton OTCanonConfig, creating from env if needed.

    Uses double-checked locking for thread safety with minimal
    contention on the hot path.

    Returns:
        OTCanonConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = OTCanonConfig.from_env()
    return _config_instance


def set_config(config: OTCanonConfig) -> None:
    """Replace the singleton OTCanonConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("OTCanonConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "OTCanonConfig",
    "get_config",
    "set_config",
    "reset_config",
]
