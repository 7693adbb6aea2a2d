# -*- coding: utf-8 -*-
"""
Prometheus Metrics - OT Canon Asset Canonization

11 Prometheus metrics for canonization service monitoring.

Metrics:
    1.  otc_runs_total (Counter, labels: status)
    2.  otc_records_normalized_total (Counter, labels: source_type)
    3.  otc_matches_total (Counter, labels: strategy)
    4.  otc_gaps_total (Counter, labels: gap_type, severity)
    5.  otc_risk_assessments_total (Counter, labels: risk_level)
    6.  otc_errors_total (Counter, labels: stage)
    7.  otc_stage_duration_seconds (Histogram, labels: stage)
    8.  otc_risk_score (Histogram, buckets: 10-100)
    9.  otc_coverage_percent (Gauge)
    10. otc_pending_reviews (Gauge)
    11. otc_active_runs (Gauge)

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Canonization runs by final status
otc_runs_total = Counter(
    "otc_runs_total",
    "Total canonization runs",
    labelnames=["status"],
)

# 2. Records normalized by source type
otc_records_normalized_total = Counter(
    "otc_records_normalized_total",
    "Total source records normalized",
    labelnames=["source_type"],
)

# 3. Matches by strategy
otc_matches_total = Counter(
    "otc_matches_total",
    "Total engineering/discovery matches",
    labelnames=["strategy"],
)

# 4. Gaps by type and severity
otc_gaps_total = Counter(
    "otc_gaps_total",
    "Total gaps identified",
    labelnames=["gap_type", "severity"],
)

# 5. Risk assessments by level
otc_risk_assessments_total = Counter(
    "otc_risk_assessments_total",
    "Total asset risk assessments",
    labelnames=["risk_level"],
)

# 6. Errors by pipeline stage
otc_errors_total = Counter(
    "otc_errors_total",
    "Total processing errors encountered",
    labelnames=["stage"],
)

# 7. Stage duration histogram
otc_stage_duration_seconds = Histogram(
    "otc_stage_duration_seconds",
    "Canonization stage duration in seconds",
    labelnames=["stage"],
    buckets=(
        0.01, 0.05, 0.1, 0.25, 0.5, 1.0,
        2.5, 5.0, 10.0, 30.0, 60.0, 300.0,
    ),
)

# 8. Normalized risk score distribution
otc_risk_score = Histogram(
    "otc_risk_score",
    "Normalized asset risk score distribution",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)

# 9. Coverage of the most recent run
otc_coverage_percent = Gauge(
    "otc_coverage_percent",
    "Engineering coverage of the most recent run in percent",
)

# 10. Review queue size of the most recent run
otc_pending_reviews = Gauge(
    "otc_pending_reviews",
    "Assets awaiting human review",
)

# 11. Runs in progress
otc_active_runs = Gauge(
    "otc_active_runs",
    "Number of canonization runs in progress",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def inc_runs(status: str) -> None:
    """Record a completed canonization run.

    Args:
        status: Final run status (COMPLETE, PENDING_REVIEW, FAILED).
    """
    otc_runs_total.labels(status=status).inc()


def inc_records_normalized(source_type: str, count: int = 1) -> None:
    """Record normalized source records.

    Args:
        source_type: engineering, discovery or other.
        count: Number of records.
    """
    if count > 0:
        otc_records_normalized_total.labels(source_type=source_type).inc(count)


def inc_matches(strategy: str, count: int = 1) -> None:
    """Record matches produced by one strategy."""
    if count > 0:
        otc_matches_total.labels(strategy=strategy).inc(count)


def inc_gaps(gap_type: str, severity: str) -> None:
    """Record one identified gap."""
    otc_gaps_total.labels(gap_type=gap_type, severity=severity).inc()


def inc_risk_assessments(risk_level: str) -> None:
    """Record one asset risk assessment."""
    otc_risk_assessments_total.labels(risk_level=risk_level).inc()


def inc_errors(stage: str) -> None:
    """Record a processing error.

    Args:
        stage: Pipeline stage that failed.
    """
    otc_errors_total.labels(stage=stage).inc()


def observe_duration(stage: str, seconds: float) -> None:
    """Record the duration of one pipeline stage."""
    otc_stage_duration_seconds.labels(stage=stage).observe(seconds)


def observe_risk_score(score: float) -> None:
    otc_risk_score.observe(score)


def set_coverage(coverage: float) -> None:
    otc_coverage_percent.set(coverage)


def set_pending_reviews(count: int) -> None:
    otc_pending_reviews.set(count)


def set_active_runs(delta: int) -> None:
    """Adjust the number of runs in progress by ``delta``."""
    if delta >= 0:
        otc_active_runs.inc(delta)
    else:
        otc_active_runs.dec(-delta)


__all__ = [
    "otc_runs_total",
    "otc_records_normalized_total",
    "otc_matches_total",
    "otc_gaps_total",
    "otc_risk_assessments_total",
    "otc_errors_total",
    "otc_stage_duration_seconds",
    "otc_risk_score",
    "otc_coverage_percent",
    "otc_pending_reviews",
    "otc_active_runs",
    "inc_runs",
    "inc_records_normalized",
    "inc_matches",
    "inc_gaps",
    "inc_risk_assessments",
    "inc_errors",
    "observe_duration",
    "observe_risk_score",
    "set_coverage",
    "set_pending_reviews",
    "set_active_runs",
]
