# -*- coding: utf-8 -*-
"""
Field Normalizer Engine - OT Canon Asset Canonization

Maps arbitrary source column names onto the canonical asset schema. Keys are
case-folded with whitespace and hyphens replaced by underscores, then each
canonical field takes the first non-empty value among its ordered alias list.
Normalization is total (missing data degrades to ``""``, ``0`` or ``False``)
and idempotent.

Also detects the role of an unlabelled source (engineering baseline,
network discovery or other) from its headers and filename.

Example:
    >>> from otcanon.normalizer import FieldNormalizer
    >>> normalizer = FieldNormalizer()
    >>> asset = normalizer.normalize_record({"Tag": " tic-101 ", "IP": "10.0.0.5"})
    >>> asset.tag_id, asset.ip_address
    ('TIC-101', '10.0.0.5')

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from otcanon.models import NormalizedAsset, RawRecord, SourceType

logger = logging.getLogger(__name__)

__all__ = [
    "FIELD_ALIASES",
    "TRUTHY_TOKENS",
    "FieldNormalizer",
    "normalize_key",
    "parse_boolean",
    "parse_int",
    "detect_source_type",
]


# ---------------------------------------------------------------------------
# Alias tables
# ---------------------------------------------------------------------------

#: Ordered aliases per canonical field; first non-empty wins.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "tag_id": ("tag_id", "tag", "asset_tag", "asset_id", "tag_name", "instrument_tag"),
    "ip_address": ("ip_address", "ip", "ip_addr", "ipv4"),
    "mac_address": ("mac_address", "mac"),
    "hostname": ("hostname", "host", "device_name", "host_name"),
    "plant": ("plant", "site", "facility"),
    "unit": ("unit", "area", "process_unit", "location"),
    "device_type": ("device_type", "type", "instrument_type", "asset_type", "category"),
    "manufacturer": ("manufacturer", "vendor", "make"),
    "model": ("model", "device_model", "product"),
    "criticality": ("criticality", "asset_criticality"),
    "security_tier": ("security_tier", "tier"),
    "vulnerabilities": ("vulnerabilities", "vuln_count", "cve_count"),
    "is_managed": ("is_managed", "managed"),
    "remote_access": ("remote_access", "remote"),
    "firmware_version": ("firmware_version", "firmware", "fw_version"),
    "patch_level": ("patch_level", "patch_status", "os_version"),
    "install_date": ("install_date", "installation_date", "commissioned"),
    "first_seen": ("first_seen", "discovered", "first_discovered"),
    "last_seen": ("last_seen", "last_seen_at"),
    "network_segment": ("network_segment", "segment", "vlan", "zone"),
    "protocol": ("protocol", "protocols"),
}

_INT_FIELDS = frozenset({"vulnerabilities"})
_BOOL_FIELDS = frozenset({"is_managed", "remote_access"})
_UPPER_FIELDS = frozenset({"tag_id", "mac_address"})

#: Case-insensitive string tokens parsed as True.
TRUTHY_TOKENS = frozenset({"true", "yes", "1"})

_KEY_SEPARATORS = re.compile(r"[\s\-]+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Header fragments that identify a source role
_ENGINEERING_HEADERS = ("tag_id", "tag", "asset_tag", "instrument")
_DISCOVERY_HEADERS = ("last_seen", "discovered", "mac_address")
_ENGINEERING_FILENAMES = ("engineering", "baseline")
_DISCOVERY_FILENAMES = ("discovery", "claroty")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def normalize_key(key: Any) -> str:
    """Case-fold a column name and replace whitespace/hyphen runs with ``_``."""
    return _KEY_SEPARATORS.sub("_", str(key if key is not None else "").strip().lower())


def parse_boolean(value: Any) -> bool:
    """Parse a truthy token.

    Only ``True``, the integer ``1`` and the strings ``true``, ``yes`` and
    ``1`` (any case, surrounding whitespace ignored) are true.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_TOKENS
    return False


def parse_int(value: Any) -> int:
    """Parse an integer leniently; anything unparseable becomes 0.

    A leading integer is accepted (``"3 critical"`` -> 3) and floats are
    truncated.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else 0
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    return int(match.group(1))


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ",".join(str(v).strip() for v in value if not _is_empty(v))
    return str(value).strip()


def detect_source_type(headers: Iterable[Any], filename: str = "") -> SourceType:
    """Infer the role of a source from its column headers and filename.

    Header evidence wins over the filename: any tag-like header means an
    engineering baseline, then any discovery-style header (``last_seen``,
    ``discovered``, ``mac_address``) means a discovery export.

    Args:
        headers: Column names of the source.
        filename: Original filename, used as a fallback hint.

    Returns:
        SourceType.ENGINEERING, SourceType.DISCOVERY or SourceType.OTHER.
    """
    lowered = [str(h).lower() for h in headers]
    name = (filename or "").lower()

    if any(frag in h for h in lowered for frag in _ENGINEERING_HEADERS):
        return SourceType.ENGINEERING
    if any(frag in h for h in lowered for frag in _DISCOVERY_HEADERS):
        return SourceType.DISCOVERY
    if any(frag in name for frag in _ENGINEERING_FILENAMES):
        return SourceType.ENGINEERING
    if any(frag in name for frag in _DISCOVERY_FILENAMES):
        return SourceType.DISCOVERY
    return SourceType.OTHER


# ---------------------------------------------------------------------------
# FieldNormalizer Engine
# ---------------------------------------------------------------------------


class FieldNormalizer:
    """Canonical field normalization engine.

    Stateless apart from aggregate statistics, which are guarded by a lock
    so a single instance can be shared across threads.

    Attributes:
        _lock: Threading lock for statistics.
        _stats: Aggregate normalization statistics.

    Example:
        >>> normalizer = FieldNormalizer()
        >>> rows = normalizer.normalize_dataset([{"tag": "FT-200"}], "eng-1")
        >>> rows[0].source_ref
        'eng-1:0'
    """

    def __init__(self) -> None:
        """Initialize FieldNormalizer."""
        self._lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            "records_normalized": 0,
            "datasets_normalized": 0,
            "total_time_ms": 0.0,
        }
        logger.info(
            "FieldNormalizer initialized: %d canonical fields", len(FIELD_ALIASES),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def normalize_record(
        self,
        row: Union[Mapping[str, Any], RawRecord, NormalizedAsset, None],
        source_id: str = "",
        row_index: int = 0,
    ) -> NormalizedAsset:
        """Normalize one source row into a NormalizedAsset.

        Never raises on malformed values; they degrade to typed defaults.

        Args:
            row: Raw column mapping, a RawRecord, or an already normalized
                asset (which is re-normalized to itself).
            source_id: Source dataset identifier.
            row_index: Zero-based row position within the source.

        Returns:
            NormalizedAsset with every canonical field populated.
        """
        if isinstance(row, NormalizedAsset):
            source_id = source_id or row.source_id
            row_index = row_index or row.row_index
            row = row.to_record()
        elif isinstance(row, RawRecord):
            source_id = source_id or row.source_id
            row_index = row_index or row.row_index
            row = row.values

        keyed: Dict[str, Any] = {}
        for key, value in (row or {}).items():
            norm = normalize_key(key)
            # First spelling of a normalized key wins
            if norm not in keyed or _is_empty(keyed[norm]):
                keyed[norm] = value

        fields: Dict[str, Any] = {}
        for field_name, aliases in FIELD_ALIASES.items():
            raw = self._first_present(keyed, aliases)
            if field_name in _INT_FIELDS:
                fields[field_name] = parse_int(raw)
            elif field_name in _BOOL_FIELDS:
                fields[field_name] = parse_boolean(raw)
            else:
                text = _as_text(raw)
                fields[field_name] = text.upper() if field_name in _UPPER_FIELDS else text

        with self._lock:
            self._stats["records_normalized"] += 1

        return NormalizedAsset(
            source_id=source_id or "",
            row_index=max(int(row_index or 0), 0),
            **fields,
        )

    def normalize_dataset(
        self,
        rows: Sequence[Mapping[str, Any]],
        source_id: str = "",
    ) -> List[NormalizedAsset]:
        """Normalize every row of one source, preserving row order.

        Args:
            rows: Parsed row mappings.
            source_id: Source dataset identifier.

        Returns:
            List of NormalizedAsset, one per input row.
        """
        start = time.monotonic()
        assets = [
            self.normalize_record(row, source_id, index)
            for index, row in enumerate(rows)
        ]
        elapsed_ms = (time.monotonic() - start) * 1000.0

        with self._lock:
            self._stats["datasets_normalized"] += 1
            self._stats["total_time_ms"] += elapsed_ms

        logger.info(
            "Normalized dataset %s: %d rows in %.1fms",
            source_id or "<unnamed>", len(assets), elapsed_ms,
        )
        return assets

    def detect_source_type(
        self, headers: Iterable[Any], filename: str = "",
    ) -> SourceType:
        """Infer the role of a source. See :func:`detect_source_type`."""
        return detect_source_type(headers, filename)

    def parse_boolean(self, value: Any) -> bool:
        """Parse a truthy token. See :func:`parse_boolean`."""
        return parse_boolean(value)

    def parse_int(self, value: Any) -> int:
        """Parse an integer leniently. See :func:`parse_int`."""
        return parse_int(value)

    def get_statistics(self) -> Dict[str, Any]:
        """Return aggregate normalization statistics."""
        with self._lock:
            return dict(self._stats)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _first_present(keyed: Mapping[str, Any], aliases: Sequence[str]) -> Optional[Any]:
        for alias in aliases:
            value = keyed.get(alias)
            if not _is_empty(value):
                return value
        return None
