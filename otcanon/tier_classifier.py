# -*- coding: utf-8 -*-
"""
Security Tier Classifier - OT Canon Asset Canonization

Assigns every asset to one of three security-management tiers from its
device type text and whether it carries a network address:

    Tier 1 "Critical Network Asset"  must secure
    Tier 2 "Networkable Device"      should secure
    Tier 3 "Passive/Analog"          inventory only

Precedence is tier 1 > tier 2 > tier 3. Classification is a pure, total
function.

Example:
    >>> from otcanon.tier_classifier import classify_security_tier
    >>> classify_security_tier("ControlLogix PLC").tier
    1
    >>> classify_security_tier("Pressure Gauge").tier
    3

Author: OT Canon Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

from typing import Any, Tuple

from otcanon.models import TierClassification

__all__ = [
    "TIER1_KEYWORDS",
    "TIER2_KEYWORDS",
    "TIER_LABELS",
    "classify_security_tier",
    "classify_asset",
]

TIER1_KEYWORDS: Tuple[str, ...] = (
    "plc", "dcs", "hmi", "scada", "rtu", "controller", "server",
    "workstation", "historian", "safety", "switch", "router",
    "firewall", "gateway",
)

TIER2_KEYWORDS: Tuple[str, ...] = (
    "smart", "ethernet", "camera", "analyzer", "vfd", "drive",
)

TIER_LABELS = {
    1: "Critical Network Asset",
    2: "Networkable Device",
    3: "Passive/Analog",
}


def classify_security_tier(device_type: Any, has_network_address: bool = False) -> TierClassification:
    """Classify a device into security tier 1, 2 or 3.

    Args:
        device_type: Free-text device type; non-strings are treated as empty.
        has_network_address: Whether the record carries an IP or MAC address.

    Returns:
        TierClassification with tier, label and reason.
    """
    text = device_type if isinstance(device_type, str) else ""
    lowered = text.lower()

    if any(keyword in lowered for keyword in TIER1_KEYWORDS):
        return TierClassification(
            tier=1,
            label=TIER_LABELS[1],
            reason=f'"{text}" is a critical control system',
        )

    if has_network_address:
        return TierClassification(tier=2, label=TIER_LABELS[2], reason="Has IP/MAC address")

    if any(keyword in lowered for keyword in TIER2_KEYWORDS):
        return TierClassification(tier=2, label=TIER_LABELS[2], reason="Typically networkable")

    return TierClassification(tier=3, label=TIER_LABELS[3], reason="No network connectivity")


def classify_asset(asset: Any) -> TierClassification:
    """Classify a NormalizedAsset (or anything with device_type/ip/mac)."""
    return classify_security_tier(
        getattr(asset, "device_type", ""),
        bool(getattr(asset, "ip_address", "") or getattr(asset, "mac_address", "")),
    )
