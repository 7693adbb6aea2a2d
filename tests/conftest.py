# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timezone

import pytest

from otcanon.config import OTCanonConfig, reset_config, set_config
from otcanon.setup import reset_service


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Install a fresh default configuration for every test."""
    for key in list(os.environ):
        if key.startswith("OTC_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    set_config(OTCanonConfig())
    yield
    reset_config()


@pytest.fixture
def reference_time():
    """Fixed evaluation time shared by lifecycle and staleness tests."""
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def engineering_rows():
    """A small refinery engineering baseline."""
    return [
        {
            "Tag ID": "FT-200",
            "Plant": "Gulf Coast Crude Refinery",
            "Unit": "CDU",
            "Device Type": "Flow Transmitter",
            "Manufacturer": "Emerson",
            "Model": "Rosemount 3051",
            "IP Address": "10.1.1.20",
        },
        {
            "Tag ID": "TIC-101",
            "Plant": "Gulf Coast Crude Refinery",
            "Unit": "CDU",
            "Device Type": "PLC",
            "Manufacturer": "Rockwell",
            "Model": "1756-L55",
        },
        {
            "Tag ID": "PT-300",
            "Plant": "Gulf Coast Crude Refinery",
            "Unit": "FCC",
            "Device Type": "Pressure Transmitter",
            "Manufacturer": "Yokogawa",
            "Model": "EJA110E",
            "IP Address": "10.1.2.30",
        },
    ]


@pytest.fixture
def discovery_rows():
    """Discovery export matching part of the engineering baseline."""
    return [
        {
            "tag": "ft-200",
            "ip": "10.1.1.20",
            "mac": "00:1d:9c:aa:bb:01",
            "hostname": "cdu-ft200",
            "device_type": "Flow Transmitter",
            "vendor": "Emerson",
            "model": "Rosemount 3051",
            "last_seen": "2023-12-30T10:00:00Z",
            "managed": "yes",
        },
        {
            "ip": "10.1.2.30",
            "mac": "00:1d:9c:aa:bb:02",
            "hostname": "fcc-pt300",
            "device_type": "Pressure Transmitter",
            "vendor": "Yokogawa",
            "last_seen": "2023-12-31T08:00:00Z",
        },
        {
            "ip": "10.1.9.99",
            "mac": "00:1d:9c:aa:bb:03",
            "hostname": "unknown-host",
            "device_type": "Workstation",
            "last_seen": "2023-12-31T09:00:00Z",
        },
    ]


@pytest.fixture
def service():
    """A started service using the current configuration."""
    svc = reset_service()
    yield svc
    svc.shutdown()
