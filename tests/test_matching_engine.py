# -*- coding: utf-8 -*-
"""
Test suite for MatchingEngine

Tests strategy precedence, one-to-one consumption of records, blind spot
and orphan partitioning, coverage arithmetic and deadline handling.
"""

import pytest

from otcanon.execution import Deadline
from otcanon.matching_engine import MatchingEngine, coverage_percent
from otcanon.models import MatchStrategy
from otcanon.normalizer import FieldNormalizer


@pytest.fixture
def engine():
    return MatchingEngine()


def _norm(rows, source_id):
    return FieldNormalizer().normalize_dataset(rows, source_id)


class TestCoverage:
    """Test coverage arithmetic."""

    @pytest.mark.parametrize("matched,total,expected", [
        (0, 0, 0), (1, 3, 33), (2, 3, 67), (1, 2, 50), (1, 8, 13), (3, 3, 100),
    ])
    def test_half_up_rounding(self, matched, total, expected):
        """Test integer percentages round half up."""
        assert coverage_percent(matched, total) == expected


class TestMatch:
    """Test record linkage."""

    def test_tag_match_has_full_confidence(self, engine):
        """Test tag equality matches at confidence 100."""
        eng = _norm([{"tag": "FT-200"}], "eng")
        disc = _norm([{"tag": "ft-200", "ip": "10.0.0.5"}], "disc")
        outcome = engine.match(eng, disc)
        assert len(outcome.matches) == 1
        match = outcome.matches[0]
        assert match.strategy == MatchStrategy.TAG_ID
        assert match.confidence == 100
        assert outcome.stats.coverage == 100

    def test_strategy_order(self, engine):
        """Test later strategies only see records left unmatched."""
        eng = _norm([
            {"tag": "A-1"},
            {"tag": "B-2", "ip": "10.0.0.2"},
            {"hostname": "HOST-3"},
            {"mac": "aa:bb:cc:00:00:04"},
        ], "eng")
        disc = _norm([
            {"mac": "AA:BB:CC:00:00:04"},
            {"hostname": "host-3"},
            {"ip": "10.0.0.2"},
            {"tag": "A-1"},
        ], "disc")
        outcome = engine.match(eng, disc)
        strategies = [m.strategy for m in outcome.matches]
        assert strategies == [
            MatchStrategy.TAG_ID,
            MatchStrategy.IP_ADDRESS,
            MatchStrategy.HOSTNAME,
            MatchStrategy.MAC_ADDRESS,
        ]
        assert [m.confidence for m in outcome.matches] == [100, 95, 90, 85]
        assert outcome.stats.by_strategy == {
            "tag_id": 1, "ip_address": 1, "hostname": 1, "mac_address": 1,
        }

    def test_records_are_consumed_once(self, engine):
        """Test duplicate keys pair first-come first-served."""
        eng = _norm([{"ip": "10.0.0.1"}, {"ip": "10.0.0.1"}], "eng")
        disc = _norm([{"ip": "10.0.0.1"}], "disc")
        outcome = engine.match(eng, disc)
        assert len(outcome.matches) == 1
        assert outcome.matches[0].engineering_index == 0
        assert outcome.matches[0].discovery_index == 0
        assert len(outcome.blind_spots) == 1
        assert outcome.blind_spots[0].row_index == 1

    def test_partition_is_complete(self, engine, engineering_rows, discovery_rows):
        """Test every record lands in exactly one bucket."""
        eng = _norm(engineering_rows, "eng")
        disc = _norm(discovery_rows, "disc")
        outcome = engine.match(eng, disc)
        stats = outcome.stats
        assert stats.matched + stats.blind_spots == len(eng)
        assert stats.matched + stats.orphans == len(disc)
        assert len(set(outcome.used_engineering_indices)) == stats.matched
        assert len(set(outcome.used_discovery_indices)) == stats.matched

    def test_empty_engineering(self, engine):
        """Test coverage is undefined without an engineering baseline."""
        outcome = engine.match([], _norm([{"ip": "10.0.0.1"}], "disc"))
        assert outcome.stats.coverage == 0
        assert outcome.stats.coverage_defined is False
        assert len(outcome.orphans) == 1

    def test_empty_keys_never_match(self, engine):
        """Test records without identifiers stay unmatched."""
        outcome = engine.match(_norm([{"unit": "CDU"}], "eng"), _norm([{"unit": "CDU"}], "disc"))
        assert outcome.matches == []

    def test_deadline_expiry(self, engine):
        """Test an expired deadline aborts matching."""
        now = [0.0]
        deadline = Deadline(1, clock=lambda: now[0])
        now[0] = 10.0
        with pytest.raises(TimeoutError):
            engine.match(_norm([{"tag": "A-1"}], "eng"), [], deadline=deadline)

    def test_statistics(self, engine):
        """Test aggregate counters."""
        engine.match(_norm([{"tag": "A-1"}], "eng"), _norm([{"tag": "A-1"}], "disc"))
        stats = engine.get_statistics()
        assert stats["runs"] == 1
        assert stats["total_matches"] == 1
        assert stats["by_strategy"]["tag_id"] == 1
