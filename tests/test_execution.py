# -*- coding: utf-8 -*-
"""Tests for parallel_map and Deadline."""

import pytest

from otcanon.execution import Deadline, parallel_map


class TestParallelMap:
    """Test ordered mapping."""

    def test_inline_order(self):
        """Test small inputs run inline in order."""
        assert parallel_map(lambda x: x * 2, [1, 2, 3]) == [2, 4, 6]

    def test_pool_preserves_order(self):
        """Test the thread pool keeps results in input order."""
        items = list(range(200))
        assert parallel_map(lambda x: x + 1, items, max_workers=4) == [i + 1 for i in items]

    def test_exceptions_propagate(self):
        """Test worker exceptions reach the caller."""
        def boom(_):
            raise RuntimeError("bad item")

        with pytest.raises(RuntimeError, match="bad item"):
            parallel_map(boom, [1])


class TestDeadline:
    """Test cooperative deadlines."""

    def test_unbounded(self):
        """Test a zero budget never expires."""
        deadline = Deadline(0)
        assert deadline.bounded is False
        assert deadline.remaining() is None
        deadline.check("matching")

    def test_expired(self):
        """Test an exhausted budget raises TimeoutError."""
        now = [100.0]
        deadline = Deadline(5, clock=lambda: now[0])
        deadline.check("matching")
        now[0] = 105.0
        assert deadline.remaining() == 0.0
        with pytest.raises(TimeoutError, match="matching"):
            deadline.check("matching")
