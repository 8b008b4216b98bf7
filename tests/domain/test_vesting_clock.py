"""Clock implementations: system, deterministic and sequential."""

import time

import pytest

from vesting_kernel.domain.clock import DeterministicClock, SequentialClock, SystemClock


class TestSystemClock:
    def test_returns_integer_seconds(self):
        before = int(time.time())
        now = SystemClock().now()
        assert isinstance(now, int)
        assert before <= now <= int(time.time())


class TestDeterministicClock:
    def test_default_epoch(self):
        assert DeterministicClock().now() == DeterministicClock.DEFAULT_EPOCH

    def test_fixed_until_advanced(self):
        clock = DeterministicClock(100)
        assert clock.now() == clock.now() == 100

    def test_advance(self):
        clock = DeterministicClock(100)
        clock.advance(50)
        assert clock.now() == 150

    def test_set_time_resets_advance(self):
        clock = DeterministicClock(100)
        clock.advance(10)
        clock.set_time(500)
        assert clock.now() == 500

    def test_cannot_move_backwards(self):
        with pytest.raises(ValueError):
            DeterministicClock(100).advance(-1)


class TestSequentialClock:
    def test_walks_instants_then_repeats_last(self):
        clock = SequentialClock([1, 5, 9])
        assert [clock.now() for _ in range(5)] == [1, 5, 9, 9, 9]

    def test_requires_instants(self):
        with pytest.raises(ValueError):
            SequentialClock([])
