"""
Pure vesting math: vested, releasable and derived status.

Covers:
- Linear accrual with floor truncation and multiply-before-divide
- Cliff boundary (strictly-before vs at)
- Revoked schedules report their frozen total as vested
- Negative releasable raises instead of clamping
- Arbitrary-precision amounts
"""

import pytest

from vesting_kernel.domain.schedule import VestingSchedule, VestingStatus
from vesting_kernel.domain.vesting_math import (
    outstanding_amount,
    releasable_amount,
    vested_amount,
    vesting_status,
)
from vesting_kernel.exceptions import InvariantViolationError

T0 = 1_000_000


def _schedule(**overrides) -> VestingSchedule:
    fields = dict(
        beneficiary="alice",
        index=0,
        asset="TOKEN",
        start_time=T0,
        duration=100,
        cliff=0,
        total_amount=1000,
        released_amount=0,
        is_revocable=True,
    )
    fields.update(overrides)
    return VestingSchedule(**fields)


class TestVestedAmount:
    def test_halfway_without_cliff(self):
        assert vested_amount(_schedule(), T0 + 50) == 500

    def test_before_start_is_zero(self):
        assert vested_amount(_schedule(), T0 - 1) == 0

    def test_at_start_is_zero(self):
        assert vested_amount(_schedule(), T0) == 0

    def test_at_end_is_total(self):
        assert vested_amount(_schedule(), T0 + 100) == 1000

    def test_long_after_end_is_total(self):
        assert vested_amount(_schedule(), T0 + 10**9) == 1000

    def test_truncates_downward(self):
        s = _schedule(total_amount=10, duration=3)
        assert vested_amount(s, T0 + 1) == 3
        assert vested_amount(s, T0 + 2) == 6

    def test_multiplies_before_dividing(self):
        # 7 * 50 // 100 == 3; 7 // 100 * 50 would be 0
        assert vested_amount(_schedule(total_amount=7), T0 + 50) == 3

    def test_revoked_reports_frozen_total(self):
        s = _schedule(total_amount=500, revoked=True, revoked_at=T0 + 50)
        assert vested_amount(s, T0 + 60) == 500

    def test_big_amounts_are_exact(self):
        total = 2**255 + 12345
        s = _schedule(total_amount=total, duration=3)
        assert vested_amount(s, T0 + 1) == total // 3


class TestCliff:
    def test_strictly_before_cliff_is_zero(self):
        s = _schedule(cliff=20)
        assert vested_amount(s, T0 + 10) == 0
        assert vested_amount(s, T0 + 19) == 0

    def test_at_cliff_accrues_from_start(self):
        assert vested_amount(_schedule(cliff=20), T0 + 20) == 200

    def test_cliff_equal_to_duration_is_all_at_once(self):
        s = _schedule(cliff=100)
        assert vested_amount(s, T0 + 99) == 0
        assert vested_amount(s, T0 + 100) == 1000


class TestReleasableAmount:
    def test_subtracts_released(self):
        assert releasable_amount(_schedule(released_amount=300), T0 + 50) == 200

    def test_zero_when_fully_claimed(self):
        assert releasable_amount(_schedule(released_amount=1000), T0 + 200) == 0

    def test_negative_raises(self):
        with pytest.raises(InvariantViolationError) as exc_info:
            releasable_amount(_schedule(released_amount=600), T0 + 50)
        assert exc_info.value.code == "INVARIANT_VIOLATION"

    def test_outstanding(self):
        assert outstanding_amount(_schedule(released_amount=250)) == 750


class TestVestingStatus:
    @pytest.mark.parametrize(
        "overrides, now, expected",
        [
            ({"cliff": 20}, T0 + 10, VestingStatus.PENDING),
            ({}, T0 + 50, VestingStatus.VESTING),
            ({}, T0 + 100, VestingStatus.FULLY_VESTED),
            ({"released_amount": 1000}, T0 + 100, VestingStatus.SETTLED),
            ({"revoked": True, "total_amount": 500, "revoked_at": T0 + 50}, T0 + 60, VestingStatus.REVOKED),
            (
                {"revoked": True, "total_amount": 500, "released_amount": 500, "revoked_at": T0 + 50},
                T0 + 60,
                VestingStatus.SETTLED,
            ),
        ],
    )
    def test_status(self, overrides, now, expected):
        assert vesting_status(_schedule(**overrides), now) is expected

    def test_schedule_derived_properties(self):
        s = _schedule(cliff=20, released_amount=1000)
        assert s.cliff_time == T0 + 20
        assert s.end_time == T0 + 100
        assert s.outstanding_amount == 0
        assert s.is_settled
