"""Selectors for the vesting kernel (read side)."""

from vesting_kernel.selectors.base import BaseSelector
from vesting_kernel.selectors.schedule_selector import (
    BeneficiarySummary,
    SchedulePosition,
    ScheduleSelector,
)

__all__ = [
    "BaseSelector",
    "BeneficiarySummary",
    "SchedulePosition",
    "ScheduleSelector",
]
