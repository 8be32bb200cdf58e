"""Duty-cycle Pydantic v2 schemas — projected schedule, cycle snapshot, balances."""

from __future__ import annotations

import datetime as dt
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rotaleave.common.constants import CyclePhase, LeaveType, ScheduleDayType


class LeaveInterval(BaseModel):
    """One approved absence as the calculator sees it."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    start_date: date
    end_date: date
    leave_type: LeaveType = LeaveType.annual


class ScheduleEntry(BaseModel):
    """A single projected day."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    type: ScheduleDayType
    leave_type: Optional[LeaveType] = None


class CycleStatus(BaseModel):
    """Point-in-time snapshot of an employee's duty cycle. Never persisted."""

    model_config = ConfigDict(frozen=True)

    as_of: date
    cycle_number: int
    cycle_started_on: date
    current_phase: CyclePhase
    work_days_completed: int
    work_days_required: int
    work_days_remaining: int
    off_days_taken: int
    off_days_remaining: int
    is_on_leave: bool = False
    current_leave_type: Optional[LeaveType] = None
    sick_days_taken: int = 0
    sick_days_remaining: int = 0
    compassionate_days_taken: int = 0
    compassionate_days_remaining: int = 0
    days_owed: int = 0
    next_off_starts_in: int = 0


class LeaveBalances(BaseModel):
    """Remaining balance per leave type with still-pending days alongside."""

    as_of: date
    annual: int
    sick: int
    compassionate: int
    pending: dict[LeaveType, int] = Field(default_factory=dict)

    def balance(self, leave_type: LeaveType) -> int:
        return {
            LeaveType.annual: self.annual,
            LeaveType.sick: self.sick,
            LeaveType.compassionate: self.compassionate,
        }[leave_type]

    def available(self, leave_type: LeaveType) -> int:
        """Balance net of days already requested and awaiting review."""
        return self.balance(leave_type) - self.pending.get(leave_type, 0)
