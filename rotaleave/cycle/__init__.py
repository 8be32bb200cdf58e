"""Duty cycle — schedule projection, cycle snapshot and derived balances."""

from rotaleave.cycle.calculator import (
    cycle_number_on,
    get_cycle_status,
    normalize_leave_type,
    project_schedule,
)
from rotaleave.cycle.ledger import BalanceLedger
from rotaleave.cycle.schemas import CycleStatus, LeaveBalances, LeaveInterval, ScheduleEntry

__all__ = [
    "BalanceLedger",
    "CycleStatus",
    "LeaveBalances",
    "LeaveInterval",
    "ScheduleEntry",
    "cycle_number_on",
    "get_cycle_status",
    "normalize_leave_type",
    "project_schedule",
]
