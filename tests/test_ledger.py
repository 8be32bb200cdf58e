"""BalanceLedger tests — derived balances, pending deduction, extension penalty."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from rotaleave.common.constants import (
    LeaveStatus,
    LeaveType,
    ModificationInitiator,
    ModificationStatus,
    ModificationType,
)
from rotaleave.common.exceptions import InsufficientBalanceException
from rotaleave.cycle import BalanceLedger
from rotaleave.leave.schemas import LeaveRequestRecord, ModificationRecord


def _request(
    start: date,
    end: date,
    days: int,
    leave_type: LeaveType = LeaveType.annual,
    request_status: LeaveStatus = LeaveStatus.approved,
    **modification,
) -> LeaveRequestRecord:
    return LeaveRequestRecord(
        id=uuid.uuid4(),
        employee_id=uuid.uuid4(),
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        days_requested=days,
        status=request_status,
        modification=ModificationRecord(**modification),
    )


class TestBalances:

    def test_empty_history(self):
        balances = BalanceLedger.balances([], as_of=date(2026, 1, 10))

        assert balances.annual == 10
        assert balances.sick == 90
        assert balances.compassionate == 10
        assert balances.pending == {}

    def test_sick_days_booked_ahead_are_deducted(self):
        """Approved sick days later in the year already count against the allowance."""
        approved = [_request(date(2026, 3, 2), date(2026, 3, 6), 5, LeaveType.sick)]
        balances = BalanceLedger.balances(approved, as_of=date(2026, 1, 10))
        assert balances.sick == 85

    def test_compassionate_clipped_to_calendar_year(self):
        approved = [
            _request(date(2026, 12, 28), date(2027, 1, 5), 7, LeaveType.compassionate),
        ]
        balances = BalanceLedger.balances(approved, as_of=date(2026, 6, 1))
        assert balances.compassionate == 6

    def test_pending_days_reduce_available(self):
        pending = [
            _request(date(2026, 2, 2), date(2026, 2, 4), 3, request_status=LeaveStatus.pending),
            _request(date(2027, 2, 1), date(2027, 2, 2), 2, LeaveType.sick, LeaveStatus.pending),
        ]
        balances = BalanceLedger.balances([], pending=pending, as_of=date(2026, 1, 10))

        assert balances.balance(LeaveType.annual) == 10
        assert balances.available(LeaveType.annual) == 7
        assert balances.available(LeaveType.sick) == 90

    def test_early_checkin_refund(self):
        """Five days booked, three taken: two come back to the annual balance."""
        approved = [
            _request(
                date(2026, 1, 19), date(2026, 1, 21), 5,
                type=ModificationType.early_checkin,
                status=ModificationStatus.approved,
                original_end_date=date(2026, 1, 23),
                actual_end_date=date(2026, 1, 21),
                days_taken=3,
            )
        ]
        balances = BalanceLedger.balances(approved, as_of=date(2026, 1, 10))
        assert balances.annual == 12

    def test_pending_early_checkin_refunds_nothing(self):
        approved = [
            _request(
                date(2026, 1, 19), date(2026, 1, 23), 5,
                type=ModificationType.early_checkin,
                status=ModificationStatus.pending,
                actual_end_date=date(2026, 1, 21),
            )
        ]
        assert BalanceLedger.balances(approved, as_of=date(2026, 1, 10)).annual == 10

    def test_refund_survives_later_modification_record(self):
        """Once days_taken is recorded the refund holds whatever the slot now says."""
        approved = [
            _request(
                date(2026, 1, 19), date(2026, 1, 21), 5,
                type=ModificationType.extension,
                status=ModificationStatus.rejected,
                original_end_date=date(2026, 1, 23),
                actual_end_date=date(2026, 1, 21),
                days_taken=3,
            )
        ]
        assert BalanceLedger.balances(approved, as_of=date(2026, 1, 10)).annual == 12

    def test_sick_early_checkin_refunds_nothing_to_annual(self):
        approved = [
            _request(
                date(2026, 1, 19), date(2026, 1, 21), 5, LeaveType.sick,
                type=ModificationType.early_checkin,
                status=ModificationStatus.approved,
                actual_end_date=date(2026, 1, 21),
                days_taken=3,
            )
        ]
        balances = BalanceLedger.balances(approved, as_of=date(2026, 1, 10))
        assert balances.annual == 10
        assert balances.sick == 87

    def test_refund_from_previous_cycle_expires(self):
        approved = [
            _request(
                date(2026, 1, 5), date(2026, 1, 6), 4,
                type=ModificationType.early_checkin,
                status=ModificationStatus.approved,
                actual_end_date=date(2026, 1, 6),
                days_taken=2,
            )
        ]
        # Cycle 2 began on Jan 31
        balances = BalanceLedger.balances(approved, as_of=date(2026, 2, 5))
        assert balances.annual == 6

    def test_ensure_sufficient(self):
        balances = BalanceLedger.balances([], as_of=date(2026, 1, 10))
        BalanceLedger.ensure_sufficient(balances, LeaveType.annual, 10)

        with pytest.raises(InsufficientBalanceException) as exc:
            BalanceLedger.ensure_sufficient(balances, LeaveType.annual, 11)
        assert exc.value.available == 10
        assert exc.value.requested == 11
        assert exc.value.status_code == 422
        assert "balance" in exc.value.errors


class TestExtensionPenalty:

    def test_employee_initiated_doubles(self):
        assert BalanceLedger.extension_penalty(2, ModificationInitiator.employee) == 4

    def test_manager_initiated_is_free(self):
        assert BalanceLedger.extension_penalty(2, ModificationInitiator.manager) == 0

    def test_negative_days_clamped(self):
        assert BalanceLedger.extension_penalty(-3, ModificationInitiator.employee) == 0

    def test_first_penalty_starts_today(self):
        owed = BalanceLedger.apply_extension_penalty(
            [], days_owed=0, owed_since=None, extension_days=2,
            initiated_by=ModificationInitiator.employee, as_of=date(2026, 1, 20),
        )
        assert owed == (4, date(2026, 1, 20))

    def test_penalty_accumulates_within_cycle(self):
        owed = BalanceLedger.apply_extension_penalty(
            [], days_owed=4, owed_since=date(2026, 1, 5), extension_days=1,
            initiated_by=ModificationInitiator.employee, as_of=date(2026, 1, 10),
        )
        assert owed == (6, date(2026, 1, 5))

    def test_penalty_from_finished_cycle_replaced(self):
        owed = BalanceLedger.apply_extension_penalty(
            [], days_owed=4, owed_since=date(2026, 1, 5), extension_days=1,
            initiated_by=ModificationInitiator.employee, as_of=date(2026, 3, 1),
        )
        assert owed == (2, date(2026, 3, 1))

    def test_manager_extension_leaves_owed_days_alone(self):
        owed = BalanceLedger.apply_extension_penalty(
            [], days_owed=4, owed_since=date(2026, 1, 5), extension_days=3,
            initiated_by=ModificationInitiator.manager, as_of=date(2026, 1, 10),
        )
        assert owed == (4, date(2026, 1, 5))
