"""Balance ledger — remaining days per leave type, derived on every call.

Nothing here is stored or decremented:
  - annual: one day banked per work day completed in the current cycle,
    plus days refunded by early check-ins that ended inside the cycle
  - sick: 90 per calendar year minus approved sick days booked that year
  - compassionate: 10 per calendar year minus approved compassionate days
    booked that year

Still-pending requests are reported alongside so callers can check
the *available* balance before accepting another request.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional

from rotaleave.common.constants import (
    STAFF_EXTENSION_PENALTY_RATIO,
    YEARLY_COMPASSIONATE_DAYS,
    YEARLY_SICK_DAYS,
    LeaveType,
    ModificationInitiator,
)
from rotaleave.common.dates import count_business_days, parse_date
from rotaleave.common.exceptions import InsufficientBalanceException
from rotaleave.cycle.calculator import cycle_epoch, get_cycle_status, normalize_leave_type
from rotaleave.cycle.schemas import LeaveBalances

_YEARLY_ALLOWANCE = {
    LeaveType.sick: YEARLY_SICK_DAYS,
    LeaveType.compassionate: YEARLY_COMPASSIONATE_DAYS,
}


class BalanceLedger:
    """Stateless balance derivation over an employee's leave history."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _booked_days_in_year(
        approved: Iterable[Any],
        leave_type: LeaveType,
        year: int,
    ) -> int:
        """Business days of approved ``leave_type`` leave falling in ``year``."""
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)
        total = 0
        for leave in approved:
            if normalize_leave_type(getattr(leave, "leave_type", None)) != leave_type:
                continue
            start = parse_date(getattr(leave, "start_date", None))
            end = parse_date(getattr(leave, "end_date", None))
            if start is None or end is None:
                continue
            total += count_business_days(max(start, year_start), min(end, year_end))
        return total

    @staticmethod
    def refunded_days(approved: Iterable[Any], since: date) -> int:
        """Days handed back by acknowledged early check-ins ending on/after ``since``.

        ``days_taken`` is set only when an early check-in is acknowledged and
        is never cleared afterwards.
        """
        total = 0
        for leave in approved:
            modification = getattr(leave, "modification", None)
            if modification is None or modification.days_taken is None:
                continue
            if normalize_leave_type(leave.leave_type) != LeaveType.annual:
                continue
            actual_end = modification.actual_end_date or leave.end_date
            if actual_end < since:
                continue
            total += max(0, leave.days_requested - modification.days_taken)
        return total

    @staticmethod
    def _pending_days(pending: Iterable[Any], year: int) -> dict[LeaveType, int]:
        totals: dict[LeaveType, int] = {}
        for request in pending:
            leave_type = normalize_leave_type(request.leave_type)
            if leave_type in _YEARLY_ALLOWANCE and request.start_date.year != year:
                continue
            totals[leave_type] = totals.get(leave_type, 0) + request.days_requested
        return totals

    # ─────────────────────────────────────────────────────────────────
    # Balances
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def balances(
        approved: Iterable[Any],
        *,
        pending: Iterable[Any] = (),
        days_owed: int = 0,
        owed_since: Optional[date] = None,
        as_of: Optional[date] = None,
    ) -> LeaveBalances:
        """Current balance for every leave type.

        ``approved`` and ``pending`` are ``LeaveRequestRecord`` lists (or any
        objects exposing the same attributes).
        """
        as_of = as_of or date.today()
        approved = list(approved)
        status = get_cycle_status(
            approved, days_owed=days_owed, owed_since=owed_since, as_of=as_of,
        )

        annual = int(status.work_days_completed) + BalanceLedger.refunded_days(
            approved, status.cycle_started_on,
        )
        sick = YEARLY_SICK_DAYS - BalanceLedger._booked_days_in_year(
            approved, LeaveType.sick, as_of.year,
        )
        compassionate = YEARLY_COMPASSIONATE_DAYS - BalanceLedger._booked_days_in_year(
            approved, LeaveType.compassionate, as_of.year,
        )

        return LeaveBalances(
            as_of=as_of,
            annual=annual,
            sick=sick,
            compassionate=compassionate,
            pending=BalanceLedger._pending_days(pending, as_of.year),
        )

    @staticmethod
    def ensure_sufficient(
        balances: LeaveBalances,
        leave_type: LeaveType,
        requested: int,
    ) -> None:
        """Raise ``InsufficientBalanceException`` if ``requested`` exceeds what is available."""
        available = balances.available(leave_type)
        if requested > available:
            raise InsufficientBalanceException(leave_type.value, available, requested)

    # ─────────────────────────────────────────────────────────────────
    # Extension penalty
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def extension_penalty(extension_days: int, initiated_by: ModificationInitiator) -> int:
        """Work days owed for an approved extension: 2 per day when the employee asked, else 0."""
        if initiated_by == ModificationInitiator.manager:
            return 0
        return max(0, extension_days) * STAFF_EXTENSION_PENALTY_RATIO

    @staticmethod
    def apply_extension_penalty(
        approved: Iterable[Any],
        *,
        days_owed: int,
        owed_since: Optional[date],
        extension_days: int,
        initiated_by: ModificationInitiator,
        as_of: Optional[date] = None,
    ) -> tuple[int, Optional[date]]:
        """New ``(days_owed, owed_since)`` after an extension is approved on ``as_of``.

        The penalty belongs to the cycle in progress on ``as_of``. An older
        penalty still attached to that cycle is added to; one whose cycle
        has already finished is replaced.
        """
        as_of = as_of or date.today()
        penalty = BalanceLedger.extension_penalty(extension_days, initiated_by)
        if penalty == 0:
            return days_owed, owed_since

        if days_owed > 0 and owed_since is not None and owed_since >= cycle_epoch(as_of.year):
            status = get_cycle_status(
                approved, days_owed=days_owed, owed_since=owed_since, as_of=as_of,
            )
            if status.days_owed > 0:
                return days_owed + penalty, owed_since

        return penalty, as_of
