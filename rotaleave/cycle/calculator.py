"""Duty-cycle calculator — 22 work days then 8 off days, restarting every January 1.

Both entry points walk every date from the cycle epoch (January 1 of the
relevant year) so that the phase on any later date is correct:

  - sick / compassionate leave pauses the cycle (no counter moves)
  - annual leave advances the cycle exactly like an off day
  - any other day is a work day until the cycle's work quota is met,
    then a projected off day
  - a cycle ends once 30 positions have been advanced

``days_owed`` raises the work quota of a single cycle: the one in progress
on ``owed_since`` (the first cycle of the walk when ``owed_since`` is None).
The cycle length does not change, so owed days come out of that cycle's
off phase. Later cycles go back to 22.

Both functions are pure: inputs are never mutated and malformed leave
records are skipped rather than raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, Optional

from rotaleave.common.constants import (
    CYCLE_LENGTH,
    CYCLE_PAUSING_LEAVE_TYPES,
    LEAVE_TYPE_ALIASES,
    WORK_DAYS_PER_CYCLE,
    YEARLY_COMPASSIONATE_DAYS,
    YEARLY_SICK_DAYS,
    CyclePhase,
    LeaveType,
    ScheduleDayType,
)
from rotaleave.common.dates import iter_dates, parse_date
from rotaleave.cycle.schemas import CycleStatus, ScheduleEntry

logger = logging.getLogger(__name__)

_FIELD_NAMES = {
    "start_date": ("start_date", "startDate", "StartDate"),
    "end_date": ("end_date", "endDate", "EndDate"),
    "leave_type": ("leave_type", "leaveType", "LeaveType"),
}


def cycle_epoch(year: int) -> date:
    """Cycles start on January 1st each year."""
    return date(year, 1, 1)


def normalize_leave_type(value: Any) -> LeaveType:
    """Map any stored spelling to the closed enum; unknown or missing → annual."""
    if isinstance(value, LeaveType):
        return value
    if value is None:
        return LeaveType.annual
    text = getattr(value, "value", value)
    return LEAVE_TYPE_ALIASES.get(str(text).strip().lower(), LeaveType.annual)


# ─────────────────────────────────────────────────────────────────────
# Leave map
# ─────────────────────────────────────────────────────────────────────


def _read(leave: Any, field: str) -> Any:
    for name in _FIELD_NAMES[field]:
        if isinstance(leave, Mapping):
            if name in leave:
                return leave[name]
        elif hasattr(leave, name):
            return getattr(leave, name)
    return None


def _build_leave_map(
    leaves: Iterable[Any],
    window_start: date,
    window_end: date,
) -> dict[date, LeaveType]:
    """Date → leave type for every approved leave day inside the window."""
    leave_map: dict[date, LeaveType] = {}
    for leave in leaves or ():
        start = parse_date(_read(leave, "start_date"))
        end = parse_date(_read(leave, "end_date"))
        if start is None or end is None or end < start:
            logger.debug("Skipping leave with unreadable dates: %r", leave)
            continue
        leave_type = normalize_leave_type(_read(leave, "leave_type"))
        for day in iter_dates(max(start, window_start), min(end, window_end)):
            leave_map[day] = leave_type
    return leave_map


# ─────────────────────────────────────────────────────────────────────
# Day-by-day walk
# ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _DayState:
    """Cycle bookkeeping after a day has been processed."""

    day: date
    kind: ScheduleDayType
    leave_type: Optional[LeaveType]
    cycle_number: int
    cycle_started_on: date
    work_days_counted: int
    off_days_counted: int
    work_days_required: int
    days_owed: int


def _walk(
    leave_map: dict[date, LeaveType],
    epoch: date,
    until: date,
    days_owed: int,
    owed_since: Optional[date],
) -> Iterator[_DayState]:
    cycle_number = 1
    cycle_started_on = epoch
    position = 0
    work_days = 0
    off_days = 0
    extra = days_owed if owed_since is None else 0

    for day in iter_dates(epoch, until):
        if owed_since is not None and day == owed_since:
            extra = days_owed
        required = WORK_DAYS_PER_CYCLE + extra

        leave_type = leave_map.get(day)
        if leave_type in CYCLE_PAUSING_LEAVE_TYPES:
            kind = ScheduleDayType.leave
        elif leave_type is not None:
            kind = ScheduleDayType.leave
            position += 1
            off_days += 1
        elif work_days < required:
            kind = ScheduleDayType.work
            position += 1
            work_days += 1
        else:
            kind = ScheduleDayType.projected_off
            leave_type = LeaveType.annual
            position += 1
            off_days += 1

        yield _DayState(
            day=day,
            kind=kind,
            leave_type=leave_type,
            cycle_number=cycle_number,
            cycle_started_on=cycle_started_on,
            work_days_counted=work_days,
            off_days_counted=off_days,
            work_days_required=required,
            days_owed=extra,
        )

        if position >= CYCLE_LENGTH:
            cycle_number += 1
            cycle_started_on = day + timedelta(days=1)
            position = work_days = off_days = 0
            extra = 0


# ─────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────


def project_schedule(
    leaves: Iterable[Any],
    range_start: date,
    range_end: date,
    days_owed: int = 0,
    owed_since: Optional[date] = None,
) -> list[ScheduleEntry]:
    """Projected work / leave / off day for every date in ``[range_start, range_end]``.

    ``leaves`` is the approved-only history: ``LeaveInterval`` /
    ``LeaveRequestRecord`` objects or plain mappings with start, end and
    type keys. An empty or inverted range yields an empty list.
    """
    if range_end < range_start:
        return []

    epoch = cycle_epoch(range_start.year)
    leave_map = _build_leave_map(leaves, epoch, range_end)

    schedule: list[ScheduleEntry] = []
    for state in _walk(leave_map, epoch, range_end, max(0, days_owed), owed_since):
        if state.day < range_start:
            continue
        schedule.append(
            ScheduleEntry(
                date=state.day,
                type=state.kind,
                leave_type=state.leave_type,
            )
        )
    return schedule


def get_cycle_status(
    leaves: Iterable[Any],
    days_owed: int = 0,
    owed_since: Optional[date] = None,
    as_of: Optional[date] = None,
) -> CycleStatus:
    """Snapshot of the cycle on ``as_of`` (today by default).

    Sick and compassionate counters cover the calendar year up to ``as_of``
    and are independent of the duty cycle.
    """
    as_of = as_of or date.today()
    epoch = cycle_epoch(as_of.year)
    leave_list = list(leaves or ())
    leave_map = _build_leave_map(leave_list, epoch, as_of)

    # as_of is never before its own epoch, so the walk yields at least one day
    *_, state = _walk(leave_map, epoch, as_of, max(0, days_owed), owed_since)

    sick_taken = sum(1 for lt in leave_map.values() if lt == LeaveType.sick)
    compassionate_taken = sum(
        1 for lt in leave_map.values() if lt == LeaveType.compassionate
    )

    if (
        state.kind == ScheduleDayType.work
        or state.work_days_counted < state.work_days_required
    ):
        phase = CyclePhase.work
    else:
        phase = CyclePhase.off

    work_remaining = max(0, state.work_days_required - state.work_days_counted)
    positions_left = CYCLE_LENGTH - state.work_days_counted - state.off_days_counted
    today_leave = leave_map.get(as_of)

    return CycleStatus(
        as_of=as_of,
        cycle_number=state.cycle_number,
        cycle_started_on=state.cycle_started_on,
        current_phase=phase,
        work_days_completed=state.work_days_counted,
        work_days_required=state.work_days_required,
        work_days_remaining=work_remaining,
        off_days_taken=state.off_days_counted,
        off_days_remaining=max(0, positions_left - work_remaining),
        is_on_leave=today_leave is not None,
        current_leave_type=today_leave,
        sick_days_taken=sick_taken,
        sick_days_remaining=YEARLY_SICK_DAYS - sick_taken,
        compassionate_days_taken=compassionate_taken,
        compassionate_days_remaining=YEARLY_COMPASSIONATE_DAYS - compassionate_taken,
        days_owed=state.days_owed,
        next_off_starts_in=work_remaining if phase == CyclePhase.work else 0,
    )


def cycle_number_on(
    leaves: Iterable[Any],
    day: date,
    days_owed: int = 0,
    owed_since: Optional[date] = None,
) -> int:
    """1-based number of the cycle ``day`` falls in."""
    return get_cycle_status(leaves, days_owed, owed_since, as_of=day).cycle_number
