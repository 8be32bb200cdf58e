"""Delegation registry — time-bounded hand-over of a manager's approval authority.

A delegation is active from creation until its creator cancels it. It only
grants authority on dates inside ``[start_date, end_date]``; a cancelled
delegation never grants anything again, whatever its dates.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Optional

from rotaleave.approvals.schemas import (
    DelegatedStaff,
    DelegationCreate,
    DelegationOverview,
    DelegationRecord,
)
from rotaleave.common.constants import DelegationStatus, UserRole
from rotaleave.common.exceptions import (
    InvalidStateTransition,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from rotaleave.leave.stores import DelegationStore, EmployeeStore

logger = logging.getLogger(__name__)


class DelegationRegistry:
    """Create, cancel and resolve delegations over a ``DelegationStore``."""

    def __init__(
        self,
        delegations: DelegationStore,
        employees: EmployeeStore,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.delegations = delegations
        self.employees = employees
        self.clock = clock

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _require_manager(self, employee_id: uuid.UUID, field: str) -> list[str]:
        employee = self.employees.get_by_id(employee_id)
        if employee is None:
            raise NotFoundException("Employee", employee_id)
        if employee.role != UserRole.manager:
            return [f"{field} must be a manager."]
        return []

    # ─────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────

    def create(
        self,
        from_manager_id: uuid.UUID,
        to_manager_id: uuid.UUID,
        start_date: date,
        end_date: date,
        reason: str = "",
    ) -> DelegationRecord:
        """Delegate ``from_manager_id``'s staff to ``to_manager_id`` for the date range."""
        payload = DelegationCreate(
            from_manager_id=from_manager_id,
            to_manager_id=to_manager_id,
            start_date=start_date,
            end_date=end_date,
            reason=reason or "",
        )

        errors: dict[str, list[str]] = {}
        if payload.start_date > payload.end_date:
            errors["end_date"] = ["End date must be on or after the start date."]
        if payload.from_manager_id == payload.to_manager_id:
            errors["to_manager_id"] = ["Cannot delegate to yourself."]
        if errors:
            raise ValidationException(errors)

        for field, manager_id in (
            ("from_manager_id", payload.from_manager_id),
            ("to_manager_id", payload.to_manager_id),
        ):
            problems = self._require_manager(manager_id, field)
            if problems:
                errors[field] = problems
        if errors:
            raise ValidationException(errors)

        for existing in self.delegations.list_from(payload.from_manager_id):
            if (
                existing.status == DelegationStatus.active
                and existing.start_date <= payload.end_date
                and existing.end_date >= payload.start_date
            ):
                raise ValidationException({
                    "start_date": [
                        "An active delegation already covers part of this period "
                        f"({existing.start_date} to {existing.end_date})."
                    ]
                })

        delegation_id = self.delegations.create(
            {**payload.model_dump(), "status": DelegationStatus.active},
            actor_id=payload.from_manager_id,
        )
        logger.info(
            "Delegation %s created: %s -> %s for %s..%s",
            delegation_id, payload.from_manager_id, payload.to_manager_id,
            payload.start_date, payload.end_date,
        )
        return self.delegations.get_by_id(delegation_id)

    def cancel(self, delegation_id: uuid.UUID, actor_id: uuid.UUID) -> DelegationRecord:
        """Cancel a delegation. Only the manager who created it may do so."""
        delegation = self.delegations.get_by_id(delegation_id)
        if delegation is None:
            raise NotFoundException("Delegation", delegation_id)
        if delegation.from_manager_id != actor_id:
            raise UnauthorizedException("Only the delegating manager can cancel this delegation.")
        if delegation.status != DelegationStatus.active:
            raise InvalidStateTransition("delegation", delegation.status.value, "cancel")

        updated = self.delegations.update(
            delegation_id,
            {
                "status": DelegationStatus.cancelled,
                "cancelled_at": datetime.now(timezone.utc),
            },
            expected={"status": DelegationStatus.active},
            actor_id=actor_id,
            action="cancel",
        )
        if updated is None:
            raise InvalidStateTransition("delegation", DelegationStatus.cancelled.value, "cancel")

        logger.info("Delegation %s cancelled by %s", delegation_id, actor_id)
        return updated

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    def active_delegates_of(
        self,
        from_manager_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> list[uuid.UUID]:
        """Managers currently holding ``from_manager_id``'s authority."""
        as_of = as_of or self.clock()
        seen: list[uuid.UUID] = []
        for delegation in self.delegations.list_from(from_manager_id):
            if delegation.covers(as_of) and delegation.to_manager_id not in seen:
                seen.append(delegation.to_manager_id)
        return seen

    def get_delegated_staff(
        self,
        to_manager_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> list[DelegatedStaff]:
        """Staff of every manager with an active delegation to ``to_manager_id`` covering ``as_of``."""
        as_of = as_of or self.clock()
        staff: dict[uuid.UUID, DelegatedStaff] = {}
        for delegation in self.delegations.list_to(to_manager_id):
            if not delegation.covers(as_of):
                continue
            for employee in self.employees.list_by_manager(delegation.from_manager_id):
                if employee.role != UserRole.staff or employee.id in staff:
                    continue
                staff[employee.id] = DelegatedStaff(
                    employee=employee,
                    delegated_from=delegation.from_manager_id,
                    delegation_id=delegation.id,
                )
        return list(staff.values())

    def overview(self, manager_id: uuid.UUID) -> DelegationOverview:
        """Every delegation ``manager_id`` gave, and the active ones they received."""
        return DelegationOverview(
            outgoing=self.delegations.list_from(manager_id),
            incoming=[
                d for d in self.delegations.list_to(manager_id)
                if d.status == DelegationStatus.active
            ],
        )
