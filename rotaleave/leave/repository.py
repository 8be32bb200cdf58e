"""SQLAlchemy storage adapters for employees and leave requests.

The adapters are the only place that sees raw column values. Reads map
legacy spellings onto the closed enums; writes always store canonical
values and append an audit-trail row. Conditional updates implement the
optimistic-concurrency contract: a precondition that no longer matches
leaves the row untouched and returns ``None``.
"""

from __future__ import annotations

import enum
import uuid
from typing import Any, Mapping, Optional, Sequence, TypeVar

import sqlalchemy as sa
from sqlalchemy.orm import Session

from rotaleave.common.audit import create_audit_entry
from rotaleave.common.constants import (
    LEAVE_TYPE_ALIASES,
    MODIFICATION_STATUS_ALIASES,
    MODIFICATION_TYPE_ALIASES,
    LeaveStatus,
    ModificationInitiator,
    ModificationStatus,
    ModificationType,
    UserRole,
)
from rotaleave.common.exceptions import NotFoundException
from rotaleave.core_hr.models import Employee
from rotaleave.cycle.calculator import normalize_leave_type
from rotaleave.leave.models import LeaveRequest
from rotaleave.leave.schemas import EmployeeRecord, LeaveRequestRecord, ModificationRecord

E = TypeVar("E", bound=enum.Enum)

_ALIASES: dict[str, Mapping[str, enum.Enum]] = {
    "leave_type": LEAVE_TYPE_ALIASES,
    "modification_type": MODIFICATION_TYPE_ALIASES,
    "modification_status": MODIFICATION_STATUS_ALIASES,
}


# ─────────────────────────────────────────────────────────────────────
# Value mapping
# ─────────────────────────────────────────────────────────────────────


def db_value(value: Any) -> Any:
    """Canonical value to write: enums become their string value."""
    return value.value if isinstance(value, enum.Enum) else value


def coerce_enum(
    enum_cls: type[E],
    value: Any,
    aliases: Optional[Mapping[str, E]] = None,
    default: Optional[E] = None,
) -> E:
    """Read a stored string as ``enum_cls``, tolerating case and known aliases."""
    if isinstance(value, enum_cls):
        return value
    text = "" if value is None else str(value).strip().lower()
    if aliases and text in aliases:
        return aliases[text]
    try:
        return enum_cls(text)
    except ValueError:
        if default is not None:
            return default
        raise


def raw_spellings(field: str, value: Any) -> list[str]:
    """Every lower-cased stored spelling that reads back as ``value``."""
    canonical = db_value(value)
    spellings = {str(canonical).lower()}
    for raw, mapped in _ALIASES.get(field, {}).items():
        if mapped.value == canonical:
            spellings.add(raw)
    return sorted(spellings)


def _matches(column: Any, field: str, value: Any) -> Any:
    if isinstance(value, (str, enum.Enum)):
        return sa.func.lower(sa.func.coalesce(column, "")).in_(raw_spellings(field, value))
    if value is None:
        return column.is_(None)
    return column == value


# ═════════════════════════════════════════════════════════════════════
# Employees
# ═════════════════════════════════════════════════════════════════════


def employee_record(row: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        id=row.id,
        role=coerce_enum(UserRole, row.role),
        manager_id=row.manager_id,
        is_active=bool(row.is_active),
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        days_owed=row.days_owed or 0,
        days_owed_since=row.days_owed_since,
    )


class SqlEmployeeStore:
    """EmployeeStore over the ``employees`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, employee_id: uuid.UUID) -> Optional[EmployeeRecord]:
        row = self.session.get(Employee, employee_id)
        return employee_record(row) if row is not None else None

    def list_by_manager(self, manager_id: uuid.UUID) -> list[EmployeeRecord]:
        result = self.session.execute(
            sa.select(Employee)
            .where(Employee.manager_id == manager_id, Employee.is_active.is_(True))
            .order_by(Employee.first_name)
        )
        return [employee_record(row) for row in result.scalars().all()]

    def list_by_role(self, role: UserRole) -> list[EmployeeRecord]:
        result = self.session.execute(
            sa.select(Employee)
            .where(
                sa.func.lower(Employee.role) == role.value,
                Employee.is_active.is_(True),
            )
            .order_by(Employee.first_name)
        )
        return [employee_record(row) for row in result.scalars().all()]

    def update(
        self,
        employee_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeRecord:
        row = self.session.get(Employee, employee_id)
        if row is None:
            raise NotFoundException("Employee", employee_id)

        old_values = {key: getattr(row, key) for key in fields}
        for key, value in fields.items():
            setattr(row, key, db_value(value))
        self.session.flush()

        create_audit_entry(
            self.session,
            action="update",
            entity_type="employee",
            entity_id=row.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=dict(fields),
        )
        return employee_record(row)


# ═════════════════════════════════════════════════════════════════════
# Leave requests
# ═════════════════════════════════════════════════════════════════════


def leave_request_record(row: LeaveRequest) -> LeaveRequestRecord:
    initiated_by = row.modification_initiated_by
    if not initiated_by and (row.modification_type or "").lower() == "manager_extension":
        initiated_by = ModificationInitiator.manager.value

    return LeaveRequestRecord(
        id=row.id,
        employee_id=row.employee_id,
        leave_type=normalize_leave_type(row.leave_type),
        start_date=row.start_date,
        end_date=row.end_date,
        days_requested=row.days_requested or 0,
        status=coerce_enum(LeaveStatus, row.status),
        reason=row.reason,
        reviewed_by=row.reviewed_by,
        reviewed_date=row.reviewed_date,
        rejection_reason=row.rejection_reason,
        submitted_date=row.submitted_date,
        modification=ModificationRecord(
            type=coerce_enum(
                ModificationType, row.modification_type,
                MODIFICATION_TYPE_ALIASES, ModificationType.none,
            ),
            status=coerce_enum(
                ModificationStatus, row.modification_status,
                MODIFICATION_STATUS_ALIASES, ModificationStatus.none,
            ),
            initiated_by=(
                coerce_enum(ModificationInitiator, initiated_by) if initiated_by else None
            ),
            original_end_date=row.original_end_date,
            actual_end_date=row.actual_end_date,
            requested_end_date=row.requested_end_date,
            days_taken=row.days_taken,
            extension_days=row.extension_days,
            reason=row.modification_reason,
            requested_date=row.modification_requested_date,
            reviewed_by=row.modification_reviewed_by,
            reviewed_date=row.modification_reviewed_date,
        ),
    )


class SqlLeaveRequestStore:
    """LeaveRequestStore over the ``leave_requests`` table. Rows are never deleted."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> uuid.UUID:
        row = LeaveRequest(**{key: db_value(value) for key, value in fields.items()})
        self.session.add(row)
        self.session.flush()

        create_audit_entry(
            self.session,
            action="create",
            entity_type="leave_request",
            entity_id=row.id,
            actor_id=actor_id,
            new_values=dict(fields),
        )
        return row.id

    def get_by_id(self, request_id: uuid.UUID) -> Optional[LeaveRequestRecord]:
        row = self.session.get(LeaveRequest, request_id)
        return leave_request_record(row) if row is not None else None

    def list_by_employee(
        self,
        employee_id: uuid.UUID,
        statuses: Optional[Sequence[LeaveStatus]] = None,
    ) -> list[LeaveRequestRecord]:
        query = (
            sa.select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.start_date)
        )
        if statuses:
            query = query.where(
                sa.func.lower(LeaveRequest.status).in_([db_value(s) for s in statuses])
            )
        result = self.session.execute(query)
        return [leave_request_record(row) for row in result.scalars().all()]

    def list_awaiting_review(self) -> list[LeaveRequestRecord]:
        result = self.session.execute(
            sa.select(LeaveRequest)
            .where(
                sa.or_(
                    sa.func.lower(LeaveRequest.status) == LeaveStatus.pending.value,
                    sa.func.lower(LeaveRequest.modification_status)
                    == ModificationStatus.pending.value,
                )
            )
            .order_by(LeaveRequest.submitted_date, LeaveRequest.start_date)
        )
        return [leave_request_record(row) for row in result.scalars().all()]

    def update(
        self,
        request_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[uuid.UUID] = None,
        action: str = "update",
    ) -> Optional[LeaveRequestRecord]:
        row = self.session.get(LeaveRequest, request_id)
        if row is None:
            return None
        old_values = {key: getattr(row, key) for key in fields}

        stmt = sa.update(LeaveRequest).where(LeaveRequest.id == request_id)
        for key, value in (expected or {}).items():
            stmt = stmt.where(_matches(getattr(LeaveRequest, key), key, value))
        stmt = stmt.values(
            {key: db_value(value) for key, value in fields.items()}
        ).execution_options(synchronize_session=False)

        result = self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        self.session.refresh(row)

        create_audit_entry(
            self.session,
            action=action,
            entity_type="leave_request",
            entity_id=row.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=dict(fields),
        )
        return leave_request_record(row)

