"""Collaborator interfaces the lifecycle depends on.

Storage adapters implement these over whatever tabular store holds the
data; ``rotaleave.leave.repository`` provides the SQLAlchemy versions.
Field names in ``fields`` mappings are the snake_case attribute names of
the ORM models (``status``, ``modification_status``, ``end_date`` …).
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional, Protocol, Sequence

from rotaleave.approvals.schemas import DelegationRecord
from rotaleave.common.constants import LeaveStatus, NotificationEvent, UserRole
from rotaleave.leave.schemas import EmployeeRecord, LeaveRequestRecord


class EmployeeStore(Protocol):
    def get_by_id(self, employee_id: uuid.UUID) -> Optional[EmployeeRecord]: ...

    def list_by_manager(self, manager_id: uuid.UUID) -> list[EmployeeRecord]: ...

    def list_by_role(self, role: UserRole) -> list[EmployeeRecord]: ...

    def update(
        self,
        employee_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> EmployeeRecord: ...


class LeaveRequestStore(Protocol):
    def create(
        self,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> uuid.UUID: ...

    def get_by_id(self, request_id: uuid.UUID) -> Optional[LeaveRequestRecord]: ...

    def list_by_employee(
        self,
        employee_id: uuid.UUID,
        statuses: Optional[Sequence[LeaveStatus]] = None,
    ) -> list[LeaveRequestRecord]: ...

    def list_awaiting_review(self) -> list[LeaveRequestRecord]: ...

    def update(
        self,
        request_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[uuid.UUID] = None,
        action: str = "update",
    ) -> Optional[LeaveRequestRecord]:
        """Apply ``fields`` only if the row still matches ``expected``; ``None`` otherwise."""
        ...


class DelegationStore(Protocol):
    def create(
        self,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> uuid.UUID: ...

    def get_by_id(self, delegation_id: uuid.UUID) -> Optional[DelegationRecord]: ...

    def list_from(self, from_manager_id: uuid.UUID) -> list[DelegationRecord]: ...

    def list_to(self, to_manager_id: uuid.UUID) -> list[DelegationRecord]: ...

    def update(
        self,
        delegation_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[uuid.UUID] = None,
        action: str = "update",
    ) -> Optional[DelegationRecord]: ...


class NotificationSink(Protocol):
    """Best-effort outbound notifications. Callers never let a failure escape."""

    def notify(self, event: NotificationEvent, payload: Mapping[str, Any]) -> None: ...
