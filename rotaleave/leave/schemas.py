"""Leave Pydantic v2 schemas — the typed records the lifecycle works with.

Naming conventions:
  - *Record     → one stored entity, already normalised by the storage adapter
  - *Selection  → explicit caller choice (no string-prefixed identifiers)
  - *Out        → composed read models
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rotaleave.common.constants import (
    LeaveStatus,
    LeaveType,
    ModificationInitiator,
    ModificationStatus,
    ModificationType,
    ReviewAction,
    UserRole,
)
from rotaleave.cycle.calculator import normalize_leave_type


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class EmployeeRecord(BaseModel):
    """Employee as the approval and cycle logic needs it."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    role: UserRole
    manager_id: Optional[uuid.UUID] = None
    is_active: bool = True
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    days_owed: int = 0
    days_owed_since: Optional[date] = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or str(self.id)


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date = Field(..., description="First day of leave (inclusive)")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("leave_type", mode="before")
    @classmethod
    def normalise_leave_type(cls, value: object) -> LeaveType:
        return normalize_leave_type(value)


class ModificationRecord(BaseModel):
    """Post-approval amendment: early check-in or extension."""

    type: ModificationType = ModificationType.none
    status: ModificationStatus = ModificationStatus.none
    initiated_by: Optional[ModificationInitiator] = None
    original_end_date: Optional[date] = None
    actual_end_date: Optional[date] = None
    requested_end_date: Optional[date] = None
    days_taken: Optional[int] = None
    extension_days: Optional[int] = None
    reason: Optional[str] = None
    requested_date: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_date: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ModificationStatus.pending


class LeaveRequestRecord(BaseModel):
    """A leave request with its orthogonal modification sub-record."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_requested: int
    status: LeaveStatus = LeaveStatus.pending
    reason: Optional[str] = None
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    submitted_date: Optional[datetime] = None
    modification: ModificationRecord = Field(default_factory=ModificationRecord)

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and self.end_date >= start


# ═════════════════════════════════════════════════════════════════════
# Review inbox
# ═════════════════════════════════════════════════════════════════════


class ReviewSelection(BaseModel):
    """Which way an approver decided on a pending extension."""

    action: ReviewAction
    request_id: uuid.UUID


class PendingRequestOut(BaseModel):
    """A request awaiting the approver, flagged when authority is delegated."""

    request: LeaveRequestRecord
    employee: EmployeeRecord
    awaiting: str = Field(..., description="'request' or the pending modification type")
    is_delegated: bool = False
    delegated_from: Optional[uuid.UUID] = None
