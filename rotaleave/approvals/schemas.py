"""Approval / delegation Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rotaleave.common.constants import DelegationStatus
from rotaleave.leave.schemas import EmployeeRecord


class DelegationCreate(BaseModel):
    """Payload for delegating approval authority to another manager."""

    from_manager_id: uuid.UUID
    to_manager_id: uuid.UUID
    start_date: date = Field(..., description="First day covered (inclusive)")
    end_date: date = Field(..., description="Last day covered (inclusive)")
    reason: str = Field("", max_length=500)


class DelegationRecord(BaseModel):
    """A time-bounded grant of one manager's approval authority to another."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    from_manager_id: uuid.UUID
    to_manager_id: uuid.UUID
    start_date: date
    end_date: date
    reason: str = ""
    status: DelegationStatus = DelegationStatus.active
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        """Active and ``day`` inside ``[start_date, end_date]``."""
        return (
            self.status == DelegationStatus.active
            and self.start_date <= day <= self.end_date
        )


class DelegatedStaff(BaseModel):
    """A staff member currently covered by a delegation."""

    employee: EmployeeRecord
    delegated_from: uuid.UUID
    delegation_id: uuid.UUID


class DelegationOverview(BaseModel):
    """All delegations a manager gave (outgoing) and active ones received (incoming)."""

    outgoing: list[DelegationRecord] = Field(default_factory=list)
    incoming: list[DelegationRecord] = Field(default_factory=list)


class AuthorizationResult(BaseModel):
    """Outcome of an approval-authority check."""

    authorized: bool
    reason: Optional[str] = None
    delegated: bool = False
