"""Leave ORM model: LeaveRequest.

Column names are the canonical field names every storage adapter shares
(``Status``, ``ModificationType``, ``DaysRequested`` …); Python attribute
names are snake_case. Status and type columns are plain strings: legacy
rows may hold "Annual", "Time-Off" or "acknowledged", which the adapter in
``rotaleave.leave.repository`` maps onto the closed enums.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rotaleave.core_hr.models import Employee
from rotaleave.database import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        "RequestID",
        sa.Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        "EmployeeID", sa.Uuid(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False,
    )
    leave_type: Mapped[str] = mapped_column("LeaveType", sa.String(30), nullable=False)
    start_date: Mapped[date] = mapped_column("StartDate", sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column("EndDate", sa.Date, nullable=False)
    days_requested: Mapped[int] = mapped_column("DaysRequested", sa.Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column("Reason", sa.Text)
    status: Mapped[str] = mapped_column(
        "Status", sa.String(20), nullable=False, default="pending",
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        "ReviewedBy", sa.Uuid(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    reviewed_date: Mapped[Optional[datetime]] = mapped_column(
        "ReviewedDate", sa.DateTime(timezone=True),
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column("RejectionReason", sa.Text)
    submitted_date: Mapped[Optional[datetime]] = mapped_column(
        "SubmittedDate", sa.DateTime(timezone=True),
    )

    # ── Modification sub-record ─────────────────────────────────────
    modification_type: Mapped[str] = mapped_column(
        "ModificationType", sa.String(30), nullable=False, default="none",
    )
    modification_status: Mapped[str] = mapped_column(
        "ModificationStatus", sa.String(20), nullable=False, default="none",
    )
    modification_initiated_by: Mapped[Optional[str]] = mapped_column(
        "ModificationInitiatedBy", sa.String(20),
    )
    original_end_date: Mapped[Optional[date]] = mapped_column("OriginalEndDate", sa.Date)
    actual_end_date: Mapped[Optional[date]] = mapped_column("ActualEndDate", sa.Date)
    requested_end_date: Mapped[Optional[date]] = mapped_column("RequestedEndDate", sa.Date)
    days_taken: Mapped[Optional[int]] = mapped_column("DaysTaken", sa.Integer)
    extension_days: Mapped[Optional[int]] = mapped_column("ExtensionDays", sa.Integer)
    modification_reason: Mapped[Optional[str]] = mapped_column("ModificationReason", sa.Text)
    modification_requested_date: Mapped[Optional[datetime]] = mapped_column(
        "ModificationRequestedDate", sa.DateTime(timezone=True),
    )
    modification_reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        "ModificationReviewedBy", sa.Uuid(as_uuid=True), sa.ForeignKey("employees.id"),
    )
    modification_reviewed_date: Mapped[Optional[datetime]] = mapped_column(
        "ModificationReviewedDate", sa.DateTime(timezone=True),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        back_populates="leave_requests", foreign_keys=[employee_id],
    )

    __table_args__ = (
        sa.Index("ix_leave_requests_employee_status", "EmployeeID", "Status"),
    )
