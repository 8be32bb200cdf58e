"""Common module — shared enums, errors, date helpers and audit trail."""

from rotaleave.common.audit import AuditTrail, create_audit_entry
from rotaleave.common.constants import (
    CYCLE_LENGTH,
    OFF_DAYS_PER_CYCLE,
    STAFF_EXTENSION_PENALTY_RATIO,
    WORK_DAYS_PER_CYCLE,
    YEARLY_COMPASSIONATE_DAYS,
    YEARLY_SICK_DAYS,
    CyclePhase,
    DelegationStatus,
    LeaveStatus,
    LeaveType,
    ModificationInitiator,
    ModificationStatus,
    ModificationType,
    NotificationEvent,
    NotificationType,
    ReviewAction,
    ScheduleDayType,
    UserRole,
)
from rotaleave.common.exceptions import (
    AppException,
    InsufficientBalanceException,
    InvalidStateTransition,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "CYCLE_LENGTH",
    "OFF_DAYS_PER_CYCLE",
    "STAFF_EXTENSION_PENALTY_RATIO",
    "WORK_DAYS_PER_CYCLE",
    "YEARLY_COMPASSIONATE_DAYS",
    "YEARLY_SICK_DAYS",
    "CyclePhase",
    "DelegationStatus",
    "LeaveStatus",
    "LeaveType",
    "ModificationInitiator",
    "ModificationStatus",
    "ModificationType",
    "NotificationEvent",
    "NotificationType",
    "ReviewAction",
    "ScheduleDayType",
    "UserRole",
    # Exceptions
    "AppException",
    "InsufficientBalanceException",
    "InvalidStateTransition",
    "NotFoundException",
    "UnauthorizedException",
    "ValidationException",
]
