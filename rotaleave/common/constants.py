"""Enums and constants for Rota Leave — the canonical values stored in every table."""

from __future__ import annotations

import enum


# ── Employees / Roles ───────────────────────────────────────────────

class UserRole(str, enum.Enum):
    staff = "staff"
    manager = "manager"
    director = "director"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    compassionate = "compassionate"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ModificationType(str, enum.Enum):
    none = "none"
    early_checkin = "early_checkin"
    extension = "extension"


class ModificationStatus(str, enum.Enum):
    none = "none"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ModificationInitiator(str, enum.Enum):
    employee = "employee"
    manager = "manager"


class ReviewAction(str, enum.Enum):
    approve = "approve"
    reject = "reject"


# ── Delegation ──────────────────────────────────────────────────────

class DelegationStatus(str, enum.Enum):
    active = "active"
    cancelled = "cancelled"


# ── Duty cycle ──────────────────────────────────────────────────────

class ScheduleDayType(str, enum.Enum):
    work = "work"
    leave = "leave"
    projected_off = "projected-off"


class CyclePhase(str, enum.Enum):
    work = "work"
    off = "off"


# ── Notifications ───────────────────────────────────────────────────

class NotificationEvent(str, enum.Enum):
    new_request = "new_request"
    approved = "approved"
    rejected = "rejected"
    early_checkin = "early_checkin"
    extension_request = "extension_request"
    extension_approved = "extension_approved"
    extension_rejected = "extension_rejected"
    manager_extension = "manager_extension"


class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    alert = "alert"


# ── Legacy spellings accepted at the storage boundary ───────────────

LEAVE_TYPE_ALIASES: dict[str, LeaveType] = {
    "annual": LeaveType.annual,
    "annual leave": LeaveType.annual,
    "time-off": LeaveType.annual,
    "time off": LeaveType.annual,
    "timeoff": LeaveType.annual,
    "sick": LeaveType.sick,
    "sick leave": LeaveType.sick,
    "compassionate": LeaveType.compassionate,
    "compassionate leave": LeaveType.compassionate,
}

MODIFICATION_TYPE_ALIASES: dict[str, ModificationType] = {
    "": ModificationType.none,
    "none": ModificationType.none,
    "early_checkin": ModificationType.early_checkin,
    "early-checkin": ModificationType.early_checkin,
    "extension": ModificationType.extension,
    "manager_extension": ModificationType.extension,
}

MODIFICATION_STATUS_ALIASES: dict[str, ModificationStatus] = {
    "": ModificationStatus.none,
    "none": ModificationStatus.none,
    "pending": ModificationStatus.pending,
    "approved": ModificationStatus.approved,
    "acknowledged": ModificationStatus.approved,
    "rejected": ModificationStatus.rejected,
}


# ── Cycle and allowance constants ───────────────────────────────────

WORK_DAYS_PER_CYCLE = 22
OFF_DAYS_PER_CYCLE = 8
CYCLE_LENGTH = WORK_DAYS_PER_CYCLE + OFF_DAYS_PER_CYCLE   # 30 days

YEARLY_SICK_DAYS = 90
YEARLY_COMPASSIONATE_DAYS = 10

# Employee-requested extensions: two work days owed per extended day
STAFF_EXTENSION_PENALTY_RATIO = 2

# Leave types whose days pause the duty cycle instead of consuming off-days
CYCLE_PAUSING_LEAVE_TYPES = frozenset({LeaveType.sick, LeaveType.compassionate})

# Roles with nobody above them to approve a request
ROLES_WITHOUT_APPROVER = frozenset({UserRole.director, UserRole.admin})
