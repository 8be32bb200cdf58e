"""Leave request lifecycle — submission, review and post-approval modifications.

State machine:
  - base status: pending → approved | rejected (both terminal)
  - modification, only on an approved request:
    none → pending (early_checkin | extension) → approved | rejected;
    a new one may be requested once the previous one has resolved, except
    that an acknowledged early check-in closes the request for good

Every operation checks, in order: the current state, the actor's approval
authority, then its inputs, and only then writes. Writes are conditional
on the state that was checked; if another actor got there first the store
reports no match and ``InvalidStateTransition`` is raised with nothing
changed. Notifications go out after the write and can never undo it.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from rotaleave.approvals.delegation import DelegationRegistry
from rotaleave.approvals.service import ApprovalAuthority
from rotaleave.common.constants import (
    ROLES_WITHOUT_APPROVER,
    LeaveStatus,
    LeaveType,
    ModificationInitiator,
    ModificationStatus,
    ModificationType,
    NotificationEvent,
    ReviewAction,
    UserRole,
)
from rotaleave.common.dates import business_days_after, count_business_days, word_count
from rotaleave.common.exceptions import (
    InvalidStateTransition,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from rotaleave.config import settings
from rotaleave.cycle.calculator import get_cycle_status, project_schedule
from rotaleave.cycle.ledger import BalanceLedger
from rotaleave.cycle.schemas import CycleStatus, LeaveBalances, ScheduleEntry
from rotaleave.leave.schemas import (
    EmployeeRecord,
    LeaveRequestCreate,
    LeaveRequestRecord,
    PendingRequestOut,
    ReviewSelection,
)
from rotaleave.leave.stores import (
    DelegationStore,
    EmployeeStore,
    LeaveRequestStore,
    NotificationSink,
)
from rotaleave.notifications.service import dispatch

logger = logging.getLogger(__name__)

ENTITY = "leave request"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def describe_state(request: LeaveRequestRecord) -> str:
    """Human-readable state used in ``InvalidStateTransition`` messages."""
    if request.modification.is_pending:
        return f"{request.status.value} with a pending {request.modification.type.value}"
    if request.modification.days_taken is not None:
        return f"{request.status.value} and closed by an early check-in"
    return request.status.value


# ═════════════════════════════════════════════════════════════════════
# RequestLifecycle
# ═════════════════════════════════════════════════════════════════════


class RequestLifecycle:
    """Leave request operations over injected stores and a notification sink.

    Holds no mutable state of its own; ``clock`` supplies "today" so that
    delegation windows and cycle snapshots can be pinned in tests.
    """

    def __init__(
        self,
        employees: EmployeeStore,
        requests: LeaveRequestStore,
        delegations: DelegationStore,
        notifier: NotificationSink,
        *,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.employees = employees
        self.requests = requests
        self.notifier = notifier
        self.clock = clock
        self.registry = DelegationRegistry(delegations, employees, clock)
        self.authority = ApprovalAuthority(employees, self.registry)

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def _get_employee(self, employee_id: uuid.UUID) -> EmployeeRecord:
        employee = self.employees.get_by_id(employee_id)
        if employee is None or not employee.is_active:
            raise NotFoundException("Employee", employee_id)
        return employee

    def _get_request(self, request_id: uuid.UUID) -> LeaveRequestRecord:
        request = self.requests.get_by_id(request_id)
        if request is None:
            raise NotFoundException("LeaveRequest", request_id)
        return request

    @staticmethod
    def _require_words(reason: Optional[str], field: str = "reason") -> None:
        minimum = settings.MIN_REASON_WORDS
        if word_count(reason) < minimum:
            raise ValidationException(
                {field: [f"Please give a reason of at least {minimum} words."]}
            )

    @staticmethod
    def _require_text(reason: Optional[str], field: str = "reason") -> str:
        text = (reason or "").strip()
        if not text:
            raise ValidationException({field: ["A reason is required."]})
        return text

    @staticmethod
    def _require_approved_without_pending(
        request: LeaveRequestRecord,
        action: str,
    ) -> None:
        if (
            request.status != LeaveStatus.approved
            or request.modification.is_pending
            or request.modification.days_taken is not None
        ):
            raise InvalidStateTransition(ENTITY, describe_state(request), action)

    @staticmethod
    def _require_pending_modification(
        request: LeaveRequestRecord,
        modification_type: ModificationType,
        action: str,
    ) -> None:
        if (
            request.status != LeaveStatus.approved
            or not request.modification.is_pending
            or request.modification.type != modification_type
        ):
            raise InvalidStateTransition(ENTITY, describe_state(request), action)

    def _apply(
        self,
        request: LeaveRequestRecord,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any],
        actor_id: Optional[uuid.UUID],
        action: str,
    ) -> LeaveRequestRecord:
        """Conditional write; the precondition failing means someone else moved first."""
        updated = self.requests.update(
            request.id, fields, expected=expected, actor_id=actor_id, action=action,
        )
        if updated is None:
            current = self.requests.get_by_id(request.id) or request
            raise InvalidStateTransition(ENTITY, describe_state(current), action)
        return updated

    def _approver_ids(self, employee: EmployeeRecord) -> list[uuid.UUID]:
        """Who reviews ``employee``'s requests today."""
        if employee.role == UserRole.staff:
            if employee.manager_id is None:
                return []
            return [employee.manager_id] + [
                delegate
                for delegate in self.registry.active_delegates_of(employee.manager_id)
                if delegate != employee.manager_id
            ]
        if employee.role == UserRole.manager:
            return [director.id for director in self.employees.list_by_role(UserRole.director)]
        return []

    def _notify(
        self,
        event: NotificationEvent,
        request: LeaveRequestRecord,
        recipient_ids: list[uuid.UUID],
        **extra: Any,
    ) -> None:
        payload: dict[str, Any] = {
            "request_id": request.id,
            "employee_id": request.employee_id,
            "leave_type": request.leave_type,
            "start_date": request.start_date,
            "end_date": request.end_date,
            "recipient_ids": recipient_ids,
        }
        payload.update(extra)
        dispatch(self.notifier, event, payload)

    def _approved_history(self, employee_id: uuid.UUID) -> list[LeaveRequestRecord]:
        return self.requests.list_by_employee(employee_id, [LeaveStatus.approved])

    def _balances(self, employee: EmployeeRecord) -> LeaveBalances:
        return BalanceLedger.balances(
            self._approved_history(employee.id),
            pending=self.requests.list_by_employee(employee.id, [LeaveStatus.pending]),
            days_owed=employee.days_owed,
            owed_since=employee.days_owed_since,
            as_of=self.clock(),
        )

    # ─────────────────────────────────────────────────────────────────
    # Submission and review
    # ─────────────────────────────────────────────────────────────────

    def submit(
        self,
        employee_id: uuid.UUID,
        leave_type: LeaveType | str,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
    ) -> LeaveRequestRecord:
        """Create a pending request after range, overlap and balance checks."""
        payload = LeaveRequestCreate(
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
        )
        employee = self._get_employee(payload.employee_id)
        if employee.role in ROLES_WITHOUT_APPROVER:
            raise UnauthorizedException(
                f"A {employee.role.value} has no approver and cannot submit leave requests."
            )

        if payload.end_date < payload.start_date:
            raise ValidationException({"end_date": ["End date must be on or after the start date."]})
        days = count_business_days(payload.start_date, payload.end_date)
        if days <= 0:
            raise ValidationException(
                {"start_date": ["The selected range contains no business days."]}
            )

        existing = self.requests.list_by_employee(
            employee.id, [LeaveStatus.pending, LeaveStatus.approved],
        )
        clash = next(
            (r for r in existing if r.overlaps(payload.start_date, payload.end_date)), None,
        )
        if clash is not None:
            raise ValidationException({
                "start_date": [
                    f"Overlaps an existing {clash.status.value} request "
                    f"({clash.start_date} to {clash.end_date})."
                ]
            })

        BalanceLedger.ensure_sufficient(self._balances(employee), payload.leave_type, days)

        request_id = self.requests.create(
            {
                "employee_id": employee.id,
                "leave_type": payload.leave_type,
                "start_date": payload.start_date,
                "end_date": payload.end_date,
                "days_requested": days,
                "reason": payload.reason,
                "status": LeaveStatus.pending,
                "submitted_date": _now(),
                "modification_type": ModificationType.none,
                "modification_status": ModificationStatus.none,
            },
            actor_id=employee.id,
        )
        request = self._get_request(request_id)
        logger.info(
            "Leave request %s submitted by %s: %s %s..%s (%d days)",
            request.id, employee.id, request.leave_type.value,
            request.start_date, request.end_date, days,
        )

        self._notify(
            NotificationEvent.new_request, request, self._approver_ids(employee),
            days_requested=days, reason=payload.reason,
        )
        return request

    def approve(self, request_id: uuid.UUID, approver_id: uuid.UUID) -> LeaveRequestRecord:
        request = self._get_request(request_id)
        if request.status != LeaveStatus.pending:
            raise InvalidStateTransition(ENTITY, describe_state(request), "approve")
        self.authority.ensure_can_approve(approver_id, request.employee_id, self.clock())

        updated = self._apply(
            request,
            {
                "status": LeaveStatus.approved,
                "reviewed_by": approver_id,
                "reviewed_date": _now(),
            },
            expected={"status": LeaveStatus.pending},
            actor_id=approver_id,
            action="approve",
        )
        logger.info("Leave request %s approved by %s", request_id, approver_id)

        self._notify(NotificationEvent.approved, updated, [updated.employee_id])
        return updated

    def reject(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        reason: str,
    ) -> LeaveRequestRecord:
        request = self._get_request(request_id)
        if request.status != LeaveStatus.pending:
            raise InvalidStateTransition(ENTITY, describe_state(request), "reject")
        self.authority.ensure_can_approve(approver_id, request.employee_id, self.clock())
        reason = self._require_text(reason)

        updated = self._apply(
            request,
            {
                "status": LeaveStatus.rejected,
                "reviewed_by": approver_id,
                "reviewed_date": _now(),
                "rejection_reason": reason,
            },
            expected={"status": LeaveStatus.pending},
            actor_id=approver_id,
            action="reject",
        )
        logger.info("Leave request %s rejected by %s", request_id, approver_id)

        self._notify(
            NotificationEvent.rejected, updated, [updated.employee_id],
            rejection_reason=reason,
        )
        return updated

    # ─────────────────────────────────────────────────────────────────
    # Early check-in
    # ─────────────────────────────────────────────────────────────────

    def request_early_checkin(
        self,
        request_id: uuid.UUID,
        actual_end_date: date,
        reason: str,
    ) -> LeaveRequestRecord:
        """Employee reports coming back before the approved end date."""
        request = self._get_request(request_id)
        self._require_approved_without_pending(request, "request an early check-in for")

        if actual_end_date >= request.end_date:
            raise ValidationException(
                {"actual_end_date": ["Early check-in must be before the current end date."]}
            )
        if actual_end_date < request.start_date:
            raise ValidationException(
                {"actual_end_date": ["Early check-in cannot be before the leave starts."]}
            )
        self._require_words(reason)

        original_end = request.modification.original_end_date or request.end_date
        updated = self._apply(
            request,
            {
                "original_end_date": original_end,
                "actual_end_date": actual_end_date,
                "modification_type": ModificationType.early_checkin,
                "modification_status": ModificationStatus.pending,
                "modification_initiated_by": ModificationInitiator.employee,
                "modification_reason": reason,
                "modification_requested_date": _now(),
                "modification_reviewed_by": None,
                "modification_reviewed_date": None,
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_status": request.modification.status,
            },
            actor_id=request.employee_id,
            action="request_early_checkin",
        )
        logger.info(
            "Early check-in requested on %s: back %s instead of %s",
            request_id, actual_end_date, request.end_date,
        )

        self._notify(
            NotificationEvent.early_checkin, updated,
            self._approver_ids(self._get_employee(updated.employee_id)),
            original_end_date=original_end, actual_end_date=actual_end_date, reason=reason,
        )
        return updated

    def acknowledge_early_checkin(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
    ) -> LeaveRequestRecord:
        """Shorten the leave to the actual end date; unused annual days flow back."""
        request = self._get_request(request_id)
        self._require_pending_modification(
            request, ModificationType.early_checkin, "acknowledge an early check-in for",
        )
        self.authority.ensure_can_approve(approver_id, request.employee_id, self.clock())

        actual_end = request.modification.actual_end_date
        days_taken = count_business_days(request.start_date, actual_end)
        updated = self._apply(
            request,
            {
                "end_date": actual_end,
                "days_taken": days_taken,
                "modification_status": ModificationStatus.approved,
                "modification_reviewed_by": approver_id,
                "modification_reviewed_date": _now(),
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_type": ModificationType.early_checkin,
                "modification_status": ModificationStatus.pending,
            },
            actor_id=approver_id,
            action="acknowledge_early_checkin",
        )
        logger.info(
            "Early check-in on %s acknowledged by %s: %d of %d days taken",
            request_id, approver_id, days_taken, request.days_requested,
        )
        return updated

    # ─────────────────────────────────────────────────────────────────
    # Extensions
    # ─────────────────────────────────────────────────────────────────

    def request_extension(
        self,
        request_id: uuid.UUID,
        new_end_date: date,
        reason: str,
    ) -> LeaveRequestRecord:
        """Employee asks to stay away longer; approval will add owed work days."""
        request = self._get_request(request_id)
        self._require_approved_without_pending(request, "request an extension for")

        if new_end_date <= request.end_date:
            raise ValidationException(
                {"new_end_date": ["Additional days must be greater than zero."]}
            )
        self._require_words(reason)

        additional = business_days_after(request.end_date, new_end_date)
        original_end = request.modification.original_end_date or request.end_date
        updated = self._apply(
            request,
            {
                "original_end_date": original_end,
                "requested_end_date": new_end_date,
                "extension_days": additional,
                "modification_type": ModificationType.extension,
                "modification_status": ModificationStatus.pending,
                "modification_initiated_by": ModificationInitiator.employee,
                "modification_reason": reason,
                "modification_requested_date": _now(),
                "modification_reviewed_by": None,
                "modification_reviewed_date": None,
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_status": request.modification.status,
            },
            actor_id=request.employee_id,
            action="request_extension",
        )
        logger.info(
            "Extension requested on %s: %s -> %s (%d business days)",
            request_id, request.end_date, new_end_date, additional,
        )

        self._notify(
            NotificationEvent.extension_request, updated,
            self._approver_ids(self._get_employee(updated.employee_id)),
            requested_end_date=new_end_date, additional_days=additional, reason=reason,
        )
        return updated

    def approve_extension(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        new_end_date: Optional[date] = None,
    ) -> LeaveRequestRecord:
        """Grant a pending extension, optionally to a different end date."""
        request = self._get_request(request_id)
        self._require_pending_modification(
            request, ModificationType.extension, "approve an extension for",
        )
        self.authority.ensure_can_approve(approver_id, request.employee_id, self.clock())

        target = new_end_date or request.modification.requested_end_date
        if target is None or target <= request.end_date:
            raise ValidationException(
                {"new_end_date": ["Additional days must be greater than zero."]}
            )
        additional = business_days_after(request.end_date, target)

        updated = self._apply(
            request,
            {
                "end_date": target,
                "days_requested": request.days_requested + additional,
                "extension_days": additional,
                "modification_status": ModificationStatus.approved,
                "modification_reviewed_by": approver_id,
                "modification_reviewed_date": _now(),
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_type": ModificationType.extension,
                "modification_status": ModificationStatus.pending,
            },
            actor_id=approver_id,
            action="approve_extension",
        )

        employee = self.employees.get_by_id(request.employee_id)
        if employee is None:
            raise NotFoundException("Employee", request.employee_id)
        days_owed, owed_since = BalanceLedger.apply_extension_penalty(
            self._approved_history(employee.id),
            days_owed=employee.days_owed,
            owed_since=employee.days_owed_since,
            extension_days=additional,
            initiated_by=request.modification.initiated_by or ModificationInitiator.employee,
            as_of=self.clock(),
        )
        if (days_owed, owed_since) != (employee.days_owed, employee.days_owed_since):
            self.employees.update(
                employee.id,
                {"days_owed": days_owed, "days_owed_since": owed_since},
                actor_id=approver_id,
            )
        logger.info(
            "Extension on %s approved by %s: ends %s, %d extra days, %d days owed",
            request_id, approver_id, target, additional, days_owed,
        )

        self._notify(
            NotificationEvent.extension_approved, updated, [updated.employee_id],
            new_end_date=target, additional_days=additional,
        )
        return updated

    def reject_extension(
        self,
        request_id: uuid.UUID,
        approver_id: uuid.UUID,
        reason: str,
    ) -> LeaveRequestRecord:
        request = self._get_request(request_id)
        self._require_pending_modification(
            request, ModificationType.extension, "reject an extension for",
        )
        self.authority.ensure_can_approve(approver_id, request.employee_id, self.clock())
        reason = self._require_text(reason)

        updated = self._apply(
            request,
            {
                "modification_status": ModificationStatus.rejected,
                "modification_reason": f"{request.modification.reason or ''} | REJECTED: {reason}",
                "modification_reviewed_by": approver_id,
                "modification_reviewed_date": _now(),
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_type": ModificationType.extension,
                "modification_status": ModificationStatus.pending,
            },
            actor_id=approver_id,
            action="reject_extension",
        )
        logger.info("Extension on %s rejected by %s", request_id, approver_id)

        self._notify(
            NotificationEvent.extension_rejected, updated, [updated.employee_id],
            requested_end_date=request.modification.requested_end_date,
            rejection_reason=reason,
        )
        return updated

    def manager_extend(
        self,
        request_id: uuid.UUID,
        manager_id: uuid.UUID,
        new_end_date: date,
        reason: str,
    ) -> LeaveRequestRecord:
        """Extend an approved leave directly, with no review step and no penalty."""
        request = self._get_request(request_id)
        self._require_approved_without_pending(request, "extend")
        self.authority.ensure_can_approve(manager_id, request.employee_id, self.clock())

        if new_end_date <= request.end_date:
            raise ValidationException(
                {"new_end_date": ["Additional days must be greater than zero."]}
            )
        self._require_words(reason)

        additional = business_days_after(request.end_date, new_end_date)
        now = _now()
        updated = self._apply(
            request,
            {
                "end_date": new_end_date,
                "days_requested": request.days_requested + additional,
                "original_end_date": request.modification.original_end_date or request.end_date,
                "requested_end_date": new_end_date,
                "extension_days": additional,
                "modification_type": ModificationType.extension,
                "modification_status": ModificationStatus.approved,
                "modification_initiated_by": ModificationInitiator.manager,
                "modification_reason": reason,
                "modification_requested_date": now,
                "modification_reviewed_by": manager_id,
                "modification_reviewed_date": now,
            },
            expected={
                "status": LeaveStatus.approved,
                "modification_status": request.modification.status,
            },
            actor_id=manager_id,
            action="manager_extend",
        )
        logger.info(
            "Leave request %s extended by manager %s to %s (%d extra days)",
            request_id, manager_id, new_end_date, additional,
        )

        self._notify(
            NotificationEvent.manager_extension, updated, [updated.employee_id],
            new_end_date=new_end_date, additional_days=additional, reason=reason,
        )
        return updated

    def review_extension(
        self,
        selection: ReviewSelection,
        approver_id: uuid.UUID,
        *,
        reason: Optional[str] = None,
        new_end_date: Optional[date] = None,
    ) -> LeaveRequestRecord:
        """Approve or reject a pending extension according to ``selection.action``."""
        if selection.action == ReviewAction.approve:
            return self.approve_extension(selection.request_id, approver_id, new_end_date)
        return self.reject_extension(selection.request_id, approver_id, reason or "")

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    def pending_for_approver(self, approver_id: uuid.UUID) -> list[PendingRequestOut]:
        """Requests and modifications waiting on ``approver_id`` today."""
        approver = self.employees.get_by_id(approver_id)
        if approver is None or not approver.is_active:
            return []

        scope: dict[uuid.UUID, tuple[EmployeeRecord, Optional[uuid.UUID]]] = {}
        if approver.role == UserRole.director:
            for manager in self.employees.list_by_role(UserRole.manager):
                scope[manager.id] = (manager, None)
        elif approver.role == UserRole.manager:
            for employee in self.employees.list_by_manager(approver_id):
                if employee.role == UserRole.staff:
                    scope[employee.id] = (employee, None)
            for entry in self.registry.get_delegated_staff(approver_id, self.clock()):
                scope.setdefault(entry.employee.id, (entry.employee, entry.delegated_from))
        else:
            return []

        pending: list[PendingRequestOut] = []
        for request in self.requests.list_awaiting_review():
            if request.employee_id not in scope:
                continue
            employee, delegated_from = scope[request.employee_id]
            if request.status == LeaveStatus.pending:
                awaiting = "request"
            elif request.status == LeaveStatus.approved and request.modification.is_pending:
                awaiting = request.modification.type.value
            else:
                continue
            pending.append(
                PendingRequestOut(
                    request=request,
                    employee=employee,
                    awaiting=awaiting,
                    is_delegated=delegated_from is not None,
                    delegated_from=delegated_from,
                )
            )
        return pending

    def balances_for(self, employee_id: uuid.UUID) -> LeaveBalances:
        return self._balances(self._get_employee(employee_id))

    def cycle_status_for(self, employee_id: uuid.UUID) -> CycleStatus:
        employee = self._get_employee(employee_id)
        return get_cycle_status(
            self._approved_history(employee.id),
            days_owed=employee.days_owed,
            owed_since=employee.days_owed_since,
            as_of=self.clock(),
        )

    def schedule_for(
        self,
        employee_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[ScheduleEntry]:
        """Projected schedule, from today to ``SCHEDULE_PROJECTION_DAYS`` ahead by default."""
        employee = self._get_employee(employee_id)
        start = start or self.clock()
        end = end or start + timedelta(days=settings.SCHEDULE_PROJECTION_DAYS)
        return project_schedule(
            self._approved_history(employee.id),
            start,
            end,
            days_owed=employee.days_owed,
            owed_since=employee.days_owed_since,
        )
