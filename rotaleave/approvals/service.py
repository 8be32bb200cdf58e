"""Approval authority — who may act on whose leave requests."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from rotaleave.approvals.delegation import DelegationRegistry
from rotaleave.approvals.schemas import AuthorizationResult
from rotaleave.common.constants import UserRole
from rotaleave.common.exceptions import UnauthorizedException
from rotaleave.leave.stores import EmployeeStore


class ApprovalAuthority:
    """Directors approve managers; managers approve their own or delegated staff."""

    def __init__(self, employees: EmployeeStore, registry: DelegationRegistry) -> None:
        self.employees = employees
        self.registry = registry

    def can_approve(
        self,
        approver_id: uuid.UUID,
        employee_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> AuthorizationResult:
        approver = self.employees.get_by_id(approver_id)
        if approver is None or not approver.is_active:
            return AuthorizationResult(authorized=False, reason="Approver not found")
        employee = self.employees.get_by_id(employee_id)
        if employee is None:
            return AuthorizationResult(authorized=False, reason="Requester not found")

        if approver.role == UserRole.director and employee.role == UserRole.manager:
            return AuthorizationResult(authorized=True)

        if approver.role == UserRole.manager and employee.role == UserRole.staff:
            if employee.manager_id == approver_id:
                return AuthorizationResult(authorized=True)
            delegated = self.registry.get_delegated_staff(approver_id, as_of)
            if any(entry.employee.id == employee_id for entry in delegated):
                return AuthorizationResult(authorized=True, delegated=True)
            return AuthorizationResult(
                authorized=False, reason="Staff not assigned to this manager",
            )

        return AuthorizationResult(authorized=False, reason="Role mismatch - cannot approve")

    def ensure_can_approve(
        self,
        approver_id: uuid.UUID,
        employee_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> AuthorizationResult:
        """Like ``can_approve`` but raises ``UnauthorizedException`` on denial."""
        result = self.can_approve(approver_id, employee_id, as_of)
        if not result.authorized:
            raise UnauthorizedException(result.reason or "Not authorized to approve this request.")
        return result
