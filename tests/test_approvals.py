"""Approval authority and delegation registry tests against the SQLite stores."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy import select

from rotaleave.approvals.delegation import DelegationRegistry
from rotaleave.approvals.repository import SqlDelegationStore
from rotaleave.approvals.service import ApprovalAuthority
from rotaleave.common.audit import AuditTrail
from rotaleave.common.constants import DelegationStatus, UserRole
from rotaleave.common.exceptions import (
    InvalidStateTransition,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from rotaleave.leave.repository import SqlEmployeeStore
from tests.conftest import _seed_employee

FEB_1, FEB_5, FEB_10, FEB_11 = (
    date(2026, 2, 1), date(2026, 2, 5), date(2026, 2, 10), date(2026, 2, 11),
)


@pytest.fixture
def registry(db) -> DelegationRegistry:
    return DelegationRegistry(
        SqlDelegationStore(db), SqlEmployeeStore(db), clock=lambda: FEB_5,
    )


@pytest.fixture
def authority(db, registry) -> ApprovalAuthority:
    return ApprovalAuthority(SqlEmployeeStore(db), registry)


# ═════════════════════════════════════════════════════════════════════
# ApprovalAuthority
# ═════════════════════════════════════════════════════════════════════


class TestCanApprove:

    def test_own_manager(self, org, authority):
        result = authority.can_approve(org.manager_a.id, org.staff.id)
        assert result.authorized is True
        assert result.delegated is False

    def test_other_manager_denied(self, org, authority):
        result = authority.can_approve(org.manager_b.id, org.staff.id)
        assert result.authorized is False
        assert result.reason == "Staff not assigned to this manager"

    def test_director_approves_manager(self, org, authority):
        assert authority.can_approve(org.director.id, org.manager_a.id).authorized is True

    def test_director_cannot_approve_staff(self, org, authority):
        result = authority.can_approve(org.director.id, org.staff.id)
        assert result.authorized is False
        assert result.reason == "Role mismatch - cannot approve"

    def test_manager_cannot_approve_manager(self, org, authority):
        result = authority.can_approve(org.manager_a.id, org.manager_b.id)
        assert result.authorized is False
        assert result.reason == "Role mismatch - cannot approve"

    def test_unknown_parties(self, org, authority):
        assert authority.can_approve(uuid.uuid4(), org.staff.id).reason == "Approver not found"
        assert authority.can_approve(org.manager_a.id, uuid.uuid4()).reason == "Requester not found"

    def test_inactive_approver(self, db, org, authority):
        ghost = _seed_employee(db, role=UserRole.manager, first_name="Gone", is_active=False)
        staff = _seed_employee(db, first_name="Kit", manager=ghost)
        assert authority.can_approve(ghost.id, staff.id).reason == "Approver not found"

    def test_legacy_role_spelling(self, db, org, authority):
        legacy = _seed_employee(
            db, role=UserRole.manager, first_name="Legacy", role_spelling="Manager",
        )
        staff = _seed_employee(db, first_name="Jo", manager=legacy)
        assert authority.can_approve(legacy.id, staff.id).authorized is True

    def test_delegation_window(self, org, registry, authority):
        """A delegate may approve inside the window and not a day after."""
        registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10, "Annual conference")

        inside = authority.can_approve(org.manager_b.id, org.staff.id, as_of=FEB_5)
        assert inside.authorized is True
        assert inside.delegated is True

        after = authority.can_approve(org.manager_b.id, org.staff.id, as_of=FEB_11)
        assert after.authorized is False

    def test_cancelled_delegation_grants_nothing(self, org, registry, authority):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        registry.cancel(delegation.id, org.manager_a.id)

        assert authority.can_approve(org.manager_b.id, org.staff.id, as_of=FEB_5).authorized is False

    def test_ensure_can_approve_raises(self, org, authority):
        with pytest.raises(UnauthorizedException) as exc:
            authority.ensure_can_approve(org.manager_b.id, org.staff.id)
        assert exc.value.status_code == 403
        assert exc.value.detail == "Staff not assigned to this manager"


# ═════════════════════════════════════════════════════════════════════
# DelegationRegistry
# ═════════════════════════════════════════════════════════════════════


class TestDelegationCreate:

    def test_create_active(self, db, org, registry):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10, "Leave")

        assert delegation.status == DelegationStatus.active
        assert delegation.reason == "Leave"
        audit = db.execute(
            select(AuditTrail).where(AuditTrail.entity_id == delegation.id)
        ).scalars().all()
        assert [a.action for a in audit] == ["create"]

    def test_inverted_range(self, org, registry):
        with pytest.raises(ValidationException) as exc:
            registry.create(org.manager_a.id, org.manager_b.id, FEB_10, FEB_1)
        assert "end_date" in exc.value.errors

    def test_self_delegation(self, org, registry):
        with pytest.raises(ValidationException) as exc:
            registry.create(org.manager_a.id, org.manager_a.id, FEB_1, FEB_10)
        assert "to_manager_id" in exc.value.errors

    def test_delegate_must_be_manager(self, org, registry):
        with pytest.raises(ValidationException) as exc:
            registry.create(org.manager_a.id, org.staff.id, FEB_1, FEB_10)
        assert "to_manager_id" in exc.value.errors

    def test_unknown_delegate(self, org, registry):
        with pytest.raises(NotFoundException):
            registry.create(org.manager_a.id, uuid.uuid4(), FEB_1, FEB_10)

    def test_overlapping_active_delegation_rejected(self, db, org, registry):
        registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        other = _seed_employee(db, role=UserRole.manager, first_name="Cy")

        with pytest.raises(ValidationException):
            registry.create(org.manager_a.id, other.id, FEB_5, FEB_11)

    def test_overlap_with_cancelled_allowed(self, org, registry):
        first = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        registry.cancel(first.id, org.manager_a.id)

        second = registry.create(org.manager_a.id, org.manager_b.id, FEB_5, FEB_11)
        assert second.status == DelegationStatus.active


class TestDelegationCancel:

    def test_only_creator_may_cancel(self, org, registry):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        with pytest.raises(UnauthorizedException):
            registry.cancel(delegation.id, org.manager_b.id)

    def test_cancel_sets_timestamp(self, org, registry):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        cancelled = registry.cancel(delegation.id, org.manager_a.id)

        assert cancelled.status == DelegationStatus.cancelled
        assert cancelled.cancelled_at is not None

    def test_cancel_twice(self, org, registry):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        registry.cancel(delegation.id, org.manager_a.id)
        with pytest.raises(InvalidStateTransition):
            registry.cancel(delegation.id, org.manager_a.id)

    def test_cancel_missing(self, org, registry):
        with pytest.raises(NotFoundException):
            registry.cancel(uuid.uuid4(), org.manager_a.id)


class TestDelegationReads:

    def test_delegated_staff(self, org, registry):
        delegation = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)

        staff = registry.get_delegated_staff(org.manager_b.id)
        assert [s.employee.id for s in staff] == [org.staff.id]
        assert staff[0].delegated_from == org.manager_a.id
        assert staff[0].delegation_id == delegation.id

        assert registry.get_delegated_staff(org.manager_b.id, as_of=FEB_11) == []

    def test_active_delegates_of(self, org, registry):
        registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_10)
        assert registry.active_delegates_of(org.manager_a.id) == [org.manager_b.id]
        assert registry.active_delegates_of(org.manager_a.id, as_of=FEB_11) == []

    def test_overview(self, org, registry):
        first = registry.create(org.manager_a.id, org.manager_b.id, FEB_1, FEB_5)
        registry.cancel(first.id, org.manager_a.id)
        registry.create(org.manager_a.id, org.manager_b.id, FEB_10, FEB_11)

        outgoing = registry.overview(org.manager_a.id)
        assert len(outgoing.outgoing) == 2
        assert outgoing.incoming == []

        incoming = registry.overview(org.manager_b.id)
        assert len(incoming.incoming) == 1
        assert incoming.incoming[0].start_date == FEB_10
