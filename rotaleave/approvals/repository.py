"""SQLAlchemy storage adapter for delegations."""

from __future__ import annotations

import uuid
from typing import Any, Mapping, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Session

from rotaleave.approvals.models import Delegation
from rotaleave.approvals.schemas import DelegationRecord
from rotaleave.common.audit import create_audit_entry
from rotaleave.common.constants import DelegationStatus
from rotaleave.leave.repository import coerce_enum, db_value


def delegation_record(row: Delegation) -> DelegationRecord:
    return DelegationRecord(
        id=row.id,
        from_manager_id=row.from_manager_id,
        to_manager_id=row.to_manager_id,
        start_date=row.start_date,
        end_date=row.end_date,
        reason=row.reason or "",
        status=coerce_enum(DelegationStatus, row.status),
        created_at=row.created_at,
        cancelled_at=row.cancelled_at,
    )


class SqlDelegationStore:
    """DelegationStore over the ``delegations`` table. Rows are cancelled, never deleted."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        fields: Mapping[str, Any],
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> uuid.UUID:
        row = Delegation(**{key: db_value(value) for key, value in fields.items()})
        self.session.add(row)
        self.session.flush()

        create_audit_entry(
            self.session,
            action="create",
            entity_type="delegation",
            entity_id=row.id,
            actor_id=actor_id,
            new_values=dict(fields),
        )
        return row.id

    def get_by_id(self, delegation_id: uuid.UUID) -> Optional[DelegationRecord]:
        row = self.session.get(Delegation, delegation_id)
        return delegation_record(row) if row is not None else None

    def list_from(self, from_manager_id: uuid.UUID) -> list[DelegationRecord]:
        result = self.session.execute(
            sa.select(Delegation)
            .where(Delegation.from_manager_id == from_manager_id)
            .order_by(Delegation.start_date.desc())
        )
        return [delegation_record(row) for row in result.scalars().all()]

    def list_to(self, to_manager_id: uuid.UUID) -> list[DelegationRecord]:
        result = self.session.execute(
            sa.select(Delegation)
            .where(Delegation.to_manager_id == to_manager_id)
            .order_by(Delegation.start_date.desc())
        )
        return [delegation_record(row) for row in result.scalars().all()]

    def update(
        self,
        delegation_id: uuid.UUID,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
        actor_id: Optional[uuid.UUID] = None,
        action: str = "update",
    ) -> Optional[DelegationRecord]:
        row = self.session.get(Delegation, delegation_id)
        if row is None:
            return None
        old_values = {key: getattr(row, key) for key in fields}

        stmt = sa.update(Delegation).where(Delegation.id == delegation_id)
        for key, value in (expected or {}).items():
            stmt = stmt.where(getattr(Delegation, key) == db_value(value))
        stmt = stmt.values(
            {key: db_value(value) for key, value in fields.items()}
        ).execution_options(synchronize_session=False)

        if self.session.execute(stmt).rowcount == 0:
            return None
        self.session.refresh(row)

        create_audit_entry(
            self.session,
            action=action,
            entity_type="delegation",
            entity_id=row.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=dict(fields),
        )
        return delegation_record(row)
