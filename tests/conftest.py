"""Shared test fixtures — sync DB session, store wiring, org factories.

Uses an in-memory SQLite database so the storage adapters run against a
real SQL engine without PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from types import SimpleNamespace
from typing import Callable, Iterator, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rotaleave.approvals.repository import SqlDelegationStore
from rotaleave.common.constants import LeaveStatus, LeaveType, UserRole
from rotaleave.common.dates import count_business_days
from rotaleave.database import Base
from rotaleave.leave.repository import SqlEmployeeStore, SqlLeaveRequestStore
from rotaleave.leave.service import RequestLifecycle
from rotaleave.notifications.service import RecordingNotificationSink

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import rotaleave.approvals.models  # noqa: F401
import rotaleave.common.audit  # noqa: F401
import rotaleave.core_hr.models  # noqa: F401
import rotaleave.leave.models  # noqa: F401
import rotaleave.notifications.models  # noqa: F401
from rotaleave.core_hr.models import Employee
from rotaleave.leave.models import LeaveRequest

# ── Test database (SQLite in-memory) ────────────────────────────────

engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite defers BEGIN on its own; take over so SAVEPOINTs behave
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_conn, connection_record):
    dbapi_conn.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionFactory = sessionmaker(engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db() -> Iterator[Session]:
    with TestSessionFactory() as session:
        yield session
        session.rollback()


# ── Model factories ─────────────────────────────────────────────────

def _seed_employee(
    db: Session,
    *,
    role: UserRole = UserRole.staff,
    first_name: str = "Test",
    manager: Optional[Employee] = None,
    is_active: bool = True,
    days_owed: int = 0,
    days_owed_since: Optional[date] = None,
    role_spelling: Optional[str] = None,
) -> Employee:
    employee = Employee(
        id=uuid.uuid4(),
        employee_code=f"RL-{uuid.uuid4().hex[:6].upper()}",
        first_name=first_name,
        last_name="User",
        email=f"{first_name.lower()}.{uuid.uuid4().hex[:4]}@rota.test",
        role=role_spelling or role.value,
        manager_id=manager.id if manager is not None else None,
        is_active=is_active,
        days_owed=days_owed,
        days_owed_since=days_owed_since,
    )
    db.add(employee)
    db.flush()
    return employee


def _seed_leave(
    db: Session,
    employee: Employee,
    start: date,
    end: date,
    *,
    leave_type: str = LeaveType.annual.value,
    status: str = LeaveStatus.approved.value,
    days_requested: Optional[int] = None,
    **extra,
) -> LeaveRequest:
    """Insert a leave row directly, bypassing the lifecycle checks."""
    row = LeaveRequest(
        id=uuid.uuid4(),
        employee_id=employee.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        days_requested=(
            days_requested if days_requested is not None
            else count_business_days(start, end)
        ),
        status=status,
        submitted_date=datetime.now(timezone.utc),
        **extra,
    )
    db.add(row)
    db.flush()
    return row


@pytest.fixture
def org(db) -> SimpleNamespace:
    """A director, two managers and their staff."""
    director = _seed_employee(db, role=UserRole.director, first_name="Dana")
    manager_a = _seed_employee(db, role=UserRole.manager, first_name="Alex", manager=director)
    manager_b = _seed_employee(db, role=UserRole.manager, first_name="Blair", manager=director)
    staff = _seed_employee(db, first_name="Sam", manager=manager_a)
    staff_b = _seed_employee(db, first_name="Robin", manager=manager_b)
    admin = _seed_employee(db, role=UserRole.admin, first_name="Ari")
    return SimpleNamespace(
        director=director,
        manager_a=manager_a,
        manager_b=manager_b,
        staff=staff,
        staff_b=staff_b,
        admin=admin,
    )


@pytest.fixture
def notifier() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def make_lifecycle(db, notifier) -> Callable[..., RequestLifecycle]:
    """Build a RequestLifecycle over the SQLite stores with a pinned clock."""

    def _make(today: date, sink=None) -> RequestLifecycle:
        return RequestLifecycle(
            SqlEmployeeStore(db),
            SqlLeaveRequestStore(db),
            SqlDelegationStore(db),
            sink if sink is not None else notifier,
            clock=lambda: today,
        )

    return _make
