from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from hrleave.db import get_session
from hrleave.main import app
from hrleave.models import SQLModel
from hrleave.models.enums import EmploymentStatus
from hrleave.services.audit import (
    DatabaseAuditRecorder,
    InMemoryAuditRecorder,
    reset_audit_degraded,
    set_audit_recorder,
)
from hrleave.services.employee import EmployeeInfo, InMemoryEmployeeDirectory, set_employee_directory
from hrleave.services.policy import seed_default_leave_types

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

# Directory cast shared by the test modules:
#   emp-1, emp-2       employees in "Rolling Mill 1", supervised by sup-1
#   sup-1              supervisor of emp-1/emp-2, delegates to sup-2
#   sup-2              stand-in supervisor
#   hr-mgr, hr-staff   HR
#   emp-term           terminated employee
#   emp-orphan         employee without a supervisor on record
DIRECTORY_CAST = [
    EmployeeInfo(id="emp-1", first_name="Juan", last_name="Dela Cruz", department="Rolling Mill 1", supervisor_id="sup-1"),
    EmployeeInfo(id="emp-2", first_name="Ana", last_name="Santos", department="Rolling Mill 1", supervisor_id="sup-1"),
    EmployeeInfo(
        id="sup-1",
        first_name="Ramon",
        last_name="Garcia",
        department="Rolling Mill 1",
        supervisor_id="hr-mgr",
        delegate_ids=["sup-2"],
    ),
    EmployeeInfo(id="sup-2", first_name="Rosa", last_name="Mendoza", department="Rolling Mill 2", supervisor_id="hr-mgr"),
    EmployeeInfo(id="hr-mgr", first_name="Maria", last_name="Reyes", department="Human Resources"),
    EmployeeInfo(id="hr-staff", first_name="Liza", last_name="Cruz", department="Human Resources", supervisor_id="hr-mgr"),
    EmployeeInfo(
        id="emp-term",
        first_name="Pedro",
        last_name="Lim",
        department="Accounting",
        supervisor_id="sup-1",
        status=EmploymentStatus.TERMINATED,
    ),
    EmployeeInfo(id="emp-orphan", first_name="Jose", last_name="Bautista", department="Accounting"),
]


def _use_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINTs and write locks behave.

    Writers take the database lock up front (BEGIN IMMEDIATE), so concurrent
    sessions queue instead of failing on lock upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest.fixture(scope="session")
async def engine(tmp_path_factory: pytest.TempPathFactory) -> AsyncIterator[AsyncEngine]:
    """Create a session-scoped async engine with fresh tables and the default catalog.

    Uses DATABASE_URL when set (Postgres in CI), otherwise a throwaway SQLite
    file.
    """
    database_url = os.environ.get("DATABASE_URL") or (
        f"sqlite+aiosqlite:///{tmp_path_factory.mktemp('db') / 'hrleave-test.db'}"
    )
    _engine = create_async_engine(database_url)
    if _engine.dialect.name == "sqlite":
        _use_sqlite_savepoints(_engine)

    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    async with AsyncSession(_engine, expire_on_commit=False) as session:
        await seed_default_leave_types(session)

    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session wrapped in a transaction that rolls back after each test.

    Service commits and rollbacks act on SAVEPOINTs inside the outer
    transaction, so the units of work behave as in production.
    """
    async with engine.connect() as conn:
        txn = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False, join_transaction_mode="create_savepoint")
        yield session
        await session.close()
        await txn.rollback()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def directory() -> Iterator[InMemoryEmployeeDirectory]:
    """Seed the in-memory employee directory for every test."""
    stub = InMemoryEmployeeDirectory()
    for employee in DIRECTORY_CAST:
        stub.seed(employee)
    set_employee_directory(stub)
    yield stub
    set_employee_directory(InMemoryEmployeeDirectory())


@pytest.fixture(autouse=True)
def audit_recorder() -> Iterator[InMemoryAuditRecorder]:
    """Capture audit events in memory and start every test out of degraded mode."""
    recorder = InMemoryAuditRecorder()
    set_audit_recorder(recorder)
    reset_audit_degraded()
    yield recorder
    set_audit_recorder(DatabaseAuditRecorder())
    reset_audit_degraded()
