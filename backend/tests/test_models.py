from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa

from hrleave.models import (
    AuditLog,
    HoldStatus,
    LeaveBalance,
    LeaveHold,
    LeaveRequest,
    LeaveRequestState,
    LeaveRequestTransition,
    LeaveType,
    SQLModel,
)

EXPECTED_TABLES = {
    "audit_log",
    "leave_balance",
    "leave_hold",
    "leave_request",
    "leave_request_transition",
    "leave_type",
}


def test_all_tables_registered() -> None:
    table_names = set(SQLModel.metadata.tables.keys())
    assert EXPECTED_TABLES.issubset(table_names)


def test_leave_type_defaults() -> None:
    leave_type = LeaveType(code="VL", name="Vacation Leave")
    assert leave_type.annual_entitlement_days == Decimal(0)
    assert leave_type.max_carryover_days == Decimal(0)
    assert leave_type.carry_forward_allowed is False
    assert leave_type.is_paid is True
    assert leave_type.is_active is True
    assert leave_type.description is None


def test_leave_balance_defaults() -> None:
    balance = LeaveBalance(employee_id="emp-1", leave_type_code="VL", year=2025)
    assert balance.earned_days == Decimal(0)
    assert balance.used_days == Decimal(0)
    assert balance.held_days == Decimal(0)
    assert balance.version == 1


def test_leave_balance_available_is_derived() -> None:
    balance = LeaveBalance(
        employee_id="emp-1",
        leave_type_code="VL",
        year=2025,
        earned_days=Decimal(15),
        carried_forward_days=Decimal(3),
        used_days=Decimal(4),
        held_days=Decimal("2.5"),
    )
    assert balance.available_days == Decimal("11.5")


def test_leave_balance_key_is_composite() -> None:
    table = SQLModel.metadata.tables["leave_balance"]
    assert [c.name for c in table.primary_key.columns] == ["employee_id", "leave_type_code", "year"]


def test_leave_hold_defaults() -> None:
    leave_hold = LeaveHold(employee_id="emp-1", leave_type_code="VL", year=2025, days=Decimal(3))
    assert leave_hold.id is not None
    assert leave_hold.status == HoldStatus.ACTIVE
    assert leave_hold.request_id is None
    assert leave_hold.committed_days is None
    assert leave_hold.resolved_at is None


def test_leave_request_defaults() -> None:
    request = LeaveRequest(
        employee_id="emp-1",
        leave_type_code="VL",
        start_date=date(2025, 12, 1),
        end_date=date(2025, 12, 5),
        days_requested=Decimal(5),
        submitted_by="emp-1",
    )
    assert request.state == LeaveRequestState.DRAFT
    assert request.reason is None
    assert request.supervisor_id is None
    assert request.hold_id is None


def test_transition_sequence_is_unique_per_request() -> None:
    table = SQLModel.metadata.tables["leave_request_transition"]
    unique_columns = [
        sorted(c.name for c in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, sa.UniqueConstraint)
    ]
    assert ["request_id", "sequence"] in unique_columns


def test_transition_instantiation() -> None:
    transition = LeaveRequestTransition(
        request_id=uuid.uuid4(),
        sequence=1,
        from_state=LeaveRequestState.DRAFT,
        to_state=LeaveRequestState.PENDING_SUPERVISOR,
        event="SUBMIT",
        actor_id="emp-1",
        actor_role="EMPLOYEE",
    )
    assert transition.comment is None


def test_audit_log_instantiation() -> None:
    log = AuditLog(
        actor_id="hr-mgr",
        entity_type="LEAVE_TYPE",
        entity_id="VL",
        action="CREATE",
    )
    assert log.before_json is None
    assert log.after_json is None
