# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from hrleave.models.base import TimestampMixin, UUIDBase
from hrleave.models.enums import LeaveRequestState


def _now_utc() -> datetime:
    return datetime.now(UTC)


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request and its current workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_request_employee_state", "employee_id", "state"),
        sa.CheckConstraint("start_date <= end_date", name="ck_request_date_order"),
    )

    employee_id: str = Field(max_length=64, index=True)
    leave_type_code: str = Field(
        sa_column=sa.Column(sa.String(20), sa.ForeignKey("leave_type.code"), nullable=False, index=True),
    )
    start_date: date
    end_date: date
    days_requested: Decimal = Field(max_digits=8, decimal_places=2)
    reason: str | None = None
    state: str = Field(
        default=LeaveRequestState.DRAFT,
        max_length=50,
        index=True,
        sa_column_kwargs={"server_default": "DRAFT"},
    )
    supervisor_id: str | None = Field(default=None, max_length=64)
    department: str | None = Field(default=None, max_length=255, index=True)
    hold_id: uuid.UUID | None = None
    submitted_by: str = Field(max_length=64)
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class LeaveRequestTransition(UUIDBase, table=True):
    """Append-only record of one state change of a leave request."""

    __tablename__ = "leave_request_transition"
    __table_args__ = (sa.UniqueConstraint("request_id", "sequence", name="uq_transition_request_sequence"),)

    request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    sequence: int
    from_state: str = Field(max_length=50)
    to_state: str = Field(max_length=50)
    event: str = Field(max_length=50)
    actor_id: str = Field(max_length=64)
    actor_role: str = Field(max_length=50)
    comment: str | None = None
    created_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
