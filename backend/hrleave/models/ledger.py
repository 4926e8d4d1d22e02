# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from hrleave.models.base import UUIDBase
from hrleave.models.enums import HoldStatus


def _now_utc() -> datetime:
    return datetime.now(UTC)


class LeaveHold(UUIDBase, table=True):
    """Reservation of days against a ledger row, resolved exactly once."""

    __tablename__ = "leave_hold"
    __table_args__ = (sa.Index("ix_hold_balance_key", "employee_id", "leave_type_code", "year"),)

    employee_id: str = Field(max_length=64)
    leave_type_code: str = Field(max_length=20)
    year: int
    days: Decimal = Field(max_digits=8, decimal_places=2)
    request_id: uuid.UUID | None = Field(default=None, index=True)
    status: str = Field(default=HoldStatus.ACTIVE, max_length=20, sa_column_kwargs={"server_default": "ACTIVE"})
    committed_days: Decimal | None = Field(default=None, max_digits=8, decimal_places=2)
    created_at: datetime = Field(
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    resolved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
