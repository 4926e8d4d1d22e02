from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _now_utc() -> datetime:
    return datetime.now(UTC)


class LeaveBalance(SQLModel, table=True):
    """Ledger row for one employee, leave type and year.

    ``available_days`` is derived and never stored, so it cannot drift from
    the four counters it is computed from.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.PrimaryKeyConstraint("employee_id", "leave_type_code", "year"),
        sa.CheckConstraint("used_days >= 0", name="ck_balance_used_non_negative"),
        sa.CheckConstraint("held_days >= 0", name="ck_balance_held_non_negative"),
        sa.CheckConstraint(
            "earned_days + carried_forward_days - used_days - held_days >= 0",
            name="ck_balance_available_non_negative",
        ),
    )

    employee_id: str = Field(max_length=64, index=True)
    leave_type_code: str = Field(
        sa_column=sa.Column(sa.String(20), sa.ForeignKey("leave_type.code"), nullable=False),
    )
    year: int
    earned_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    carried_forward_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    used_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    held_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=_now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": sa.func.now()},
    )
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})

    @property
    def available_days(self) -> Decimal:
        return self.earned_days + self.carried_forward_days - self.used_days - self.held_days
