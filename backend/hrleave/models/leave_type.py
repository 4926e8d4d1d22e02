from __future__ import annotations

from decimal import Decimal

from sqlmodel import Field

from hrleave.models.base import TimestampMixin


class LeaveType(TimestampMixin, table=True):
    """Catalog entry describing a kind of leave and its yearly entitlement."""

    __tablename__ = "leave_type"

    code: str = Field(primary_key=True, max_length=20)
    name: str = Field(max_length=255)
    description: str | None = None
    annual_entitlement_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    max_carryover_days: Decimal = Field(default=Decimal(0), max_digits=8, decimal_places=2)
    carry_forward_allowed: bool = False
    is_paid: bool = True
    is_active: bool = True
