# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class LeaveTypeResponse(BaseModel):
    """A leave type from the policy catalog."""

    code: str
    name: str
    description: str | None
    annual_entitlement_days: Decimal
    max_carryover_days: Decimal
    carry_forward_allowed: bool
    is_paid: bool
    is_active: bool
    created_at: datetime


class LeaveTypeListResponse(BaseModel):
    items: list[LeaveTypeResponse]
    total: int


class CreateLeaveTypePayload(BaseModel):
    """Request body for adding a leave type to the catalog."""

    code: str = Field(min_length=1, max_length=20, pattern=r"^[A-Z0-9_]+$")
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    annual_entitlement_days: Decimal = Field(ge=0, max_digits=8, decimal_places=2)
    max_carryover_days: Decimal = Field(default=Decimal(0), ge=0, max_digits=8, decimal_places=2)
    carry_forward_allowed: bool = False
    is_paid: bool = True


class UpdateLeaveTypePayload(BaseModel):
    """Partial update of a leave type. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    annual_entitlement_days: Decimal | None = Field(default=None, ge=0, max_digits=8, decimal_places=2)
    max_carryover_days: Decimal | None = Field(default=None, ge=0, max_digits=8, decimal_places=2)
    carry_forward_allowed: bool | None = None
    is_paid: bool | None = None
    is_active: bool | None = None
