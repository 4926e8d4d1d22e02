# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from hrleave.models.enums import HoldStatus

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class LeaveBalanceSnapshot(BaseModel):
    """Point-in-time view of one ledger row."""

    employee_id: str
    leave_type_code: str
    year: int
    earned_days: Decimal
    carried_forward_days: Decimal
    used_days: Decimal
    held_days: Decimal
    available_days: Decimal
    version: int
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """All ledger rows of an employee for a year."""

    items: list[LeaveBalanceSnapshot]
    total: int


class HoldResponse(BaseModel):
    """A single balance hold."""

    id: uuid.UUID
    employee_id: str
    leave_type_code: str
    year: int
    days: Decimal
    request_id: uuid.UUID | None
    status: HoldStatus
    committed_days: Decimal | None
    created_at: datetime
    resolved_at: datetime | None


# ---------------------------------------------------------------------------
# Provisioning and rollover
# ---------------------------------------------------------------------------


class ProvisionBalancePayload(BaseModel):
    """Request body for opening a ledger row at onboarding."""

    leave_type_code: str = Field(min_length=1, max_length=20)
    year: int = Field(ge=1900, le=9999)
    earned_days: Decimal | None = Field(default=None, ge=0, description="Defaults to the annual entitlement")
    carried_forward_days: Decimal = Field(default=Decimal(0), ge=0)


class RolloverPayload(BaseModel):
    """Request body for triggering a year rollover."""

    target_year: int = Field(ge=1901, le=9999)


class RolloverResponse(BaseModel):
    """Result of a year rollover run."""

    target_year: int
    processed: int
    skipped: int
    errors: int
