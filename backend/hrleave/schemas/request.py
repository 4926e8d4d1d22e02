# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Self

from pydantic import BaseModel, Field, model_validator

from hrleave.models.enums import ActorRole, LeaveRequestState, WorkflowEvent

# ---------------------------------------------------------------------------
# Entity validation
# ---------------------------------------------------------------------------


class LeaveRequestDraft(BaseModel):
    """Shape of a leave request before it enters the workflow.

    Only structural rules live here; balance, overlap and authority checks
    belong to the workflow and the ledger.
    """

    employee_id: str = Field(min_length=1, max_length=64)
    leave_type_code: str = Field(min_length=1, max_length=20)
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self

    @property
    def days_requested(self) -> Decimal:
        """Inclusive calendar day count."""
        return Decimal((self.end_date - self.start_date).days + 1)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeaveRequestPayload(BaseModel):
    """Request body for submitting a new leave request."""

    employee_id: str
    leave_type_code: str
    start_date: date
    end_date: date
    reason: str | None = None


class ActionPayload(BaseModel):
    """Request body for acting on a leave request."""

    event: WorkflowEvent
    comment: str | None = Field(default=None, max_length=1000)


class RequestFilter(BaseModel):
    """Filters for the leave request read model."""

    status: LeaveRequestState | None = None
    employee_id: str | None = None
    leave_type_code: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    department: str | None = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=100)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TransitionResponse(BaseModel):
    """One entry of a request's audit trail."""

    sequence: int
    from_state: LeaveRequestState
    to_state: LeaveRequestState
    event: WorkflowEvent
    actor_id: str
    actor_role: ActorRole
    comment: str | None
    created_at: datetime


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: str
    leave_type_code: str
    start_date: date
    end_date: date
    days_requested: Decimal
    reason: str | None
    state: LeaveRequestState
    supervisor_id: str | None
    department: str | None
    hold_id: uuid.UUID | None
    submitted_by: str
    created_at: datetime
    updated_at: datetime
    transitions: list[TransitionResponse] = []


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class NextApproverResponse(BaseModel):
    """Who must act next on a request; ``actor_id`` is None when any holder of the role may act."""

    actor_role: ActorRole
    actor_id: str | None
