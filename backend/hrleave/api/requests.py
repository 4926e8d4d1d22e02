# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from hrleave.api.deps import ActorDep
from hrleave.db import SessionDep
from hrleave.models.enums import LeaveRequestState
from hrleave.schemas.request import (
    ActionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    NextApproverResponse,
    RequestFilter,
    SubmitLeaveRequestPayload,
)
from hrleave.services import workflow

requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    payload: SubmitLeaveRequestPayload,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Submit a leave request; it goes straight to the supervisor."""
    return await workflow.submit_leave_request(
        session,
        payload.employee_id,
        payload.leave_type_code,
        payload.start_date,
        payload.end_date,
        payload.reason,
        actor=actor,
    )


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    session: SessionDep,
    actor: ActorDep,
    status_filter: LeaveRequestState | None = Query(default=None, alias="status"),
    employee_id: str | None = Query(default=None),
    leave_type_code: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    department: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters."""
    filters = RequestFilter(
        status=status_filter,
        employee_id=employee_id,
        leave_type_code=leave_type_code,
        date_from=date_from,
        date_to=date_to,
        department=department,
        offset=offset,
        limit=limit,
    )
    return await workflow.list_requests(session, filters)


@requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Get a single leave request with its transition history."""
    return await workflow.get_request(session, request_id)


@requests_router.get("/{request_id}/next-approver", response_model=NextApproverResponse | None)
async def get_next_approver(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> NextApproverResponse | None:
    """Who must act next; null once the request is terminal."""
    return await workflow.get_next_approver(session, request_id)


@requests_router.post("/{request_id}/actions", response_model=LeaveRequestResponse)
async def act_on_leave_request(
    request_id: uuid.UUID,
    payload: ActionPayload,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Apply a workflow event (approve, reject, process or cancel) to a request."""
    return await workflow.act_on_request(
        session, request_id, payload.event, actor.actor_id, actor.role, payload.comment
    )
