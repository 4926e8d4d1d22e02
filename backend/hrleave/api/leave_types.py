# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Query, status

from hrleave.api.deps import ActorDep, PolicyManagerDep
from hrleave.db import SessionDep
from hrleave.schemas.leave_type import (
    CreateLeaveTypePayload,
    LeaveTypeListResponse,
    LeaveTypeResponse,
    UpdateLeaveTypePayload,
)
from hrleave.services import policy as policy_service

leave_types_router = APIRouter(prefix="/leave-types", tags=["leave-types"])


@leave_types_router.post("", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_type(
    payload: CreateLeaveTypePayload,
    session: SessionDep,
    actor: PolicyManagerDep,
) -> LeaveTypeResponse:
    """Add a leave type to the catalog."""
    return await policy_service.create_leave_type(session, actor, payload)


@leave_types_router.get("", response_model=LeaveTypeListResponse)
async def list_leave_types(
    session: SessionDep,
    actor: ActorDep,
    include_inactive: bool = Query(default=False),
) -> LeaveTypeListResponse:
    """List the leave type catalog."""
    return await policy_service.list_leave_types(session, include_inactive)


@leave_types_router.get("/{code}", response_model=LeaveTypeResponse)
async def get_leave_type(
    code: str,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveTypeResponse:
    """Get a single leave type."""
    return await policy_service.get_leave_type_response(session, code)


@leave_types_router.patch("/{code}", response_model=LeaveTypeResponse)
async def update_leave_type(
    code: str,
    payload: UpdateLeaveTypePayload,
    session: SessionDep,
    actor: PolicyManagerDep,
) -> LeaveTypeResponse:
    """Update a leave type. Ledger settings freeze once a closed year used the type."""
    return await policy_service.update_leave_type(session, actor, code, payload)
