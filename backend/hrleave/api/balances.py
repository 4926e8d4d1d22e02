# ruff: noqa: B008, TC001
from __future__ import annotations

from fastapi import APIRouter, Query, status

from hrleave.api.deps import ActorDep, PolicyManagerDep
from hrleave.db import SessionDep
from hrleave.schemas.balance import (
    BalanceListResponse,
    LeaveBalanceSnapshot,
    ProvisionBalancePayload,
    RolloverPayload,
    RolloverResponse,
)
from hrleave.services import ledger
from hrleave.services.rollover import run_year_rollover

employee_balance_router = APIRouter(prefix="/employees/{employee_id}/balances", tags=["balances"])

rollover_router = APIRouter(prefix="/ledger", tags=["balances"])


@employee_balance_router.get("", response_model=BalanceListResponse)
async def list_employee_balances(
    employee_id: str,
    session: SessionDep,
    actor: ActorDep,
    year: int | None = Query(default=None),
) -> BalanceListResponse:
    """Get all ledger rows of an employee, optionally for one year."""
    return await ledger.list_balances(session, employee_id, year)


@employee_balance_router.get("/{leave_type_code}/{year}", response_model=LeaveBalanceSnapshot)
async def get_employee_balance(
    employee_id: str,
    leave_type_code: str,
    year: int,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveBalanceSnapshot:
    """Get one ledger row."""
    return await ledger.get_balance(session, employee_id, leave_type_code, year)


@employee_balance_router.post("", response_model=LeaveBalanceSnapshot, status_code=status.HTTP_201_CREATED)
async def provision_employee_balance(
    employee_id: str,
    payload: ProvisionBalancePayload,
    session: SessionDep,
    actor: PolicyManagerDep,
) -> LeaveBalanceSnapshot:
    """Open a ledger row for an employee (onboarding)."""
    return await ledger.provision_balance(
        session,
        employee_id,
        payload.leave_type_code,
        payload.year,
        earned_days=payload.earned_days,
        carried_forward_days=payload.carried_forward_days,
        actor_id=actor.actor_id,
    )


@rollover_router.post("/rollover", response_model=RolloverResponse)
async def trigger_rollover(
    payload: RolloverPayload,
    session: SessionDep,
    actor: PolicyManagerDep,
) -> RolloverResponse:
    """Open ``target_year`` ledger rows from the closing year.

    The worker runs this on Jan 1; the endpoint exists for backfills.
    """
    result = await run_year_rollover(session, payload.target_year)
    return RolloverResponse(
        target_year=result.target_year,
        processed=result.processed,
        skipped=result.skipped,
        errors=result.errors,
    )
