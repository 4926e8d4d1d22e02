"""Balance Ledger: holds, commits and releases against per-year leave balances.

Every counter change is a single conditional ``UPDATE ... RETURNING`` whose
WHERE clause carries the guard, so the check and the write cannot be split
by a concurrent caller on the same row. Hold resolution claims the hold row
the same way (``status = 'ACTIVE'`` in the WHERE clause) before touching the
balance, which makes commit and release single-shot.

The primitives here flush but never commit; callers wrap them in a unit of
work.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hrleave.exceptions import Conflict, InsufficientBalance, InvalidHoldState, InvariantViolation, NotFound
from hrleave.models.balance import LeaveBalance
from hrleave.models.enums import AuditAction, AuditEntityType, HoldStatus
from hrleave.models.ledger import LeaveHold
from hrleave.schemas.balance import BalanceListResponse, HoldResponse, LeaveBalanceSnapshot
from hrleave.services.audit import AuditEvent, audited_transaction, stage_audit_event, to_audit_value
from hrleave.services.policy import _get_leave_type_or_404

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

_ZERO = Decimal(0)

_COUNTER_COLUMNS = (
    LeaveBalance.earned_days,
    LeaveBalance.carried_forward_days,
    LeaveBalance.used_days,
    LeaveBalance.held_days,
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _available_expr() -> Any:
    return (
        col(LeaveBalance.earned_days)
        + col(LeaveBalance.carried_forward_days)
        - col(LeaveBalance.used_days)
        - col(LeaveBalance.held_days)
    )


def _balance_key(employee_id: str, leave_type_code: str, year: int) -> list[Any]:
    return [
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.leave_type_code) == leave_type_code,
        col(LeaveBalance.year) == year,
    ]


def _counters(earned: Decimal, carried: Decimal, used: Decimal, held: Decimal) -> dict[str, Any]:
    """Audit payload for the four ledger counters."""
    return {
        "earned_days": to_audit_value(earned),
        "carried_forward_days": to_audit_value(carried),
        "used_days": to_audit_value(used),
        "held_days": to_audit_value(held),
    }


def _invariant_violation(message: str, **details: Any) -> InvariantViolation:
    logger.critical("Ledger invariant violation: %s %s", message, details)
    return InvariantViolation(message, details={k: to_audit_value(v) for k, v in details.items()})


def _build_snapshot(balance: LeaveBalance) -> LeaveBalanceSnapshot:
    """Map a ledger row to its snapshot schema."""
    return LeaveBalanceSnapshot(
        employee_id=balance.employee_id,
        leave_type_code=balance.leave_type_code,
        year=balance.year,
        earned_days=balance.earned_days,
        carried_forward_days=balance.carried_forward_days,
        used_days=balance.used_days,
        held_days=balance.held_days,
        available_days=balance.available_days,
        version=balance.version,
        updated_at=balance.updated_at,
    )


def build_hold_response(hold: LeaveHold) -> HoldResponse:
    """Map a hold model to its response schema."""
    return HoldResponse(
        id=hold.id,
        employee_id=hold.employee_id,
        leave_type_code=hold.leave_type_code,
        year=hold.year,
        days=hold.days,
        request_id=hold.request_id,
        status=HoldStatus(hold.status),
        committed_days=hold.committed_days,
        created_at=hold.created_at,
        resolved_at=hold.resolved_at,
    )


async def _get_balance_row(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
) -> LeaveBalance | None:
    """Read a ledger row, refreshing any stale copy held by the session."""
    result = await session.execute(
        select(LeaveBalance)
        .where(*_balance_key(employee_id, leave_type_code, year))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_hold_or_404(session: AsyncSession, hold_id: uuid.UUID) -> LeaveHold:
    result = await session.execute(
        select(LeaveHold)
        .where(col(LeaveHold.id) == hold_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    hold = result.scalar_one_or_none()
    if hold is None:
        raise NotFound(f"Hold {hold_id} not found")
    return hold


async def _claim_hold(
    session: AsyncSession,
    hold: LeaveHold,
    new_status: HoldStatus,
    committed_days: Decimal | None = None,
) -> None:
    """Move an ACTIVE hold to ``new_status``; fails if someone else resolved it first."""
    now = datetime.now(UTC)
    result = await session.execute(
        sa.update(LeaveHold)
        .where(col(LeaveHold.id) == hold.id, col(LeaveHold.status) == HoldStatus.ACTIVE.value)
        .values(status=new_status.value, committed_days=committed_days, resolved_at=now)
        .returning(LeaveHold.id)
        .execution_options(synchronize_session=False)
    )
    if result.one_or_none() is None:
        raise InvalidHoldState(
            f"Hold {hold.id} is no longer active",
            details={"hold_id": str(hold.id)},
        )
    hold.status = new_status.value
    hold.committed_days = committed_days
    hold.resolved_at = now


def _require_active(hold: LeaveHold) -> None:
    if hold.status != HoldStatus.ACTIVE.value:
        raise InvalidHoldState(
            f"Hold {hold.id} is already {hold.status.lower()}",
            details={"hold_id": str(hold.id), "status": hold.status},
        )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
) -> LeaveBalanceSnapshot:
    """Snapshot of one ledger row. Raises NotFound if it was never provisioned."""
    balance = await _get_balance_row(session, employee_id, leave_type_code, year)
    if balance is None:
        raise NotFound(
            f"No {leave_type_code} balance for employee {employee_id} in {year}",
            details={"employee_id": employee_id, "leave_type_code": leave_type_code, "year": year},
        )
    return _build_snapshot(balance)


async def get_available(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
) -> Decimal:
    """Available days on a ledger row."""
    snapshot = await get_balance(session, employee_id, leave_type_code, year)
    return snapshot.available_days


async def list_balances(session: AsyncSession, employee_id: str, year: int | None = None) -> BalanceListResponse:
    """All ledger rows of an employee, newest year first."""
    query = select(LeaveBalance).where(col(LeaveBalance.employee_id) == employee_id)
    if year is not None:
        query = query.where(col(LeaveBalance.year) == year)
    result = await session.execute(
        query.order_by(col(LeaveBalance.year).desc(), col(LeaveBalance.leave_type_code)).execution_options(
            populate_existing=True
        )
    )
    items = [_build_snapshot(b) for b in result.scalars().all()]
    return BalanceListResponse(items=items, total=len(items))


async def get_hold(session: AsyncSession, hold_id: uuid.UUID) -> HoldResponse:
    return build_hold_response(await _get_hold_or_404(session, hold_id))


# ---------------------------------------------------------------------------
# Write path: hold, commit, release
# ---------------------------------------------------------------------------


async def hold(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
    days: Decimal,
    *,
    request_id: uuid.UUID | None = None,
    actor_id: str = SYSTEM_ACTOR,
) -> LeaveHold:
    """Reserve ``days`` on a ledger row.

    The availability check and the increment of ``held_days`` are one
    statement. Raises InsufficientBalance when the row cannot cover the
    request and NotFound when the row does not exist.
    """
    if days <= _ZERO:
        raise _invariant_violation("Hold amount must be positive", days=days)

    result = await session.execute(
        sa.update(LeaveBalance)
        .where(*_balance_key(employee_id, leave_type_code, year), _available_expr() >= days)
        .values(
            held_days=col(LeaveBalance.held_days) + days,
            version=col(LeaveBalance.version) + 1,
        )
        .returning(*_COUNTER_COLUMNS)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()

    if row is None:
        available = await get_available(session, employee_id, leave_type_code, year)
        raise InsufficientBalance(
            f"Insufficient balance: {available} days available, {days} requested",
            details={"available_days": str(available), "requested_days": str(days)},
        )

    earned, carried, used, held = row
    leave_hold = LeaveHold(
        employee_id=employee_id,
        leave_type_code=leave_type_code,
        year=year,
        days=days,
        request_id=request_id,
        status=HoldStatus.ACTIVE.value,
    )
    session.add(leave_hold)
    await session.flush()

    stage_audit_event(
        session,
        AuditEvent(
            actor_id=actor_id,
            entity_type=AuditEntityType.LEDGER,
            entity_id=f"{employee_id}:{leave_type_code}:{year}",
            action=AuditAction.HOLD,
            before=_counters(earned, carried, used, held - days),
            after={**_counters(earned, carried, used, held), "hold_id": str(leave_hold.id)},
        ),
    )
    return leave_hold


async def commit(
    session: AsyncSession,
    hold_id: uuid.UUID,
    actual_days: Decimal,
    *,
    actor_id: str = SYSTEM_ACTOR,
) -> LeaveHold:
    """Turn a hold into a permanent deduction.

    Partial commits are not supported: ``actual_days`` must equal the held
    amount, anything else is refused as an InvariantViolation.
    """
    leave_hold = await _get_hold_or_404(session, hold_id)
    _require_active(leave_hold)
    if actual_days != leave_hold.days:
        raise _invariant_violation(
            "Commit amount differs from held amount",
            hold_id=hold_id,
            held_days=leave_hold.days,
            actual_days=actual_days,
        )

    await _claim_hold(session, leave_hold, HoldStatus.COMMITTED, committed_days=actual_days)

    result = await session.execute(
        sa.update(LeaveBalance)
        .where(
            *_balance_key(leave_hold.employee_id, leave_hold.leave_type_code, leave_hold.year),
            col(LeaveBalance.held_days) >= leave_hold.days,
        )
        .values(
            held_days=col(LeaveBalance.held_days) - leave_hold.days,
            used_days=col(LeaveBalance.used_days) + actual_days,
            version=col(LeaveBalance.version) + 1,
        )
        .returning(*_COUNTER_COLUMNS)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise _invariant_violation("Ledger row cannot absorb commit of hold", hold_id=hold_id)

    earned, carried, used, held = row
    stage_audit_event(
        session,
        AuditEvent(
            actor_id=actor_id,
            entity_type=AuditEntityType.LEDGER,
            entity_id=f"{leave_hold.employee_id}:{leave_hold.leave_type_code}:{leave_hold.year}",
            action=AuditAction.COMMIT,
            before=_counters(earned, carried, used - actual_days, held + leave_hold.days),
            after={**_counters(earned, carried, used, held), "hold_id": str(hold_id)},
        ),
    )
    await session.flush()
    return leave_hold


async def release(
    session: AsyncSession,
    hold_id: uuid.UUID,
    *,
    actor_id: str = SYSTEM_ACTOR,
) -> LeaveHold:
    """Cancel a hold without deducting. A second release fails with InvalidHoldState."""
    leave_hold = await _get_hold_or_404(session, hold_id)
    _require_active(leave_hold)

    await _claim_hold(session, leave_hold, HoldStatus.RELEASED)

    result = await session.execute(
        sa.update(LeaveBalance)
        .where(
            *_balance_key(leave_hold.employee_id, leave_hold.leave_type_code, leave_hold.year),
            col(LeaveBalance.held_days) >= leave_hold.days,
        )
        .values(
            held_days=col(LeaveBalance.held_days) - leave_hold.days,
            version=col(LeaveBalance.version) + 1,
        )
        .returning(*_COUNTER_COLUMNS)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise _invariant_violation("Ledger row cannot absorb release of hold", hold_id=hold_id)

    earned, carried, used, held = row
    stage_audit_event(
        session,
        AuditEvent(
            actor_id=actor_id,
            entity_type=AuditEntityType.LEDGER,
            entity_id=f"{leave_hold.employee_id}:{leave_hold.leave_type_code}:{leave_hold.year}",
            action=AuditAction.RELEASE,
            before=_counters(earned, carried, used, held + leave_hold.days),
            after={**_counters(earned, carried, used, held), "hold_id": str(hold_id)},
        ),
    )
    await session.flush()
    return leave_hold


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------


async def open_balance(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
    *,
    earned_days: Decimal,
    carried_forward_days: Decimal = _ZERO,
    actor_id: str = SYSTEM_ACTOR,
    action: AuditAction = AuditAction.PROVISION,
) -> LeaveBalance:
    """Insert a new ledger row. Raises Conflict if the row already exists."""
    if earned_days < _ZERO or carried_forward_days < _ZERO:
        raise _invariant_violation(
            "Opening counters must not be negative",
            earned_days=earned_days,
            carried_forward_days=carried_forward_days,
        )
    if await _get_balance_row(session, employee_id, leave_type_code, year) is not None:
        raise Conflict(
            f"{leave_type_code} balance for employee {employee_id} in {year} already exists",
            details={"employee_id": employee_id, "leave_type_code": leave_type_code, "year": year},
        )

    balance = LeaveBalance(
        employee_id=employee_id,
        leave_type_code=leave_type_code,
        year=year,
        earned_days=earned_days,
        carried_forward_days=carried_forward_days,
    )
    session.add(balance)
    try:
        await session.flush()
    except IntegrityError:
        raise Conflict(
            f"{leave_type_code} balance for employee {employee_id} in {year} already exists",
        ) from None

    stage_audit_event(
        session,
        AuditEvent(
            actor_id=actor_id,
            entity_type=AuditEntityType.LEDGER,
            entity_id=f"{employee_id}:{leave_type_code}:{year}",
            action=action,
            after=_counters(earned_days, carried_forward_days, _ZERO, _ZERO),
        ),
    )
    return balance


async def provision_balance(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    year: int,
    *,
    earned_days: Decimal | None = None,
    carried_forward_days: Decimal = _ZERO,
    actor_id: str = SYSTEM_ACTOR,
) -> LeaveBalanceSnapshot:
    """Open a ledger row at onboarding, defaulting to the type's annual entitlement."""
    leave_type = await _get_leave_type_or_404(session, leave_type_code)
    if earned_days is None:
        earned_days = leave_type.annual_entitlement_days

    async with audited_transaction(session):
        balance = await open_balance(
            session,
            employee_id,
            leave_type_code,
            year,
            earned_days=earned_days,
            carried_forward_days=carried_forward_days,
            actor_id=actor_id,
        )

    return await get_balance(session, balance.employee_id, balance.leave_type_code, balance.year)
