"""Year rollover: open next year's ledger rows from the closing year.

Runs on Jan 1. For each ledger row of the closing year:
1. Skip it if the new year's row already exists
2. earned = the leave type's annual entitlement
3. carried = min(max(available, 0), cap) when the type carries forward, else 0
4. Open the new row and stage a ROLLOVER audit event

Days still held in the closing year stay there; they are not carried.
Each row is its own unit of work, so one failure does not stop the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import aliased
from sqlmodel import col

from hrleave.models.balance import LeaveBalance
from hrleave.models.enums import AuditAction
from hrleave.models.leave_type import LeaveType
from hrleave.services.audit import audited_transaction
from hrleave.services.ledger import SYSTEM_ACTOR, open_balance

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


@dataclass
class RolloverRunResult:
    """Result of a year rollover run."""

    target_year: int
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    details: list[dict[str, object]] = field(default_factory=list)


def carry_forward_amount(leave_type: LeaveType, available_days: Decimal) -> Decimal:
    """Days a closing balance contributes to the next year."""
    if not leave_type.carry_forward_allowed:
        return _ZERO
    return min(max(available_days, _ZERO), leave_type.max_carryover_days)


async def run_year_rollover(session: AsyncSession, target_year: int) -> RolloverRunResult:
    """Open ``target_year`` rows for every ``target_year - 1`` row that has no successor.

    Idempotent: rows that already exist in the target year are left alone.
    """
    result = RolloverRunResult(target_year=target_year)
    prior_year = target_year - 1

    successor = aliased(LeaveBalance)
    rows = await session.execute(
        select(LeaveBalance, LeaveType, col(successor.year).label("successor_year"))
        .join(LeaveType, col(LeaveType.code) == col(LeaveBalance.leave_type_code))
        .outerjoin(
            successor,
            (col(successor.employee_id) == col(LeaveBalance.employee_id))
            & (col(successor.leave_type_code) == col(LeaveBalance.leave_type_code))
            & (col(successor.year) == target_year),
        )
        .where(col(LeaveBalance.year) == prior_year)
        .order_by(col(LeaveBalance.employee_id), col(LeaveBalance.leave_type_code))
        .execution_options(populate_existing=True)
    )
    # Plain values only: a failed row rolls back and expires loaded objects.
    candidates = [
        (
            balance.employee_id,
            balance.leave_type_code,
            leave_type.annual_entitlement_days,
            carry_forward_amount(leave_type, balance.available_days),
            successor_year is None and leave_type.is_active,
        )
        for balance, leave_type, successor_year in rows.all()
    ]

    for employee_id, code, entitlement, carried, eligible in candidates:
        if not eligible:
            result.skipped += 1
            continue

        try:
            async with audited_transaction(session):
                await open_balance(
                    session,
                    employee_id,
                    code,
                    target_year,
                    earned_days=entitlement,
                    carried_forward_days=carried,
                    actor_id=SYSTEM_ACTOR,
                    action=AuditAction.ROLLOVER,
                )
        except Exception:
            logger.exception("Rollover failed for %s/%s into %d", employee_id, code, target_year)
            result.errors += 1
            continue

        result.processed += 1
        result.details.append(
            {
                "employee_id": employee_id,
                "leave_type_code": code,
                "carried_forward_days": str(carried),
            }
        )

    logger.info(
        "Year rollover into %d: processed=%d skipped=%d errors=%d",
        target_year,
        result.processed,
        result.skipped,
        result.errors,
    )
    return result


async def run_rollover_for_date(session: AsyncSession, today: date | None = None) -> RolloverRunResult | None:
    """Run the rollover when ``today`` is Jan 1; otherwise do nothing and return None."""
    if today is None:
        today = date.today()
    if today.month != 1 or today.day != 1:
        logger.debug("Rollover skipped: %s is not Jan 1", today)
        return None
    return await run_year_rollover(session, today.year)
