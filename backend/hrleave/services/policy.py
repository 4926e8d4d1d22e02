"""Leave Policy Catalog: leave type definitions and the day-count policy hook."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from hrleave.exceptions import Conflict, NotFound
from hrleave.models.enums import AuditAction, AuditEntityType, HoldStatus
from hrleave.models.leave_type import LeaveType
from hrleave.models.ledger import LeaveHold
from hrleave.schemas.leave_type import LeaveTypeListResponse, LeaveTypeResponse
from hrleave.services.audit import AuditEvent, audited_transaction, model_to_audit_dict, stage_audit_event

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hrleave.schemas.auth import Actor
    from hrleave.schemas.leave_type import CreateLeaveTypePayload, UpdateLeaveTypePayload

# Settings that feed ledger arithmetic and freeze once a closed year used them.
_LEDGER_FIELDS = ("annual_entitlement_days", "max_carryover_days", "carry_forward_allowed")

DEFAULT_LEAVE_TYPES: list[dict[str, object]] = [
    {
        "code": "VL",
        "name": "Vacation Leave",
        "description": "Annual vacation or holiday leave for personal rest and relaxation",
        "annual_entitlement_days": Decimal("15.0"),
        "max_carryover_days": Decimal("5.0"),
        "carry_forward_allowed": True,
        "is_paid": True,
    },
    {
        "code": "SL",
        "name": "Sick Leave",
        "description": "Leave for illness or medical treatment",
        "annual_entitlement_days": Decimal("10.0"),
        "max_carryover_days": Decimal("0.0"),
        "carry_forward_allowed": False,
        "is_paid": True,
    },
    {
        "code": "EL",
        "name": "Emergency Leave",
        "description": "Leave for urgent personal or family emergencies",
        "annual_entitlement_days": Decimal("5.0"),
        "max_carryover_days": Decimal("0.0"),
        "carry_forward_allowed": False,
        "is_paid": True,
    },
    {
        "code": "ML",
        "name": "Maternity/Paternity Leave",
        "description": "Leave for new parents",
        "annual_entitlement_days": Decimal("90.0"),
        "max_carryover_days": Decimal("0.0"),
        "carry_forward_allowed": False,
        "is_paid": True,
    },
    {
        "code": "PL",
        "name": "Privilege Leave",
        "description": "General personal leave",
        "annual_entitlement_days": Decimal("8.0"),
        "max_carryover_days": Decimal("2.0"),
        "carry_forward_allowed": True,
        "is_paid": True,
    },
    {
        "code": "BL",
        "name": "Bereavement Leave",
        "description": "Leave for death of a family member",
        "annual_entitlement_days": Decimal("3.0"),
        "max_carryover_days": Decimal("0.0"),
        "carry_forward_allowed": False,
        "is_paid": True,
    },
    {
        "code": "SP",
        "name": "Special Leave",
        "description": "Leave for special circumstances",
        "annual_entitlement_days": Decimal("0.0"),
        "max_carryover_days": Decimal("0.0"),
        "carry_forward_allowed": False,
        "is_paid": False,
    },
]


def _build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    """Map a leave type model to its response schema."""
    return LeaveTypeResponse(
        code=leave_type.code,
        name=leave_type.name,
        description=leave_type.description,
        annual_entitlement_days=leave_type.annual_entitlement_days,
        max_carryover_days=leave_type.max_carryover_days,
        carry_forward_allowed=leave_type.carry_forward_allowed,
        is_paid=leave_type.is_paid,
        is_active=leave_type.is_active,
        created_at=leave_type.created_at,
    )


def compute_days_requested(leave_type: LeaveType, start_date: date, end_date: date) -> Decimal:
    """Number of days a request for ``leave_type`` consumes.

    Calendar days, both endpoints included. Weekends and holidays are not
    excluded; a working-day policy would plug in here.
    """
    return Decimal((end_date - start_date).days + 1)


async def get_leave_type(session: AsyncSession, code: str) -> LeaveType | None:
    """Fetch a leave type by code. Returns None if it does not exist."""
    result = await session.execute(select(LeaveType).where(col(LeaveType.code) == code))
    return result.scalar_one_or_none()


async def _get_leave_type_or_404(session: AsyncSession, code: str) -> LeaveType:
    leave_type = await get_leave_type(session, code)
    if leave_type is None:
        raise NotFound(f"Leave type {code!r} not found")
    return leave_type


async def get_leave_type_response(session: AsyncSession, code: str) -> LeaveTypeResponse:
    return _build_leave_type_response(await _get_leave_type_or_404(session, code))


async def list_leave_types(session: AsyncSession, include_inactive: bool = False) -> LeaveTypeListResponse:
    """List catalog entries ordered by code."""
    query = select(LeaveType).order_by(col(LeaveType.code))
    if not include_inactive:
        query = query.where(col(LeaveType.is_active).is_(True))
    result = await session.execute(query)
    items = [_build_leave_type_response(lt) for lt in result.scalars().all()]
    return LeaveTypeListResponse(items=items, total=len(items))


async def create_leave_type(
    session: AsyncSession,
    actor: Actor,
    payload: CreateLeaveTypePayload,
) -> LeaveTypeResponse:
    """Add a leave type to the catalog."""
    if await get_leave_type(session, payload.code) is not None:
        raise Conflict(f"Leave type {payload.code!r} already exists")

    async with audited_transaction(session):
        leave_type = LeaveType(**payload.model_dump())
        session.add(leave_type)
        await session.flush()
        stage_audit_event(
            session,
            AuditEvent(
                actor_id=actor.actor_id,
                entity_type=AuditEntityType.LEAVE_TYPE,
                entity_id=leave_type.code,
                action=AuditAction.CREATE,
                after=model_to_audit_dict(leave_type),
            ),
        )

    return _build_leave_type_response(leave_type)


async def _used_in_closed_year(session: AsyncSession, code: str, current_year: int) -> bool:
    """True if a committed hold of a year before ``current_year`` references the type."""
    result = await session.execute(
        select(func.count())
        .select_from(LeaveHold)
        .where(
            col(LeaveHold.leave_type_code) == code,
            col(LeaveHold.status) == HoldStatus.COMMITTED.value,
            col(LeaveHold.year) < current_year,
        )
    )
    return result.scalar_one() > 0


async def update_leave_type(
    session: AsyncSession,
    actor: Actor,
    code: str,
    payload: UpdateLeaveTypePayload,
    *,
    today: date | None = None,
) -> LeaveTypeResponse:
    """Update a leave type.

    Entitlement and carry-forward settings are frozen once a committed
    deduction of a closed year references the type; descriptive fields and
    the active flag may still change.
    """
    if today is None:
        today = date.today()

    leave_type = await _get_leave_type_or_404(session, code)
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name == "description"
    }

    ledger_changes = [
        name for name in _LEDGER_FIELDS if name in changes and changes[name] != getattr(leave_type, name)
    ]
    if ledger_changes and await _used_in_closed_year(session, code, today.year):
        raise Conflict(
            f"Leave type {code!r} is referenced by a closed year; {', '.join(ledger_changes)} cannot change",
            details={"fields": ledger_changes},
        )

    async with audited_transaction(session):
        before = model_to_audit_dict(leave_type)
        for name, value in changes.items():
            setattr(leave_type, name, value)
        await session.flush()
        stage_audit_event(
            session,
            AuditEvent(
                actor_id=actor.actor_id,
                entity_type=AuditEntityType.LEAVE_TYPE,
                entity_id=leave_type.code,
                action=AuditAction.UPDATE,
                before=before,
                after=model_to_audit_dict(leave_type),
            ),
        )

    return _build_leave_type_response(leave_type)


async def seed_default_leave_types(session: AsyncSession) -> int:
    """Insert the default catalog entries that are missing. Returns how many were added."""
    added = 0
    for definition in DEFAULT_LEAVE_TYPES:
        if await get_leave_type(session, str(definition["code"])) is None:
            session.add(LeaveType(**definition))  # type: ignore[arg-type]
            added += 1
    await session.commit()
    return added
