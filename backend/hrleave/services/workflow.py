"""Leave Workflow Engine.

Each public operation is one unit of work: the state change, the appended
transition row and the ledger effect commit together, and audit events are
delivered only after that commit. Guards run before the first write.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from hrleave.exceptions import DateConflict, Forbidden, InvalidDates, InvalidTransition, NotFound
from hrleave.models.balance import LeaveBalance
from hrleave.models.enums import ActorRole, AuditAction, AuditEntityType, LeaveRequestState, WorkflowEvent
from hrleave.models.request import LeaveRequest, LeaveRequestTransition
from hrleave.schemas.auth import Actor
from hrleave.schemas.request import (
    LeaveRequestDraft,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    NextApproverResponse,
    RequestFilter,
    TransitionResponse,
)
from hrleave.services import approval, ledger
from hrleave.services.audit import AuditEvent, audited_transaction, model_to_audit_dict, stage_audit_event
from hrleave.services.employee import get_employee_directory
from hrleave.services.policy import compute_days_requested, get_leave_type

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# States whose date range still occupies the calendar.
_BLOCKING_STATES = [
    LeaveRequestState.PENDING_SUPERVISOR.value,
    LeaveRequestState.PENDING_HR_MANAGER.value,
    LeaveRequestState.APPROVED.value,
    LeaveRequestState.PROCESSED.value,
]

_RELEASING_EVENTS = frozenset({WorkflowEvent.SUPERVISOR_REJECT, WorkflowEvent.MANAGER_REJECT, WorkflowEvent.CANCEL})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_transition_response(transition: LeaveRequestTransition) -> TransitionResponse:
    return TransitionResponse(
        sequence=transition.sequence,
        from_state=LeaveRequestState(transition.from_state),
        to_state=LeaveRequestState(transition.to_state),
        event=WorkflowEvent(transition.event),
        actor_id=transition.actor_id,
        actor_role=ActorRole(transition.actor_role),
        comment=transition.comment,
        created_at=transition.created_at,
    )


def _build_request_response(
    request: LeaveRequest,
    transitions: Sequence[LeaveRequestTransition] = (),
) -> LeaveRequestResponse:
    """Map a request model and its transitions to the response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_type_code=request.leave_type_code,
        start_date=request.start_date,
        end_date=request.end_date,
        days_requested=request.days_requested,
        reason=request.reason,
        state=LeaveRequestState(request.state),
        supervisor_id=request.supervisor_id,
        department=request.department,
        hold_id=request.hold_id,
        submitted_by=request.submitted_by,
        created_at=request.created_at,
        updated_at=request.updated_at,
        transitions=[_build_transition_response(t) for t in transitions],
    )


async def _load_transitions(
    session: AsyncSession,
    request_ids: Sequence[uuid.UUID],
) -> dict[uuid.UUID, list[LeaveRequestTransition]]:
    grouped: dict[uuid.UUID, list[LeaveRequestTransition]] = defaultdict(list)
    if not request_ids:
        return grouped
    result = await session.execute(
        select(LeaveRequestTransition)
        .where(col(LeaveRequestTransition.request_id).in_(request_ids))
        .order_by(col(LeaveRequestTransition.request_id), col(LeaveRequestTransition.sequence))
    )
    for transition in result.scalars().all():
        grouped[transition.request_id].append(transition)
    return grouped


async def _respond(session: AsyncSession, request: LeaveRequest) -> LeaveRequestResponse:
    transitions = await _load_transitions(session, [request.id])
    return _build_request_response(request, transitions[request.id])


async def _get_request_or_404(
    session: AsyncSession,
    request_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> LeaveRequest:
    """Fetch a request by ID. Raises NotFound if it does not exist."""
    query = select(LeaveRequest).where(col(LeaveRequest.id) == request_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query.execution_options(populate_existing=True))
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFound(f"Leave request {request_id} not found")
    return request


async def _lock_employee_ledger(session: AsyncSession, employee_id: str, year: int) -> None:
    """Lock every ledger row of the employee for the year, in key order.

    Overlapping requests always share a leave year, so concurrent submissions
    for one employee queue here and each overlap check sees the requests
    committed before it, whatever the leave type.
    """
    await session.execute(
        select(col(LeaveBalance.leave_type_code))
        .where(col(LeaveBalance.employee_id) == employee_id, col(LeaveBalance.year) == year)
        .order_by(col(LeaveBalance.leave_type_code))
        .with_for_update()
    )


async def _check_overlap(session: AsyncSession, employee_id: str, start_date: date, end_date: date) -> None:
    """Raise DateConflict if a live request of the employee shares any day with the range.

    Both ranges are inclusive, so they intersect when
    existing.start <= new.end AND existing.end >= new.start.
    """
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.employee_id) == employee_id,
            col(LeaveRequest.state).in_(_BLOCKING_STATES),
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
        .order_by(col(LeaveRequest.start_date))
        .limit(1)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        raise DateConflict(
            f"Requested dates overlap leave request {existing.id} "
            f"({existing.start_date.isoformat()} to {existing.end_date.isoformat()})",
            details={"conflicting_request_id": str(existing.id), "state": existing.state},
        )


def _validate_draft(
    employee_id: str,
    leave_type_code: str,
    start_date: date,
    end_date: date,
    reason: str | None,
) -> LeaveRequestDraft:
    try:
        draft = LeaveRequestDraft(
            employee_id=employee_id,
            leave_type_code=leave_type_code,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
        )
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        raise InvalidDates(f"Invalid leave request: {messages}") from None
    if draft.start_date.year != draft.end_date.year:
        raise InvalidDates("A leave request must fall within a single leave year")
    return draft


async def _next_sequence(session: AsyncSession, request_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(LeaveRequestTransition).where(
            col(LeaveRequestTransition.request_id) == request_id
        )
    )
    return result.scalar_one() + 1


def _append_transition(
    session: AsyncSession,
    request: LeaveRequest,
    *,
    sequence: int,
    from_state: LeaveRequestState,
    to_state: LeaveRequestState,
    event: WorkflowEvent,
    actor: Actor,
    comment: str | None,
) -> LeaveRequestTransition:
    transition = LeaveRequestTransition(
        request_id=request.id,
        sequence=sequence,
        from_state=from_state.value,
        to_state=to_state.value,
        event=event.value,
        actor_id=actor.actor_id,
        actor_role=actor.role.value,
        comment=comment,
    )
    session.add(transition)
    return transition


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_leave_request(
    session: AsyncSession,
    employee_id: str,
    leave_type_code: str,
    start_date: date,
    end_date: date,
    reason: str | None = None,
    *,
    actor: Actor | None = None,
    today: date | None = None,
) -> LeaveRequestResponse:
    """Submit a leave request and place a hold for its days.

    Flow:
    1. Validate the request shape (dates in order, single leave year)
    2. Check the actor may submit for this employee and, for past dates, backdate
    3. Resolve the employee, their supervisor and department from the directory
    4. Resolve the leave type and compute the day count
    5. Lock the employee's ledger rows for the year, then reject overlaps with
       their live requests
    6. Hold the days on the ledger (fails on insufficient balance)
    7. Create the request in PENDING_SUPERVISOR with its first transition
    8. Commit, then deliver audit events
    """
    if today is None:
        today = date.today()

    draft = _validate_draft(employee_id, leave_type_code, start_date, end_date, reason)
    if actor is None:
        actor = Actor(actor_id=draft.employee_id, role=ActorRole.EMPLOYEE)

    approval.authorize_submission(actor, draft.employee_id)
    if draft.start_date < today and not approval.may_backdate(actor):
        raise InvalidDates(
            "start_date is in the past; backdated entry requires HR permission",
            details={"start_date": draft.start_date.isoformat(), "today": today.isoformat()},
        )

    employee = await get_employee_directory().get_employee(draft.employee_id)
    if employee is None:
        raise NotFound(f"Employee {draft.employee_id} not found")
    if not employee.is_active:
        raise Forbidden(f"Employee {draft.employee_id} is not active")
    if employee.supervisor_id is None:
        raise NotFound(f"Employee {draft.employee_id} has no supervisor on record")

    leave_type = await get_leave_type(session, draft.leave_type_code)
    if leave_type is None or not leave_type.is_active:
        raise NotFound(f"Leave type {draft.leave_type_code!r} not found")
    days = compute_days_requested(leave_type, draft.start_date, draft.end_date)

    async with audited_transaction(session):
        await _lock_employee_ledger(session, draft.employee_id, draft.start_date.year)
        await _check_overlap(session, draft.employee_id, draft.start_date, draft.end_date)

        now = datetime.now(UTC)
        request = LeaveRequest(
            employee_id=draft.employee_id,
            leave_type_code=leave_type.code,
            start_date=draft.start_date,
            end_date=draft.end_date,
            days_requested=days,
            reason=draft.reason,
            state=LeaveRequestState.PENDING_SUPERVISOR.value,
            supervisor_id=employee.supervisor_id,
            department=employee.department,
            submitted_by=actor.actor_id,
            created_at=now,
            updated_at=now,
        )

        leave_hold = await ledger.hold(
            session,
            draft.employee_id,
            leave_type.code,
            draft.start_date.year,
            days,
            request_id=request.id,
            actor_id=actor.actor_id,
        )
        request.hold_id = leave_hold.id
        session.add(request)
        await session.flush()

        _append_transition(
            session,
            request,
            sequence=1,
            from_state=LeaveRequestState.DRAFT,
            to_state=LeaveRequestState.PENDING_SUPERVISOR,
            event=WorkflowEvent.SUBMIT,
            actor=actor,
            comment=None,
        )
        await session.flush()

        stage_audit_event(
            session,
            AuditEvent(
                actor_id=actor.actor_id,
                entity_type=AuditEntityType.REQUEST,
                entity_id=str(request.id),
                action=AuditAction.SUBMIT,
                after=model_to_audit_dict(request),
            ),
        )

    logger.info(
        "Leave request %s submitted for employee %s (%s, %s days)",
        request.id,
        request.employee_id,
        request.leave_type_code,
        request.days_requested,
    )
    return await _respond(session, request)


async def act_on_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    event: WorkflowEvent,
    actor_id: str,
    actor_role: ActorRole,
    comment: str | None = None,
) -> LeaveRequestResponse:
    """Apply a workflow event to an existing request.

    Rejections and cancellations release the request's hold; PROCESS commits
    it. Approvals leave the ledger untouched.
    """
    try:
        role = ActorRole(actor_role)
    except ValueError:
        raise Forbidden(f"Unknown role {actor_role!r}") from None
    try:
        event = WorkflowEvent(event)
    except ValueError:
        raise InvalidTransition(f"Unknown workflow event {event!r}", details={"event": str(event)}) from None
    actor = Actor(actor_id=actor_id, role=role)

    async with audited_transaction(session):
        request = await _get_request_or_404(session, request_id, for_update=True)
        from_state = LeaveRequestState(request.state)

        delegates: list[str] = []
        if approval.needs_supervisor_delegates(event) and request.supervisor_id is not None:
            supervisor = await get_employee_directory().get_employee(request.supervisor_id)
            if supervisor is not None:
                delegates = supervisor.delegate_ids

        target = approval.authorize(request, actor, event, delegates)
        before = model_to_audit_dict(request)

        if request.hold_id is None:
            raise InvalidTransition(f"Leave request {request.id} has no ledger hold")
        if event in _RELEASING_EVENTS:
            await ledger.release(session, request.hold_id, actor_id=actor.actor_id)
        elif event == WorkflowEvent.PROCESS:
            await ledger.commit(session, request.hold_id, request.days_requested, actor_id=actor.actor_id)

        request.state = target.value
        request.updated_at = datetime.now(UTC)
        _append_transition(
            session,
            request,
            sequence=await _next_sequence(session, request.id),
            from_state=from_state,
            to_state=target,
            event=event,
            actor=actor,
            comment=comment,
        )
        try:
            await session.flush()
        except IntegrityError:
            raise InvalidTransition(
                f"Leave request {request.id} was changed concurrently; reload and retry",
                details={"state": from_state.value, "event": event.value},
            ) from None

        stage_audit_event(
            session,
            AuditEvent(
                actor_id=actor.actor_id,
                entity_type=AuditEntityType.REQUEST,
                entity_id=str(request.id),
                action=AuditAction(event.value),
                before=before,
                after=model_to_audit_dict(request),
            ),
        )

    logger.info("Leave request %s: %s -> %s by %s (%s)", request.id, from_state, target, actor.actor_id, actor.role)
    return await _respond(session, request)


async def get_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequestResponse:
    """Get a single request with its transition history."""
    request = await _get_request_or_404(session, request_id)
    return await _respond(session, request)


async def get_next_approver(session: AsyncSession, request_id: uuid.UUID) -> NextApproverResponse | None:
    """Who must act next on a request; None once it is terminal."""
    request = await _get_request_or_404(session, request_id)
    nxt = approval.next_approver(request)
    if nxt is None:
        return None
    return NextApproverResponse(actor_role=nxt.actor_role, actor_id=nxt.actor_id)


async def list_requests(session: AsyncSession, filters: RequestFilter | None = None) -> LeaveRequestListResponse:
    """List requests with optional filters, ordered by created_at DESC.

    A date range matches every request that shares at least one day with it.
    """
    if filters is None:
        filters = RequestFilter()

    base_filters = []
    if filters.status is not None:
        base_filters.append(col(LeaveRequest.state) == filters.status.value)
    if filters.employee_id is not None:
        base_filters.append(col(LeaveRequest.employee_id) == filters.employee_id)
    if filters.leave_type_code is not None:
        base_filters.append(col(LeaveRequest.leave_type_code) == filters.leave_type_code)
    if filters.department is not None:
        base_filters.append(col(LeaveRequest.department) == filters.department)
    if filters.date_from is not None:
        base_filters.append(col(LeaveRequest.end_date) >= filters.date_from)
    if filters.date_to is not None:
        base_filters.append(col(LeaveRequest.start_date) <= filters.date_to)

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*base_filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*base_filters)
        .order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.id))
        .offset(filters.offset)
        .limit(filters.limit)
        .execution_options(populate_existing=True)
    )
    requests = list(result.scalars().all())
    transitions = await _load_transitions(session, [r.id for r in requests])

    return LeaveRequestListResponse(
        items=[_build_request_response(r, transitions[r.id]) for r in requests],
        total=total,
    )
