"""Approval Router: who acts next on a leave request, and whether an actor may.

The transition table below is the single source of truth for the workflow's
shape. ``authorize`` resolves the transition first and checks the actor
second, so an event the current state does not accept is always reported as
InvalidTransition, whoever sends it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from hrleave.exceptions import Forbidden, InvalidTransition
from hrleave.models.enums import ActorRole, LeaveRequestState, Permission, WorkflowEvent

if TYPE_CHECKING:
    from collections.abc import Collection

    from hrleave.models.request import LeaveRequest
    from hrleave.schemas.auth import Actor

ROLE_PERMISSIONS: dict[ActorRole, frozenset[Permission]] = {
    ActorRole.EMPLOYEE: frozenset(),
    ActorRole.SUPERVISOR: frozenset(),
    ActorRole.HR_STAFF: frozenset({Permission.BACKDATE, Permission.PROCESS, Permission.PROXY}),
    ActorRole.HR_MANAGER: frozenset(
        {Permission.BACKDATE, Permission.PROCESS, Permission.PROXY, Permission.MANAGE_POLICY}
    ),
    ActorRole.SYSTEM: frozenset({Permission.BACKDATE, Permission.MANAGE_POLICY}),
}

TRANSITIONS: dict[tuple[LeaveRequestState, WorkflowEvent], LeaveRequestState] = {
    (LeaveRequestState.DRAFT, WorkflowEvent.SUBMIT): LeaveRequestState.PENDING_SUPERVISOR,
    (LeaveRequestState.PENDING_SUPERVISOR, WorkflowEvent.SUPERVISOR_APPROVE): LeaveRequestState.PENDING_HR_MANAGER,
    (LeaveRequestState.PENDING_SUPERVISOR, WorkflowEvent.SUPERVISOR_REJECT): LeaveRequestState.REJECTED,
    (LeaveRequestState.PENDING_SUPERVISOR, WorkflowEvent.CANCEL): LeaveRequestState.CANCELLED,
    (LeaveRequestState.PENDING_HR_MANAGER, WorkflowEvent.MANAGER_APPROVE): LeaveRequestState.APPROVED,
    (LeaveRequestState.PENDING_HR_MANAGER, WorkflowEvent.MANAGER_REJECT): LeaveRequestState.REJECTED,
    (LeaveRequestState.PENDING_HR_MANAGER, WorkflowEvent.CANCEL): LeaveRequestState.CANCELLED,
    (LeaveRequestState.APPROVED, WorkflowEvent.PROCESS): LeaveRequestState.PROCESSED,
    (LeaveRequestState.APPROVED, WorkflowEvent.CANCEL): LeaveRequestState.CANCELLED,
}

_SUPERVISOR_EVENTS = frozenset({WorkflowEvent.SUPERVISOR_APPROVE, WorkflowEvent.SUPERVISOR_REJECT})
_MANAGER_EVENTS = frozenset({WorkflowEvent.MANAGER_APPROVE, WorkflowEvent.MANAGER_REJECT})
# Events where acting on one's own request is never allowed.
_DECISION_EVENTS = _SUPERVISOR_EVENTS | _MANAGER_EVENTS | {WorkflowEvent.PROCESS}


@dataclass(frozen=True)
class NextApprover:
    """Role that must act next; ``actor_id`` is set only when one person is named."""

    actor_role: ActorRole
    actor_id: str | None = None


def has_permission(role: ActorRole, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS[role]


def may_backdate(actor: Actor) -> bool:
    """Whether the actor may enter leave that starts before today."""
    return has_permission(actor.role, Permission.BACKDATE)


def needs_supervisor_delegates(event: WorkflowEvent) -> bool:
    return event in _SUPERVISOR_EVENTS


def resolve_transition(state: LeaveRequestState, event: WorkflowEvent) -> LeaveRequestState:
    """Target state for ``event`` in ``state``; InvalidTransition if the table has no row."""
    target = TRANSITIONS.get((state, event))
    if target is None:
        if state.is_terminal:
            msg = f"Request is {state.value.lower()}; no further transitions are accepted"
        else:
            msg = f"{event.value} is not accepted while the request is {state.value}"
        raise InvalidTransition(msg, details={"state": state.value, "event": event.value})
    return target


def next_approver(request: LeaveRequest) -> NextApprover | None:
    """Who has to act next, or None when the request is terminal."""
    state = LeaveRequestState(request.state)
    if state == LeaveRequestState.PENDING_SUPERVISOR:
        return NextApprover(actor_role=ActorRole.SUPERVISOR, actor_id=request.supervisor_id)
    if state == LeaveRequestState.PENDING_HR_MANAGER:
        return NextApprover(actor_role=ActorRole.HR_MANAGER)
    if state == LeaveRequestState.APPROVED:
        return NextApprover(actor_role=ActorRole.HR_STAFF)
    return None


def authorize_submission(actor: Actor, employee_id: str) -> None:
    """Employees submit for themselves; HR proxies may submit for anyone."""
    if actor.actor_id != employee_id and not has_permission(actor.role, Permission.PROXY):
        raise Forbidden("Only the employee or an HR proxy may submit this request")


def authorize(
    request: LeaveRequest,
    actor: Actor,
    event: WorkflowEvent,
    delegates: Collection[str] = frozenset(),
) -> LeaveRequestState:
    """Check that ``actor`` may apply ``event`` to ``request`` and return the target state.

    ``delegates`` are the ids allowed to stand in for the request's frozen
    supervisor; a delegate must also hold the SUPERVISOR role.
    """
    target = resolve_transition(LeaveRequestState(request.state), event)

    if event in _DECISION_EVENTS and actor.actor_id == request.employee_id:
        raise Forbidden("Actors cannot decide on their own leave requests")

    if event in _SUPERVISOR_EVENTS:
        is_supervisor = request.supervisor_id is not None and actor.actor_id == request.supervisor_id
        is_delegate = actor.actor_id in delegates and actor.role == ActorRole.SUPERVISOR
        if not (is_supervisor or is_delegate):
            raise Forbidden("Only the employee's supervisor or a delegate may act at this step")
    elif event in _MANAGER_EVENTS:
        if actor.role != ActorRole.HR_MANAGER:
            raise Forbidden("HR Manager role required")
    elif event == WorkflowEvent.PROCESS:
        if not has_permission(actor.role, Permission.PROCESS):
            raise Forbidden("HR processing permission required")
    elif event == WorkflowEvent.CANCEL:
        if actor.actor_id != request.employee_id and not has_permission(actor.role, Permission.PROXY):
            raise Forbidden("Only the employee or an HR proxy may cancel this request")

    return target
