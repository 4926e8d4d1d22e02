from __future__ import annotations

import enum


class LeaveRequestState(enum.StrEnum):
    """State machine for leave requests."""

    DRAFT = "DRAFT"
    PENDING_SUPERVISOR = "PENDING_SUPERVISOR"
    PENDING_HR_MANAGER = "PENDING_HR_MANAGER"
    APPROVED = "APPROVED"
    PROCESSED = "PROCESSED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {LeaveRequestState.PROCESSED, LeaveRequestState.REJECTED, LeaveRequestState.CANCELLED}
)


class WorkflowEvent(enum.StrEnum):
    """Commands accepted by the leave workflow."""

    SUBMIT = "SUBMIT"
    SUPERVISOR_APPROVE = "SUPERVISOR_APPROVE"
    SUPERVISOR_REJECT = "SUPERVISOR_REJECT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    PROCESS = "PROCESS"
    CANCEL = "CANCEL"


class ActorRole(enum.StrEnum):
    """Closed set of roles an actor can hold when invoking the workflow."""

    EMPLOYEE = "EMPLOYEE"
    SUPERVISOR = "SUPERVISOR"
    HR_STAFF = "HR_STAFF"
    HR_MANAGER = "HR_MANAGER"
    SYSTEM = "SYSTEM"


class Permission(enum.StrEnum):
    """Capabilities granted to roles."""

    BACKDATE = "BACKDATE"
    PROCESS = "PROCESS"
    PROXY = "PROXY"
    MANAGE_POLICY = "MANAGE_POLICY"


class HoldStatus(enum.StrEnum):
    """Lifecycle of a balance hold."""

    ACTIVE = "ACTIVE"
    COMMITTED = "COMMITTED"
    RELEASED = "RELEASED"


class EmploymentStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    TERMINATED = "TERMINATED"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    REQUEST = "REQUEST"
    LEDGER = "LEDGER"
    LEAVE_TYPE = "LEAVE_TYPE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SUBMIT = "SUBMIT"
    SUPERVISOR_APPROVE = "SUPERVISOR_APPROVE"
    SUPERVISOR_REJECT = "SUPERVISOR_REJECT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
    PROCESS = "PROCESS"
    CANCEL = "CANCEL"
    HOLD = "HOLD"
    COMMIT = "COMMIT"
    RELEASE = "RELEASE"
    PROVISION = "PROVISION"
    ROLLOVER = "ROLLOVER"
