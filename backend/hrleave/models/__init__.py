from sqlmodel import SQLModel

from hrleave.models.audit import AuditLog
from hrleave.models.balance import LeaveBalance
from hrleave.models.base import TimestampMixin, UUIDBase
from hrleave.models.enums import (
    ActorRole,
    AuditAction,
    AuditEntityType,
    EmploymentStatus,
    HoldStatus,
    LeaveRequestState,
    Permission,
    WorkflowEvent,
)
from hrleave.models.leave_type import LeaveType
from hrleave.models.ledger import LeaveHold
from hrleave.models.request import LeaveRequest, LeaveRequestTransition

__all__ = [
    "ActorRole",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "EmploymentStatus",
    "HoldStatus",
    "LeaveBalance",
    "LeaveHold",
    "LeaveRequest",
    "LeaveRequestState",
    "LeaveRequestTransition",
    "LeaveType",
    "Permission",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "WorkflowEvent",
]
