"""Audit recording.

Services stage events on the session while they work. Once the unit of work
has committed, the staged events are handed to the configured recorder. A
recorder failure never undoes the committed change; it is logged at
CRITICAL and flips the process into degraded mode until reset.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from hrleave.models.audit import AuditLog

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from hrleave.models.enums import AuditAction, AuditEntityType

logger = logging.getLogger(__name__)

_STAGED_KEY = "hrleave.staged_audit_events"


def _now_utc() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class AuditEvent:
    """Immutable description of one transition or ledger mutation."""

    actor_id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    occurred_at: datetime = field(default_factory=_now_utc)


def to_audit_value(value: Any) -> Any:
    """Convert a single value to something JSON can hold."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict for audit logging."""
    return {key: to_audit_value(value) for key, value in model.model_dump().items()}


# ---------------------------------------------------------------------------
# Recorders
# ---------------------------------------------------------------------------


@runtime_checkable
class AuditRecorder(Protocol):
    """Interface for the Audit Recorder."""

    async def record(self, session: AsyncSession, events: Sequence[AuditEvent]) -> None:
        """Persist or forward the events. Raising signals a recording failure."""
        ...


class DatabaseAuditRecorder:
    """Writes events to the ``audit_log`` table in their own transaction.

    The rows go in under a SAVEPOINT. A failed write rolls back only the
    audit rows and leaves the caller's already committed objects loaded,
    so the caller can still build its response.
    """

    async def record(self, session: AsyncSession, events: Sequence[AuditEvent]) -> None:
        try:
            async with session.begin_nested():
                for event in events:
                    session.add(
                        AuditLog(
                            actor_id=event.actor_id,
                            entity_type=event.entity_type.value,
                            entity_id=event.entity_id,
                            action=event.action.value,
                            before_json=event.before,
                            after_json=event.after,
                            created_at=event.occurred_at,
                        )
                    )
        finally:
            await session.commit()


class InMemoryAuditRecorder:
    """Keeps events in a list. Useful for development and tests."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def record(self, session: AsyncSession, events: Sequence[AuditEvent]) -> None:
        self.events.extend(events)


_audit_recorder: AuditRecorder = DatabaseAuditRecorder()
_degraded_failures = 0


def get_audit_recorder() -> AuditRecorder:
    """Return the configured Audit Recorder."""
    return _audit_recorder


def set_audit_recorder(recorder: AuditRecorder) -> None:
    """Override the recorder (for testing or production wiring)."""
    global _audit_recorder
    _audit_recorder = recorder


def audit_degraded() -> bool:
    """True once any audit delivery has failed since the last reset."""
    return _degraded_failures > 0


def reset_audit_degraded() -> None:
    global _degraded_failures
    _degraded_failures = 0


# ---------------------------------------------------------------------------
# Staging and delivery
# ---------------------------------------------------------------------------


def stage_audit_event(session: AsyncSession, event: AuditEvent) -> None:
    """Queue an event for delivery after the session's next commit."""
    session.info.setdefault(_STAGED_KEY, []).append(event)


def discard_staged_events(session: AsyncSession) -> None:
    session.info.pop(_STAGED_KEY, None)


async def _deliver(session: AsyncSession, events: list[AuditEvent]) -> None:
    global _degraded_failures
    if not events:
        return
    try:
        await get_audit_recorder().record(session, events)
    except Exception:
        _degraded_failures += 1
        logger.critical(
            "Audit recorder failed for %d event(s); audit trail is degraded",
            len(events),
            exc_info=True,
        )


async def commit_with_audit(session: AsyncSession) -> None:
    """Commit the session, then deliver every staged event."""
    events: list[AuditEvent] = session.info.pop(_STAGED_KEY, [])
    await session.commit()
    await _deliver(session, events)


@asynccontextmanager
async def audited_transaction(session: AsyncSession) -> AsyncIterator[None]:
    """Run the body as one unit of work.

    On success the session is committed and staged events are delivered. On
    any exception the session is rolled back and staged events are dropped,
    so a refused operation leaves no trace.
    """
    discard_staged_events(session)
    try:
        yield
    except BaseException:
        discard_staged_events(session)
        await session.rollback()
        raise
    await commit_with_audit(session)
