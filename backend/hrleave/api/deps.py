# ruff: noqa: B008
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from hrleave.exceptions import Forbidden
from hrleave.models.enums import ActorRole, Permission
from hrleave.schemas.auth import Actor
from hrleave.services.approval import has_permission


async def get_actor(
    x_user_id: str = Header(min_length=1, max_length=64),
    x_role: str = Header(default=ActorRole.EMPLOYEE.value),
) -> Actor:
    """Extract dev auth context from request headers."""
    try:
        role = ActorRole(x_role.upper())
    except ValueError:
        raise Forbidden(f"Unknown role {x_role!r}") from None
    return Actor(actor_id=x_user_id, role=role)


ActorDep = Annotated[Actor, Depends(get_actor)]


async def require_policy_manager(actor: ActorDep) -> Actor:
    """Require permission to change the leave policy catalog and ledger setup."""
    if not has_permission(actor.role, Permission.MANAGE_POLICY):
        raise Forbidden("Policy management permission required")
    return actor


PolicyManagerDep = Annotated[Actor, Depends(require_policy_manager)]
