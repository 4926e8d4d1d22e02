from __future__ import annotations

from pydantic import BaseModel, Field

from hrleave.models.enums import ActorRole


class Actor(BaseModel):
    """Dev auth context extracted from request headers.

    The role is resolved once at the boundary; everything downstream works
    with the closed ``ActorRole`` enum.
    """

    actor_id: str = Field(min_length=1, max_length=64)
    role: ActorRole = ActorRole.EMPLOYEE
