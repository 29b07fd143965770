"""FastAPI dependencies: the wired engine and the calling actor."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Header, Request

from lifecycle_modules.catalog import LifecycleEngine


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the upstream auth layer, trusted as given."""

    actor_id: UUID
    role: str | None = None
    correlation_id: str | None = None


def get_lifecycle_engine(request: Request) -> LifecycleEngine:
    return request.app.state.lifecycle_engine


def get_actor(
    x_actor_id: UUID = Header(alias="X-Actor-Id"),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> Actor:
    return Actor(
        actor_id=x_actor_id,
        role=x_actor_role or None,
        correlation_id=x_correlation_id or None,
    )
