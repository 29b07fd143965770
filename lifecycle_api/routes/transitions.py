"""
Transition routes.

Endpoint summary:
  POST /{collection}/{entity_id}/{action}  -- apply one action to one entity

``collection`` is the URL name of an entity kind (``purchase-orders``),
``action`` a registered verb (``approve``; ``check-in`` maps to
``check_in``).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from lifecycle_api.dependencies import Actor, get_actor, get_lifecycle_engine
from lifecycle_api.errors import UnknownCollectionError
from lifecycle_api.schemas import ErrorResponse, TransitionBody, TransitionResponse
from lifecycle_kernel.domain.lifecycle import TransitionRequest
from lifecycle_kernel.logging_config import LogContext
from lifecycle_modules.catalog import COLLECTIONS, LifecycleEngine

router = APIRouter(tags=["transitions"])


def resolve_kind(collection: str) -> str:
    kind = COLLECTIONS.get(collection)
    if kind is None:
        raise UnknownCollectionError(collection)
    return kind


@router.post(
    "/{collection}/{entity_id}/{action}",
    response_model=TransitionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def apply_transition(
    collection: str,
    entity_id: UUID,
    action: str,
    body: TransitionBody | None = None,
    actor: Actor = Depends(get_actor),
    engine: LifecycleEngine = Depends(get_lifecycle_engine),
) -> dict[str, Any]:
    kind = resolve_kind(collection)
    body = body or TransitionBody()
    target = engine.registry.resolve_action(kind, action.replace("-", "_"))

    request = TransitionRequest(
        kind=kind,
        entity_id=entity_id,
        requested_to=target,
        actor_id=actor.actor_id,
        actor_role=actor.role,
        expected_current_state=body.expected_current_state,
        payload=body.payload(),
        correlation_id=actor.correlation_id,
    )
    with LogContext.bind(request_id=actor.correlation_id):
        outcome = engine.executor.execute(request)

    return {
        "entity": jsonable_encoder(outcome.entity.to_dict()),
        "applied": outcome.applied,
        "cascade_error": outcome.cascade_error,
    }
