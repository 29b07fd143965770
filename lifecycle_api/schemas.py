"""Request and response bodies with camelCase wire-format serialization."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


def to_camel(name: str) -> str:
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


class CamelModel(BaseModel):
    """
    Snake_case in Python, camelCase on the wire.

    ``model_dump()`` returns snake_case (internal use);
    ``model_dump(by_alias=True)`` returns camelCase (wire use).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TransitionBody(CamelModel):
    """Optional inputs carried by a transition request."""

    reason: str | None = None
    note: str | None = None
    assigned_to_user_id: str | None = None
    expected_current_state: str | None = None

    def payload(self) -> dict[str, Any]:
        """Kind-specific inputs, without the concurrency precondition."""
        return self.model_dump(exclude_none=True, exclude={"expected_current_state"})


class TransitionResponse(CamelModel):
    """
    The entity after the request.

    ``applied`` is false for an idempotent repeat.  ``cascade_error`` is set
    when the transition committed but a follow-up write failed and was
    queued for operator retry.
    """

    entity: dict[str, Any]
    applied: bool
    cascade_error: str | None = None


class ErrorDetail(BaseModel):
    kind: str
    message: str
    reason: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
