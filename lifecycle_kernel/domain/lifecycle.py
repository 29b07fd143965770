"""
Lifecycle -- Value objects for declarative entity state machines.

Responsibility:
    Defines the immutable value objects that describe an entity kind's
    lifecycle (StateDefinition, TransitionRule, Guard) and those that flow
    through a single transition (EntitySnapshot, TransitionRequest,
    GuardResult, TransitionContext, TransitionOutcome).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Imports nothing from
    db/, models/ or services/.

Invariants enforced:
    - State names are plain strings; enum members are normalized to their
      value on construction so rules and snapshots compare by value.
    - A TransitionRule never has from_state == to_state (checked again by
      the registry at registration time).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from lifecycle_kernel.domain.notification import NotificationJob


def state_value(state: str | Enum) -> str:
    """Normalize an enum member or string to its plain string value."""
    if isinstance(state, Enum):
        return str(state.value)
    return str(state)


class GuardReason(str, Enum):
    """Structured, user-facing reasons a transition is denied."""

    MISSING_PRECONDITION = "missing_precondition"
    WRONG_ACTOR_ROLE = "wrong_actor_role"
    ALREADY_IN_TARGET_STATE = "already_in_target_state"
    TERMINAL_STATE = "terminal_state"


@dataclass(frozen=True)
class GuardResult:
    """Allow, or deny with a reason and a human-readable message."""

    allowed: bool
    reason: GuardReason | None = None
    message: str = ""

    @classmethod
    def allow(cls) -> GuardResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: GuardReason, message: str) -> GuardResult:
        return cls(allowed=False, reason=reason, message=message)


@dataclass(frozen=True)
class EntitySnapshot:
    """
    Read-only view of a lifecycle entity at one point in time.

    ``fields`` holds the kind-specific columns; ``children`` maps a child
    collection name (e.g. ``lines``) to one mapping per child row.
    """

    kind: str
    entity_id: UUID
    organization_id: UUID
    status: str
    version: int
    fields: Mapping[str, Any] = field(default_factory=dict)
    children: Mapping[str, tuple[Mapping[str, Any], ...]] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", state_value(self.status))
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(
            self,
            "children",
            MappingProxyType(
                {name: tuple(rows) for name, rows in self.children.items()}
            ),
        )

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def child_rows(self, name: str) -> tuple[Mapping[str, Any], ...]:
        return self.children.get(name, ())

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a JSON-friendly dict (children included)."""
        data: dict[str, Any] = {
            "id": self.entity_id,
            "kind": self.kind,
            "organization_id": self.organization_id,
            "status": self.status,
            "version": self.version,
        }
        data.update(self.fields)
        for name, rows in self.children.items():
            data[name] = [dict(row) for row in rows]
        return data


@dataclass(frozen=True)
class TransitionRequest:
    """A caller's request to move one entity to ``requested_to``."""

    kind: str
    entity_id: UUID
    requested_to: str
    actor_id: UUID
    actor_role: str | None = None
    expected_current_state: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)
    correlation_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "requested_to", state_value(self.requested_to))
        if self.expected_current_state is not None:
            object.__setattr__(
                self,
                "expected_current_state",
                state_value(self.expected_current_state),
            )
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


GuardCheck = Callable[[EntitySnapshot, TransitionRequest], GuardResult]
StampFn = Callable[[EntitySnapshot, TransitionRequest, datetime], Mapping[str, Any]]
NotifyFn = Callable[["TransitionContext"], Sequence["NotificationJob"]]


@dataclass(frozen=True)
class Guard:
    """A named precondition.  ``check`` must be pure."""

    name: str
    description: str
    check: GuardCheck


@dataclass(frozen=True)
class StateDefinition:
    """Finite state set of one entity kind."""

    kind: str
    states: tuple[str, ...]
    initial: str
    terminal: frozenset[str]
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "states", tuple(state_value(s) for s in self.states)
        )
        object.__setattr__(self, "initial", state_value(self.initial))
        object.__setattr__(
            self, "terminal", frozenset(state_value(s) for s in self.terminal)
        )


@dataclass(frozen=True)
class TransitionRule:
    """
    One directed edge of a kind's state machine.

    ``stamp`` derives extra column values written by the same conditional
    update.  ``notify`` builds notification jobs after commit.
    """

    kind: str
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_actor_role: str | None = None
    idempotent: bool = False
    stamp: StampFn | None = None
    notify: NotifyFn | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_state", state_value(self.from_state))
        object.__setattr__(self, "to_state", state_value(self.to_state))

    @property
    def name(self) -> str:
        return f"{self.from_state}->{self.to_state}"


@dataclass(frozen=True)
class TransitionContext:
    """Everything a side effect sees about a committed transition."""

    rule: TransitionRule
    request: TransitionRequest
    before: EntitySnapshot
    after: EntitySnapshot
    audit_record_id: UUID
    occurred_at: datetime


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of a transition request.

    ``applied`` is False for an idempotent repeat; ``cascade_error`` carries
    the message of a cascade failure recorded for operator follow-up.
    """

    entity: EntitySnapshot
    applied: bool
    audit_record_id: UUID | None = None
    cascade_error: str | None = None
