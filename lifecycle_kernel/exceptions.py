"""
Typed Exception Hierarchy for the Lifecycle Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the transition engine (HTTP handlers, batch jobs, operator
tooling) must branch on *what* went wrong, not on message wording:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        executor.execute(request)
    except Exception as e:
        if "modified by another" in str(e):  # FRAGILE
            retry()

Example - RIGHT way (what this module enables):
    try:
        executor.execute(request)
    except ConcurrencyConflictError as e:
        reread_and_retry(e.entity_id)
    except GuardFailedError as e:
        api_response(code=e.code, reason=e.reason.value)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LifecycleError (base)
    |
    +-- TransitionError
    |   +-- EntityNotFoundError
    |   +-- InvalidTransitionError
    |   +-- GuardFailedError
    |
    +-- ConcurrencyError
    |   +-- ConcurrencyConflictError
    |
    +-- RegistryError
    |   +-- DuplicateTransitionRuleError
    |   +-- InvalidStateDefinitionError
    |   +-- UnknownEntityKindError
    |   +-- UnknownActionError
    |
    +-- SideEffectError
    |   +-- CascadeFailureError
    |   +-- DispatchFailureError
    |   +-- TemplateRenderError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | Propagated? | HTTP
-------------|-----------------------------|-------------|-----
Transition   | ENTITY_NOT_FOUND            | yes         | 404
             | INVALID_TRANSITION          | yes         | 400
             | GUARD_FAILED                | yes         | 400
Concurrency  | CONCURRENCY_CONFLICT        | yes         | 409
Registry     | DUPLICATE_TRANSITION_RULE   | startup     | -
             | INVALID_STATE_DEFINITION    | startup     | -
             | UNKNOWN_ENTITY_KIND         | yes         | 404
             | UNKNOWN_ACTION              | yes         | 400
Side effects | CASCADE_FAILURE             | no (logged) | -
             | DISPATCH_FAILURE            | no (logged) | -
             | TEMPLATE_RENDER_ERROR       | no (logged) | -
Audit        | AUDIT_CHAIN_BROKEN          | yes         | 500
Immutability | IMMUTABILITY_VIOLATION      | yes         | 500

===============================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lifecycle_kernel.domain.lifecycle import GuardReason


class LifecycleError(Exception):
    """
    Base exception for all lifecycle kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LIFECYCLE_ERROR"


# Transition-related exceptions


class TransitionError(LifecycleError):
    """Base exception for errors raised while executing a transition."""

    code: str = "TRANSITION_ERROR"


class EntityNotFoundError(TransitionError):
    """Entity with given kind and ID was not found."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InvalidTransitionError(TransitionError):
    """
    No rule exists for the requested edge.

    Usually indicates a caller or UI bug: the client offered an action
    that the entity's current state does not allow.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        kind: str,
        entity_id: str,
        from_state: str,
        to_state: str,
        reason: GuardReason | None = None,
    ):
        self.kind = kind
        self.entity_id = entity_id
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        detail = f" ({reason.value})" if reason is not None else ""
        super().__init__(
            f"No transition for {kind} {entity_id} from '{from_state}' "
            f"to '{to_state}'{detail}"
        )


class GuardFailedError(TransitionError):
    """A transition precondition was not met. The reason is user-facing."""

    code: str = "GUARD_FAILED"

    def __init__(
        self,
        kind: str,
        entity_id: str,
        reason: GuardReason,
        message: str,
    ):
        self.kind = kind
        self.entity_id = entity_id
        self.reason = reason
        self.detail = message
        super().__init__(message)


# Concurrency-related exceptions


class ConcurrencyError(LifecycleError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrencyConflictError(ConcurrencyError):
    """
    Lost the race for a status write.

    The caller should re-read the entity and may retry; it must never
    blindly overwrite.
    """

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(
        self,
        kind: str,
        entity_id: str,
        expected_state: str,
        actual_state: str | None = None,
    ):
        self.kind = kind
        self.entity_id = entity_id
        self.expected_state = expected_state
        self.actual_state = actual_state
        seen = f", found '{actual_state}'" if actual_state is not None else ""
        super().__init__(
            f"Concurrent modification of {kind} {entity_id}: "
            f"expected status '{expected_state}'{seen}"
        )


# Registry-related exceptions


class RegistryError(LifecycleError):
    """Base exception for state registry errors (programmer errors)."""

    code: str = "REGISTRY_ERROR"


class DuplicateTransitionRuleError(RegistryError):
    """Two rules were registered for the same (kind, from, to) edge."""

    code: str = "DUPLICATE_TRANSITION_RULE"

    def __init__(self, kind: str, from_state: str, to_state: str):
        self.kind = kind
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Duplicate transition rule for {kind}: {from_state} -> {to_state}"
        )


class InvalidStateDefinitionError(RegistryError):
    """A state definition or its rules violate a structural invariant."""

    code: str = "INVALID_STATE_DEFINITION"

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Invalid state definition for {kind}: {reason}")


class UnknownEntityKindError(RegistryError):
    """No state definition registered for the entity kind."""

    code: str = "UNKNOWN_ENTITY_KIND"

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown entity kind: {kind}")


class UnknownActionError(RegistryError):
    """The entity kind has no transition exposed under the action name."""

    code: str = "UNKNOWN_ACTION"

    def __init__(self, kind: str, action: str):
        self.kind = kind
        self.action = action
        super().__init__(f"Unknown action '{action}' for {kind}")


# Side-effect exceptions (never propagated to transition callers)


class SideEffectError(LifecycleError):
    """Base exception for non-fatal post-transition failures."""

    code: str = "SIDE_EFFECT_ERROR"


class CascadeFailureError(SideEffectError):
    """A cascade raised after the state change was durable."""

    code: str = "CASCADE_FAILURE"

    def __init__(self, kind: str, entity_id: str, transition: str, error: str):
        self.kind = kind
        self.entity_id = entity_id
        self.transition = transition
        self.error = error
        super().__init__(
            f"Cascade for {kind} {entity_id} ({transition}) failed: {error}"
        )


class DispatchFailureError(SideEffectError):
    """A notification channel failed to deliver a job."""

    code: str = "DISPATCH_FAILURE"

    def __init__(self, channel: str, recipient_id: str, error: str):
        self.channel = channel
        self.recipient_id = recipient_id
        self.error = error
        super().__init__(
            f"Delivery via {channel} to {recipient_id} failed: {error}"
        )


class TemplateRenderError(SideEffectError):
    """A notification template is unknown or missing required variables."""

    code: str = "TEMPLATE_RENDER_ERROR"

    def __init__(self, template_key: str, missing: list[str]):
        self.template_key = template_key
        self.missing = missing
        if missing:
            detail = f"missing variables {missing}"
        else:
            detail = "unknown template"
        super().__init__(f"Template '{template_key}': {detail}")


# Audit-related exceptions


class AuditError(LifecycleError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_record_id: str, expected_hash: str, actual_hash: str):
        self.audit_record_id = audit_record_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_record_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )


# Immutability-related exceptions


class ImmutabilityError(LifecycleError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
