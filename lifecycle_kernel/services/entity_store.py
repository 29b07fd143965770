"""
EntityStore -- Snapshot reads and compare-and-set status writes.

Responsibility:
    Maps each entity kind to its ORM model, builds immutable EntitySnapshots
    from rows, and performs the single conditional UPDATE that is the
    serialization point for every transition.

Architecture position:
    Kernel > Services.  Imports db/ and domain/.  Never commits: the caller
    owns the transaction boundary.

Invariants enforced:
    - ``status`` and ``version`` are written only by ``compare_and_set``.
    - The UPDATE matches on (id, status read by the caller); zero matched
      rows means another writer won and the caller must not proceed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import inspect, select, update
from sqlalchemy.orm import Session

from lifecycle_kernel.db.base import LifecycleEntityBase
from lifecycle_kernel.domain.lifecycle import EntitySnapshot
from lifecycle_kernel.exceptions import (
    InvalidStateDefinitionError,
    UnknownEntityKindError,
)
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("services.entity_store")

# Columns surfaced as first-class snapshot attributes rather than fields
_SNAPSHOT_CORE = frozenset({"id", "organization_id", "status", "version"})


@dataclass(frozen=True)
class EntityBinding:
    """ORM model (and child collections) backing one entity kind."""

    kind: str
    model: type[LifecycleEntityBase]
    children: tuple[str, ...] = ()


def _row_to_dict(instance: Any, exclude: frozenset[str] = frozenset()) -> dict[str, Any]:
    mapper = inspect(type(instance))
    return {
        attr.key: getattr(instance, attr.key)
        for attr in mapper.column_attrs
        if attr.key not in exclude
    }


class EntityStore:
    """Storage collaborator for lifecycle entities."""

    def __init__(self) -> None:
        self._bindings: dict[str, EntityBinding] = {}

    def bind(
        self,
        kind: str,
        model: type[LifecycleEntityBase],
        children: tuple[str, ...] = (),
    ) -> None:
        if kind in self._bindings:
            raise InvalidStateDefinitionError(kind, "storage already bound")
        relationships = inspect(model).relationships
        for name in children:
            if name not in relationships:
                raise InvalidStateDefinitionError(
                    kind, f"{model.__name__} has no relationship '{name}'"
                )
        self._bindings[kind] = EntityBinding(kind=kind, model=model, children=children)

    def binding(self, kind: str) -> EntityBinding:
        binding = self._bindings.get(kind)
        if binding is None:
            raise UnknownEntityKindError(kind)
        return binding

    def kinds(self) -> tuple[str, ...]:
        return tuple(self._bindings)

    def snapshot(self, kind: str, instance: LifecycleEntityBase) -> EntitySnapshot:
        """Build an immutable snapshot from a loaded ORM instance."""
        binding = self.binding(kind)
        children = {
            name: tuple(_row_to_dict(child) for child in getattr(instance, name))
            for name in binding.children
        }
        return EntitySnapshot(
            kind=kind,
            entity_id=instance.id,
            organization_id=instance.organization_id,
            status=instance.status,
            version=instance.version,
            fields=_row_to_dict(instance, exclude=_SNAPSHOT_CORE),
            children=children,
        )

    def load(
        self, session: Session, kind: str, entity_id: UUID
    ) -> EntitySnapshot | None:
        """Read the entity fresh from the database; None if absent."""
        model = self.binding(kind).model
        instance = session.execute(
            select(model)
            .where(model.id == entity_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if instance is None:
            return None
        return self.snapshot(kind, instance)

    def current_status(
        self, session: Session, kind: str, entity_id: UUID
    ) -> str | None:
        model = self.binding(kind).model
        return session.execute(
            select(model.status).where(model.id == entity_id)
        ).scalar_one_or_none()

    def compare_and_set(
        self,
        session: Session,
        kind: str,
        entity_id: UUID,
        expected_status: str,
        new_status: str,
        actor_id: UUID,
        occurred_at: datetime,
        values: Mapping[str, Any] | None = None,
    ) -> bool:
        """
        Move ``entity_id`` from ``expected_status`` to ``new_status``.

        ``values`` are extra columns written by the same statement.
        Returns False when no row matched (another writer changed status).
        """
        model = self.binding(kind).model
        extra = dict(values or {})
        forbidden = _SNAPSHOT_CORE & extra.keys()
        if forbidden:
            raise InvalidStateDefinitionError(
                kind, f"stamp may not write {sorted(forbidden)}"
            )

        stmt = (
            update(model)
            .where(model.id == entity_id, model.status == expected_status)
            .values(
                status=new_status,
                version=model.version + 1,
                status_changed_at=occurred_at,
                status_changed_by_id=actor_id,
                updated_by_id=actor_id,
                **extra,
            )
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        matched = result.rowcount == 1

        logger.debug(
            "status_compare_and_set",
            extra={
                "entity_kind": kind,
                "entity_id": str(entity_id),
                "expected_status": expected_status,
                "new_status": new_status,
                "matched": matched,
            },
        )
        return matched
