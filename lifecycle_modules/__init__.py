"""
Lifecycle Modules.

One package per entity kind, each contributing:
- Domain models (state enums, the kind name)
- ORM models (the persisted entity and its children)
- Workflows (state definition plus transition rules with guards, stamps
  and notification builders)
- Cascades (follow-up writes after a committed transition)

Kinds:
- procurement: purchase orders
- payroll: payroll runs and their items
- timekeeping: time entries
- leave: leave requests
- events: event registrations
- support: support tickets

Nothing registers at import time; call ``catalog.register_all`` or
``catalog.build_engine``.
"""

from lifecycle_modules.catalog import COLLECTIONS, build_engine, register_all

__all__ = ["COLLECTIONS", "build_engine", "register_all"]
