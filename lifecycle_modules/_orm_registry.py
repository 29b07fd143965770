"""
Module ORM Registry (``lifecycle_modules._orm_registry``).

Responsibility
--------------
Import every ``lifecycle_modules.*.orm`` module so ``Base.metadata``
carries their tables before ``create_all()`` runs, and expose
``create_all_tables()`` as the single entry point for a full schema.

Architecture position
---------------------
**Modules layer** -- utility.  Imports from sibling packages and from
``lifecycle_kernel.db.engine`` (allowed: modules -> kernel).  MUST NOT be
imported by ``lifecycle_kernel``.
"""


def import_all_orm_models() -> None:
    """Import kernel models, then every module ORM.  Idempotent."""
    from lifecycle_kernel.models import import_kernel_models

    import_kernel_models()
    # fmt: off
    import lifecycle_modules.events.orm  # noqa: F401
    import lifecycle_modules.leave.orm  # noqa: F401
    import lifecycle_modules.payroll.orm  # noqa: F401
    import lifecycle_modules.procurement.orm  # noqa: F401
    import lifecycle_modules.support.orm  # noqa: F401
    import lifecycle_modules.timekeeping.orm  # noqa: F401
    # fmt: on


def create_all_tables() -> None:
    """Create kernel and module tables.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from lifecycle_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables()
