"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table before ``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily by
``ledger_kernel.db.engine.create_tables``; imports kernel models first,
then module ORM modules.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every module ``orm`` to register tables.

    Idempotent -- repeated calls are harmless.
    """
    # Kernel tables first: journal, counters, partitions
    import ledger_kernel.models  # noqa: F401
    import ledger_kernel.services.ledger_store  # noqa: F401
    import ledger_kernel.services.sequence_service  # noqa: F401
    # fmt: off
    import ledger_modules.revenue.orm  # noqa: F401
    # fmt: on
