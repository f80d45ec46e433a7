"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return dataclasses, not ORM rows.
    - Session ownership: the caller owns the session, so a report built from
      several selector calls reads one consistent snapshot.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Base for selectors: holds the caller's session."""

    def __init__(self, session: Session):
        self.session = session
