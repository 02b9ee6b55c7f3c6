"""
Module: approval_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain DTOs.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Selectors never add, flush, commit or delete.
    - Selectors return frozen DTOs, never ORM instances.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Read-only access over a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session
