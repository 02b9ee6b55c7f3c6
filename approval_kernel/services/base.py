"""
BaseService -- common constructor for kernel services.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()`` only.  They never commit or roll back: the caller (the
services facade or a test harness) owns the transaction, so multi-step
operations such as "allocate number, insert document, insert line, append
history" stay atomic.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Abstract base class for all kernel services."""

    def __init__(self, session: Session):
        self.session = session
