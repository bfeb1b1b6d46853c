"""
Module: procurement_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  Selectors NEVER add, delete, flush or commit.

Invariants enforced:
    - Selectors use the caller's session and transaction.
    - Results are DTOs or plain values, not ORM instances.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller and performs read-only queries.
    """

    def __init__(self, session: Session):
        self.session = session
