"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and the conditional status transition used by every
    approve/reject operation.  Services flush within the caller's
    transaction and never commit or roll back; ``session_scope()`` in the
    workflow layer owns the transaction boundary.

Invariants enforced:
    - Status changes are conditional UPDATEs on the current status.  Zero
      affected rows is reported as a conflict (or not-found when nothing
      matches at all), never silently ignored.
"""

from abc import ABC
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, select, update
from sqlalchemy.orm import Session

from procurement_kernel.domain.approval import ApprovalStatus, can_transition
from procurement_kernel.exceptions import AlreadyTransitionedError, NotFoundError


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session

    def _transition(
        self,
        model: Any,
        criteria: Sequence[ColumnElement[bool]],
        target: ApprovalStatus,
        values: dict[str, Any],
        entity_type: str,
        entity_ref: str,
        not_found: NotFoundError,
    ) -> int:
        """
        Move every PENDING row matching ``criteria`` to ``target``.

        Returns:
            Number of rows transitioned (always >= 1).

        Raises:
            NotFoundError: ``not_found`` if no row matches ``criteria``.
            AlreadyTransitionedError: rows exist but none is PENDING.
        """
        if not can_transition(ApprovalStatus.PENDING, target):
            raise ValueError(f"{target.value} is not reachable from PENDING")
        stmt = (
            update(model)
            .where(*criteria, model.approval_status == ApprovalStatus.PENDING.value)
            .values(approval_status=target.value, **values)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            return result.rowcount

        current = self.session.execute(
            select(model.approval_status).where(*criteria).limit(1)
        ).scalar_one_or_none()
        if current is None:
            raise not_found
        raise AlreadyTransitionedError(entity_type, entity_ref, current)
