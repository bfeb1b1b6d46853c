"""
procurement_kernel.services.notification_service -- rejection side effects.

Responsibility:
    Resolve usernames to user ids, write inbox notifications, and apply a
    ``RejectionPlan`` (unlinks plus notifications) inside the caller's
    transaction.

Architecture position:
    Kernel > Services.  The directory and sink are protocols so the delivery
    transport can live elsewhere; the SQL implementations here write to the
    ``users`` and ``notifications`` tables.

Invariants enforced:
    - Every user named by a plan is resolved BEFORE any intent is applied.
      A missing user aborts the rejection with nothing flushed by the plan.

Failure modes:
    - UserNotFoundError when a notified username has no user record.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from procurement_kernel.domain.approval import (
    EntityKind,
    Notify,
    RejectionPlan,
    UnlinkReceives,
    UnlinkRequest,
)
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.exceptions import UserNotFoundError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.notification import NotificationModel, UserModel
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.notification")


class UserDirectory(Protocol):
    def resolve(self, username: str) -> UUID:
        """User id for ``username``; raises UserNotFoundError."""
        ...


class NotificationSink(Protocol):
    def enqueue(
        self,
        user_id: UUID,
        reference_type: EntityKind,
        reference_id: UUID,
        message: str,
    ) -> None:
        ...


class SqlUserDirectory(BaseService):
    """Resolves usernames against the ``users`` table."""

    def resolve(self, username: str) -> UUID:
        user_id = self.session.execute(
            select(UserModel.id).where(UserModel.username == username)
        ).scalar_one_or_none()
        if user_id is None:
            raise UserNotFoundError(username)
        return user_id


class SqlNotificationSink(BaseService):
    """Writes notifications into the caller's transaction."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def enqueue(
        self,
        user_id: UUID,
        reference_type: EntityKind,
        reference_id: UUID,
        message: str,
    ) -> None:
        self.session.add(NotificationModel(
            user_id=user_id,
            reference_type=reference_type.value,
            reference_id=reference_id,
            message=message,
            is_read=False,
            created_at=self._clock.now(),
        ))

    def mark_read(self, notification_id: UUID) -> bool:
        result = self.session.execute(
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(is_read=True)
        )
        return bool(result.rowcount)

    def unread_for(self, user_id: UUID) -> list[NotificationModel]:
        return list(self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.is_read.is_(False))
            .order_by(NotificationModel.created_at.desc())
        ).scalars())


class RejectionEffects(BaseService):
    """Applies the side-effect intents of a rejection plan."""

    def __init__(
        self,
        session: Session,
        directory: UserDirectory,
        sink: NotificationSink,
    ):
        super().__init__(session)
        self._directory = directory
        self._sink = sink

    def apply(self, plan: RejectionPlan, actor: str) -> None:
        recipients = {n.username: self._directory.resolve(n.username) for n in plan.notifications}

        for effect in plan.effects:
            if isinstance(effect, UnlinkRequest):
                self.session.execute(
                    update(RequestLineModel)
                    .where(RequestLineModel.id == effect.request_id)
                    .values(is_received=False, receive_id=None, updated_by=actor)
                    .execution_options(synchronize_session="fetch")
                )
            elif isinstance(effect, UnlinkReceives):
                if effect.receive_ids:
                    self.session.execute(
                        update(ReceiveLineModel)
                        .where(ReceiveLineModel.id.in_(effect.receive_ids))
                        .values(rrp_id=None, updated_by=actor)
                        .execution_options(synchronize_session="fetch")
                    )
            elif isinstance(effect, Notify):
                self._sink.enqueue(
                    recipients[effect.username],
                    effect.reference_type,
                    effect.reference_id,
                    effect.message,
                )

        self.session.flush()
        logger.info("rejection_effects_applied", extra={
            "entity_type": plan.entity_kind.value,
            "entity_ref": plan.entity_ref,
            "effect_count": len(plan.effects),
            "notified": sorted(recipients),
        })
