"""
Module: procurement_kernel.models.notification
Responsibility: ORM persistence for users, inbox notifications and the
    app_config key/value table read by AppConfigStore.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base, UUIDString


class UserModel(Base):
    """Minimal user directory entry; owned by the external user admin."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<UserModel {self.username}>"


class NotificationModel(Base):
    """Inbox message raised by a rejection."""

    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            "reference_type IN ('request', 'receive', 'rrp')",
            name="ck_notifications_reference_type",
        ),
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    reference_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<NotificationModel {self.reference_type}:{self.reference_id} "
            f"user={self.user_id} read={self.is_read}>"
        )


class AppConfigModel(Base):
    """Business configuration row, e.g. ('rrp', 'current_fy', '2081/82')."""

    __tablename__ = "app_config"

    __table_args__ = (
        UniqueConstraint("config_type", "config_name", name="uq_app_config_key"),
    )

    config_type: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    config_name: Mapped[str] = mapped_column(String(100), nullable=False)
    config_value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<AppConfigModel {self.config_type}.{self.config_name}>"
