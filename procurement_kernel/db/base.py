"""
Module: procurement_kernel.db.base
Responsibility: ORM base classes shared by the request, receive, RRP, stock,
    user and notification tables.
Architecture position: Kernel > DB.  Imports only SQLAlchemy; every model
    module builds on it.

Conventions:
    - Rows are keyed by a uuid4 kept as 36-character text, so the same schema
      works on SQLite for tests and on a server database in production.
    - Quantities and amounts are Numeric(38, 9); floats never reach a column.
    - Workflow rows (request, receive and RRP lines, stock items) extend
      TrackedBase and record the username that created and last changed them.
      Reference rows (users, notifications, app config) extend Base directly.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID column kept as text; Python code always sees ``uuid.UUID``."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative root: uuid primary key plus the column type map."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for rows that move through the approval chain.

    ``created_at``/``updated_at`` are filled by the database.  ``created_by``
    is mandatory; services set ``updated_by`` whenever they edit, approve or
    reject a row so the last actor is always on the row itself.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(100))
