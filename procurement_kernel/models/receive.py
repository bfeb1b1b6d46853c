"""
Module: procurement_kernel.models.receive
Responsibility: ORM persistence for receive lines (physical arrival of goods
    against an approved request line).

Invariants enforced:
    - request_id references an existing request line.
    - received_quantity is positive.
    - rrp_id is NULL until the line is costed and is cleared again when the
      RRP batch is rejected.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import TrackedBase, UUIDString
from procurement_kernel.domain.approval import ApprovalStatus


class ReceiveLineModel(TrackedBase):
    """Received goods for one request line."""

    __tablename__ = "receive_lines"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_receive_lines_status",
        ),
        CheckConstraint(
            "received_quantity > 0",
            name="ck_receive_lines_quantity",
        ),
        Index("ix_receive_lines_nac_code", "nac_code"),
        Index("ix_receive_lines_rrp", "rrp_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("request_lines.id"), nullable=False,
    )
    nac_code: Mapped[str] = mapped_column(String(50), nullable=False)
    part_number: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    received_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    receive_date: Mapped[date] = mapped_column(nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    card_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    received_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    rrp_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen ReceiveLine DTO."""
        from procurement_kernel.domain.dtos import ReceiveLine
        return ReceiveLine(
            id=self.id,
            request_id=self.request_id,
            nac_code=self.nac_code,
            part_number=self.part_number,
            item_name=self.item_name,
            received_quantity=self.received_quantity,
            receive_date=self.receive_date,
            approval_status=ApprovalStatus(self.approval_status),
            received_by=self.received_by,
            location=self.location,
            card_number=self.card_number,
            rrp_id=self.rrp_id,
        )

    def __repr__(self) -> str:
        return (
            f"<ReceiveLineModel {self.id} {self.nac_code} "
            f"qty={self.received_quantity} status={self.approval_status}>"
        )
