"""
Module: procurement_kernel.models.request
Responsibility: ORM persistence for purchase request lines.

Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - Valid approval status values (check constraint).
    - requested_quantity is positive (check constraint).
    - balance_snapshot / previous_rate_snapshot are captured once at
      submission; NULL means "not available" and is rendered as 'N/A'.

Audit relevance:
    approved_by / rejected_by / rejection_reason record who decided what.
    is_received / receive_id link the line to its receive and are the only
    columns rewritten after approval (unlinked when the receive is rejected).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import TrackedBase, UUIDString
from procurement_kernel.domain.approval import ApprovalStatus


class RequestLineModel(TrackedBase):
    """One line of a purchase request; lines share a request_number."""

    __tablename__ = "request_lines"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_request_lines_status",
        ),
        CheckConstraint(
            "requested_quantity > 0",
            name="ck_request_lines_quantity",
        ),
        Index("ix_request_lines_number", "request_number"),
        Index("ix_request_lines_nac_code", "nac_code"),
    )

    request_number: Mapped[str] = mapped_column(String(50), nullable=False)
    request_date: Mapped[date] = mapped_column(nullable=False)
    nac_code: Mapped[str] = mapped_column(String(50), nullable=False)
    part_number: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    item_name: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    requested_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    equipment_number: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    specifications: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    balance_snapshot: Mapped[Decimal | None] = mapped_column(nullable=True)
    previous_rate_snapshot: Mapped[Decimal | None] = mapped_column(nullable=True)

    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    requested_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    receive_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen RequestLine DTO."""
        from procurement_kernel.domain.dtos import RequestLine
        return RequestLine(
            id=self.id,
            request_number=self.request_number,
            request_date=self.request_date,
            nac_code=self.nac_code,
            part_number=self.part_number,
            item_name=self.item_name,
            unit=self.unit,
            requested_quantity=self.requested_quantity,
            equipment_number=self.equipment_number,
            balance_snapshot=self.balance_snapshot,
            previous_rate_snapshot=self.previous_rate_snapshot,
            approval_status=ApprovalStatus(self.approval_status),
            requested_by=self.requested_by,
            is_received=self.is_received,
            receive_id=self.receive_id,
        )

    def __repr__(self) -> str:
        return (
            f"<RequestLineModel {self.request_number} {self.nac_code} "
            f"qty={self.requested_quantity} status={self.approval_status}>"
        )
