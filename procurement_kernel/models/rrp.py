"""
Module: procurement_kernel.models.rrp
Responsibility: ORM persistence for RRP lines -- the priced goods receipt
    attaching supplier invoice, freight, customs and VAT to a receive line.

Invariants enforced:
    - All lines of a costing batch share rrp_number.
    - Currency outputs (freight_charge, customs_service_charge, vat_amount,
      total_amount) are stored already rounded to 2 decimal places.
    - At most one non-rejected line references a receive line; the service
      guarantees it by refusing to cost receives whose rrp_id is set.

Audit relevance:
    fiscal_year is stamped at creation and drives the per-year numbering
    rule.  inspection_details keeps the inspector sign-off as submitted.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import TrackedBase, UUIDString
from procurement_kernel.domain.approval import ApprovalStatus


class RRPLineModel(TrackedBase):
    """One costed receive line inside an RRP batch."""

    __tablename__ = "rrp_lines"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_rrp_lines_status",
        ),
        Index("ix_rrp_lines_number", "rrp_number"),
        Index("ix_rrp_lines_receive", "receive_id"),
    )

    receive_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("receive_lines.id"), nullable=False,
    )
    rrp_number: Mapped[str] = mapped_column(String(20), nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(300), nullable=False)
    rrp_date: Mapped[date] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    forex_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    item_price: Mapped[Decimal] = mapped_column(nullable=False)
    customs_charge: Mapped[Decimal] = mapped_column(nullable=False)
    customs_service_charge: Mapped[Decimal] = mapped_column(nullable=False)
    vat_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(nullable=False)
    freight_charge: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invoice_date: Mapped[date | None] = mapped_column(nullable=True)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    airway_bill_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    customs_date: Mapped[date | None] = mapped_column(nullable=True)
    customs_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    inspection_details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    fiscal_year: Mapped[str] = mapped_column(String(20), nullable=False)

    def to_dto(self):
        """Convert ORM model to frozen RRPLine DTO."""
        from procurement_kernel.domain.dtos import RRPLine
        return RRPLine(
            id=self.id,
            receive_id=self.receive_id,
            rrp_number=self.rrp_number,
            supplier_name=self.supplier_name,
            rrp_date=self.rrp_date,
            currency=self.currency,
            forex_rate=self.forex_rate,
            item_price=self.item_price,
            customs_charge=self.customs_charge,
            customs_service_charge=self.customs_service_charge,
            vat_percentage=self.vat_percentage,
            vat_amount=self.vat_amount,
            freight_charge=self.freight_charge,
            total_amount=self.total_amount,
            approval_status=ApprovalStatus(self.approval_status),
            created_by=self.created_by,
            fiscal_year=self.fiscal_year,
        )

    def __repr__(self) -> str:
        return (
            f"<RRPLineModel {self.rrp_number} receive={self.receive_id} "
            f"total={self.total_amount} status={self.approval_status}>"
        )
