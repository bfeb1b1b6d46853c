"""
Module: procurement_kernel.models.stock
Responsibility: ORM persistence for stock items and issue lines.

Invariants enforced:
    - nac_code is unique per stock item.
    - item_names / part_numbers are ordered, de-duplicated JSON lists, most
      recently received first.
    - equipment holds the compressed tokens of an EquipmentApplicability
      ("101-104", "110", "LOADER"); never free-form comma text.
    - current_balance rises only on receive approval and falls only on issue
      approval.

Notes:
    JSON list columns are always reassigned, never mutated in place, so the
    ORM sees the change.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import TrackedBase
from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.equipment import EquipmentApplicability


class StockItemModel(TrackedBase):
    """Running stock position for one NAC code."""

    __tablename__ = "stock_items"

    __table_args__ = (
        Index("ix_stock_items_nac_code", "nac_code", unique=True),
    )

    nac_code: Mapped[str] = mapped_column(String(50), nullable=False)
    item_names: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    part_numbers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    equipment: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    current_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    card_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    open_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    open_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    opening_date: Mapped[date | None] = mapped_column(nullable=True)

    @property
    def applicability(self) -> EquipmentApplicability:
        return EquipmentApplicability.parse(self.equipment or [])

    def to_dto(self):
        """Convert ORM model to frozen StockItem DTO."""
        from procurement_kernel.domain.dtos import StockItem
        return StockItem(
            id=self.id,
            nac_code=self.nac_code,
            item_names=tuple(self.item_names or ()),
            part_numbers=tuple(self.part_numbers or ()),
            equipment=self.applicability.display(),
            current_balance=self.current_balance,
            unit=self.unit,
            location=self.location,
            card_number=self.card_number,
            open_quantity=self.open_quantity,
            open_amount=self.open_amount,
            opening_date=self.opening_date,
        )

    def __repr__(self) -> str:
        return f"<StockItemModel {self.nac_code} balance={self.current_balance}>"


class IssueLineModel(TrackedBase):
    """Stock issued out to equipment; recorded by the issue desk."""

    __tablename__ = "issue_lines"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_issue_lines_status",
        ),
        CheckConstraint("issue_quantity > 0", name="ck_issue_lines_quantity"),
        Index("ix_issue_lines_nac_code", "nac_code"),
    )

    issue_slip_number: Mapped[str] = mapped_column(String(50), nullable=False)
    issue_date: Mapped[date] = mapped_column(nullable=False)
    nac_code: Mapped[str] = mapped_column(String(50), nullable=False)
    part_number: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    issue_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    issued_for: Mapped[str] = mapped_column(String(200), nullable=False)
    issue_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    remaining_balance: Mapped[Decimal | None] = mapped_column(nullable=True)
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    issued_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<IssueLineModel {self.issue_slip_number} {self.nac_code} "
            f"qty={self.issue_quantity} status={self.approval_status}>"
        )
