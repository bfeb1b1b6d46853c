"""
Module: procurement_kernel.selectors.stock_selector
Responsibility: Load stock items and the approved movement history that the
    stock card replays.

Ordering:
    Movements are ordered by date; on the same date receipts come before
    issues, then by reference.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import and_, select

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.dtos import MovementRecord, StockItem
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.rrp import RRPLineModel
from procurement_kernel.models.stock import IssueLineModel, StockItemModel
from procurement_kernel.selectors.base import BaseSelector

RECEIVE = "receive"
ISSUE = "issue"

_KIND_RANK = {RECEIVE: 0, ISSUE: 1}


class StockSelector(BaseSelector):
    """Read-only access to stock positions and movements."""

    def get_item(self, nac_code: str) -> StockItem | None:
        item = self.session.execute(
            select(StockItemModel).where(StockItemModel.nac_code == nac_code)
        ).scalar_one_or_none()
        return item.to_dto() if item is not None else None

    def current_balance(self, nac_code: str) -> Decimal | None:
        return self.session.execute(
            select(StockItemModel.current_balance)
            .where(StockItemModel.nac_code == nac_code)
        ).scalar_one_or_none()

    def receive_movements(self, nac_code: str) -> list[MovementRecord]:
        """Approved receipts, referenced by their live RRP number when costed."""
        rows = self.session.execute(
            select(ReceiveLineModel, RRPLineModel)
            .outerjoin(
                RRPLineModel,
                and_(
                    RRPLineModel.id == ReceiveLineModel.rrp_id,
                    RRPLineModel.approval_status != ApprovalStatus.REJECTED.value,
                ),
            )
            .where(
                ReceiveLineModel.nac_code == nac_code,
                ReceiveLineModel.approval_status == ApprovalStatus.APPROVED.value,
            )
        ).all()
        return [
            MovementRecord(
                kind=RECEIVE,
                movement_date=receive.receive_date,
                quantity=receive.received_quantity,
                reference=rrp.rrp_number if rrp else "",
                counterpart=rrp.supplier_name if rrp else "",
                amount=rrp.total_amount if rrp else None,
            )
            for receive, rrp in rows
        ]

    def issue_movements(self, nac_code: str) -> list[MovementRecord]:
        issues = self.session.execute(
            select(IssueLineModel).where(
                IssueLineModel.nac_code == nac_code,
                IssueLineModel.approval_status == ApprovalStatus.APPROVED.value,
            )
        ).scalars().all()
        return [
            MovementRecord(
                kind=ISSUE,
                movement_date=issue.issue_date,
                quantity=issue.issue_quantity,
                reference=issue.issue_slip_number,
                counterpart=issue.issued_for,
                amount=issue.issue_cost,
            )
            for issue in issues
        ]

    def movements(self, nac_code: str) -> list[MovementRecord]:
        combined = self.receive_movements(nac_code) + self.issue_movements(nac_code)
        return sorted(
            combined,
            key=lambda m: (m.movement_date, _KIND_RANK[m.kind], m.reference),
        )
