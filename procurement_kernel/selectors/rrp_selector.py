"""
Module: procurement_kernel.selectors.rrp_selector
Responsibility: Read queries over RRP lines: last approved unit cost per NAC
    code, batch summaries for numbering, latest number per series.

Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from collections import OrderedDict
from decimal import Decimal

from sqlalchemy import or_, select

from procurement_kernel.db.types import ZERO, round_money
from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.dtos import RRPLine
from procurement_kernel.domain.rrp_number import RRPBatchSummary
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.rrp import RRPLineModel
from procurement_kernel.selectors.base import BaseSelector


class RRPSelector(BaseSelector):
    """Read-only access to RRP lines."""

    def latest_approved_unit_cost(self, nac_code: str) -> Decimal | None:
        """
        Landed unit cost of the most recent approved RRP line for a NAC code.

        Unit cost is the line's total amount divided by the quantity
        received, rounded to 2 places.  None when the code was never costed.
        """
        row = self.session.execute(
            select(RRPLineModel.total_amount, ReceiveLineModel.received_quantity)
            .join(ReceiveLineModel, ReceiveLineModel.id == RRPLineModel.receive_id)
            .where(
                ReceiveLineModel.nac_code == nac_code,
                RRPLineModel.approval_status == ApprovalStatus.APPROVED.value,
            )
            .order_by(RRPLineModel.rrp_date.desc(), RRPLineModel.created_at.desc())
            .limit(1)
        ).first()
        if row is None:
            return None
        total_amount, received_quantity = row
        if not received_quantity or received_quantity <= ZERO:
            return None
        return round_money(total_amount / received_quantity)

    def batch_summaries_for_base(self, base: str) -> list[RRPBatchSummary]:
        """One summary per distinct RRP number sharing ``base``."""
        lines = self.session.execute(
            select(RRPLineModel)
            .where(or_(
                RRPLineModel.rrp_number == base,
                RRPLineModel.rrp_number.like(f"{base}T%"),
            ))
            .order_by(RRPLineModel.rrp_number, RRPLineModel.created_at)
        ).scalars().all()

        grouped: OrderedDict[str, list[RRPLineModel]] = OrderedDict()
        for line in lines:
            grouped.setdefault(line.rrp_number, []).append(line)

        return [
            RRPBatchSummary(
                rrp_number=number,
                approval_status=_batch_status(batch),
                fiscal_year=batch[0].fiscal_year,
                rrp_date=batch[0].rrp_date,
            )
            for number, batch in grouped.items()
        ]

    def lines_for_number(self, rrp_number: str) -> list[RRPLine]:
        return [
            line.to_dto()
            for line in self.session.execute(
                select(RRPLineModel)
                .where(RRPLineModel.rrp_number == rrp_number)
                .order_by(RRPLineModel.created_at, RRPLineModel.id)
            ).scalars()
        ]

    def latest_in_series(self, series: str) -> RRPLine | None:
        """Most recent RRP line whose number starts with ``series`` (L or F)."""
        line = self.session.execute(
            select(RRPLineModel)
            .where(RRPLineModel.rrp_number.like(f"{series}%"))
            .order_by(
                RRPLineModel.rrp_date.desc(),
                RRPLineModel.created_at.desc(),
                RRPLineModel.rrp_number.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()
        return line.to_dto() if line is not None else None

    def pending_numbers(self) -> list[str]:
        return list(self.session.execute(
            select(RRPLineModel.rrp_number)
            .where(RRPLineModel.approval_status == ApprovalStatus.PENDING.value)
            .distinct()
            .order_by(RRPLineModel.rrp_number)
        ).scalars())


def _batch_status(lines: list[RRPLineModel]) -> ApprovalStatus:
    statuses = {ApprovalStatus(line.approval_status) for line in lines}
    if statuses == {ApprovalStatus.REJECTED}:
        return ApprovalStatus.REJECTED
    if ApprovalStatus.PENDING in statuses:
        return ApprovalStatus.PENDING
    return ApprovalStatus.APPROVED
