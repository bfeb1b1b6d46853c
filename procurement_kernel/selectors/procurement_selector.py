"""
Module: procurement_kernel.selectors.procurement_selector
Responsibility: Work-queue queries for the approval desks: requests awaiting
    approval, approved requests awaiting receipt, receives awaiting approval
    and approved receives awaiting costing.
"""

from __future__ import annotations

from sqlalchemy import select

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.dtos import ReceiveLine, RequestLine
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.selectors.base import BaseSelector


class ProcurementSelector(BaseSelector):
    """Read-only queries over request and receive lines."""

    def request_lines(self, request_number: str) -> list[RequestLine]:
        return [
            line.to_dto()
            for line in self.session.execute(
                select(RequestLineModel)
                .where(RequestLineModel.request_number == request_number)
                .order_by(RequestLineModel.created_at, RequestLineModel.id)
            ).scalars()
        ]

    def pending_requests(self) -> list[RequestLine]:
        return self._requests(
            RequestLineModel.approval_status == ApprovalStatus.PENDING.value,
        )

    def receivable_requests(self) -> list[RequestLine]:
        """Approved request lines with no live receive."""
        return self._requests(
            RequestLineModel.approval_status == ApprovalStatus.APPROVED.value,
            RequestLineModel.is_received.is_(False),
        )

    def pending_receives(self) -> list[ReceiveLine]:
        return self._receives(
            ReceiveLineModel.approval_status == ApprovalStatus.PENDING.value,
        )

    def costable_receives(self) -> list[ReceiveLine]:
        """Approved receive lines not yet attached to an RRP batch."""
        return self._receives(
            ReceiveLineModel.approval_status == ApprovalStatus.APPROVED.value,
            ReceiveLineModel.rrp_id.is_(None),
        )

    def _requests(self, *criteria) -> list[RequestLine]:
        return [
            line.to_dto()
            for line in self.session.execute(
                select(RequestLineModel)
                .where(*criteria)
                .order_by(RequestLineModel.request_date, RequestLineModel.request_number)
            ).scalars()
        ]

    def _receives(self, *criteria) -> list[ReceiveLine]:
        return [
            line.to_dto()
            for line in self.session.execute(
                select(ReceiveLineModel)
                .where(*criteria)
                .order_by(ReceiveLineModel.receive_date, ReceiveLineModel.created_at)
            ).scalars()
        ]
