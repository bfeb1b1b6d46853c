"""
procurement_kernel.services.request_service -- purchase request lifecycle.

Responsibility:
    Submit, edit, approve and reject requests.  A request is a set of lines
    sharing one request_number; approval and rejection act on every
    PENDING line of the number at once.

Invariants enforced:
    - balance_snapshot / previous_rate_snapshot are read once, at
      submission, from the stock item and the last approved RRP line.
    - Lines with NAC code 'N/A' get no stock snapshot.
    - A request can be edited only while every line is PENDING.

Failure modes:
    - DuplicateRequestNumberError on submitting an existing number.
    - RequestNotFoundError for an unknown number or line id.
    - AlreadyTransitionedError when nothing is PENDING any more.
    - UserNotFoundError when the requester to notify no longer exists.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_kernel.domain.approval import ApprovalStatus, plan_request_rejection
from procurement_kernel.domain.dtos import (
    RequestEdit,
    RequestItemInput,
    RequestSubmission,
)
from procurement_kernel.domain.equipment import EquipmentApplicability
from procurement_kernel.exceptions import (
    AlreadyTransitionedError,
    DuplicateRequestNumberError,
    RequestNotFoundError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.models.stock import StockItemModel
from procurement_kernel.selectors.rrp_selector import RRPSelector
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.notification_service import RejectionEffects

logger = get_logger("services.request")


class RequestService(BaseService):
    """Writes request lines."""

    def __init__(self, session: Session, effects: RejectionEffects):
        super().__init__(session)
        self._effects = effects
        self._rrp = RRPSelector(session)

    def _lines(self, request_number: str) -> list[RequestLineModel]:
        return list(self.session.execute(
            select(RequestLineModel)
            .where(RequestLineModel.request_number == request_number)
            .order_by(RequestLineModel.created_at, RequestLineModel.id)
        ).scalars())

    def _apply_item(self, line: RequestLineModel, item: RequestItemInput) -> None:
        """Copy item fields and take fresh stock/rate snapshots."""
        stock = None
        if item.tracks_stock:
            stock = self.session.execute(
                select(StockItemModel).where(StockItemModel.nac_code == item.nac_code)
            ).scalar_one_or_none()

        line.nac_code = item.nac_code
        line.part_number = item.part_number
        line.item_name = item.item_name
        line.unit = item.unit or (stock.unit if stock is not None else None)
        line.requested_quantity = item.requested_quantity
        line.equipment_number = EquipmentApplicability.parse(item.equipment_number).display()
        line.specifications = item.specifications
        line.image_path = item.image_path
        line.remarks = item.remarks
        line.balance_snapshot = stock.current_balance if stock is not None else None
        line.previous_rate_snapshot = (
            self._rrp.latest_approved_unit_cost(item.nac_code) if item.tracks_stock else None
        )

    def submit(self, submission: RequestSubmission) -> list[UUID]:
        if self._lines(submission.request_number):
            raise DuplicateRequestNumberError(submission.request_number)

        ids: list[UUID] = []
        for item in submission.items:
            line = RequestLineModel(
                id=uuid4(),
                request_number=submission.request_number,
                request_date=submission.request_date,
                requested_by=submission.requested_by,
                approval_status=ApprovalStatus.PENDING.value,
                is_received=False,
                created_by=submission.requested_by,
            )
            self._apply_item(line, item)
            self.session.add(line)
            ids.append(line.id)
        self.session.flush()

        logger.info("request_submitted", extra={
            "request_number": submission.request_number,
            "line_count": len(ids),
        })
        return ids

    def update(self, request_number: str, edit: RequestEdit) -> list[UUID]:
        lines = self._lines(request_number)
        if not lines:
            raise RequestNotFoundError(request_number)
        for line in lines:
            if line.approval_status != ApprovalStatus.PENDING.value:
                raise AlreadyTransitionedError("request", request_number, line.approval_status)

        new_number = edit.request_number or request_number
        if new_number != request_number and self._lines(new_number):
            raise DuplicateRequestNumberError(new_number)
        new_date = edit.request_date or lines[0].request_date

        by_id = {line.id: line for line in lines}
        kept: set[UUID] = set()
        ids: list[UUID] = []
        for item in edit.items:
            if item.line_id is not None:
                line = by_id.get(item.line_id)
                if line is None:
                    raise RequestNotFoundError(str(item.line_id))
                kept.add(line.id)
            else:
                line = RequestLineModel(
                    id=uuid4(),
                    requested_by=lines[0].requested_by,
                    approval_status=ApprovalStatus.PENDING.value,
                    is_received=False,
                    created_by=edit.edited_by,
                )
            line.request_number = new_number
            line.request_date = new_date
            line.updated_by = edit.edited_by
            # snapshot queries autoflush, so a new line joins the session only once complete
            self._apply_item(line, item)
            if line.id not in by_id:
                self.session.add(line)
            ids.append(line.id)

        removed = [line for line in lines if line.id not in kept]
        for line in removed:
            self.session.delete(line)
        self.session.flush()

        logger.info("request_updated", extra={
            "request_number": request_number,
            "new_request_number": new_number,
            "line_count": len(ids),
            "removed_count": len(removed),
        })
        return ids

    def approve(self, request_number: str, approver: str) -> int:
        count = self._transition(
            RequestLineModel,
            [RequestLineModel.request_number == request_number],
            ApprovalStatus.APPROVED,
            {"approved_by": approver, "updated_by": approver},
            entity_type="request",
            entity_ref=request_number,
            not_found=RequestNotFoundError(request_number),
        )
        logger.info("request_approved", extra={
            "request_number": request_number,
            "line_count": count,
        })
        return count

    def reject(self, request_number: str, rejected_by: str, reason: str) -> int:
        count = self._transition(
            RequestLineModel,
            [RequestLineModel.request_number == request_number],
            ApprovalStatus.REJECTED,
            {
                "rejected_by": rejected_by,
                "rejection_reason": reason,
                "updated_by": rejected_by,
            },
            entity_type="request",
            entity_ref=request_number,
            not_found=RequestNotFoundError(request_number),
        )
        first = self._lines(request_number)[0]
        plan = plan_request_rejection(request_number, first.id, first.requested_by, reason)
        self._effects.apply(plan, rejected_by)

        logger.info("request_rejected", extra={
            "request_number": request_number,
            "line_count": count,
        })
        return count
