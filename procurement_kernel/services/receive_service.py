"""
procurement_kernel.services.receive_service -- receive line lifecycle.

Responsibility:
    Record goods arriving against approved request lines, approve them into
    stock, or reject them and free the request line for another receipt.

Invariants enforced:
    - A receive is created only for an APPROVED request line that has no
      live receive; the request line is linked in the same flush.
    - Approval is the one point where stock balance increases.
    - Rejection unlinks the request line and notifies the receiver
      together, or not at all.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from procurement_kernel.domain.approval import ApprovalStatus, plan_receive_rejection
from procurement_kernel.domain.dtos import ReceiveBatch
from procurement_kernel.exceptions import (
    AlreadyTransitionedError,
    IneligibleRequestError,
    ReceiveNotFoundError,
    RequestNotFoundError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.notification_service import RejectionEffects
from procurement_kernel.services.stock_service import StockService

logger = get_logger("services.receive")


class ReceiveService(BaseService):
    """Writes receive lines and drives stock on approval."""

    def __init__(
        self,
        session: Session,
        effects: RejectionEffects,
        stock: StockService | None = None,
    ):
        super().__init__(session)
        self._effects = effects
        self._stock = stock or StockService(session)

    def _get(self, receive_id: UUID) -> ReceiveLineModel:
        receive = self.session.get(ReceiveLineModel, receive_id)
        if receive is None:
            raise ReceiveNotFoundError(str(receive_id))
        return receive

    def create(self, batch: ReceiveBatch) -> list[UUID]:
        ids: list[UUID] = []
        for item in batch.items:
            request = self.session.get(RequestLineModel, item.request_id)
            if request is None:
                raise RequestNotFoundError(str(item.request_id))
            if request.approval_status != ApprovalStatus.APPROVED.value:
                raise IneligibleRequestError(
                    str(item.request_id), f"request is {request.approval_status}",
                )
            if request.is_received:
                raise IneligibleRequestError(str(item.request_id), "already received")

            receive = ReceiveLineModel(
                id=uuid4(),
                request_id=request.id,
                nac_code=request.nac_code,
                part_number=request.part_number,
                item_name=request.item_name,
                unit=item.unit or request.unit,
                received_quantity=item.received_quantity,
                receive_date=batch.receive_date,
                location=item.location,
                card_number=item.card_number,
                image_path=item.image_path,
                remarks=item.remarks,
                approval_status=ApprovalStatus.PENDING.value,
                received_by=batch.received_by,
                created_by=batch.received_by,
            )
            self.session.add(receive)
            request.is_received = True
            request.receive_id = receive.id
            request.updated_by = batch.received_by
            ids.append(receive.id)

        self.session.flush()
        logger.info("receive_created", extra={
            "line_count": len(ids),
            "receive_date": batch.receive_date,
        })
        return ids

    def approve(self, receive_id: UUID, approver: str) -> ReceiveLineModel:
        self._transition(
            ReceiveLineModel,
            [ReceiveLineModel.id == receive_id],
            ApprovalStatus.APPROVED,
            {"approved_by": approver, "updated_by": approver},
            entity_type="receive",
            entity_ref=str(receive_id),
            not_found=ReceiveNotFoundError(str(receive_id)),
        )
        receive = self._get(receive_id)
        request = self.session.get(RequestLineModel, receive.request_id)
        equipment = request.equipment_number if request is not None else ""
        self._stock.apply_receipt(receive, equipment, approver)

        logger.info("receive_approved", extra={
            "receive_id": str(receive_id),
            "nac_code": receive.nac_code,
            "received_quantity": str(receive.received_quantity),
        })
        return receive

    def reject(self, receive_id: UUID, rejected_by: str, reason: str) -> ReceiveLineModel:
        self._transition(
            ReceiveLineModel,
            [ReceiveLineModel.id == receive_id],
            ApprovalStatus.REJECTED,
            {
                "rejected_by": rejected_by,
                "rejection_reason": reason,
                "updated_by": rejected_by,
            },
            entity_type="receive",
            entity_ref=str(receive_id),
            not_found=ReceiveNotFoundError(str(receive_id)),
        )
        receive = self._get(receive_id)
        plan = plan_receive_rejection(
            receive.id, receive.request_id, receive.item_name, receive.received_by, reason,
        )
        self._effects.apply(plan, rejected_by)

        logger.info("receive_rejected", extra={
            "receive_id": str(receive_id),
            "request_id": str(receive.request_id),
        })
        return receive

    def update_quantity(self, receive_id: UUID, quantity: Decimal, actor: str) -> ReceiveLineModel:
        receive = self._get(receive_id)
        if receive.approval_status != ApprovalStatus.PENDING.value:
            raise AlreadyTransitionedError("receive", str(receive_id), receive.approval_status)
        previous = receive.received_quantity
        receive.received_quantity = quantity
        receive.updated_by = actor
        self.session.flush()

        logger.info("receive_quantity_updated", extra={
            "receive_id": str(receive_id),
            "previous_quantity": str(previous),
            "received_quantity": str(quantity),
        })
        return receive
