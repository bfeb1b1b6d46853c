"""
procurement_kernel.services.stock_service -- stock item upsert and issue approval.

Responsibility:
    The only writer of ``stock_items.current_balance``.  A receive approval
    adds its quantity (creating the stock item on first receipt); an issue
    approval subtracts.

Invariants enforced:
    - Part numbers and item names are merged de-duplicated, newly seen
      entries first.
    - Equipment applicability is the union of what the item already covered
      and what the receive's request line names.
    - Location, card number, unit and image are overwritten only by
      non-empty incoming values.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.equipment import EquipmentApplicability
from procurement_kernel.exceptions import NotFoundError, StockItemNotFoundError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.stock import IssueLineModel, StockItemModel
from procurement_kernel.services.base import BaseService

logger = get_logger("services.stock")


def merge_aliases(existing: Iterable[str], incoming: Iterable[str]) -> list[str]:
    """
    Prepend unseen incoming entries to the existing list.

    >>> merge_aliases(["A", "B"], ["C", "A", "C"])
    ['C', 'A', 'B']
    """
    current = [e for e in existing if e]
    seen = set(current)
    fresh: list[str] = []
    for value in incoming:
        value = value.strip()
        if value and value not in seen:
            fresh.append(value)
            seen.add(value)
    return fresh + current


def split_aliases(raw: str | None) -> list[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


class StockService(BaseService):
    """Applies approved movements to stock items."""

    def get_for_update(self, nac_code: str) -> StockItemModel | None:
        return self.session.execute(
            select(StockItemModel)
            .where(StockItemModel.nac_code == nac_code)
            .with_for_update()
        ).scalar_one_or_none()

    def apply_receipt(
        self,
        receive: ReceiveLineModel,
        equipment_number: str,
        actor: str,
    ) -> StockItemModel:
        """Add an approved receive to its stock item, creating it if absent."""
        incoming_equipment = EquipmentApplicability.parse(equipment_number)
        item = self.get_for_update(receive.nac_code)

        if item is None:
            item = StockItemModel(
                nac_code=receive.nac_code,
                item_names=merge_aliases([], [receive.item_name]),
                part_numbers=merge_aliases([], split_aliases(receive.part_number)),
                equipment=list(incoming_equipment.tokens()),
                current_balance=receive.received_quantity,
                unit=receive.unit,
                location=receive.location,
                card_number=receive.card_number,
                image_url=receive.image_path,
                open_quantity=Decimal("0"),
                open_amount=Decimal("0"),
                opening_date=receive.receive_date,
                created_by=actor,
            )
            self.session.add(item)
            self.session.flush()
            logger.info("stock_item_created", extra={
                "nac_code": item.nac_code,
                "current_balance": str(item.current_balance),
            })
            return item

        previous_balance = item.current_balance
        item.item_names = merge_aliases(item.item_names or [], [receive.item_name])
        item.part_numbers = merge_aliases(
            item.part_numbers or [], split_aliases(receive.part_number),
        )
        item.equipment = list(item.applicability.union(incoming_equipment).tokens())
        item.current_balance = previous_balance + receive.received_quantity
        if receive.location:
            item.location = receive.location
        if receive.card_number:
            item.card_number = receive.card_number
        if receive.unit:
            item.unit = receive.unit
        if receive.image_path:
            item.image_url = receive.image_path
        item.updated_by = actor
        self.session.flush()

        logger.info("stock_item_receipt_applied", extra={
            "nac_code": item.nac_code,
            "previous_balance": str(previous_balance),
            "received_quantity": str(receive.received_quantity),
            "current_balance": str(item.current_balance),
        })
        return item

    def record_issue(
        self,
        *,
        issue_slip_number: str,
        issue_date: date,
        nac_code: str,
        issue_quantity: Decimal,
        issued_for: str,
        issued_by: str,
        part_number: str = "",
    ) -> UUID:
        """Insert a PENDING issue line.  Stock moves only on approval."""
        if self.session.execute(
            select(StockItemModel.id).where(StockItemModel.nac_code == nac_code)
        ).scalar_one_or_none() is None:
            raise StockItemNotFoundError(nac_code)

        issue = IssueLineModel(
            id=uuid4(),
            issue_slip_number=issue_slip_number,
            issue_date=issue_date,
            nac_code=nac_code,
            part_number=part_number,
            issue_quantity=issue_quantity,
            issued_for=issued_for,
            approval_status=ApprovalStatus.PENDING.value,
            issued_by=issued_by,
            created_by=issued_by,
        )
        self.session.add(issue)
        self.session.flush()

        logger.info("issue_recorded", extra={
            "issue_id": str(issue.id),
            "issue_slip_number": issue_slip_number,
            "nac_code": nac_code,
            "issue_quantity": str(issue_quantity),
        })
        return issue.id

    def approve_issue(self, issue_id: UUID, approver: str) -> StockItemModel:
        """Approve a pending issue and take its quantity out of stock."""
        issue = self.session.get(IssueLineModel, issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")

        item = self.get_for_update(issue.nac_code)
        if item is None:
            raise StockItemNotFoundError(issue.nac_code)

        self._transition(
            IssueLineModel,
            [IssueLineModel.id == issue_id],
            ApprovalStatus.APPROVED,
            {"approved_by": approver, "updated_by": approver},
            entity_type="issue",
            entity_ref=str(issue_id),
            not_found=NotFoundError(f"Issue {issue_id} not found"),
        )

        item.current_balance = item.current_balance - issue.issue_quantity
        item.updated_by = approver
        issue.remaining_balance = item.current_balance
        self.session.flush()

        if item.current_balance < 0:
            logger.warning("stock_balance_back_ordered", extra={
                "nac_code": item.nac_code,
                "current_balance": str(item.current_balance),
            })
        logger.info("issue_approved", extra={
            "issue_id": str(issue_id),
            "nac_code": item.nac_code,
            "issue_quantity": str(issue.issue_quantity),
            "current_balance": str(item.current_balance),
        })
        return item
