"""
procurement_kernel.services.rrp_service -- priced goods receipt (RRP) lifecycle.

Responsibility:
    Turn a costing submission into an RRP batch (one line per approved
    receive), approve or reject batches, edit pending batches, and verify
    RRP numbers ahead of submission.

Architecture position:
    Kernel > Services.  Numbering rules come from
    ``domain.rrp_number``; landed cost from
    ``procurement_engines.cost_allocation.CostAllocator``.

Invariants enforced:
    - At most one non-rejected RRP line references a receive line: only
      APPROVED receives with no rrp_id can be costed, and the link is set
      in the same flush as the line is inserted.
    - Resubmitting a rejected number first clears receive links to its old
      lines, then deletes them.
    - Currency values are rounded (2 places unless configured otherwise)
      when written, never before.
    - Approval does not move stock; stock rose when the receive was
      approved.

Failure modes:
    - ConfigurationMissingError when no current fiscal year is configured.
    - RRPNumberConflictError, InvalidRRPNumberError, RRPDateOrderError from
      the numbering rules.
    - ReceiveNotFoundError / IneligibleReceiveError for bad receive ids.
    - ZeroItemTotalError from the allocator.
    - RRPNotFoundError / AlreadyTransitionedError on approve/reject/edit.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from procurement_engines.cost_allocation import (
    CostAllocationResult,
    CostAllocator,
    CostLineInput,
)
from procurement_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO
from procurement_kernel.domain.approval import ApprovalStatus, plan_rrp_rejection
from procurement_kernel.domain.config import ConfigStore
from procurement_kernel.domain.dtos import CostingItem, CostingSubmission, RRPCreated, RRPLine
from procurement_kernel.domain.rrp_number import (
    FOREIGN_SERIES,
    LOCAL_SERIES,
    RRPNumber,
    RRPNumberResolution,
    check_correction_date,
    resolve_rrp_number,
)
from procurement_kernel.exceptions import (
    AlreadyTransitionedError,
    IneligibleReceiveError,
    InvalidRRPNumberError,
    ReceiveNotFoundError,
    RRPNotFoundError,
    ValidationError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.rrp import RRPLineModel
from procurement_kernel.selectors.rrp_selector import RRPSelector
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.notification_service import RejectionEffects

logger = get_logger("services.rrp")


class RRPService(BaseService):
    """Writes RRP lines."""

    def __init__(
        self,
        session: Session,
        config: ConfigStore,
        effects: RejectionEffects,
        allocator: CostAllocator | None = None,
        money_places: int = MONEY_DECIMAL_PLACES,
    ):
        super().__init__(session)
        self._config = config
        self._effects = effects
        self._allocator = allocator or CostAllocator()
        self._money_places = money_places
        self._selector = RRPSelector(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lines(self, rrp_number: str) -> list[RRPLineModel]:
        return list(self.session.execute(
            select(RRPLineModel)
            .where(RRPLineModel.rrp_number == rrp_number)
            .order_by(RRPLineModel.created_at, RRPLineModel.id)
        ).scalars())

    def _costable_receive(self, receive_id: UUID) -> ReceiveLineModel:
        receive = self.session.get(ReceiveLineModel, receive_id)
        if receive is None:
            raise ReceiveNotFoundError(str(receive_id))
        if receive.approval_status != ApprovalStatus.APPROVED.value:
            raise IneligibleReceiveError(
                str(receive_id), f"receive is {receive.approval_status}",
            )
        if receive.rrp_id is not None:
            raise IneligibleReceiveError(str(receive_id), "already costed")
        return receive

    def _allocate(self, submission: CostingSubmission) -> CostAllocationResult:
        factor = submission.conversion_factor(self._config.local_currency())
        return self._allocator.allocate(
            items=[
                CostLineInput(
                    line_ref=item.receive_id,
                    unit_price=item.unit_price,
                    customs_charge=item.customs_charge,
                    vat_applicable=item.vat_applicable,
                )
                for item in submission.items
            ],
            factor=factor,
            freight_charge_total=submission.freight_charge_total,
            customs_service_charge_total=submission.customs_service_charge_total,
            vat_rate_percent=submission.vat_rate_percent,
        ).rounded(self._money_places)

    @staticmethod
    def _apply_header(
        line: RRPLineModel,
        submission: CostingSubmission,
        item: CostingItem,
        allocation: CostAllocationResult,
    ) -> None:
        cost = allocation.line_for(item.receive_id)
        line.supplier_name = submission.supplier_name
        line.rrp_date = submission.rrp_date
        line.currency = submission.currency
        line.forex_rate = submission.forex_rate
        line.item_price = item.unit_price
        line.customs_charge = cost.customs_charge
        line.customs_service_charge = cost.customs_service_share
        line.vat_percentage = submission.vat_rate_percent if item.vat_applicable else ZERO
        line.vat_amount = cost.vat_amount
        line.freight_charge = cost.freight_share
        line.total_amount = cost.total_amount
        line.invoice_number = submission.invoice_number
        line.invoice_date = submission.invoice_date
        line.po_number = submission.po_number
        line.airway_bill_number = submission.airway_bill_number
        line.customs_date = submission.customs_date
        line.customs_number = submission.customs_number
        line.inspection_details = submission.inspection_details

    def _discard_rejected(self, rrp_number: str, actor: str) -> int:
        lines = self._lines(rrp_number)
        line_ids = [line.id for line in lines]
        if line_ids:
            self.session.execute(
                update(ReceiveLineModel)
                .where(ReceiveLineModel.rrp_id.in_(line_ids))
                .values(rrp_id=None, updated_by=actor)
                .execution_options(synchronize_session="fetch")
            )
        for line in lines:
            self.session.delete(line)
        self.session.flush()
        return len(lines)

    # ------------------------------------------------------------------
    # Costing
    # ------------------------------------------------------------------

    def create(self, submission: CostingSubmission) -> RRPCreated:
        fiscal_year = self._config.current_fiscal_year()
        requested = submission.parsed_number
        summaries = self._selector.batch_summaries_for_base(requested.base)
        resolution = resolve_rrp_number(requested, summaries, fiscal_year)
        check_correction_date(resolution.rrp_number, submission.rrp_date, summaries)
        rrp_number = str(resolution.rrp_number)

        if resolution.replaces_rejected:
            discarded = self._discard_rejected(rrp_number, submission.created_by)
            logger.info("rrp_rejected_batch_replaced", extra={
                "rrp_number": rrp_number,
                "discarded_lines": discarded,
            })

        receives = [self._costable_receive(item.receive_id) for item in submission.items]
        allocation = self._allocate(submission)

        line_ids: list[UUID] = []
        for item, receive in zip(submission.items, receives):
            line = RRPLineModel(
                id=uuid4(),
                receive_id=receive.id,
                rrp_number=rrp_number,
                approval_status=ApprovalStatus.PENDING.value,
                fiscal_year=fiscal_year,
                created_by=submission.created_by,
            )
            self._apply_header(line, submission, item, allocation)
            self.session.add(line)
            receive.rrp_id = line.id
            receive.updated_by = submission.created_by
            line_ids.append(line.id)
        self.session.flush()

        logger.info("rrp_created", extra={
            "rrp_number": rrp_number,
            "requested_number": submission.rrp_number,
            "fiscal_year": fiscal_year,
            "line_count": len(line_ids),
            "total_amount": str(allocation.total_amount),
        })
        return RRPCreated(
            rrp_number=rrp_number,
            line_ids=tuple(line_ids),
            replaced_rejected=resolution.replaces_rejected,
            totals=tuple(line.total_amount for line in allocation.lines),
        )

    def update(self, rrp_number: str, edit: CostingSubmission) -> list[UUID]:
        """
        Replace the content of a pending batch.

        Lines whose receive is absent from ``edit`` are deleted and their
        receives unlinked; new receives are linked; every line's cost is
        recomputed from the edited header.
        """
        if edit.rrp_number != rrp_number:
            raise ValidationError(
                f"Edit targets {edit.rrp_number}, not {rrp_number}", field="rrp_number",
            )
        lines = self._lines(rrp_number)
        if not lines:
            raise RRPNotFoundError(rrp_number)
        for line in lines:
            if line.approval_status != ApprovalStatus.PENDING.value:
                raise AlreadyTransitionedError("rrp", rrp_number, line.approval_status)
        parsed = RRPNumber.parse(rrp_number)
        check_correction_date(
            parsed, edit.rrp_date, self._selector.batch_summaries_for_base(parsed.base),
        )

        by_receive = {line.receive_id: line for line in lines}
        wanted = {item.receive_id for item in edit.items}

        removed = [line for line in lines if line.receive_id not in wanted]
        if removed:
            self.session.execute(
                update(ReceiveLineModel)
                .where(ReceiveLineModel.id.in_([line.receive_id for line in removed]))
                .values(rrp_id=None, updated_by=edit.created_by)
                .execution_options(synchronize_session="fetch")
            )
            for line in removed:
                self.session.delete(line)

        allocation = self._allocate(edit)
        template = lines[0]
        ids: list[UUID] = []
        for item in edit.items:
            line = by_receive.get(item.receive_id)
            if line is None:
                receive = self._costable_receive(item.receive_id)
                line = RRPLineModel(
                    id=uuid4(),
                    receive_id=receive.id,
                    rrp_number=rrp_number,
                    approval_status=ApprovalStatus.PENDING.value,
                    fiscal_year=template.fiscal_year,
                    created_by=template.created_by,
                )
                self._apply_header(line, edit, item, allocation)
                self.session.add(line)
                receive.rrp_id = line.id
                receive.updated_by = edit.created_by
            else:
                self._apply_header(line, edit, item, allocation)
            line.updated_by = edit.created_by
            ids.append(line.id)
        self.session.flush()

        logger.info("rrp_updated", extra={
            "rrp_number": rrp_number,
            "line_count": len(ids),
            "removed_count": len(removed),
            "total_amount": str(allocation.total_amount),
        })
        return ids

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def approve(self, rrp_number: str, approver: str) -> int:
        count = self._transition(
            RRPLineModel,
            [RRPLineModel.rrp_number == rrp_number],
            ApprovalStatus.APPROVED,
            {"approved_by": approver, "updated_by": approver},
            entity_type="rrp",
            entity_ref=rrp_number,
            not_found=RRPNotFoundError(rrp_number),
        )
        logger.info("rrp_approved", extra={
            "rrp_number": rrp_number,
            "line_count": count,
        })
        return count

    def reject(self, rrp_number: str, rejected_by: str, reason: str) -> int:
        count = self._transition(
            RRPLineModel,
            [RRPLineModel.rrp_number == rrp_number],
            ApprovalStatus.REJECTED,
            {
                "rejected_by": rejected_by,
                "rejection_reason": reason,
                "updated_by": rejected_by,
            },
            entity_type="rrp",
            entity_ref=rrp_number,
            not_found=RRPNotFoundError(rrp_number),
        )
        lines = self._lines(rrp_number)
        plan = plan_rrp_rejection(
            rrp_number,
            lines[0].id,
            tuple(line.receive_id for line in lines),
            lines[0].created_by,
            reason,
        )
        self._effects.apply(plan, rejected_by)

        logger.info("rrp_rejected", extra={
            "rrp_number": rrp_number,
            "line_count": count,
        })
        return count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def verify_number(self, rrp_number: str, rrp_date: date) -> RRPNumberResolution:
        """
        Check a number before the costing clerk submits it.

        A suffixed number must name a rejected batch and fit between its
        neighbouring corrections' dates.  A bare base must not have a live
        correction in the current fiscal year; the returned resolution
        carries the number it would be stored under.
        """
        requested = RRPNumber.parse(rrp_number)
        summaries = self._selector.batch_summaries_for_base(requested.base)

        if requested.is_correction:
            exact = [s for s in summaries if s.rrp_number == str(requested)]
            if not exact or any(s.is_live for s in exact):
                raise InvalidRRPNumberError(rrp_number, "Invalid RRP Number")
            check_correction_date(requested, rrp_date, summaries)
            return RRPNumberResolution(requested, replaces_rejected=True)

        resolution = resolve_rrp_number(
            requested, summaries, self._config.current_fiscal_year(),
        )
        check_correction_date(resolution.rrp_number, rrp_date, summaries)
        return resolution

    def latest(self, kind: str) -> RRPLine | None:
        series = {"local": LOCAL_SERIES, "foreign": FOREIGN_SERIES}.get(kind)
        if series is None:
            raise ValidationError(
                f"RRP kind must be 'local' or 'foreign', got {kind!r}", field="kind",
            )
        return self._selector.latest_in_series(series)

    def lines(self, rrp_number: str) -> Sequence[RRPLine]:
        lines = self._selector.lines_for_number(rrp_number)
        if not lines:
            raise RRPNotFoundError(rrp_number)
        return lines
