"""
Tests for conditional transitions, eligibility checks and atomicity.

Invariants tested:
- Status changes are conditional on PENDING; a second approve/reject is a
  conflict and changes nothing.
- Only APPROVED, unreceived request lines can be received; only APPROVED,
  uncosted receive lines can be costed.
- A failing operation leaves no partial writes.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.dtos import (
    CostingItem,
    ReceiveBatch,
    ReceiveItemInput,
    RequestItemInput,
    RequestSubmission,
)
from procurement_kernel.exceptions import (
    AlreadyTransitionedError,
    ConfigurationMissingError,
    DuplicateRequestNumberError,
    IneligibleReceiveError,
    IneligibleRequestError,
    InvalidQuantityError,
    MissingForexRateError,
    ReceiveNotFoundError,
    RequestNotFoundError,
    RRPNotFoundError,
    StockItemNotFoundError,
    ZeroItemTotalError,
)
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.models.rrp import RRPLineModel
from procurement_services.approval_workflow import ApprovalWorkflow
from tests.conftest import APPROVER, RECEIVER, REQUESTER, StaticConfigStore, costing


def count(session_factory, model) -> int:
    with session_factory() as s:
        return s.execute(select(func.count()).select_from(model)).scalar_one()


def receive_batch(*request_ids, quantity="1") -> ReceiveBatch:
    return ReceiveBatch(
        received_by=RECEIVER,
        receive_date=date(2024, 7, 5),
        items=tuple(ReceiveItemInput(rid, Decimal(quantity)) for rid in request_ids),
    )


class TestRequestConflicts:

    def _submit(self, workflow, number="REQ-1"):
        return workflow.submit_request(RequestSubmission(
            request_number=number,
            request_date=date(2024, 7, 1),
            requested_by=REQUESTER,
            items=(RequestItemInput("GT 00000", "Oil Filter", Decimal("1")),),
        ))

    def test_duplicate_request_number(self, workflow, session_factory):
        self._submit(workflow)
        with pytest.raises(DuplicateRequestNumberError):
            self._submit(workflow)
        assert count(session_factory, RequestLineModel) == 1

    def test_unknown_request_number(self, workflow):
        with pytest.raises(RequestNotFoundError):
            workflow.approve_request("REQ-404", APPROVER)

    def test_approve_then_reject_conflicts(self, workflow):
        self._submit(workflow)
        workflow.approve_request("REQ-1", APPROVER)
        with pytest.raises(AlreadyTransitionedError):
            workflow.reject_request("REQ-1", APPROVER, "too late")
        (line,) = workflow.request_lines("REQ-1")
        assert line.approval_status == ApprovalStatus.APPROVED


class TestReceiveConflicts:

    def test_pending_request_not_receivable(self, workflow):
        (request_id,) = workflow.submit_request(RequestSubmission(
            request_number="REQ-2",
            request_date=date(2024, 7, 1),
            requested_by=REQUESTER,
            items=(RequestItemInput("GT 00000", "Oil Filter", Decimal("1")),),
        ))
        with pytest.raises(IneligibleRequestError):
            workflow.create_receive(receive_batch(request_id))

    def test_request_received_once(self, workflow, approved_request):
        (request_id,) = approved_request()
        workflow.create_receive(receive_batch(request_id))
        with pytest.raises(IneligibleRequestError):
            workflow.create_receive(receive_batch(request_id))

    def test_unknown_request_rolls_back_whole_batch(self, workflow, approved_request, session_factory):
        (request_id,) = approved_request()
        with pytest.raises(RequestNotFoundError):
            workflow.create_receive(receive_batch(request_id, uuid4()))

        assert count(session_factory, ReceiveLineModel) == 0
        (line,) = workflow.request_lines("REQ-001")
        assert not line.is_received

    def test_reject_twice_conflicts(self, workflow, approved_request):
        (request_id,) = approved_request()
        (receive_id,) = workflow.create_receive(receive_batch(request_id))
        workflow.reject_receive(receive_id, APPROVER, "damaged")
        with pytest.raises(AlreadyTransitionedError):
            workflow.reject_receive(receive_id, APPROVER, "damaged")

    def test_unknown_receive(self, workflow):
        with pytest.raises(ReceiveNotFoundError):
            workflow.approve_receive(uuid4(), APPROVER)


class TestCostingConflicts:

    def test_pending_receive_not_costable(self, workflow, approved_request):
        (request_id,) = approved_request()
        (receive_id,) = workflow.create_receive(receive_batch(request_id))
        with pytest.raises(IneligibleReceiveError):
            workflow.create_rrp(costing("L001", (CostingItem(receive_id, Decimal("1")),)))

    def test_receive_costed_once(self, workflow, approved_receive):
        receive_id = approved_receive()
        workflow.create_rrp(costing("L001", (CostingItem(receive_id, Decimal("1")),)))
        with pytest.raises(IneligibleReceiveError):
            workflow.create_rrp(costing("L002", (CostingItem(receive_id, Decimal("1")),)))

    def test_unknown_receive_rolls_back_costing(self, workflow, approved_receive, session_factory):
        receive_id = approved_receive()
        with pytest.raises(ReceiveNotFoundError):
            workflow.create_rrp(costing("L001", (
                CostingItem(receive_id, Decimal("100")),
                CostingItem(uuid4(), Decimal("100")),
            )))

        assert count(session_factory, RRPLineModel) == 0
        with session_factory() as s:
            assert s.get(ReceiveLineModel, receive_id).rrp_id is None

    def test_zero_item_total(self, workflow, approved_receive, session_factory):
        receive_id = approved_receive()
        with pytest.raises(ZeroItemTotalError):
            workflow.create_rrp(costing("L001", (CostingItem(receive_id, Decimal("0")),)))
        assert count(session_factory, RRPLineModel) == 0

    def test_foreign_currency_needs_rate(self, workflow, approved_receive):
        receive_id = approved_receive()
        with pytest.raises(MissingForexRateError):
            workflow.create_rrp(costing(
                "F001", (CostingItem(receive_id, Decimal("1")),), currency="USD",
            ))

    def test_missing_fiscal_year(self, session_factory, settings, clock, users, approved_receive):
        receive_id = approved_receive()
        workflow = ApprovalWorkflow(
            session_factory=session_factory,
            settings=settings,
            clock=clock,
        )
        with pytest.raises(ConfigurationMissingError):
            workflow.create_rrp(costing("L001", (CostingItem(receive_id, Decimal("1")),)))

    def test_unknown_rrp(self, workflow):
        with pytest.raises(RRPNotFoundError):
            workflow.reject_rrp("L404T1", APPROVER, "nope")


class TestQuantityAndIssues:

    def test_quantity_update_validated_before_transaction(self, workflow):
        with pytest.raises(InvalidQuantityError):
            workflow.update_receive_quantity(uuid4(), "0", RECEIVER)
        with pytest.raises(InvalidQuantityError):
            workflow.update_receive_quantity(uuid4(), "many", RECEIVER)

    def test_issue_for_unknown_stock_item(self, workflow):
        with pytest.raises(StockItemNotFoundError):
            workflow.record_issue(
                issue_slip_number="1001Y1",
                issue_date=date(2024, 7, 6),
                nac_code="GT 55555",
                issue_quantity="1",
                issued_for="GE 101",
                issued_by="store.issuer",
            )

    def test_issue_approved_once(self, workflow, approved_receive):
        approved_receive(quantity="5")
        issue_id = workflow.record_issue(
            issue_slip_number="1001Y1",
            issue_date=date(2024, 7, 6),
            nac_code="GT 00000",
            issue_quantity="2",
            issued_for="GE 101",
            issued_by="store.issuer",
        )
        assert workflow.approve_issue(issue_id, APPROVER) == Decimal("3")
        with pytest.raises(AlreadyTransitionedError):
            workflow.approve_issue(issue_id, APPROVER)


class TestConfigStoreInjection:

    def test_local_currency_from_config_store(self, session_factory, settings, clock, users, approved_receive):
        receive_id = approved_receive()
        workflow = ApprovalWorkflow(
            session_factory=session_factory,
            settings=settings,
            clock=clock,
            config_store_factory=lambda session: StaticConfigStore(local_currency="USD"),
        )
        created = workflow.create_rrp(costing(
            "F001", (CostingItem(receive_id, Decimal("10")),), currency="USD",
        ))
        assert created.totals == (Decimal("10.00"),)
