"""
Pytest fixtures for the procurement ledger test suite.

Provides:
- In-memory SQLite engine and sessions (fresh schema per test)
- A static ConfigStore and deterministic clock
- An ApprovalWorkflow wired to both
- Builders that walk a request through approval and receipt
"""

import json
import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from procurement_config import EngineSettings
from procurement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from procurement_kernel.domain.clock import DeterministicClock
from procurement_kernel.domain.dtos import (
    CostingItem,
    CostingSubmission,
    ReceiveBatch,
    ReceiveItemInput,
    RequestItemInput,
    RequestSubmission,
)
from procurement_kernel.domain.equipment import EquipmentApplicability
from procurement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from procurement_kernel.models.notification import UserModel
from procurement_services.approval_workflow import ApprovalWorkflow

CURRENT_FY = "2081/82"

REQUESTER = "store.requester"
RECEIVER = "store.receiver"
COSTING_CLERK = "costing.clerk"
APPROVER = "store.lead"


class StaticConfigStore:
    """ConfigStore with fixed values."""

    def __init__(self, fiscal_year: str = CURRENT_FY, local_currency: str = "NPR"):
        self.fiscal_year = fiscal_year
        self.currency = local_currency

    def current_fiscal_year(self) -> str:
        return self.fiscal_year

    def equipment_list(self, fuel_type):
        return EquipmentApplicability.parse("101-110" if fuel_type == "diesel" else "201-205")

    def supplier_list(self, kind):
        return ("Himal Traders",) if kind == "local" else ("Kansai Parts Co",)

    def local_currency(self) -> str:
        return self.currency


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture procurement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.submit_request(...)
            assert any(r["message"] == "request_submitted" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("procurement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Session:
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def users(session_factory):
    """Seed the users notified on rejection."""
    with session_factory() as s:
        for username in (REQUESTER, RECEIVER, COSTING_CLERK, APPROVER):
            s.add(UserModel(username=username, full_name=username.replace(".", " ").title()))
        s.commit()
    return (REQUESTER, RECEIVER, COSTING_CLERK, APPROVER)


# =============================================================================
# Workflow
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def config_store() -> StaticConfigStore:
    return StaticConfigStore()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def workflow(session_factory, settings, clock, config_store, users) -> ApprovalWorkflow:
    return ApprovalWorkflow(
        session_factory=session_factory,
        settings=settings,
        clock=clock,
        config_store_factory=lambda session: config_store,
    )


@pytest.fixture
def approved_request(workflow) -> Callable[..., list[UUID]]:
    """Submit and approve a request; returns its line ids."""

    def _build(
        request_number: str = "REQ-001",
        nac_code: str = "GT 00000",
        quantity: str = "50",
        item_name: str = "Oil Filter",
        part_number: str = "OF-1",
        equipment_number: str = "101-103",
        extra_items: tuple[RequestItemInput, ...] = (),
    ) -> list[UUID]:
        ids = workflow.submit_request(RequestSubmission(
            request_number=request_number,
            request_date=date(2024, 7, 1),
            requested_by=REQUESTER,
            items=(
                RequestItemInput(
                    nac_code=nac_code,
                    item_name=item_name,
                    requested_quantity=Decimal(quantity),
                    part_number=part_number,
                    unit="pcs",
                    equipment_number=equipment_number,
                ),
            ) + extra_items,
        ))
        workflow.approve_request(request_number, APPROVER)
        return ids

    return _build


@pytest.fixture
def approved_receive(workflow, approved_request) -> Callable[..., UUID]:
    """Request, receive and approve; returns the receive id."""
    counter = iter(range(1, 1000))

    def _build(
        nac_code: str = "GT 00000",
        quantity: str = "50",
        receive_date: date = date(2024, 7, 5),
        **request_kwargs,
    ) -> UUID:
        request_number = request_kwargs.pop("request_number", f"REQ-{next(counter):03d}")
        (request_id, *_) = approved_request(
            request_number=request_number,
            nac_code=nac_code,
            quantity=quantity,
            **request_kwargs,
        )
        (receive_id,) = workflow.create_receive(ReceiveBatch(
            received_by=RECEIVER,
            receive_date=receive_date,
            items=(ReceiveItemInput(
                request_id=request_id,
                received_quantity=Decimal(quantity),
                location="Rack A",
                card_number="C-12",
            ),),
        ))
        workflow.approve_receive(receive_id, APPROVER)
        return receive_id

    return _build


def costing(
    rrp_number: str,
    items: tuple[CostingItem, ...],
    *,
    rrp_date: date = date(2024, 7, 10),
    currency: str = "NPR",
    forex_rate: Decimal | None = None,
    freight: str = "0",
    customs_service: str = "0",
    vat: str = "0",
    supplier: str = "Himal Traders",
) -> CostingSubmission:
    return CostingSubmission(
        rrp_number=rrp_number,
        supplier_name=supplier,
        rrp_date=rrp_date,
        currency=currency,
        items=items,
        created_by=COSTING_CLERK,
        forex_rate=forex_rate,
        freight_charge_total=Decimal(freight),
        customs_service_charge_total=Decimal(customs_service),
        vat_rate_percent=Decimal(vat),
        invoice_number="INV-77",
    )
