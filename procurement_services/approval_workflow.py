"""
procurement_services.approval_workflow -- transactional entrypoint.

Responsibility:
    One method per procurement operation.  Each call opens its own
    ``session_scope()``, wires the kernel services for that session, runs
    the operation and commits, or rolls everything back on any failure.

Architecture position:
    Services -- the only layer that owns a transaction boundary.  Kernel
    services below it flush and never commit.

Invariants enforced:
    - One transaction per operation: a costing batch with one bad receive
      id writes nothing, a rejection whose notified user is missing leaves
      the status untouched.
    - Each call logs under ``LogContext.operation``, which gives it a
      fresh correlation id.
    - Input DTOs are validated on construction, before this layer opens
      a session.

Failure modes:
    - Kernel errors propagate unchanged after rollback.
    - Store failures surface as DependencyFailureError or
      ConcurrentModificationError (see ``session_scope``).

Usage:
    from procurement_services.approval_workflow import ApprovalWorkflow

    workflow = ApprovalWorkflow(session_factory=factory)
    ids = workflow.submit_request(submission)
    workflow.approve_request(submission.request_number, approver="store.lead")
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from procurement_config import EngineSettings, get_settings
from procurement_engines.cost_allocation import CostAllocator
from procurement_engines.stock_ledger import StockLedger
from procurement_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from procurement_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, to_decimal
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.config import ConfigStore
from procurement_kernel.domain.dtos import (
    CostingSubmission,
    ReceiveBatch,
    ReceiveLine,
    RequestEdit,
    RequestLine,
    RequestSubmission,
    RRPCreated,
    RRPLine,
)
from procurement_kernel.domain.rrp_number import RRPNumberResolution
from procurement_kernel.exceptions import InvalidQuantityError
from procurement_kernel.logging_config import LogContext, configure_logging, get_logger
from procurement_kernel.selectors.procurement_selector import ProcurementSelector
from procurement_kernel.selectors.rrp_selector import RRPSelector
from procurement_kernel.services.config_service import AppConfigStore
from procurement_kernel.services.notification_service import (
    NotificationSink,
    RejectionEffects,
    SqlNotificationSink,
    SqlUserDirectory,
    UserDirectory,
)
from procurement_kernel.services.receive_service import ReceiveService
from procurement_kernel.services.request_service import RequestService
from procurement_kernel.services.rrp_service import RRPService
from procurement_kernel.services.stock_service import StockService
from procurement_services.stock_card import StockCardService

logger = get_logger("services.workflow")

T = TypeVar("T")


class ProcurementContext:
    """Kernel services wired to one session.

    Contract:
        Constructs every service exactly once per session.  Does NOT
        commit or roll back.
    """

    def __init__(
        self,
        session: Session,
        config: ConfigStore,
        directory: UserDirectory,
        sink: NotificationSink,
        allocator: CostAllocator | None = None,
        money_places: int = MONEY_DECIMAL_PLACES,
    ) -> None:
        self.session = session
        self.config = config
        self.effects = RejectionEffects(session, directory, sink)
        self.stock = StockService(session)
        self.requests = RequestService(session, self.effects)
        self.receives = ReceiveService(session, self.effects, self.stock)
        self.rrps = RRPService(session, config, self.effects, allocator, money_places)
        self.procurement = ProcurementSelector(session)
        self.rrp_selector = RRPSelector(session)
        self.stock_cards = StockCardService(session)


class ApprovalWorkflow:
    """Request -> Receive -> RRP approval workflow over a session factory."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        config_store_factory: Callable[[Session], ConfigStore] | None = None,
        directory_factory: Callable[[Session], UserDirectory] | None = None,
        sink_factory: Callable[[Session], NotificationSink] | None = None,
        allocator: CostAllocator | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._allocator = allocator or CostAllocator()
        self._config_store_factory = config_store_factory or (
            lambda session: AppConfigStore(session, self.settings.local_currency)
        )
        self._directory_factory = directory_factory or SqlUserDirectory
        self._sink_factory = sink_factory or (
            lambda session: SqlNotificationSink(session, self._clock)
        )

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings | None = None,
        *,
        create_schema: bool = False,
        **kwargs: Any,
    ) -> ApprovalWorkflow:
        """
        Configure logging and the store from ``EngineSettings``.

        Initializes the process-wide engine from ``settings.database_url``
        and returns a workflow bound to its session factory.  Remaining
        keyword arguments go to the constructor.
        """
        settings = settings or get_settings()
        configure_logging(level=settings.log_level_number)
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo_sql,
            pool_size=settings.pool_size,
        )
        if create_schema:
            create_tables()
        logger.info("workflow_bootstrapped", extra={
            "local_currency": settings.local_currency,
            "create_schema": create_schema,
        })
        return cls(session_factory=get_session_factory(), settings=settings, **kwargs)

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        fn: Callable[[ProcurementContext], T],
        *,
        actor: str | None = None,
        entity_type: str | None = None,
        entity_ref: Any = None,
    ) -> T:
        factory = self._session_factory or get_session_factory()
        with LogContext.operation(
            operation, actor=actor, entity_type=entity_type, entity_ref=entity_ref
        ):
            logger.debug("workflow_operation_started")
            with session_scope(factory) as session:
                context = ProcurementContext(
                    session,
                    self._config_store_factory(session),
                    self._directory_factory(session),
                    self._sink_factory(session),
                    self._allocator,
                    self.settings.money_decimal_places,
                )
                result = fn(context)
            logger.debug("workflow_operation_completed")
            return result

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def submit_request(self, submission: RequestSubmission) -> list[UUID]:
        return self._run(
            "submit_request",
            lambda ctx: ctx.requests.submit(submission),
            actor=submission.requested_by,
            entity_type="request",
            entity_ref=submission.request_number,
        )

    def approve_request(self, request_number: str, approver: str) -> int:
        return self._run(
            "approve_request",
            lambda ctx: ctx.requests.approve(request_number, approver),
            actor=approver,
            entity_type="request",
            entity_ref=request_number,
        )

    def reject_request(self, request_number: str, rejected_by: str, reason: str) -> int:
        return self._run(
            "reject_request",
            lambda ctx: ctx.requests.reject(request_number, rejected_by, reason),
            actor=rejected_by,
            entity_type="request",
            entity_ref=request_number,
        )

    def update_request(self, request_number: str, edit: RequestEdit) -> list[UUID]:
        return self._run(
            "update_request",
            lambda ctx: ctx.requests.update(request_number, edit),
            actor=edit.edited_by,
            entity_type="request",
            entity_ref=request_number,
        )

    # ------------------------------------------------------------------
    # Receives
    # ------------------------------------------------------------------

    def create_receive(self, batch: ReceiveBatch) -> list[UUID]:
        return self._run(
            "create_receive",
            lambda ctx: ctx.receives.create(batch),
            actor=batch.received_by,
            entity_type="receive",
        )

    def approve_receive(self, receive_id: UUID, approver: str) -> UUID:
        return self._run(
            "approve_receive",
            lambda ctx: ctx.receives.approve(receive_id, approver).id,
            actor=approver,
            entity_type="receive",
            entity_ref=receive_id,
        )

    def reject_receive(self, receive_id: UUID, rejected_by: str, reason: str) -> UUID:
        return self._run(
            "reject_receive",
            lambda ctx: ctx.receives.reject(receive_id, rejected_by, reason).id,
            actor=rejected_by,
            entity_type="receive",
            entity_ref=receive_id,
        )

    def update_receive_quantity(self, receive_id: UUID, quantity: Any, actor: str) -> UUID:
        try:
            value = to_decimal(quantity, "received_quantity")
        except ValueError as exc:
            raise InvalidQuantityError(quantity, "received_quantity") from exc
        if value <= ZERO:
            raise InvalidQuantityError(quantity, "received_quantity")
        return self._run(
            "update_receive_quantity",
            lambda ctx: ctx.receives.update_quantity(receive_id, value, actor).id,
            actor=actor,
            entity_type="receive",
            entity_ref=receive_id,
        )

    # ------------------------------------------------------------------
    # RRP
    # ------------------------------------------------------------------

    def create_rrp(self, submission: CostingSubmission) -> RRPCreated:
        return self._run(
            "create_rrp",
            lambda ctx: ctx.rrps.create(submission),
            actor=submission.created_by,
            entity_type="rrp",
            entity_ref=submission.rrp_number,
        )

    def approve_rrp(self, rrp_number: str, approver: str) -> int:
        return self._run(
            "approve_rrp",
            lambda ctx: ctx.rrps.approve(rrp_number, approver),
            actor=approver,
            entity_type="rrp",
            entity_ref=rrp_number,
        )

    def reject_rrp(self, rrp_number: str, rejected_by: str, reason: str) -> int:
        return self._run(
            "reject_rrp",
            lambda ctx: ctx.rrps.reject(rrp_number, rejected_by, reason),
            actor=rejected_by,
            entity_type="rrp",
            entity_ref=rrp_number,
        )

    def update_rrp(self, rrp_number: str, edit: CostingSubmission) -> list[UUID]:
        return self._run(
            "update_rrp",
            lambda ctx: ctx.rrps.update(rrp_number, edit),
            actor=edit.created_by,
            entity_type="rrp",
            entity_ref=rrp_number,
        )

    def verify_rrp_number(self, rrp_number: str, rrp_date: date) -> RRPNumberResolution:
        return self._run(
            "verify_rrp_number",
            lambda ctx: ctx.rrps.verify_number(rrp_number, rrp_date),
            entity_type="rrp",
            entity_ref=rrp_number,
        )

    def latest_rrp(self, kind: str) -> RRPLine | None:
        return self._run("latest_rrp", lambda ctx: ctx.rrps.latest(kind), entity_type="rrp")

    def rrp_lines(self, rrp_number: str) -> list[RRPLine]:
        return self._run(
            "rrp_lines",
            lambda ctx: list(ctx.rrps.lines(rrp_number)),
            entity_type="rrp",
            entity_ref=rrp_number,
        )

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def record_issue(
        self,
        *,
        issue_slip_number: str,
        issue_date: date,
        nac_code: str,
        issue_quantity: Any,
        issued_for: str,
        issued_by: str,
        part_number: str = "",
    ) -> UUID:
        try:
            quantity = to_decimal(issue_quantity, "issue_quantity")
        except ValueError as exc:
            raise InvalidQuantityError(issue_quantity, "issue_quantity") from exc
        if quantity <= ZERO:
            raise InvalidQuantityError(issue_quantity, "issue_quantity")
        return self._run(
            "record_issue",
            lambda ctx: ctx.stock.record_issue(
                issue_slip_number=issue_slip_number,
                issue_date=issue_date,
                nac_code=nac_code,
                issue_quantity=quantity,
                issued_for=issued_for,
                issued_by=issued_by,
                part_number=part_number,
            ),
            actor=issued_by,
            entity_type="issue",
            entity_ref=issue_slip_number,
        )

    def approve_issue(self, issue_id: UUID, approver: str) -> Decimal:
        return self._run(
            "approve_issue",
            lambda ctx: ctx.stock.approve_issue(issue_id, approver).current_balance,
            actor=approver,
            entity_type="issue",
            entity_ref=issue_id,
        )

    def build_stock_card(self, nac_code: str) -> StockLedger:
        return self._run(
            "build_stock_card",
            lambda ctx: ctx.stock_cards.build_card(nac_code),
            entity_type="stock",
            entity_ref=nac_code,
        )

    def build_stock_cards(self, nac_codes: Iterable[str]) -> dict[str, StockLedger]:
        codes = list(nac_codes)
        return self._run("build_stock_cards", lambda ctx: ctx.stock_cards.build_cards(codes))

    # ------------------------------------------------------------------
    # Work queues
    # ------------------------------------------------------------------

    def pending_requests(self) -> list[RequestLine]:
        return self._run("pending_requests", lambda ctx: ctx.procurement.pending_requests())

    def receivable_requests(self) -> list[RequestLine]:
        return self._run("receivable_requests", lambda ctx: ctx.procurement.receivable_requests())

    def pending_receives(self) -> list[ReceiveLine]:
        return self._run("pending_receives", lambda ctx: ctx.procurement.pending_receives())

    def costable_receives(self) -> list[ReceiveLine]:
        return self._run("costable_receives", lambda ctx: ctx.procurement.costable_receives())

    def pending_rrps(self) -> list[str]:
        return self._run("pending_rrps", lambda ctx: ctx.rrp_selector.pending_numbers())

    def request_lines(self, request_number: str) -> list[RequestLine]:
        return self._run(
            "request_lines",
            lambda ctx: ctx.procurement.request_lines(request_number),
            entity_type="request",
            entity_ref=request_number,
        )
