"""
Input and output DTOs for the procurement workflow.

Responsibility:
    Frozen dataclasses crossing the service boundary.  Input DTOs validate
    themselves in ``__post_init__`` so malformed submissions fail with
    ValidationError before any session is opened.  Output DTOs are what
    selectors and services hand back instead of ORM instances.

Architecture position:
    Kernel > Domain.  Pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from procurement_kernel.db.types import ZERO, to_decimal
from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.equipment import EquipmentApplicability
from procurement_kernel.domain.rrp_number import RRPNumber
from procurement_kernel.exceptions import (
    InvalidQuantityError,
    MissingForexRateError,
    ValidationError,
)

NOT_AVAILABLE = "N/A"


def _require_text(value: str | None, field_name: str) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required", field=field_name)


def _decimal(obj: Any, attr: str) -> Decimal:
    """Coerce ``obj.attr`` to Decimal in place (frozen dataclass safe)."""
    try:
        value = to_decimal(getattr(obj, attr), attr)
    except ValueError as exc:
        raise ValidationError(str(exc), field=attr) from exc
    object.__setattr__(obj, attr, value)
    return value


def _non_negative(obj: Any, attr: str) -> Decimal:
    value = _decimal(obj, attr)
    if value < ZERO:
        raise ValidationError(f"{attr} cannot be negative", field=attr)
    return value


def _positive_quantity(obj: Any, attr: str) -> Decimal:
    value = _decimal(obj, attr)
    if value <= ZERO:
        raise InvalidQuantityError(value, field=attr)
    return value


# =========================================================================
# Requests
# =========================================================================


@dataclass(frozen=True)
class RequestItemInput:
    """One line of a purchase request."""

    nac_code: str
    item_name: str
    requested_quantity: Decimal
    part_number: str = ""
    unit: str | None = None
    equipment_number: str = ""
    specifications: str | None = None
    image_path: str | None = None
    remarks: str | None = None
    line_id: UUID | None = None

    def __post_init__(self) -> None:
        _require_text(self.nac_code, "nac_code")
        _require_text(self.item_name, "item_name")
        _positive_quantity(self, "requested_quantity")
        EquipmentApplicability.parse(self.equipment_number)

    @property
    def tracks_stock(self) -> bool:
        """Lines without a NAC code have no stock item to snapshot."""
        return self.nac_code.strip().upper() != NOT_AVAILABLE


@dataclass(frozen=True)
class RequestSubmission:
    """A request number with one or more lines."""

    request_number: str
    request_date: date
    requested_by: str
    items: tuple[RequestItemInput, ...]

    def __post_init__(self) -> None:
        _require_text(self.request_number, "request_number")
        _require_text(self.requested_by, "requested_by")
        if not self.items:
            raise ValidationError("At least one item is required", field="items")
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class RequestEdit:
    """Replacement content for a pending request.

    Items carrying ``line_id`` update that line; items without one are new
    lines; existing lines not mentioned are deleted.
    """

    edited_by: str
    items: tuple[RequestItemInput, ...]
    request_number: str | None = None
    request_date: date | None = None

    def __post_init__(self) -> None:
        _require_text(self.edited_by, "edited_by")
        if not self.items:
            raise ValidationError("At least one item is required", field="items")
        object.__setattr__(self, "items", tuple(self.items))
        ids = [i.line_id for i in self.items if i.line_id is not None]
        if len(ids) != len(set(ids)):
            raise ValidationError("Duplicate line id in request edit", field="items")


# =========================================================================
# Receives
# =========================================================================


@dataclass(frozen=True)
class ReceiveItemInput:
    """Physical arrival of goods against one approved request line."""

    request_id: UUID
    received_quantity: Decimal
    location: str | None = None
    card_number: str | None = None
    image_path: str | None = None
    remarks: str | None = None
    unit: str | None = None

    def __post_init__(self) -> None:
        if self.request_id is None:
            raise ValidationError("request_id is required", field="request_id")
        _positive_quantity(self, "received_quantity")


@dataclass(frozen=True)
class ReceiveBatch:
    received_by: str
    receive_date: date
    items: tuple[ReceiveItemInput, ...]

    def __post_init__(self) -> None:
        _require_text(self.received_by, "received_by")
        if not self.items:
            raise ValidationError("At least one item is required", field="items")
        object.__setattr__(self, "items", tuple(self.items))
        ids = [i.request_id for i in self.items]
        if len(ids) != len(set(ids)):
            raise ValidationError("Request received twice in one batch", field="items")


# =========================================================================
# Costing (RRP)
# =========================================================================


@dataclass(frozen=True)
class CostingItem:
    """Invoice data for one approved receive line."""

    receive_id: UUID
    unit_price: Decimal
    customs_charge: Decimal = ZERO
    vat_applicable: bool = False

    def __post_init__(self) -> None:
        if self.receive_id is None:
            raise ValidationError("receive_id is required", field="receive_id")
        _non_negative(self, "unit_price")
        _non_negative(self, "customs_charge")


@dataclass(frozen=True)
class CostingSubmission:
    """
    Supplier invoice covering one or more receive lines.

    ``rrp_number`` is either a bare base (``L001``) to be auto-suffixed, or
    an explicit correction (``L001T3``) resubmitting a rejected batch.
    """

    rrp_number: str
    supplier_name: str
    rrp_date: date
    currency: str
    items: tuple[CostingItem, ...]
    created_by: str
    forex_rate: Decimal | None = None
    freight_charge_total: Decimal = ZERO
    customs_service_charge_total: Decimal = ZERO
    vat_rate_percent: Decimal = ZERO
    invoice_number: str | None = None
    invoice_date: date | None = None
    po_number: str | None = None
    airway_bill_number: str | None = None
    customs_date: date | None = None
    customs_number: str | None = None
    inspection_details: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        RRPNumber.parse(self.rrp_number)
        _require_text(self.supplier_name, "supplier_name")
        _require_text(self.currency, "currency")
        _require_text(self.created_by, "created_by")
        object.__setattr__(self, "currency", self.currency.strip().upper())
        if not self.items:
            raise ValidationError("At least one item is required", field="items")
        object.__setattr__(self, "items", tuple(self.items))
        ids = [i.receive_id for i in self.items]
        if len(ids) != len(set(ids)):
            raise ValidationError("Receive costed twice in one batch", field="items")
        _non_negative(self, "freight_charge_total")
        _non_negative(self, "customs_service_charge_total")
        _non_negative(self, "vat_rate_percent")
        if self.forex_rate is not None:
            rate = _decimal(self, "forex_rate")
            if rate <= ZERO:
                raise ValidationError("forex_rate must be positive", field="forex_rate")

    @property
    def parsed_number(self) -> RRPNumber:
        return RRPNumber.parse(self.rrp_number)

    def conversion_factor(self, local_currency: str) -> Decimal:
        """Forex factor applied to prices: 1 for local currency."""
        if self.currency == local_currency.upper():
            return Decimal("1")
        if self.forex_rate is None:
            raise MissingForexRateError(self.currency)
        return self.forex_rate


# =========================================================================
# Output DTOs
# =========================================================================


def _snapshot_text(value: Decimal | None) -> str:
    return NOT_AVAILABLE if value is None else str(value)


@dataclass(frozen=True)
class RequestLine:
    id: UUID
    request_number: str
    request_date: date
    nac_code: str
    part_number: str
    item_name: str
    unit: str | None
    requested_quantity: Decimal
    equipment_number: str
    balance_snapshot: Decimal | None
    previous_rate_snapshot: Decimal | None
    approval_status: ApprovalStatus
    requested_by: str
    is_received: bool
    receive_id: UUID | None

    @property
    def balance_display(self) -> str:
        return _snapshot_text(self.balance_snapshot)

    @property
    def previous_rate_display(self) -> str:
        return _snapshot_text(self.previous_rate_snapshot)


@dataclass(frozen=True)
class ReceiveLine:
    id: UUID
    request_id: UUID
    nac_code: str
    part_number: str
    item_name: str
    received_quantity: Decimal
    receive_date: date
    approval_status: ApprovalStatus
    received_by: str
    location: str | None
    card_number: str | None
    rrp_id: UUID | None


@dataclass(frozen=True)
class RRPLine:
    id: UUID
    receive_id: UUID
    rrp_number: str
    supplier_name: str
    rrp_date: date
    currency: str
    forex_rate: Decimal | None
    item_price: Decimal
    customs_charge: Decimal
    customs_service_charge: Decimal
    vat_percentage: Decimal
    vat_amount: Decimal
    freight_charge: Decimal
    total_amount: Decimal
    approval_status: ApprovalStatus
    created_by: str
    fiscal_year: str


@dataclass(frozen=True)
class StockItem:
    id: UUID
    nac_code: str
    item_names: tuple[str, ...]
    part_numbers: tuple[str, ...]
    equipment: str
    current_balance: Decimal
    unit: str | None
    location: str | None
    card_number: str | None
    open_quantity: Decimal
    open_amount: Decimal
    opening_date: date | None


@dataclass(frozen=True)
class RRPCreated:
    """Result of a costing submission."""

    rrp_number: str
    line_ids: tuple[UUID, ...]
    replaced_rejected: bool = False
    totals: tuple[Decimal, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MovementRecord:
    """An approved receipt or issue as stored, before stock card replay.

    ``kind`` is ``"receive"`` or ``"issue"``; ``reference`` is the raw RRP
    number or issue slip number.
    """

    kind: str
    movement_date: date
    quantity: Decimal
    reference: str
    counterpart: str
    amount: Decimal | None = None
