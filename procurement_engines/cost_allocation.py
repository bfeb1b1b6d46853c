"""
Module: procurement_engines.cost_allocation
Responsibility:
    Turn one supplier invoice covering several received items into a landed
    cost per item: converted price, proportional freight, customs, a
    proportional share of the customs service charge, and VAT.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Shares are weighted by converted price; the weights sum to 1.
    - Intermediate values keep full Decimal precision.  ``rounded()`` is
      applied by the caller at persistence, never inside the computation.
    - Freight share is multiplied by the forex factor after weighting,
      although the weight itself is computed from converted prices.

Failure modes:
    - ZeroItemTotalError when the converted prices sum to zero (shares
      would divide by zero).
    - ValueError on an empty item list or a non-positive factor.

Usage:
    from procurement_engines.cost_allocation import CostAllocator, CostLineInput

    result = CostAllocator().allocate(
        items=[CostLineInput(line_ref="r-1", unit_price=Decimal("100"),
                             vat_applicable=True)],
        factor=Decimal("1"),
        freight_charge_total=Decimal("20"),
        customs_service_charge_total=Decimal("0"),
        vat_rate_percent=Decimal("13"),
    )
    result.rounded().lines[0].total_amount  # Decimal("135.60")
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID

from procurement_engines.tracer import traced_engine
from procurement_kernel.db.types import ZERO, round_money
from procurement_kernel.exceptions import ZeroItemTotalError
from procurement_kernel.logging_config import get_logger

logger = get_logger("engines.cost_allocation")

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CostLineInput:
    """One invoice line to be costed."""

    line_ref: str | UUID
    unit_price: Decimal
    customs_charge: Decimal = ZERO
    vat_applicable: bool = False


@dataclass(frozen=True)
class CostLine:
    """Landed cost of one line."""

    line_ref: str | UUID
    unit_price: Decimal
    converted_price: Decimal
    freight_share: Decimal
    customs_charge: Decimal
    customs_service_share: Decimal
    vat_amount: Decimal
    total_amount: Decimal

    @property
    def vat_base(self) -> Decimal:
        return (
            self.converted_price
            + self.freight_share
            + self.customs_charge
            + self.customs_service_share
        )

    def rounded(self, decimal_places: int = 2) -> CostLine:
        return replace(
            self,
            converted_price=round_money(self.converted_price, decimal_places),
            freight_share=round_money(self.freight_share, decimal_places),
            customs_charge=round_money(self.customs_charge, decimal_places),
            customs_service_share=round_money(self.customs_service_share, decimal_places),
            vat_amount=round_money(self.vat_amount, decimal_places),
            total_amount=round_money(self.total_amount, decimal_places),
        )


@dataclass(frozen=True)
class CostAllocationResult:
    """All lines of one invoice plus the totals they were allocated from."""

    lines: tuple[CostLine, ...]
    factor: Decimal
    item_total: Decimal
    freight_total: Decimal
    customs_service_total: Decimal
    vat_rate_percent: Decimal

    @property
    def total_amount(self) -> Decimal:
        return sum((line.total_amount for line in self.lines), ZERO)

    @property
    def total_vat(self) -> Decimal:
        return sum((line.vat_amount for line in self.lines), ZERO)

    def rounded(self, decimal_places: int = 2) -> CostAllocationResult:
        return replace(self, lines=tuple(line.rounded(decimal_places) for line in self.lines))

    def line_for(self, line_ref: str | UUID) -> CostLine:
        for line in self.lines:
            if line.line_ref == line_ref:
                return line
        raise KeyError(line_ref)


class CostAllocator:
    """
    Landed-cost calculator.

    Contract:
        Pure function of its inputs.  No I/O, no database access.
    Guarantees:
        - sum(total_amount) == sum(converted_price) + freight_total * factor
          + sum(customs_charge) + customs_service_total + sum(vat_amount),
          exactly at full precision.
    Non-goals:
        - Does not decide the forex factor; callers pass 1 for local currency.
    """

    @traced_engine(
        "cost_allocation", "1.0",
        fingerprint_fields=(
            "factor", "freight_charge_total",
            "customs_service_charge_total", "vat_rate_percent",
        ),
        summarize=lambda result: {"line_count": len(result.lines)},
    )
    def allocate(
        self,
        *,
        items: Sequence[CostLineInput],
        factor: Decimal,
        freight_charge_total: Decimal,
        customs_service_charge_total: Decimal,
        vat_rate_percent: Decimal,
    ) -> CostAllocationResult:
        """
        Allocate freight and customs service charges across items and add VAT.

        Args:
            items: Lines of one invoice, prices in invoice currency.
            factor: Forex rate to local currency (1 for local invoices).
            freight_charge_total: Freight for the whole invoice.
            customs_service_charge_total: Customs service charge for the invoice.
            vat_rate_percent: VAT rate applied to lines flagged vat_applicable.
        """
        if not items:
            raise ValueError("Cost allocation requires at least one item")
        if factor <= ZERO:
            raise ValueError(f"Forex factor must be positive, got {factor}")

        logger.info("cost_allocation_started", extra={
            "item_count": len(items),
            "factor": str(factor),
            "freight_charge_total": str(freight_charge_total),
            "customs_service_charge_total": str(customs_service_charge_total),
        })

        converted = [item.unit_price * factor for item in items]
        item_total = sum(converted, ZERO)
        if item_total == ZERO:
            logger.warning("cost_allocation_zero_total", extra={
                "item_count": len(items),
            })
            raise ZeroItemTotalError(len(items))

        lines: list[CostLine] = []
        for item, converted_price in zip(items, converted):
            weight = converted_price / item_total
            freight_share = weight * freight_charge_total * factor
            customs_service_share = weight * customs_service_charge_total
            base = (
                converted_price
                + freight_share
                + item.customs_charge
                + customs_service_share
            )
            vat_amount = base * vat_rate_percent / _HUNDRED if item.vat_applicable else ZERO
            lines.append(CostLine(
                line_ref=item.line_ref,
                unit_price=item.unit_price,
                converted_price=converted_price,
                freight_share=freight_share,
                customs_charge=item.customs_charge,
                customs_service_share=customs_service_share,
                vat_amount=vat_amount,
                total_amount=base + vat_amount,
            ))

        result = CostAllocationResult(
            lines=tuple(lines),
            factor=factor,
            item_total=item_total,
            freight_total=freight_charge_total * factor,
            customs_service_total=customs_service_charge_total,
            vat_rate_percent=vat_rate_percent,
        )

        logger.info("cost_allocation_completed", extra={
            "item_count": len(lines),
            "item_total": str(item_total),
            "total_amount": str(result.total_amount),
        })
        return result
