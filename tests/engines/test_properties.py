"""
Property-based tests for the pure engines.

Invariants checked over generated inputs:
- Allocation conservation: line totals add up to items + freight * factor
  + customs + customs service + VAT.
- Rounding moves each persisted amount by at most half a cent.
- Ledger conservation: final balance == opening + received - issued.
- Printed balances never go below zero; shortfalls are carried instead.
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from procurement_engines.cost_allocation import CostAllocator, CostLineInput
from procurement_engines.stock_ledger import (
    LedgerRowKind,
    MovementType,
    OpeningBalance,
    StockLedgerReplay,
    StockMovement,
)

TOLERANCE = Decimal("0.0000001")
HALF_CENT = Decimal("0.005")

prices = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("99999.99"), places=2)
charges = st.decimals(min_value=Decimal("0"), max_value=Decimal("9999.99"), places=2)
quantities = st.integers(min_value=1, max_value=500).map(Decimal)


@st.composite
def cost_lines(draw):
    count = draw(st.integers(min_value=1, max_value=8))
    return [
        CostLineInput(
            line_ref=f"R{i}",
            unit_price=draw(prices),
            customs_charge=draw(charges),
            vat_applicable=draw(st.booleans()),
        )
        for i in range(count)
    ]


@st.composite
def movements(draw):
    count = draw(st.integers(min_value=0, max_value=25))
    start = date(2024, 7, 1)
    return [
        StockMovement(
            movement_type=draw(st.sampled_from(list(MovementType))),
            movement_date=start + timedelta(days=draw(st.integers(min_value=0, max_value=60))),
            quantity=draw(quantities),
            reference=f"M{i}",
        )
        for i in range(count)
    ]


class TestAllocationProperties:

    @settings(max_examples=60, suppress_health_check=[HealthCheck.too_slow])
    @given(
        items=cost_lines(),
        factor=st.sampled_from([Decimal("1"), Decimal("132.5"), Decimal("0.85")]),
        freight=charges,
        customs_service=charges,
        vat=st.sampled_from([Decimal("0"), Decimal("13"), Decimal("17.5")]),
    )
    def test_totals_conserved(self, items, factor, freight, customs_service, vat):
        result = CostAllocator().allocate(
            items=items,
            factor=factor,
            freight_charge_total=freight,
            customs_service_charge_total=customs_service,
            vat_rate_percent=vat,
        )

        expected = (
            sum((item.unit_price * factor for item in items), Decimal("0"))
            + freight * factor
            + sum((item.customs_charge for item in items), Decimal("0"))
            + customs_service
            + result.total_vat
        )
        assert abs(result.total_amount - expected) <= TOLERANCE
        for item, line in zip(items, result.lines):
            if not item.vat_applicable:
                assert line.vat_amount == 0

        for exact, rounded in zip(result.lines, result.rounded().lines):
            assert abs(exact.total_amount - rounded.total_amount) <= HALF_CENT
            assert rounded.total_amount == rounded.total_amount.quantize(Decimal("0.01"))


class TestLedgerProperties:

    @settings(max_examples=80)
    @given(opening=st.integers(min_value=0, max_value=50).map(Decimal), moves=movements())
    def test_conservation_and_non_negative_rows(self, opening, moves):
        ledger = StockLedgerReplay().replay(
            nac_code="GT 00000",
            opening=OpeningBalance(quantity=opening),
            movements=moves,
        )

        received = sum((m.quantity for m in moves if m.movement_type == MovementType.RECEIVE), Decimal("0"))
        issued = sum((m.quantity for m in moves if m.movement_type == MovementType.ISSUE), Decimal("0"))
        assert ledger.final_balance == opening + received - issued
        assert ledger.outstanding_shortfall >= 0
        assert all(row.balance >= 0 for row in ledger.rows)
        assert ledger.rows[0].kind == LedgerRowKind.OPENING

        printed_issues = sum(
            (row.issued for row in ledger.rows
             if row.kind in (LedgerRowKind.ISSUE, LedgerRowKind.DEFERRED_ISSUE)),
            Decimal("0"),
        )
        assert printed_issues + ledger.outstanding_shortfall == issued
