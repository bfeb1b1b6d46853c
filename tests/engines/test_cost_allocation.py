"""
Tests for the landed-cost allocator.

Covers:
- Local invoice: freight plus VAT on a single line
- Foreign invoice: freight weighted and converted, customs service split
- VAT applied only to flagged lines
- Conservation of totals across lines
- Rounding applied only by ``rounded()``
- Edge cases and error handling
"""

from decimal import Decimal

import pytest

from procurement_engines.cost_allocation import CostAllocator, CostLineInput
from procurement_engines.tracer import compute_input_fingerprint
from procurement_kernel.exceptions import ZeroItemTotalError


class TestLocalInvoice:
    """Factor 1: prices are already in local currency."""

    def setup_method(self):
        self.allocator = CostAllocator()

    def test_single_line_with_freight_and_vat(self):
        result = self.allocator.allocate(
            items=[CostLineInput("r-1", Decimal("100"), vat_applicable=True)],
            factor=Decimal("1"),
            freight_charge_total=Decimal("20"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("13"),
        ).rounded()

        line = result.lines[0]
        assert line.converted_price == Decimal("100.00")
        assert line.freight_share == Decimal("20.00")
        assert line.vat_amount == Decimal("15.60")
        assert line.total_amount == Decimal("135.60")

    def test_vat_only_on_flagged_lines(self):
        result = self.allocator.allocate(
            items=[
                CostLineInput("a", Decimal("100"), vat_applicable=True),
                CostLineInput("b", Decimal("100"), vat_applicable=False),
            ],
            factor=Decimal("1"),
            freight_charge_total=Decimal("0"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("13"),
        )

        assert result.line_for("a").vat_amount == Decimal("13")
        assert result.line_for("b").vat_amount == Decimal("0")
        assert result.total_vat == Decimal("13")

    def test_customs_charge_enters_vat_base(self):
        result = self.allocator.allocate(
            items=[CostLineInput("a", Decimal("100"), Decimal("50"), vat_applicable=True)],
            factor=Decimal("1"),
            freight_charge_total=Decimal("0"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("10"),
        )

        line = result.lines[0]
        assert line.vat_base == Decimal("150")
        assert line.vat_amount == Decimal("15.0")
        assert line.total_amount == Decimal("165.0")


class TestForeignInvoice:
    """USD invoice converted at 132.5."""

    def setup_method(self):
        self.allocator = CostAllocator()
        self.result = self.allocator.allocate(
            items=[
                CostLineInput("r-1", Decimal("100"), Decimal("50"), vat_applicable=True),
                CostLineInput("r-2", Decimal("300"), Decimal("0"), vat_applicable=True),
            ],
            factor=Decimal("132.5"),
            freight_charge_total=Decimal("1000"),
            customs_service_charge_total=Decimal("400"),
            vat_rate_percent=Decimal("13"),
        )

    def test_prices_converted(self):
        assert self.result.line_for("r-1").converted_price == Decimal("13250.0")
        assert self.result.line_for("r-2").converted_price == Decimal("39750.0")
        assert self.result.item_total == Decimal("53000.0")

    def test_freight_weighted_then_multiplied_by_factor(self):
        rounded = self.result.rounded()
        assert rounded.line_for("r-1").freight_share == Decimal("33125.00")
        assert rounded.line_for("r-2").freight_share == Decimal("99375.00")
        assert self.result.freight_total == Decimal("132500.0")

    def test_customs_service_split_by_weight(self):
        rounded = self.result.rounded()
        assert rounded.line_for("r-1").customs_service_share == Decimal("100.00")
        assert rounded.line_for("r-2").customs_service_share == Decimal("300.00")

    def test_vat_and_totals(self):
        rounded = self.result.rounded()
        assert rounded.line_for("r-1").vat_amount == Decimal("6048.25")
        assert rounded.line_for("r-2").vat_amount == Decimal("18125.25")
        assert rounded.line_for("r-1").total_amount == Decimal("52573.25")
        assert rounded.line_for("r-2").total_amount == Decimal("157550.25")

    def test_totals_conserved_at_full_precision(self):
        expected = (
            self.result.item_total
            + self.result.freight_total
            + sum(line.customs_charge for line in self.result.lines)
            + self.result.customs_service_total
            + self.result.total_vat
        )
        assert self.result.total_amount == expected


class TestRounding:

    def setup_method(self):
        self.allocator = CostAllocator()

    def test_intermediates_keep_full_precision(self):
        result = self.allocator.allocate(
            items=[
                CostLineInput("a", Decimal("1")),
                CostLineInput("b", Decimal("1")),
                CostLineInput("c", Decimal("1")),
            ],
            factor=Decimal("1"),
            freight_charge_total=Decimal("10"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("0"),
        )

        share = result.line_for("a").freight_share
        assert share != share.quantize(Decimal("0.01"))
        assert result.rounded().line_for("a").freight_share == Decimal("3.33")

    def test_each_rounded_line_within_a_cent_of_exact(self):
        result = self.allocator.allocate(
            items=[
                CostLineInput("a", Decimal("33.33"), vat_applicable=True),
                CostLineInput("b", Decimal("66.67"), vat_applicable=True),
                CostLineInput("c", Decimal("12.01")),
            ],
            factor=Decimal("1.37"),
            freight_charge_total=Decimal("17.5"),
            customs_service_charge_total=Decimal("9.99"),
            vat_rate_percent=Decimal("13"),
        )

        for exact, rounded in zip(result.lines, result.rounded().lines):
            assert abs(exact.total_amount - rounded.total_amount) <= Decimal("0.01")

    def test_half_up(self):
        result = self.allocator.allocate(
            items=[CostLineInput("a", Decimal("0.125"))],
            factor=Decimal("1"),
            freight_charge_total=Decimal("0"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("0"),
        ).rounded()

        assert result.lines[0].total_amount == Decimal("0.13")


class TestAllocationErrors:

    def setup_method(self):
        self.allocator = CostAllocator()

    def _allocate(self, items, factor=Decimal("1")):
        return self.allocator.allocate(
            items=items,
            factor=factor,
            freight_charge_total=Decimal("10"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("13"),
        )

    def test_zero_item_total(self):
        with pytest.raises(ZeroItemTotalError) as exc_info:
            self._allocate([CostLineInput("a", Decimal("0")), CostLineInput("b", Decimal("0"))])
        assert exc_info.value.item_count == 2

    def test_empty_items(self):
        with pytest.raises(ValueError):
            self._allocate([])

    def test_non_positive_factor(self):
        with pytest.raises(ValueError):
            self._allocate([CostLineInput("a", Decimal("1"))], factor=Decimal("0"))

    def test_unknown_line_ref(self):
        result = self._allocate([CostLineInput("a", Decimal("1"))])
        with pytest.raises(KeyError):
            result.line_for("missing")


class TestEngineTrace:

    def test_trace_emitted_with_fingerprint(self, captured_logs):
        CostAllocator().allocate(
            items=[CostLineInput("a", Decimal("5"))],
            factor=Decimal("1"),
            freight_charge_total=Decimal("0"),
            customs_service_charge_total=Decimal("0"),
            vat_rate_percent=Decimal("0"),
        )

        traces = [r for r in captured_logs() if r["message"] == "PROCUREMENT_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "cost_allocation"
        assert len(traces[0]["input_fingerprint"]) == 16
        assert traces[0]["line_count"] == 1

    def test_fingerprint_depends_only_on_named_inputs(self):
        fields = ("factor", "vat_rate_percent")
        base = compute_input_fingerprint(fields, {"factor": Decimal("1.5"), "vat_rate_percent": 13})
        reordered = compute_input_fingerprint(
            fields, {"vat_rate_percent": 13, "factor": Decimal("1.5"), "items": ["ignored"]},
        )
        changed = compute_input_fingerprint(fields, {"factor": Decimal("1.6"), "vat_rate_percent": 13})

        assert base == reordered
        assert base != changed
