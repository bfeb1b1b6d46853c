"""
Tests for RRP numbering (``procurement_kernel.domain.rrp_number``).

Invariants tested:
- Identifier format ^[LF]\\d{3}(T\\d+)?$
- One live batch per base per fiscal year
- Explicit corrections reuse only rejected numbers
- Correction dates non-decreasing in T order, T compared as integers
"""

from datetime import date

import pytest

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.domain.rrp_number import (
    RRPBatchSummary,
    RRPNumber,
    check_correction_date,
    corrections_of,
    resolve_rrp_number,
)
from procurement_kernel.exceptions import (
    InvalidRRPNumberError,
    RRPDateOrderError,
    RRPNumberConflictError,
)

FY = "2081/82"


def batch(number: str, status=ApprovalStatus.APPROVED, fy=FY, day=10) -> RRPBatchSummary:
    return RRPBatchSummary(number, status, fy, date(2024, 7, day))


class TestRRPNumberParse:

    @pytest.mark.parametrize("raw,series,sequence,correction", [
        ("L001", "L", "001", None),
        ("F123T4", "F", "123", 4),
        ("L010T12", "L", "010", 12),
    ])
    def test_valid(self, raw, series, sequence, correction):
        parsed = RRPNumber.parse(raw)
        assert (parsed.series, parsed.sequence, parsed.correction) == (series, sequence, correction)
        assert str(parsed) == raw

    @pytest.mark.parametrize("raw", ["X001", "L01", "L0001", "L001T", "l001", "L001Y1", ""])
    def test_invalid(self, raw):
        with pytest.raises(InvalidRRPNumberError):
            RRPNumber.parse(raw)

    def test_base_and_flags(self):
        parsed = RRPNumber.parse("F007T2")
        assert parsed.base == "F007"
        assert parsed.is_correction
        assert parsed.is_foreign
        assert str(parsed.with_correction(3)) == "F007T3"


class TestResolveBareBase:

    def test_first_submission_gets_t1(self):
        resolution = resolve_rrp_number(RRPNumber.parse("L001"), [], FY)
        assert str(resolution) == "L001T1"
        assert not resolution.replaces_rejected

    def test_live_latest_correction_in_current_year_conflicts(self):
        existing = [batch("L001T1"), batch("L001T2", ApprovalStatus.PENDING)]
        with pytest.raises(RRPNumberConflictError):
            resolve_rrp_number(RRPNumber.parse("L001"), existing, FY)

    def test_rejected_latest_correction_gives_next(self):
        existing = [batch("L001T1"), batch("L001T2", ApprovalStatus.REJECTED)]
        resolution = resolve_rrp_number(RRPNumber.parse("L001"), existing, FY)
        assert str(resolution) == "L001T3"

    def test_previous_fiscal_year_does_not_block(self):
        existing = [batch("L001T1", fy="2080/81")]
        resolution = resolve_rrp_number(RRPNumber.parse("L001"), existing, FY)
        assert str(resolution) == "L001T2"

    def test_corrections_compared_as_integers(self):
        existing = [
            batch(f"L001T{n}", ApprovalStatus.REJECTED) for n in (1, 2, 9, 10)
        ]
        resolution = resolve_rrp_number(RRPNumber.parse("L001"), existing, FY)
        assert str(resolution) == "L001T11"
        assert [t for t, _ in corrections_of("L001", existing)] == [1, 2, 9, 10]


class TestResolveCorrection:

    def test_unused_correction_stored_as_is(self):
        resolution = resolve_rrp_number(RRPNumber.parse("L001T5"), [batch("L001T1")], FY)
        assert str(resolution) == "L001T5"
        assert not resolution.replaces_rejected

    def test_rejected_correction_replaced(self):
        existing = [batch("L001T1"), batch("L001T2", ApprovalStatus.REJECTED)]
        resolution = resolve_rrp_number(RRPNumber.parse("L001T2"), existing, FY)
        assert resolution.replaces_rejected

    def test_live_correction_conflicts(self):
        with pytest.raises(RRPNumberConflictError) as exc_info:
            resolve_rrp_number(RRPNumber.parse("L001T1"), [batch("L001T1")], FY)
        assert "already exists and is not rejected" in str(exc_info.value)


class TestCorrectionDates:

    def setup_method(self):
        self.existing = [batch("L001T1", day=5), batch("L001T3", day=20)]

    def test_between_neighbours(self):
        check_correction_date(RRPNumber.parse("L001T2"), date(2024, 7, 10), self.existing)

    def test_equal_to_neighbours_allowed(self):
        check_correction_date(RRPNumber.parse("L001T2"), date(2024, 7, 5), self.existing)
        check_correction_date(RRPNumber.parse("L001T2"), date(2024, 7, 20), self.existing)

    def test_before_previous(self):
        with pytest.raises(RRPDateOrderError, match="before the previous"):
            check_correction_date(RRPNumber.parse("L001T2"), date(2024, 7, 4), self.existing)

    def test_after_next(self):
        with pytest.raises(RRPDateOrderError, match="greater than the next"):
            check_correction_date(RRPNumber.parse("L001T2"), date(2024, 7, 21), self.existing)

    def test_bare_number_not_checked(self):
        check_correction_date(RRPNumber.parse("L001"), date(2000, 1, 1), self.existing)
