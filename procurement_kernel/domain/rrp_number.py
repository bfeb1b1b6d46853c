"""
RRP numbering rules (``procurement_kernel.domain.rrp_number``).

Responsibility
--------------
Parse RRP identifiers and decide which number a costing submission will
actually be stored under.  An identifier is a base code -- ``L`` (local
supplier) or ``F`` (foreign supplier) plus three digits -- optionally
followed by ``T<n>``, the n-th correction of that base.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``RRPBatchSummary``
snapshots loaded by ``RRPSelector``.  ZERO I/O.

Invariants enforced
-------------------
* Format ``^[LF]\\d{3}(T\\d+)?$``.
* At most one live (non-rejected) batch per base code per fiscal year:
  a bare base is refused while its latest correction is live in the
  current fiscal year.
* An explicit ``T<n>`` may only be reused once the batch carrying it has
  been rejected.
* Correction dates are non-decreasing in T order.  T numbers are compared
  as integers, so T10 follows T9.

Failure modes
-------------
* ``InvalidRRPNumberError`` -- bad format, or verifying a suffixed number
  that has no rejected batch to replace.
* ``RRPNumberConflictError`` -- the number (or base) is live.
* ``RRPDateOrderError`` -- correction date outside its neighbours' dates.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from procurement_kernel.domain.approval import ApprovalStatus
from procurement_kernel.exceptions import (
    InvalidRRPNumberError,
    RRPDateOrderError,
    RRPNumberConflictError,
)

RRP_NUMBER_PATTERN = re.compile(r"^([LF])(\d{3})(?:T(\d+))?$")

LOCAL_SERIES = "L"
FOREIGN_SERIES = "F"


@dataclass(frozen=True)
class RRPNumber:
    """Parsed RRP identifier."""

    series: str
    sequence: str
    correction: int | None = None

    @classmethod
    def parse(cls, raw: str) -> RRPNumber:
        if not isinstance(raw, str):
            raise InvalidRRPNumberError(str(raw))
        match = RRP_NUMBER_PATTERN.match(raw.strip())
        if match is None:
            raise InvalidRRPNumberError(raw)
        correction = match.group(3)
        return cls(
            series=match.group(1),
            sequence=match.group(2),
            correction=int(correction) if correction is not None else None,
        )

    @property
    def base(self) -> str:
        return f"{self.series}{self.sequence}"

    @property
    def is_correction(self) -> bool:
        return self.correction is not None

    @property
    def is_foreign(self) -> bool:
        return self.series == FOREIGN_SERIES

    def with_correction(self, correction: int) -> RRPNumber:
        return RRPNumber(self.series, self.sequence, correction)

    def __str__(self) -> str:
        if self.correction is None:
            return self.base
        return f"{self.base}T{self.correction}"


@dataclass(frozen=True)
class RRPBatchSummary:
    """One stored RRP batch, collapsed from its lines.

    ``approval_status`` is REJECTED only when every line is rejected.
    """

    rrp_number: str
    approval_status: ApprovalStatus
    fiscal_year: str
    rrp_date: date

    @property
    def parsed(self) -> RRPNumber:
        return RRPNumber.parse(self.rrp_number)

    @property
    def is_live(self) -> bool:
        return self.approval_status != ApprovalStatus.REJECTED


@dataclass(frozen=True)
class RRPNumberResolution:
    """Outcome of numbering a costing submission."""

    rrp_number: RRPNumber
    replaces_rejected: bool = False

    def __str__(self) -> str:
        return str(self.rrp_number)


def corrections_of(
    base: str, batches: Sequence[RRPBatchSummary],
) -> list[tuple[int, RRPBatchSummary]]:
    """Batches of ``base`` that carry a T suffix, ordered by T number."""
    found: list[tuple[int, RRPBatchSummary]] = []
    for batch in batches:
        parsed = batch.parsed
        if parsed.base == base and parsed.correction is not None:
            found.append((parsed.correction, batch))
    found.sort(key=lambda pair: pair[0])
    return found


def resolve_rrp_number(
    requested: RRPNumber,
    existing: Sequence[RRPBatchSummary],
    current_fiscal_year: str,
) -> RRPNumberResolution:
    """
    Decide the number a new costing batch is stored under.

    Bare base: the next T after the highest existing correction (T1 if
    none), unless the latest correction is still live in the current
    fiscal year.

    Suffixed number: stored as-is if unused, or replacing a rejected batch
    of the same number.
    """
    if requested.is_correction:
        exact = [b for b in existing if b.rrp_number == str(requested)]
        if not exact:
            return RRPNumberResolution(requested)
        if any(b.is_live for b in exact):
            raise RRPNumberConflictError(
                str(requested), "RRP number already exists and is not rejected",
            )
        return RRPNumberResolution(requested, replaces_rejected=True)

    corrections = corrections_of(requested.base, existing)
    if not corrections:
        return RRPNumberResolution(requested.with_correction(1))

    latest_t, latest = corrections[-1]
    if latest.is_live and latest.fiscal_year == current_fiscal_year:
        raise RRPNumberConflictError(
            requested.base,
            f"Duplicate RRP number in current fiscal year: "
            f"{latest.rrp_number} is {latest.approval_status.value}",
        )
    return RRPNumberResolution(requested.with_correction(latest_t + 1))


def check_correction_date(
    requested: RRPNumber,
    rrp_date: date,
    existing: Sequence[RRPBatchSummary],
) -> None:
    """Require ``rrp_date`` to lie between the neighbouring corrections' dates."""
    if requested.correction is None:
        return
    previous: RRPBatchSummary | None = None
    following: RRPBatchSummary | None = None
    for t, batch in corrections_of(requested.base, existing):
        if t < requested.correction:
            previous = batch
        elif t > requested.correction and following is None:
            following = batch

    if previous is not None and rrp_date < previous.rrp_date:
        raise RRPDateOrderError(
            str(requested), "RRP date cannot be before the previous RRP date",
        )
    if following is not None and rrp_date > following.rrp_date:
        raise RRPDateOrderError(
            str(requested), "RRP date cannot be greater than the next RRP date",
        )
