"""
Module: procurement_engines.stock_ledger
Responsibility:
    Replay the receive/issue history of one NAC code into a stock card:
    an opening (B.F.) row followed by one row per movement, each carrying
    the running balance.  Issues recorded before enough stock existed are
    back-ordered and settled, oldest first, by later receipts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Safe to run in parallel
    across NAC codes.

Invariants enforced:
    - Strict FIFO settlement: a later shortfall is never settled before an
      earlier one, and a partially settled head stays at the head.
    - Running balance never goes negative.
    - Conservation: opening + received - issued == on_hand - outstanding
      shortfall, checked after every row and at the end.

Failure modes:
    - ValueError on a non-positive movement quantity.
    - LedgerConservationError if the replay ever breaks conservation.

Usage:
    from procurement_engines.stock_ledger import (
        MovementType, OpeningBalance, StockLedgerReplay, StockMovement,
    )

    ledger = StockLedgerReplay().replay(
        nac_code="GT 00000",
        opening=OpeningBalance(quantity=Decimal("0")),
        movements=[
            StockMovement(MovementType.ISSUE, date(2024, 7, 1), Decimal("10"), "101Y1"),
            StockMovement(MovementType.RECEIVE, date(2024, 7, 3), Decimal("6"), "L001T1"),
        ],
    )
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from procurement_engines.tracer import traced_engine
from procurement_kernel.db.types import ZERO
from procurement_kernel.exceptions import LedgerConservationError
from procurement_kernel.logging_config import get_logger

logger = get_logger("engines.stock_ledger")

OPENING_REFERENCE = "B.F."
DEFERRED_ISSUE_LABEL = "Deferred Issue"


class MovementType(str, Enum):
    RECEIVE = "receive"
    ISSUE = "issue"


class LedgerRowKind(str, Enum):
    OPENING = "opening"
    RECEIVE = "receive"
    ISSUE = "issue"
    DEFERRED_ISSUE = "deferred_issue"


def normalize_reference(movement_type: MovementType, reference: str | None) -> str:
    """
    Printed reference for a movement.

    Receive references are RRP numbers and lose their ``T<n>`` correction
    suffix; issue references are slip numbers and lose their ``Y`` suffix.
    """
    text = "" if reference is None else str(reference)
    marker = "T" if movement_type == MovementType.RECEIVE else "Y"
    return text.split(marker, 1)[0]


@dataclass(frozen=True)
class StockMovement:
    """One approved receipt or issue."""

    movement_type: MovementType
    movement_date: date
    quantity: Decimal
    reference: str
    counterpart: str = ""
    amount: Decimal | None = None

    def __post_init__(self) -> None:
        if self.quantity <= ZERO:
            raise ValueError(
                f"Movement quantity must be positive, got {self.quantity} "
                f"for {self.reference}"
            )


@dataclass(frozen=True)
class OpeningBalance:
    quantity: Decimal = ZERO
    opening_date: date | None = None
    amount: Decimal = ZERO


@dataclass(frozen=True)
class LedgerRow:
    """One printed line of the stock card."""

    kind: LedgerRowKind
    row_date: date | None
    reference: str
    counterpart: str
    received: Decimal
    issued: Decimal
    balance: Decimal
    amount: Decimal | None = None

    @property
    def label(self) -> str:
        return _ROW_LABELS[self.kind]


_ROW_LABELS = {
    LedgerRowKind.OPENING: OPENING_REFERENCE,
    LedgerRowKind.RECEIVE: "Receive",
    LedgerRowKind.ISSUE: "Issue",
    LedgerRowKind.DEFERRED_ISSUE: DEFERRED_ISSUE_LABEL,
}


@dataclass
class _Shortfall:
    quantity: Decimal
    reference: str
    counterpart: str


@dataclass(frozen=True)
class StockLedger:
    """Replayed stock card for one NAC code."""

    nac_code: str
    rows: tuple[LedgerRow, ...]
    opening_quantity: Decimal
    total_received: Decimal
    total_issued: Decimal
    on_hand: Decimal
    outstanding_shortfall: Decimal

    @property
    def final_balance(self) -> Decimal:
        """Net position: what is on hand less what is still owed to issues."""
        return self.on_hand - self.outstanding_shortfall

    @property
    def movement_rows(self) -> tuple[LedgerRow, ...]:
        return tuple(r for r in self.rows if r.kind != LedgerRowKind.OPENING)


class StockLedgerReplay:
    """
    Single-pass, deterministic stock card replay.

    Contract:
        Movements are replayed in date order; movements sharing a date keep
        the order the caller supplied (callers put receipts first).
    Guarantees:
        - Exactly one opening row, first.
        - Issue rows never exceed the balance available when they are printed.
        - final_balance == opening + received - issued.
    """

    @traced_engine(
        "stock_ledger", "1.0",
        fingerprint_fields=("nac_code",),
        summarize=lambda ledger: {
            "row_count": len(ledger.rows),
            "outstanding_shortfall": ledger.outstanding_shortfall,
        },
    )
    def replay(
        self,
        *,
        nac_code: str,
        opening: OpeningBalance,
        movements: Sequence[StockMovement],
    ) -> StockLedger:
        ordered = sorted(movements, key=lambda m: m.movement_date)
        balance = opening.quantity
        pending: deque[_Shortfall] = deque()
        total_received = ZERO
        total_issued = ZERO

        rows: list[LedgerRow] = [LedgerRow(
            kind=LedgerRowKind.OPENING,
            row_date=opening.opening_date,
            reference=OPENING_REFERENCE,
            counterpart="",
            received=opening.quantity,
            issued=ZERO,
            balance=balance,
            amount=opening.amount,
        )]

        for movement in ordered:
            if movement.movement_type == MovementType.RECEIVE:
                total_received += movement.quantity
                balance += movement.quantity
                rows.append(LedgerRow(
                    kind=LedgerRowKind.RECEIVE,
                    row_date=movement.movement_date,
                    reference=movement.reference,
                    counterpart=movement.counterpart,
                    received=movement.quantity,
                    issued=ZERO,
                    balance=balance,
                    amount=movement.amount,
                ))
                while pending and balance > ZERO:
                    head = pending[0]
                    settled = min(balance, head.quantity)
                    balance -= settled
                    head.quantity -= settled
                    rows.append(LedgerRow(
                        kind=LedgerRowKind.DEFERRED_ISSUE,
                        row_date=movement.movement_date,
                        reference=head.reference,
                        counterpart=head.counterpart,
                        received=ZERO,
                        issued=settled,
                        balance=balance,
                    ))
                    if head.quantity == ZERO:
                        pending.popleft()
                    else:
                        break
            else:
                total_issued += movement.quantity
                if balance >= movement.quantity:
                    balance -= movement.quantity
                    rows.append(self._issue_row(movement, movement.quantity, balance))
                elif balance > ZERO:
                    satisfiable = balance
                    balance = ZERO
                    rows.append(self._issue_row(movement, satisfiable, balance))
                    pending.append(_Shortfall(
                        movement.quantity - satisfiable,
                        movement.reference,
                        movement.counterpart,
                    ))
                else:
                    pending.append(_Shortfall(
                        movement.quantity,
                        movement.reference,
                        movement.counterpart,
                    ))
                    logger.debug("issue_deferred", extra={
                        "nac_code": nac_code,
                        "reference": movement.reference,
                        "quantity": str(movement.quantity),
                    })

            outstanding = sum((s.quantity for s in pending), ZERO)
            self._check_conservation(
                nac_code, opening.quantity, total_received, total_issued,
                balance, outstanding,
            )

        outstanding = sum((s.quantity for s in pending), ZERO)
        ledger = StockLedger(
            nac_code=nac_code,
            rows=tuple(rows),
            opening_quantity=opening.quantity,
            total_received=total_received,
            total_issued=total_issued,
            on_hand=balance,
            outstanding_shortfall=outstanding,
        )
        logger.info("stock_ledger_replayed", extra={
            "nac_code": nac_code,
            "movement_count": len(ordered),
            "row_count": len(rows),
            "final_balance": str(ledger.final_balance),
            "outstanding_shortfall": str(outstanding),
        })
        return ledger

    @staticmethod
    def _issue_row(movement: StockMovement, quantity: Decimal, balance: Decimal) -> LedgerRow:
        return LedgerRow(
            kind=LedgerRowKind.ISSUE,
            row_date=movement.movement_date,
            reference=movement.reference,
            counterpart=movement.counterpart,
            received=ZERO,
            issued=quantity,
            balance=balance,
            amount=movement.amount,
        )

    @staticmethod
    def _check_conservation(
        nac_code: str,
        opening: Decimal,
        received: Decimal,
        issued: Decimal,
        on_hand: Decimal,
        outstanding: Decimal,
    ) -> None:
        expected = opening + received - issued
        actual = on_hand - outstanding
        if expected != actual:
            raise LedgerConservationError(nac_code, expected, actual)
