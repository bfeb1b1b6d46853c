"""
procurement_services.stock_card -- stock card assembly for NAC codes.

Responsibility:
    Load a stock item's opening position and approved movement history
    through ``StockSelector`` and replay it with ``StockLedgerReplay``.

Architecture position:
    Services -- bridges kernel selectors (which return ``MovementRecord``)
    and the pure ledger engine (which consumes ``StockMovement``).

Invariants enforced:
    - Printed references are normalized: RRP correction suffixes and issue
      slip suffixes are dropped before replay.
    - Each NAC code is replayed independently; one code's failure does not
      alter another's card.

Failure modes:
    - StockItemNotFoundError when the NAC code has no stock item.
    - LedgerConservationError from the engine.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from procurement_engines.stock_ledger import (
    MovementType,
    OpeningBalance,
    StockLedger,
    StockLedgerReplay,
    StockMovement,
    normalize_reference,
)
from procurement_kernel.domain.dtos import MovementRecord
from procurement_kernel.exceptions import StockItemNotFoundError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.selectors.stock_selector import RECEIVE, StockSelector

logger = get_logger("services.stock_card")


def to_stock_movement(record: MovementRecord) -> StockMovement:
    movement_type = MovementType.RECEIVE if record.kind == RECEIVE else MovementType.ISSUE
    return StockMovement(
        movement_type=movement_type,
        movement_date=record.movement_date,
        quantity=record.quantity,
        reference=normalize_reference(movement_type, record.reference),
        counterpart=record.counterpart,
        amount=record.amount,
    )


class StockCardService:
    """Builds stock cards inside the caller's session."""

    def __init__(self, session: Session, replay: StockLedgerReplay | None = None):
        self._selector = StockSelector(session)
        self._replay = replay or StockLedgerReplay()

    def build_card(self, nac_code: str) -> StockLedger:
        item = self._selector.get_item(nac_code)
        if item is None:
            raise StockItemNotFoundError(nac_code)

        movements = [to_stock_movement(r) for r in self._selector.movements(nac_code)]
        return self._replay.replay(
            nac_code=nac_code,
            opening=OpeningBalance(
                quantity=item.open_quantity,
                opening_date=item.opening_date,
                amount=item.open_amount,
            ),
            movements=movements,
        )

    def build_cards(self, nac_codes: Iterable[str]) -> dict[str, StockLedger]:
        cards: dict[str, StockLedger] = {}
        for nac_code in dict.fromkeys(nac_codes):
            cards[nac_code] = self.build_card(nac_code)
        logger.info("stock_cards_built", extra={"card_count": len(cards)})
        return cards
