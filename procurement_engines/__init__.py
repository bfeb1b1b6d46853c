"""
Pure calculation engines for procurement costing and stock replay.

Engines take plain values and return frozen results.  They never touch a
session, read a clock or look up configuration; services gather inputs and
persist outputs.
"""

from procurement_engines.cost_allocation import (
    CostAllocationResult,
    CostAllocator,
    CostLine,
    CostLineInput,
)
from procurement_engines.stock_ledger import (
    LedgerRow,
    LedgerRowKind,
    MovementType,
    OpeningBalance,
    StockLedger,
    StockLedgerReplay,
    StockMovement,
)

__all__ = [
    "CostAllocationResult",
    "CostAllocator",
    "CostLine",
    "CostLineInput",
    "LedgerRow",
    "LedgerRowKind",
    "MovementType",
    "OpeningBalance",
    "StockLedger",
    "StockLedgerReplay",
    "StockMovement",
]
