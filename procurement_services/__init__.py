"""
Transactional procurement operations over the kernel.

``ApprovalWorkflow`` is the entrypoint for callers; ``to_error_response``
turns whatever it raises into a status and body.
"""

from procurement_services.approval_workflow import ApprovalWorkflow, ProcurementContext
from procurement_services.errors import status_for, to_error_response
from procurement_services.stock_card import StockCardService

__all__ = [
    "ApprovalWorkflow",
    "ProcurementContext",
    "StockCardService",
    "status_for",
    "to_error_response",
]
