"""Read-only selectors."""

from procurement_kernel.selectors.procurement_selector import ProcurementSelector
from procurement_kernel.selectors.rrp_selector import RRPSelector
from procurement_kernel.selectors.stock_selector import StockSelector

__all__ = ["ProcurementSelector", "RRPSelector", "StockSelector"]
