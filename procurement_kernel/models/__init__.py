"""ORM models for the procurement kernel."""

from procurement_kernel.models.notification import (
    AppConfigModel,
    NotificationModel,
    UserModel,
)
from procurement_kernel.models.receive import ReceiveLineModel
from procurement_kernel.models.request import RequestLineModel
from procurement_kernel.models.rrp import RRPLineModel
from procurement_kernel.models.stock import IssueLineModel, StockItemModel

__all__ = [
    "AppConfigModel",
    "IssueLineModel",
    "NotificationModel",
    "ReceiveLineModel",
    "RequestLineModel",
    "RRPLineModel",
    "StockItemModel",
    "UserModel",
]
