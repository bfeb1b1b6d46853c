"""
Kernel services: the only writers of procurement state.

Each service flushes inside the caller's session and never commits.
``procurement_services.approval_workflow`` owns the transaction boundary.
"""

from procurement_kernel.services.base import BaseService
from procurement_kernel.services.config_service import AppConfigStore
from procurement_kernel.services.notification_service import (
    NotificationSink,
    RejectionEffects,
    SqlNotificationSink,
    SqlUserDirectory,
    UserDirectory,
)
from procurement_kernel.services.receive_service import ReceiveService
from procurement_kernel.services.request_service import RequestService
from procurement_kernel.services.rrp_service import RRPService
from procurement_kernel.services.stock_service import StockService

__all__ = [
    "AppConfigStore",
    "BaseService",
    "NotificationSink",
    "RRPService",
    "ReceiveService",
    "RejectionEffects",
    "RequestService",
    "SqlNotificationSink",
    "SqlUserDirectory",
    "StockService",
    "UserDirectory",
]
