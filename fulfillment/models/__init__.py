"""Application models package."""

from fulfillment.models.audit_log import AuditLog
from fulfillment.models.branch import Branch, BusinessHours
from fulfillment.models.delivery import DeliveryWorker, WorkerStatus
from fulfillment.models.notification import BranchNotification
from fulfillment.models.order import DeliveryType, Order, OrderCancellation, OrderItem, OrderStatus, PaymentMethod
from fulfillment.models.user import User, UserRole

__all__ = [
    "AuditLog", "Branch", "BusinessHours", "BranchNotification", "DeliveryWorker", "WorkerStatus",
    "DeliveryType", "Order", "OrderCancellation", "OrderItem", "OrderStatus", "PaymentMethod", "User", "UserRole",
]
