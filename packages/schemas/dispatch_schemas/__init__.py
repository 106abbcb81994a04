"""Dispatch Schemas - Pydantic models for data contracts."""

from dispatch_schemas.delivery import DeliveryOrder, DeliveryOrderItem
from dispatch_schemas.dispatch import (
    AuditLineItem,
    DeliveryResult,
    DeliveryType,
    DispatchAuditRecord,
    DispatchOutcome,
    DispatchStatus,
    FeeBreakdown,
    LocationConfig,
    POSResult,
    RecordType,
    error_sk,
    order_pk,
    record_type_for,
    success_sk,
)
from dispatch_schemas.orders import (
    FulfillmentAssignment,
    LineItem,
    LineItemProperty,
    OrderEvent,
    ShippingAddress,
    ShippingLine,
)
from dispatch_schemas.pos import (
    FulfillmentState,
    Money,
    POSFulfillment,
    POSOrderLineItem,
    POSOrderModifier,
    POSOrderRequest,
    POSOrderSnapshot,
    POSPaymentRequest,
    POSPickupDetails,
    POSPickupRecipient,
)

__all__ = [
    # Orders
    "FulfillmentAssignment",
    "LineItem",
    "LineItemProperty",
    "OrderEvent",
    "ShippingAddress",
    "ShippingLine",
    # Dispatch
    "AuditLineItem",
    "DeliveryResult",
    "DeliveryType",
    "DispatchAuditRecord",
    "DispatchOutcome",
    "DispatchStatus",
    "FeeBreakdown",
    "LocationConfig",
    "POSResult",
    "RecordType",
    "error_sk",
    "order_pk",
    "record_type_for",
    "success_sk",
    # POS
    "FulfillmentState",
    "Money",
    "POSFulfillment",
    "POSOrderLineItem",
    "POSOrderModifier",
    "POSOrderRequest",
    "POSOrderSnapshot",
    "POSPaymentRequest",
    "POSPickupDetails",
    "POSPickupRecipient",
    # Delivery
    "DeliveryOrder",
    "DeliveryOrderItem",
]
