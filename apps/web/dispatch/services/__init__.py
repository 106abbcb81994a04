"""Dispatch services - order pipeline stages, orchestration and healing."""

from apps.web.dispatch.services.delivery_submission import DeliverySubmitter
from apps.web.dispatch.services.fees import FeeReconciler
from apps.web.dispatch.services.healing import (
    CleanupReport,
    FixDatesReport,
    HealingService,
    HealReport,
    build_healing_service,
    heal_orders,
)
from apps.web.dispatch.services.ledger import (
    AuditLedger,
    classify_delivery,
    compute_subtotal,
    grouping_key,
    local_business_date,
    shipping_price,
    visible_line_items,
)
from apps.web.dispatch.services.locations import (
    LocationResolver,
    default_location_from_settings,
)
from apps.web.dispatch.services.orchestrator import (
    DispatchOrchestrator,
    build_orchestrator,
    dispatch_order,
)
from apps.web.dispatch.services.pos_submission import POSSubmitter
from apps.web.dispatch.services.validation import parse_order_event, validate_order_event

__all__ = [
    "AuditLedger",
    "CleanupReport",
    "DeliverySubmitter",
    "DispatchOrchestrator",
    "FeeReconciler",
    "FixDatesReport",
    "HealReport",
    "HealingService",
    "LocationResolver",
    "POSSubmitter",
    "build_healing_service",
    "build_orchestrator",
    "classify_delivery",
    "compute_subtotal",
    "default_location_from_settings",
    "dispatch_order",
    "grouping_key",
    "heal_orders",
    "local_business_date",
    "parse_order_event",
    "shipping_price",
    "validate_order_event",
    "visible_line_items",
]
