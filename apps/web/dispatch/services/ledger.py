"""
Audit ledger - the durable record of every dispatch attempt.

A success record lives under the deterministic key ``SHOPIFY#<order id>``,
so rewriting it replaces rather than duplicates. Failure records are keyed
by epoch millis and accumulate until cleanup removes them.

The derivations here (delivery type, subtotal, local business date) are
shared with the healing service so both paths compute fields identically.
"""

import logging
import traceback
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from dispatch_schemas import (
    AuditLineItem,
    DeliveryResult,
    DeliveryType,
    DispatchAuditRecord,
    DispatchStatus,
    FeeBreakdown,
    LineItem,
    LocationConfig,
    OrderEvent,
    POSResult,
    ShippingLine,
    error_sk,
    order_pk,
    success_sk,
)

from apps.web.dispatch.store import AuditStore

logger = logging.getLogger(__name__)

LOCAL_DELIVERY_SOURCE = "shopify-local-delivery"
LOCAL_DELIVERY_MARKERS = ("local", "delivery")


def utc_now() -> datetime:
    return datetime.now(UTC)


def isoformat(instant: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return instant.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# Derivations
# =============================================================================


def classify_delivery(shipping_line: ShippingLine | None) -> DeliveryType:
    """Local delivery vs. carrier shipping, from the checkout shipping line."""
    if shipping_line is None:
        return DeliveryType.SHIPPING
    method = shipping_line.method.lower()
    if any(marker in method for marker in LOCAL_DELIVERY_MARKERS):
        return DeliveryType.LOCAL
    if shipping_line.source == LOCAL_DELIVERY_SOURCE:
        return DeliveryType.LOCAL
    return DeliveryType.SHIPPING


def compute_subtotal(line_items: list[LineItem]) -> Decimal:
    return sum((item.price * item.quantity for item in line_items), Decimal("0"))


def shipping_price(order: OrderEvent) -> Decimal:
    return order.shipping_line.price if order.shipping_line else Decimal("0")


def visible_line_items(line_items: list[LineItem]) -> list[AuditLineItem]:
    """Line items as stored, with internal option properties dropped."""
    return [
        AuditLineItem(
            name=item.name,
            quantity=item.quantity,
            price=item.price,
            variant=item.variant_title,
            properties=[
                {"name": p.name, "value": p.value}
                for p in item.properties
                if p.name and not p.is_internal
            ],
        )
        for item in line_items
    ]


def local_business_date(instant: datetime, timezone: str) -> str:
    """
    Calendar day (``YYYY-MM-DD``) of an instant in the location's timezone.

    Late-evening orders must land on the store's own business day, not the
    UTC day.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(ZoneInfo(timezone)).date().isoformat()


def grouping_key(pos_location_id: str | None, date: str) -> str | None:
    """``<POS location id>#<date>`` key for per-location daily reports."""
    if not pos_location_id:
        return None
    return f"{pos_location_id}#{date}"


def order_fields(order: OrderEvent) -> dict[str, Any]:
    """
    Record fields derived purely from the commerce order.

    Keys are model field names, so the dict feeds both record construction
    and (via the storage aliases) in-place healing updates.
    """
    return {
        "order_number": order.order_number,
        "order_name": order.name,
        "customer_name": order.customer_name,
        "customer_email": order.email,
        "customer_phone": order.customer_phone,
        "shipping_address": (
            order.shipping_address.model_dump(exclude_none=True)
            if order.shipping_address
            else None
        ),
        "shipping_method": order.shipping_line.method if order.shipping_line else "",
        "delivery_type": classify_delivery(order.shipping_line),
        "subtotal_price": compute_subtotal(order.line_items),
        "shipping_price": shipping_price(order),
        "total_price": order.total_price,
        "currency": order.currency,
        "line_items": visible_line_items(order.line_items),
    }


# =============================================================================
# Ledger
# =============================================================================


class AuditLedger:
    """Appends dispatch outcomes to the audit store."""

    def __init__(self, store: AuditStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    def build_dispatch_record(
        self,
        order: OrderEvent,
        location: LocationConfig,
        fees: FeeBreakdown,
        pos_result: POSResult,
        delivery_result: DeliveryResult | None,
        status: DispatchStatus,
    ) -> DispatchAuditRecord:
        now = self._clock()
        created_at = isoformat(now)
        date = local_business_date(now, location.timezone)

        return DispatchAuditRecord(
            pk=order_pk(order.id),
            sk=success_sk(order.id),
            order_id=str(order.id),
            pos_order_id=pos_result.pos_order_id,
            payment_id=pos_result.payment_id,
            delivery_order_id=delivery_result.delivery_order_id if delivery_result else None,
            location_name=location.name,
            fulfillment_location_id=location.fulfillment_location_id,
            pos_location_id=location.pos_location_id,
            timezone=location.timezone,
            gross_amount=fees.gross,
            transaction_fee=fees.fee,
            net_amount=fees.net,
            transaction_id=fees.transaction_id,
            status=status,
            date=date,
            location_date=grouping_key(location.pos_location_id, date),
            created_at=created_at,
            updated_at=created_at,
            **order_fields(order),
        )

    def record_dispatch(
        self,
        order: OrderEvent,
        location: LocationConfig,
        fees: FeeBreakdown,
        pos_result: POSResult | None,
        delivery_result: DeliveryResult | None,
        status: DispatchStatus,
    ) -> DispatchAuditRecord | None:
        """
        Write the success record for an order.

        Returns:
            The stored record, or None when there is no POS order to record.
        """
        if pos_result is None or not pos_result.pos_order_id:
            logger.warning("No POS order for order %s, success record not written", order.id)
            return None

        record = self.build_dispatch_record(
            order, location, fees, pos_result, delivery_result, status
        )
        self._store.put(record)
        return record

    def record_failure(
        self,
        order_id: int | str,
        order_number: int | str | None,
        error: BaseException,
    ) -> DispatchAuditRecord:
        """Write an ``ERROR#`` record carrying the message and stack."""
        now = self._clock()
        record = DispatchAuditRecord(
            pk=order_pk(order_id),
            sk=error_sk(int(now.timestamp() * 1000)),
            order_id=str(order_id),
            order_number=order_number,
            error=str(error) or type(error).__name__,
            error_stack="".join(traceback.format_exception(error)),
            status=DispatchStatus.FAILED,
            created_at=isoformat(now),
        )
        self._store.put(record)
        return record
