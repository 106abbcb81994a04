"""
POS order submission - mirrors a commerce order into Square.

Handles:
1. Converting the commerce order to a Square order (pickup fulfillment)
2. Moving the fulfillment to RESERVED so it shows on the kitchen display
3. Recording an external payment for the POS order's own total
4. Idempotency keys so event re-delivery never duplicates POS writes
"""

import json
import logging
import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dispatch_schemas import (
    FeeBreakdown,
    FulfillmentState,
    LineItem,
    LocationConfig,
    Money,
    OrderEvent,
    POSFulfillment,
    POSOrderLineItem,
    POSOrderModifier,
    POSOrderRequest,
    POSPaymentRequest,
    POSPickupDetails,
    POSPickupRecipient,
    POSResult,
)

from apps.web.dispatch.clients.base import POSClient
from apps.web.dispatch.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Line item property carrying the storefront's Square catalog selection
CATALOG_PROPERTY = "_square_catalog"

DEFAULT_PAYMENT_WINDOW_SECONDS = 600


def to_minor_units(amount: Decimal | float | str | None) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    try:
        value = Decimal(str(amount)) if amount not in (None, "") else Decimal("0")
    except InvalidOperation:
        value = Decimal("0")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def order_idempotency_key(order_id: int | str) -> str:
    return f"order-{order_id}"


def fulfillment_idempotency_key(order_id: int | str) -> str:
    return f"update-{order_id}"


def payment_idempotency_key(order_id: int | str, now: float, window_seconds: int) -> str:
    """Key stable within one time window, so retries dedupe but later re-runs don't."""
    return f"pay-{order_id}-{int(now // window_seconds)}"


def parse_catalog_modifiers(item: LineItem, currency: str) -> list[POSOrderModifier]:
    """Read Square modifiers from the line item's catalog property, if any."""
    prop = item.get_property(CATALOG_PROPERTY)
    if prop is None or not prop.value:
        return []

    try:
        data = json.loads(prop.value) if isinstance(prop.value, str) else prop.value
        modifiers = data.get("modifiers") or []
        return [
            POSOrderModifier(
                catalog_object_id=mod.get("modifierId"),
                name=mod.get("modifierName"),
                base_price_money=Money(
                    amount=to_minor_units(mod.get("price")), currency=currency
                ),
            )
            for mod in modifiers
        ]
    except (ValueError, TypeError, AttributeError) as e:
        logger.error("Failed to parse %s on %r: %s", CATALOG_PROPERTY, item.name, e)
        return []


def build_pos_line_items(order: OrderEvent) -> list[POSOrderLineItem]:
    line_items: list[POSOrderLineItem] = []
    for item in order.line_items:
        note = "\n".join(f"{p.name}: {p.value}" for p in item.visible_properties)
        line_items.append(
            POSOrderLineItem(
                name=item.name,
                quantity=str(item.quantity),
                base_price_money=Money(
                    amount=to_minor_units(item.price), currency=order.currency
                ),
                modifiers=parse_catalog_modifiers(item, order.currency),
                note=note or None,
            )
        )

    shipping = order.shipping_line
    if shipping is not None:
        line_items.append(
            POSOrderLineItem(
                name=f"Delivery: {shipping.title or shipping.method}",
                quantity="1",
                base_price_money=Money(
                    amount=to_minor_units(shipping.price), currency=order.currency
                ),
            )
        )
    return line_items


def build_pos_order(order: OrderEvent, location: LocationConfig) -> POSOrderRequest:
    """
    Convert a commerce order into a Square order request.

    The order is created as an ASAP pickup: the delivery driver collects it
    from the counter, so the kitchen ticket carries the delivery address.
    """
    if not location.pos_location_id:
        raise ConfigurationError(
            f"No POS location configured for {location.name or 'location'}",
            order_id=order.id,
        )

    address = order.shipping_address
    first_name = order.customer_first_name or "Customer"
    note = (
        f"Shopify #{order.display_number} - DELIVERY to "
        f"{(address.address1 if address else None) or 'address'}\n\n"
        "Tap 'Dispatch' on Shipday App when order is made"
    )

    return POSOrderRequest(
        location_id=location.pos_location_id,
        reference_id=order.display_number,
        ticket_name=f"#{order.display_number} {first_name}",
        line_items=build_pos_line_items(order),
        fulfillments=[
            POSFulfillment(
                state=FulfillmentState.PROPOSED,
                pickup_details=POSPickupDetails(
                    recipient=POSPickupRecipient(
                        display_name=order.customer_name or "Customer",
                        phone_number=order.customer_phone or "",
                    ),
                    note=note,
                ),
            )
        ],
    )


def payment_source(order: OrderEvent, fees: FeeBreakdown) -> str:
    return (
        f"Shopify #{order.display_number} "
        f"(Gross: ${fees.gross:.2f}, Fee: ${fees.fee:.2f}, Net: ${fees.net:.2f})"
    )


class POSSubmitter:
    """Creates the POS order and its matching external payment."""

    def __init__(
        self,
        pos_client: POSClient,
        payment_window_seconds: int = DEFAULT_PAYMENT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._pos = pos_client
        self._window = payment_window_seconds
        self._clock = clock

    async def submit(
        self, order: OrderEvent, location: LocationConfig, fees: FeeBreakdown
    ) -> POSResult:
        """
        Create, reserve and pay a POS order for a commerce order.

        Raises:
            ConfigurationError: If the location has no POS location id.
            POSAPIError: If any POS call fails.
        """
        request = build_pos_order(order, location)
        pos_location_id = request.location_id

        created = await self._pos.create_order(request, order_idempotency_key(order.id))
        logger.info("Order %s (#%s): posCreated (%s)", order.id, order.display_number, created.id)

        reserved = await self._pos.update_fulfillment_state(
            created,
            pos_location_id,
            FulfillmentState.RESERVED.value,
            fulfillment_idempotency_key(order.id),
        )

        # Pay exactly what the POS computed, or the order stays open
        payment_id = await self._pos.create_external_payment(
            POSPaymentRequest(
                order_id=created.id,
                location_id=pos_location_id,
                amount_money=reserved.total_money,
                source=payment_source(order, fees),
            ),
            payment_idempotency_key(order.id, self._clock(), self._window),
        )

        return POSResult(
            pos_order_id=created.id,
            payment_id=payment_id,
            total=reserved.total_money.amount,
            currency=reserved.total_money.currency,
        )

