"""Delivery submission - creates the driver job in Shipday."""

import logging

from dispatch_schemas import (
    DeliveryOrder,
    DeliveryOrderItem,
    DeliveryResult,
    LineItem,
    LocationConfig,
    OrderEvent,
)

from apps.web.dispatch.clients.base import DeliveryClient
from apps.web.dispatch.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def item_detail(item: LineItem) -> str:
    """Variant title plus visible options, e.g. ``Large | Sauce: Hot``."""
    parts = [item.variant_title] if item.variant_title else []
    parts.extend(f"{p.name}: {p.value}" for p in item.visible_properties)
    return " | ".join(parts)


def build_delivery_order(order: OrderEvent, pos_order_id: str) -> DeliveryOrder:
    shipping = order.shipping_line
    return DeliveryOrder(
        order_number=order.display_number,
        customer_name=order.customer_name or "Customer",
        customer_address=order.shipping_address.one_line if order.shipping_address else "",
        customer_email=order.email or "",
        customer_phone_number=order.customer_phone or "",
        order_item=[
            DeliveryOrderItem(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.price,
                detail=item_detail(item),
            )
            for item in order.line_items
        ],
        delivery_instruction=order.note or "",
        additional_id=pos_order_id,
        total_order_cost=order.total_price,
        delivery_fee=shipping.price if shipping else 0,
    )


class DeliverySubmitter:
    """Creates a delivery job cross-referenced to the POS order."""

    def __init__(self, delivery_client: DeliveryClient) -> None:
        self._delivery = delivery_client

    async def submit(
        self, order: OrderEvent, location: LocationConfig, pos_order_id: str
    ) -> DeliveryResult:
        """
        Raises:
            ConfigurationError: If the location has no delivery credential.
            DeliveryAPIError: If the delivery service rejects the job.
        """
        if not location.delivery_api_key:
            raise ConfigurationError(
                f"No delivery API key configured for {location.name or 'location'}",
                order_id=order.id,
            )

        data = await self._delivery.create_order(
            build_delivery_order(order, pos_order_id), location.delivery_api_key
        )
        delivery_order_id = data.get("orderId")
        return DeliveryResult(
            delivery_order_id=str(delivery_order_id) if delivery_order_id is not None else None,
            raw=data,
        )
