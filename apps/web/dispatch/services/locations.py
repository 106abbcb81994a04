"""
Location resolution - which physical store fulfills an order.

The commerce platform assigns each order's fulfillment to a location; the
store's POS location id and delivery credential live in that location's
``dispatch`` metafields. Anything missing falls back to the default
location so the order still reaches a kitchen.
"""

import logging

from django.conf import settings

from dispatch_schemas import LocationConfig, OrderEvent

from apps.web.dispatch.clients.base import CommerceClient
from apps.web.dispatch.exceptions import CommerceAPIError, ConfigurationError
from apps.web.dispatch.runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)


def default_location_from_settings(config: RuntimeConfig | None = None) -> LocationConfig:
    """Build the fallback location from runtime config (or plain settings)."""

    def read(key: str) -> str | None:
        if config is not None:
            return config.get(key)
        return getattr(settings, key, None) or None

    return LocationConfig(
        fulfillment_location_id=read("DEFAULT_FULFILLMENT_LOCATION_ID"),
        pos_location_id=read("DEFAULT_POS_LOCATION_ID"),
        delivery_api_key=read("DEFAULT_DELIVERY_API_KEY"),
        name=read("DEFAULT_LOCATION_NAME") or "Default",
        timezone=read("DEFAULT_LOCATION_TIMEZONE") or "America/New_York",
        is_default=True,
    )


class LocationResolver:
    """Resolves the fulfillment location of an order. Never raises."""

    def __init__(self, commerce_client: CommerceClient, default_location: LocationConfig) -> None:
        self._commerce = commerce_client
        self._default = default_location

    def _fallback(self, location_name: str | None = None) -> LocationConfig:
        if location_name:
            return self._default.model_copy(update={"name": location_name})
        return self._default

    async def resolve(self, order: OrderEvent) -> LocationConfig:
        try:
            assignment = await self._commerce.get_fulfillment_assignment(order.id)
        except (CommerceAPIError, ConfigurationError) as e:
            logger.warning(
                "Fulfillment lookup failed for order %s, using default location: %s",
                order.id,
                e,
            )
            return self._fallback()

        if assignment is None:
            logger.warning(
                "Order %s has no fulfillment location, using default location",
                order.id,
            )
            return self._fallback()

        try:
            metafields = await self._commerce.get_location_metafields(assignment.location_id)
        except (CommerceAPIError, ConfigurationError) as e:
            logger.warning(
                "Metafield lookup failed for location %s, using default location: %s",
                assignment.location_id,
                e,
            )
            return self._fallback(assignment.location_name)

        location = LocationConfig(
            fulfillment_location_id=assignment.location_id,
            pos_location_id=metafields.get("pos_location_id"),
            delivery_api_key=metafields.get("delivery_api_key"),
            name=assignment.location_name,
            timezone=metafields.get("timezone") or self._default.timezone,
        )
        if not location.is_complete:
            logger.warning(
                "Location %s (%s) is missing POS or delivery config, using default location",
                assignment.location_id,
                assignment.location_name,
            )
            return self._fallback(assignment.location_name)

        logger.info(
            "Order %s assigned to %s (POS location %s)",
            order.id,
            location.name,
            location.pos_location_id,
        )
        return location
