"""Outbound clients - commerce platform, POS and delivery-dispatch services."""

from apps.web.dispatch.clients.base import CommerceClient, DeliveryClient, POSClient
from apps.web.dispatch.clients.shipday import ShipdayClient
from apps.web.dispatch.clients.shopify import ShopifyClient
from apps.web.dispatch.clients.square import SquareClient

__all__ = [
    "CommerceClient",
    "DeliveryClient",
    "POSClient",
    "ShipdayClient",
    "ShopifyClient",
    "SquareClient",
]
