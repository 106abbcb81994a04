"""Shopify Admin API client - orders, fulfillment locations and transactions."""

import base64
import hashlib
import hmac
import logging
from typing import Any

import httpx
from dispatch_schemas import FulfillmentAssignment, OrderEvent
from pydantic import ValidationError

from apps.web.dispatch.exceptions import CommerceAPIError, ConfigurationError

logger = logging.getLogger(__name__)

# Shopify Admin API version - update periodically
SHOPIFY_API_VERSION = "2024-01"

# Metafield namespace holding per-location dispatch settings
LOCATION_METAFIELD_NAMESPACE = "dispatch"

ORDER_TRANSACTIONS_QUERY = """
query OrderTransactions($id: ID!) {
  order(id: $id) {
    id
    name
    totalPriceSet { shopMoney { amount } }
    transactions {
      id
      kind
      status
      amountSet { shopMoney { amount } }
      fees { amount { amount } type }
    }
  }
}
"""


class ShopifyClient:
    """
    Shopify Admin API client implementing the CommerceClient protocol.

    REST is used for orders, fulfillment orders and location metafields;
    GraphQL for transactions, since processor fees are only exposed there.

    API Reference: https://shopify.dev/docs/api/admin-rest
    """

    def __init__(
        self,
        store_domain: str | None,
        access_token: str | None,
        http_client: httpx.AsyncClient | None = None,
        api_version: str = SHOPIFY_API_VERSION,
    ) -> None:
        """
        Initialize the Shopify client.

        Args:
            store_domain: Store domain, e.g. ``example.myshopify.com``.
            access_token: Admin API access token.
            http_client: Optional HTTP client for dependency injection (testing).
            api_version: Admin API version segment.
        """
        self._store_domain = store_domain
        self._access_token = access_token
        self._client = http_client or httpx.AsyncClient(timeout=None)
        self._owns_client = http_client is None
        self._base_url = f"https://{store_domain}/admin/api/{api_version}"

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if not self._store_domain or not self._access_token:
            raise ConfigurationError("Shopify credentials not configured")

        headers = {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
            **kwargs.pop("headers", {}),
        }
        try:
            response = await self._client.request(
                method, f"{self._base_url}/{path}", headers=headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CommerceAPIError(
                f"Shopify request {method} {path} failed: {e.response.status_code}",
                status_code=e.response.status_code,
                response_body=e.response.text,
            ) from e
        except httpx.RequestError as e:
            raise CommerceAPIError(
                f"Shopify request {method} {path} failed: {e}"
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise CommerceAPIError(
                f"Shopify request {method} {path} returned unreadable body",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        if not isinstance(data, dict):
            raise CommerceAPIError(
                f"Shopify request {method} {path} returned {type(data).__name__}, expected object",
                status_code=response.status_code,
                response_body=response.text,
            )
        return data

    # =========================================================================
    # Orders
    # =========================================================================

    async def get_order(self, order_id: int | str) -> OrderEvent:
        data = await self._request("GET", f"orders/{order_id}.json")
        order = data.get("order")
        if not order:
            raise CommerceAPIError(f"Order {order_id} not found in Shopify")

        try:
            return OrderEvent.model_validate(order)
        except ValidationError as e:
            raise CommerceAPIError(
                f"Shopify returned an unreadable order {order_id}: {e}"
            ) from e

    async def get_fulfillment_assignment(
        self, order_id: int | str
    ) -> FulfillmentAssignment | None:
        data = await self._request(
            "GET", f"orders/{order_id}/fulfillment_orders.json"
        )
        fulfillment_orders = data.get("fulfillment_orders") or []
        if not fulfillment_orders:
            return None

        first = fulfillment_orders[0]
        location_id = first.get("assigned_location_id")
        if location_id is None:
            return None

        assigned_location = first.get("assigned_location") or {}
        return FulfillmentAssignment(
            location_id=str(location_id),
            location_name=assigned_location.get("name"),
        )

    async def get_location_metafields(self, location_id: str) -> dict[str, str]:
        data = await self._request(
            "GET",
            f"locations/{location_id}/metafields.json",
            params={"namespace": LOCATION_METAFIELD_NAMESPACE},
        )
        return {
            field["key"]: str(field["value"])
            for field in data.get("metafields", [])
            if field.get("namespace") == LOCATION_METAFIELD_NAMESPACE
            and field.get("key")
            and field.get("value") not in (None, "")
        }

    async def get_order_transactions(self, order_id: int | str) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "graphql.json",
            json={
                "query": ORDER_TRANSACTIONS_QUERY,
                "variables": {"id": f"gid://shopify/Order/{order_id}"},
            },
        )

        if data.get("errors"):
            raise CommerceAPIError(f"Shopify GraphQL errors: {data['errors']}")

        order: dict[str, Any] | None = (data.get("data") or {}).get("order")
        if not order:
            raise CommerceAPIError(f"Order {order_id} not found in Shopify")
        return order

    # =========================================================================
    # Webhook Handling
    # =========================================================================

    @staticmethod
    def verify_webhook_signature(
        payload: bytes, signature: str | None, secret: str | None
    ) -> bool:
        """
        Verify a Shopify webhook signature.

        Shopify signs the raw body with HMAC-SHA256 and sends the base64
        digest in ``X-Shopify-Hmac-Sha256``.

        Args:
            payload: Raw webhook body.
            signature: Value of the signature header.
            secret: Webhook secret from the Shopify admin.

        Returns:
            True if the signature is valid or no secret is configured.
        """
        if not secret:
            logger.warning(
                "SHOPIFY_WEBHOOK_SECRET not configured - skipping HMAC verification"
            )
            return True

        if not signature:
            return False

        expected = base64.b64encode(
            hmac.new(secret.encode(), payload, hashlib.sha256).digest()
        ).decode()
        return hmac.compare_digest(signature, expected)
