"""Shipday client - delivery job creation."""

import logging
from typing import Any

import httpx
from dispatch_schemas import DeliveryOrder

from apps.web.dispatch.exceptions import DeliveryAPIError

logger = logging.getLogger(__name__)


class ShipdayClient:
    """
    Shipday client implementing the DeliveryClient protocol.

    Shipday has no idempotency key support: a retried submission creates a
    second delivery job.

    API Reference: https://docs.shipday.com/reference
    """

    BASE_URL = "https://api.shipday.com"

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._client = http_client or httpx.AsyncClient(timeout=None)
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def create_order(self, order: DeliveryOrder, api_key: str) -> dict[str, Any]:
        """
        Create a delivery job.

        Args:
            order: Delivery job details.
            api_key: Shipday API key of the dispatching location.

        Returns:
            Shipday response body (contains ``orderId``).

        Raises:
            DeliveryAPIError: If the request fails.
        """
        try:
            response = await self._client.post(
                f"{self.BASE_URL}/orders",
                headers={
                    "Authorization": f"Basic {api_key}",
                    "Content-Type": "application/json",
                },
                json=order.model_dump(by_alias=True, mode="json"),
            )
        except httpx.RequestError as e:
            raise DeliveryAPIError(f"Shipday request failed: {e}") from e

        if response.is_error:
            logger.error("Shipday error: %s", response.text)
            raise DeliveryAPIError(
                f"Shipday error: {response.status_code} - {response.text}",
                status_code=response.status_code,
                response_body=response.text,
            )

        data: dict[str, Any] = response.json()
        logger.info("Shipday order created: %s", data.get("orderId"))
        return data
