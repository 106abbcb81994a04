"""Square POS client - order creation, fulfillment updates and external payments."""

import logging
from typing import Any

import httpx
from dispatch_schemas import (
    Money,
    POSOrderRequest,
    POSOrderSnapshot,
    POSPaymentRequest,
)

from apps.web.dispatch.exceptions import (
    ConfigurationError,
    POSAPIError,
    POSAuthError,
    POSRateLimitError,
)

logger = logging.getLogger(__name__)

# Square API version - update periodically
SQUARE_API_VERSION = "2024-01-18"


class SquareClient:
    """
    Square client implementing the POSClient protocol.

    Every write carries a caller-supplied idempotency key; Square returns the
    original result when a key is replayed, so callers may resubmit safely.

    API Reference: https://developer.squareup.com/reference/square
    """

    SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
    PROD_BASE_URL = "https://connect.squareup.com"

    def __init__(
        self,
        access_token: str | None,
        http_client: httpx.AsyncClient | None = None,
        sandbox: bool = False,
    ) -> None:
        """
        Initialize the Square client.

        Args:
            access_token: Square access token.
            http_client: Optional HTTP client for dependency injection (testing).
            sandbox: If True, use Square sandbox environment.
        """
        self._access_token = access_token
        self._client = http_client or httpx.AsyncClient(timeout=None)
        self._owns_client = http_client is None
        self._base_url = self.SANDBOX_BASE_URL if sandbox else self.PROD_BASE_URL

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """
        Make a single Square API request.

        Raises:
            ConfigurationError: If no access token is configured.
            POSAuthError: If the token is rejected.
            POSRateLimitError: If rate limit exceeded.
            POSAPIError: For any other failure.
        """
        if not self._access_token:
            raise ConfigurationError("SQUARE_ACCESS_TOKEN not configured")

        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Square-Version": SQUARE_API_VERSION,
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.request(
                method, f"{self._base_url}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise POSAPIError(f"Square request {method} {path} failed: {e}") from e

        if response.status_code == 401:
            raise POSAuthError(
                "Square session expired or invalid",
                status_code=401,
                response_body=response.text,
            )

        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", "60"))
            raise POSRateLimitError(
                "Square rate limit exceeded",
                response_body=response.text,
                retry_after=retry_after,
            )

        if response.is_error:
            raise POSAPIError(
                f"Square request {method} {path} failed: {response.status_code} "
                f"{_error_detail(response)}",
                status_code=response.status_code,
                response_body=response.text,
            )

        data: dict[str, Any] = response.json()
        return data

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def create_order(
        self, request: POSOrderRequest, idempotency_key: str
    ) -> POSOrderSnapshot:
        body = {
            "order": _order_body(request),
            "idempotency_key": idempotency_key,
        }
        data = await self._request("POST", "/v2/orders", json=body)
        snapshot = _parse_order(data)
        logger.info(
            "Square order %s created (key=%s)", snapshot.id, idempotency_key
        )
        return snapshot

    async def update_fulfillment_state(
        self,
        order: POSOrderSnapshot,
        location_id: str,
        state: str,
        idempotency_key: str,
    ) -> POSOrderSnapshot:
        if not order.fulfillment_uids:
            raise POSAPIError(f"Square order {order.id} has no fulfillments")

        body = {
            "order": {
                "location_id": location_id,
                "version": order.version,
                "fulfillments": [{"uid": order.fulfillment_uids[0], "state": state}],
            },
            "idempotency_key": idempotency_key,
        }
        data = await self._request("PUT", f"/v2/orders/{order.id}", json=body)
        snapshot = _parse_order(data)
        logger.info("Square order %s fulfillment moved to %s", order.id, state)
        return snapshot

    # =========================================================================
    # Payment Operations
    # =========================================================================

    async def create_external_payment(
        self, request: POSPaymentRequest, idempotency_key: str
    ) -> str:
        body = {
            "source_id": "EXTERNAL",
            "idempotency_key": idempotency_key,
            "amount_money": request.amount_money.model_dump(),
            "order_id": request.order_id,
            "location_id": request.location_id,
            "external_details": {"type": "OTHER", "source": request.source},
        }
        data = await self._request("POST", "/v2/payments", json=body)

        payment_id = (data.get("payment") or {}).get("id")
        if not payment_id:
            raise POSAPIError("No payment id in Square response")

        logger.info(
            "Square payment %s recorded for order %s (%d %s)",
            payment_id,
            request.order_id,
            request.amount_money.amount,
            request.amount_money.currency,
        )
        return str(payment_id)


# =============================================================================
# Parsing Helpers
# =============================================================================


def _order_body(request: POSOrderRequest) -> dict[str, Any]:
    """Serialize an order request, dropping empty modifier lists and notes."""
    body = request.model_dump(mode="json", exclude_none=True)
    for line_item in body["line_items"]:
        if not line_item.get("modifiers"):
            line_item.pop("modifiers", None)
    return body


def _parse_order(data: dict[str, Any]) -> POSOrderSnapshot:
    order = data.get("order")
    if not order or not order.get("id"):
        raise POSAPIError("No order in Square response")

    total_money = order.get("total_money") or {}
    return POSOrderSnapshot(
        id=order["id"],
        version=order.get("version"),
        fulfillment_uids=[
            f["uid"] for f in order.get("fulfillments", []) if f.get("uid")
        ],
        total_money=Money(
            amount=int(total_money.get("amount", 0)),
            currency=total_money.get("currency", "USD"),
        ),
    )


def _error_detail(response: httpx.Response) -> str:
    """Extract Square's error details for logging and error messages."""
    try:
        errors = response.json().get("errors", [])
    except ValueError:
        return response.text
    return "; ".join(
        f"{e.get('code', '')}: {e.get('detail', '')}" for e in errors
    )
