"""Client protocols - the narrow interfaces the pipeline needs from each service."""

from typing import Any, Protocol, runtime_checkable

from dispatch_schemas import (
    DeliveryOrder,
    FulfillmentAssignment,
    OrderEvent,
    POSOrderRequest,
    POSOrderSnapshot,
    POSPaymentRequest,
)


@runtime_checkable
class CommerceClient(Protocol):
    """
    Read access to the commerce platform (Shopify).

    Methods are async to support non-blocking I/O with external APIs.
    """

    async def get_order(self, order_id: int | str) -> OrderEvent:
        """
        Fetch an order by id.

        Raises:
            CommerceAPIError: If the order cannot be fetched.
        """
        ...

    async def get_fulfillment_assignment(
        self, order_id: int | str
    ) -> FulfillmentAssignment | None:
        """
        Get the location the order's first fulfillment order is assigned to.

        Returns:
            The assignment, or None if the order has no fulfillment orders.

        Raises:
            CommerceAPIError: If the API request fails.
        """
        ...

    async def get_location_metafields(self, location_id: str) -> dict[str, str]:
        """
        Get dispatch metadata stored on a location.

        Returns:
            Mapping of metafield key to value within the dispatch namespace.

        Raises:
            CommerceAPIError: If the API request fails.
        """
        ...

    async def get_order_transactions(self, order_id: int | str) -> dict[str, Any]:
        """
        Get an order's total and transactions, including processor fees.

        Returns:
            The GraphQL ``order`` node.

        Raises:
            CommerceAPIError: If the query fails or the order is not found.
        """
        ...


@runtime_checkable
class POSClient(Protocol):
    """Write access to the POS system (Square)."""

    async def create_order(
        self, request: POSOrderRequest, idempotency_key: str
    ) -> POSOrderSnapshot:
        """
        Create an order.

        Raises:
            POSAPIError: If the API request fails.
        """
        ...

    async def update_fulfillment_state(
        self,
        order: POSOrderSnapshot,
        location_id: str,
        state: str,
        idempotency_key: str,
    ) -> POSOrderSnapshot:
        """
        Move the order's first fulfillment to a new state.

        Raises:
            POSAPIError: If the API request fails.
        """
        ...

    async def create_external_payment(
        self, request: POSPaymentRequest, idempotency_key: str
    ) -> str:
        """
        Record a payment taken outside the POS against an order.

        Returns:
            The POS payment id.

        Raises:
            POSAPIError: If the API request fails.
        """
        ...


@runtime_checkable
class DeliveryClient(Protocol):
    """Write access to the delivery-dispatch service (Shipday)."""

    async def create_order(
        self, order: DeliveryOrder, api_key: str
    ) -> dict[str, Any]:
        """
        Create a delivery job.

        Raises:
            DeliveryAPIError: If the API request fails.
        """
        ...
