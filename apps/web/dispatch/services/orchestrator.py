"""
Dispatch orchestrator - takes one commerce order through the pipeline.

received -> locationResolved -> feeResolved -> posCreated -> posPaid
-> (deliveryCreated | deliverySkipped) -> audited

Everything before the POS payment is all-or-nothing: a failure there writes
a failure record and aborts. After the payment the order is real money in
the POS, so a delivery failure only downgrades the status to POS_ONLY.
"""

import asyncio
import logging
from typing import Any

from django.conf import settings

import httpx
from dispatch_schemas import (
    DeliveryResult,
    DispatchOutcome,
    DispatchStatus,
    FeeBreakdown,
    OrderEvent,
)

from apps.web.dispatch.clients import ShipdayClient, ShopifyClient, SquareClient
from apps.web.dispatch.exceptions import FatalDispatchError, UpstreamDegradedError
from apps.web.dispatch.runtime_config import RuntimeConfig, get_runtime_config
from apps.web.dispatch.services.delivery_submission import DeliverySubmitter
from apps.web.dispatch.services.fees import FeeReconciler
from apps.web.dispatch.services.ledger import AuditLedger
from apps.web.dispatch.services.locations import (
    LocationResolver,
    default_location_from_settings,
)
from apps.web.dispatch.services.pos_submission import POSSubmitter
from apps.web.dispatch.services.validation import parse_order_event, validate_order_event
from apps.web.dispatch.store import AuditStore, get_table

logger = logging.getLogger(__name__)


class DispatchOrchestrator:
    """Runs one order through location, fees, POS, delivery and the audit ledger."""

    def __init__(
        self,
        resolver: LocationResolver,
        fee_reconciler: FeeReconciler,
        pos_submitter: POSSubmitter,
        delivery_submitter: DeliverySubmitter,
        ledger: AuditLedger,
    ) -> None:
        self._resolver = resolver
        self._fees = fee_reconciler
        self._pos = pos_submitter
        self._delivery = delivery_submitter
        self._ledger = ledger

    def _transition(self, order: OrderEvent, state: str) -> None:
        logger.info("Order %s (#%s): %s", order.id, order.display_number, state)

    def _fail(self, order: OrderEvent, error: Exception, stage: str) -> FatalDispatchError:
        logger.exception("Order %s failed during %s: %s", order.id, stage, error)
        try:
            self._ledger.record_failure(order.id, order.order_number, error)
        except Exception:
            logger.exception("Failed to write failure record for order %s", order.id)

        causes = [e for e in (error, error.__cause__) if e is not None]
        return FatalDispatchError(
            str(error) or type(error).__name__,
            order_id=order.id,
            details="; ".join(f"{type(e).__name__}: {e}" for e in causes),
        )

    async def dispatch(self, raw: Any) -> DispatchOutcome:
        """
        Dispatch one order event.

        Raises:
            OrderValidationError: If the event has no usable order (no record).
            FatalDispatchError: If the order could not be paid in the POS or
                its success record could not be written.
        """
        order = parse_order_event(validate_order_event(raw))
        self._transition(order, "received")

        try:
            location = await self._resolver.resolve(order)
            self._transition(order, f"locationResolved ({location.name})")

            try:
                fees = await self._fees.reconcile(order.id)
            except UpstreamDegradedError as e:
                logger.warning(
                    "Order %s: %s - using order total with zero fee", order.id, e
                )
                fees = FeeBreakdown.zero_fee(order.total_price)
            self._transition(order, "feeResolved")

            pos_result = await self._pos.submit(order, location, fees)
            self._transition(order, f"posPaid ({pos_result.pos_order_id})")
        except Exception as e:
            raise self._fail(order, e, "POS submission") from e

        delivery_result: DeliveryResult | None
        try:
            delivery_result = await self._delivery.submit(
                order, location, pos_result.pos_order_id
            )
            status = DispatchStatus.DISPATCHED
            self._transition(order, f"deliveryCreated ({delivery_result.delivery_order_id})")
        except Exception as e:
            logger.exception(
                "Order %s: delivery submission failed, POS order %s stands: %s",
                order.id,
                pos_result.pos_order_id,
                e,
            )
            delivery_result = None
            status = DispatchStatus.POS_ONLY
            self._transition(order, "deliverySkipped")

        try:
            self._ledger.record_dispatch(
                order, location, fees, pos_result, delivery_result, status
            )
        except Exception as e:
            raise self._fail(order, e, "audit write") from e
        self._transition(order, f"audited ({status.value})")

        return DispatchOutcome(
            order_id=order.id,
            order_number=order.display_number,
            pos_order_id=pos_result.pos_order_id,
            payment_id=pos_result.payment_id,
            delivery_order_id=delivery_result.delivery_order_id if delivery_result else None,
            location=location.name,
            status=status,
            fees=fees,
        )


def build_orchestrator(
    http_client: httpx.AsyncClient,
    config: RuntimeConfig | None = None,
    store: AuditStore | None = None,
) -> DispatchOrchestrator:
    """Wire the pipeline from runtime configuration."""
    config = config or get_runtime_config()
    shopify = ShopifyClient(
        config.get("SHOPIFY_STORE_DOMAIN"),
        config.get("SHOPIFY_ACCESS_TOKEN"),
        http_client=http_client,
    )
    square = SquareClient(
        config.get("SQUARE_ACCESS_TOKEN"),
        http_client=http_client,
        sandbox=settings.SQUARE_SANDBOX,
    )
    store = store or AuditStore(get_table(config.get("DISPATCH_ORDERS_TABLE")))

    return DispatchOrchestrator(
        resolver=LocationResolver(shopify, default_location_from_settings(config)),
        fee_reconciler=FeeReconciler(shopify),
        pos_submitter=POSSubmitter(
            square,
            payment_window_seconds=int(
                config.get("PAYMENT_IDEMPOTENCY_WINDOW_SECONDS", 600)
            ),
        ),
        delivery_submitter=DeliverySubmitter(ShipdayClient(http_client=http_client)),
        ledger=AuditLedger(store),
    )


async def _dispatch_async(raw: Any) -> DispatchOutcome:
    async with httpx.AsyncClient(timeout=None) as http_client:
        return await build_orchestrator(http_client).dispatch(raw)


def dispatch_order(raw: Any) -> DispatchOutcome:
    """Synchronous entry point for views and commands."""
    return asyncio.run(_dispatch_async(raw))
