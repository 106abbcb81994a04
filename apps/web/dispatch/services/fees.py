"""Processor fee reconciliation from the commerce platform's transactions."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from dispatch_schemas import FeeBreakdown
from pydantic import ValidationError

from apps.web.dispatch.clients.base import CommerceClient
from apps.web.dispatch.exceptions import (
    CommerceAPIError,
    ConfigurationError,
    UpstreamDegradedError,
)

logger = logging.getLogger(__name__)


def _amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value not in (None, "") else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def _shop_money(money_set: dict[str, Any] | None) -> Decimal:
    return _amount(((money_set or {}).get("shopMoney") or {}).get("amount"))


class FeeReconciler:
    """Determines the exact processor fee taken on an order."""

    def __init__(self, commerce_client: CommerceClient) -> None:
        self._commerce = commerce_client

    async def reconcile(self, order_id: int | str) -> FeeBreakdown:
        """
        Find the successful sale transaction and sum its fees.

        Raises:
            UpstreamDegradedError: If the transaction query fails; callers
                substitute a zero-fee estimate.
        """
        try:
            order = await self._commerce.get_order_transactions(order_id)
        except (CommerceAPIError, ConfigurationError) as e:
            raise UpstreamDegradedError(
                f"Fee lookup failed: {e}", order_id=order_id
            ) from e

        sale = next(
            (
                t
                for t in order.get("transactions") or []
                if t.get("kind") == "SALE" and t.get("status") == "SUCCESS"
            ),
            None,
        )

        if sale is None:
            total = _shop_money(order.get("totalPriceSet"))
            logger.warning(
                "No successful sale transaction for order %s, assuming zero fee",
                order_id,
            )
            return FeeBreakdown.zero_fee(total)

        fee = sum(
            (_amount((f.get("amount") or {}).get("amount")) for f in sale.get("fees") or []),
            Decimal("0"),
        )
        try:
            breakdown = FeeBreakdown(
                gross=_shop_money(sale.get("amountSet")),
                fee=fee,
                transaction_id=sale.get("id"),
            )
        except ValidationError as e:
            raise UpstreamDegradedError(
                f"Inconsistent fees on transaction {sale.get('id')}: {e}", order_id=order_id
            ) from e

        logger.info(
            "Order %s fees: gross=%s fee=%s net=%s",
            order_id,
            breakdown.gross,
            breakdown.fee,
            breakdown.net,
        )
        return breakdown
