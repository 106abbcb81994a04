"""
Inbound order event validation.

Webhook bodies arrive either as a parsed object or as a JSON string, the
latter sometimes wrapped in a gateway envelope (``{"body": "<json>"}``).
"""

import json
import logging
from typing import Any

from dispatch_schemas import OrderEvent
from pydantic import ValidationError

from apps.web.dispatch.exceptions import OrderValidationError

logger = logging.getLogger(__name__)


def _decode(raw: Any) -> Any:
    if isinstance(raw, bytes | bytearray):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise OrderValidationError(f"Order body is not valid UTF-8: {e}") from e
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise OrderValidationError(f"Order body is not valid JSON: {e}") from e
    return raw


def validate_order_event(raw: Any) -> dict[str, Any]:
    """
    Check that an inbound event carries an order.

    Args:
        raw: Parsed dict, JSON string/bytes, or an envelope with a ``body`` key.

    Returns:
        The order payload, unchanged.

    Raises:
        OrderValidationError: If the body is unparseable, not an object, or
            has no order id.
    """
    payload = _decode(raw)

    if isinstance(payload, dict) and "id" not in payload and "body" in payload:
        payload = _decode(payload["body"])

    if not isinstance(payload, dict):
        raise OrderValidationError("Order body must be a JSON object")

    if payload.get("id") in (None, ""):
        raise OrderValidationError("Invalid order data: missing order id")

    return payload


def parse_order_event(payload: dict[str, Any]) -> OrderEvent:
    """Turn a validated payload into an OrderEvent."""
    try:
        return OrderEvent.model_validate(payload)
    except ValidationError as e:
        logger.warning("Rejected order payload %s: %s", payload.get("id"), e)
        raise OrderValidationError(
            f"Invalid order data: {e.error_count()} field error(s)",
            order_id=payload.get("id"),
        ) from e
