"""
Dispatch HTTP endpoints.

- POST /webhooks/shopify/orders: orders/create webhook, runs the dispatch
- GET  /api/orders: list audit records (``date``, ``limit``)
- POST /api/orders: operator actions (heal, cleanupErrors, fixDates)
"""

import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from botocore.exceptions import BotoCoreError, ClientError

from apps.web.dispatch.clients import ShopifyClient
from apps.web.dispatch.exceptions import FatalDispatchError, OrderValidationError
from apps.web.dispatch.runtime_config import get_runtime_config
from apps.web.dispatch.services import (
    build_healing_service,
    dispatch_order,
    heal_orders,
)
from apps.web.dispatch.services.healing import DEFAULT_LIST_LIMIT

logger = logging.getLogger(__name__)

VALID_ACTIONS = ("heal", "cleanupErrors", "fixDates")


@csrf_exempt
@require_POST
def shopify_order_webhook(request: HttpRequest) -> JsonResponse:
    """
    Handle the Shopify orders/create webhook.

    POST /webhooks/shopify/orders
    """
    secret = get_runtime_config().get("SHOPIFY_WEBHOOK_SECRET")
    signature = request.headers.get("X-Shopify-Hmac-Sha256")
    if not ShopifyClient.verify_webhook_signature(request.body, signature, secret):
        logger.warning("Shopify webhook verification failed - rejecting request")
        return JsonResponse({"error": "Invalid webhook signature"}, status=401)

    try:
        outcome = dispatch_order(request.body)
    except OrderValidationError as e:
        logger.warning("Rejected Shopify webhook: %s", e.message)
        return JsonResponse({"error": e.message}, status=400)
    except FatalDispatchError as e:
        return JsonResponse({"error": e.message, "details": e.details}, status=500)

    return JsonResponse(outcome.to_response())


@csrf_exempt
@require_http_methods(["GET", "POST"])
def orders_api(request: HttpRequest) -> JsonResponse:
    """
    List audit records or run an operator action.

    GET  /api/orders?date=YYYY-MM-DD&limit=50
    POST /api/orders {"action": "heal", "orderIds": [...]}
    """
    try:
        if request.method == "POST":
            return _handle_action(request)
        return _list_orders(request)
    except (BotoCoreError, ClientError) as e:
        logger.exception("Audit store request failed")
        return JsonResponse({"error": str(e)}, status=500)


def _list_orders(request: HttpRequest) -> JsonResponse:
    try:
        limit = int(request.GET.get("limit", DEFAULT_LIST_LIMIT))
    except ValueError:
        return JsonResponse({"error": "limit must be an integer"}, status=400)
    if limit < 1:
        return JsonResponse({"error": "limit must be a positive integer"}, status=400)

    orders = build_healing_service().list_records(
        date=request.GET.get("date") or None, limit=limit
    )
    return JsonResponse({"orders": orders, "count": len(orders)})


def _handle_action(request: HttpRequest) -> JsonResponse:
    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return JsonResponse({"error": "Invalid JSON body"}, status=400)
    if not isinstance(body, dict):
        return JsonResponse({"error": "Invalid JSON body"}, status=400)

    match body.get("action"):
        case "heal":
            order_ids = body.get("orderIds") or (
                [body["orderId"]] if body.get("orderId") else []
            )
            if not order_ids:
                return JsonResponse({"error": "No order IDs provided"}, status=400)
            return JsonResponse(heal_orders(order_ids).to_response())
        case "cleanupErrors":
            return JsonResponse(build_healing_service().cleanup_errors().to_response())
        case "fixDates":
            return JsonResponse(build_healing_service().fix_dates().to_response())
        case _:
            return JsonResponse(
                {"error": f"Invalid action. Valid actions: {', '.join(VALID_ACTIONS)}"},
                status=400,
            )
