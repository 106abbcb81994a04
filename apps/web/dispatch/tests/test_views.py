"""Tests for the dispatch webhook and operator endpoints."""

import base64
import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import patch

from django.test import Client, SimpleTestCase, override_settings

from botocore.exceptions import ClientError
from dispatch_schemas import DispatchOutcome, DispatchStatus, FeeBreakdown

from apps.web.dispatch.exceptions import FatalDispatchError, OrderValidationError
from apps.web.dispatch.services import CleanupReport, FixDatesReport, HealReport
from apps.web.dispatch.services.healing import ItemError
from apps.web.dispatch.services.validation import validate_order_event

OUTCOME = DispatchOutcome(
    order_id=5551234,
    order_number="1001",
    pos_order_id="sq-order-1",
    payment_id="sq-pay-1",
    delivery_order_id="9001",
    location="South End",
    status=DispatchStatus.DISPATCHED,
    fees=FeeBreakdown(gross=Decimal("24.00"), fee=Decimal("0.75"), transaction_id="txn-1"),
)


def sign(payload: bytes, secret: str) -> str:
    return base64.b64encode(hmac.new(secret.encode(), payload, hashlib.sha256).digest()).decode()


@override_settings(SHOPIFY_WEBHOOK_SECRET="", DISPATCH_CONFIG_TABLE="")
class TestShopifyOrderWebhook(SimpleTestCase):
    """Tests for POST /webhooks/shopify/orders."""

    url = "/webhooks/shopify/orders"

    def setUp(self):
        self.http_client = Client()
        self.payload = json.dumps({"id": 5551234, "order_number": 1001}).encode()

    def _post(self, payload: bytes, **headers):
        return self.http_client.post(
            self.url, data=payload, content_type="application/json", **headers
        )

    @patch("apps.web.dispatch.views.dispatch_order")
    def test_dispatched_order(self, mock_dispatch):
        mock_dispatch.return_value = OUTCOME

        response = self._post(self.payload)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["orderId"] == 5551234
        assert data["posOrderId"] == "sq-order-1"
        assert data["status"] == "DISPATCHED"
        assert data["fees"] == {
            "gross": "24.00",
            "fee": "0.75",
            "net": "23.25",
            "transactionId": "txn-1",
        }
        mock_dispatch.assert_called_once_with(self.payload)

    @patch("apps.web.dispatch.views.dispatch_order")
    def test_invalid_order_is_bad_request(self, mock_dispatch):
        mock_dispatch.side_effect = OrderValidationError("Invalid order data: missing order id")

        response = self._post(b"{}")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid order data: missing order id"}

    @patch("apps.web.dispatch.views.dispatch_order")
    def test_fatal_dispatch_is_server_error(self, mock_dispatch):
        mock_dispatch.side_effect = FatalDispatchError(
            "Square location not configured",
            order_id=5551234,
            details="ConfigurationError: Square location not configured",
        )

        response = self._post(self.payload)

        assert response.status_code == 500
        assert response.json() == {
            "error": "Square location not configured",
            "details": "ConfigurationError: Square location not configured",
        }

    @patch("apps.web.dispatch.views.dispatch_order")
    def test_invalid_utf8_body_is_bad_request(self, mock_dispatch):
        mock_dispatch.side_effect = validate_order_event

        response = self._post(b'{"id": 1, "note": "\xff"}')

        assert response.status_code == 400
        assert "UTF-8" in response.json()["error"]

    def test_get_not_allowed(self):
        assert self.http_client.get(self.url).status_code == 405

    @override_settings(SHOPIFY_WEBHOOK_SECRET="whsec_test")
    @patch("apps.web.dispatch.views.dispatch_order")
    def test_bad_signature_rejected(self, mock_dispatch):
        response = self._post(self.payload, HTTP_X_SHOPIFY_HMAC_SHA256="bogus")

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid webhook signature"}
        mock_dispatch.assert_not_called()

    @override_settings(SHOPIFY_WEBHOOK_SECRET="whsec_test")
    @patch("apps.web.dispatch.views.dispatch_order")
    def test_valid_signature_accepted(self, mock_dispatch):
        mock_dispatch.return_value = OUTCOME

        response = self._post(
            self.payload, HTTP_X_SHOPIFY_HMAC_SHA256=sign(self.payload, "whsec_test")
        )

        assert response.status_code == 200


@override_settings(DISPATCH_CONFIG_TABLE="")
class TestOrdersApi(SimpleTestCase):
    """Tests for GET/POST /api/orders."""

    url = "/api/orders"

    def setUp(self):
        self.http_client = Client()

    def _action(self, body: dict):
        return self.http_client.post(
            self.url, data=json.dumps(body), content_type="application/json"
        )

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_list_orders(self, mock_build):
        service = mock_build.return_value
        service.list_records.return_value = [{"orderId": "1"}, {"orderId": "2"}]

        response = self.http_client.get(self.url, {"date": "2025-01-15", "limit": "10"})

        assert response.status_code == 200
        assert response.json() == {"orders": [{"orderId": "1"}, {"orderId": "2"}], "count": 2}
        service.list_records.assert_called_once_with(date="2025-01-15", limit=10)

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_list_orders_defaults(self, mock_build):
        mock_build.return_value.list_records.return_value = []

        response = self.http_client.get(self.url)

        assert response.status_code == 200
        mock_build.return_value.list_records.assert_called_once_with(date=None, limit=50)

    def test_list_orders_bad_limit(self):
        response = self.http_client.get(self.url, {"limit": "lots"})

        assert response.status_code == 400

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_list_orders_non_positive_limit(self, mock_build):
        for limit in ("0", "-5"):
            response = self.http_client.get(self.url, {"limit": limit})

            assert response.status_code == 400
            assert response.json() == {"error": "limit must be a positive integer"}
        mock_build.assert_not_called()

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_store_failure_is_server_error(self, mock_build):
        mock_build.return_value.list_records.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}}, "Scan"
        )

        response = self.http_client.get(self.url)

        assert response.status_code == 500
        assert "error" in response.json()

    @patch("apps.web.dispatch.views.heal_orders")
    def test_heal_many(self, mock_heal):
        mock_heal.return_value = HealReport(healed=2)

        response = self._action({"action": "heal", "orderIds": [1, 2]})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["healed"] == 2
        mock_heal.assert_called_once_with([1, 2])

    @patch("apps.web.dispatch.views.heal_orders")
    def test_heal_single(self, mock_heal):
        mock_heal.return_value = HealReport(
            failed=1, errors=[ItemError(order_id="7", error="No success record for order 7")]
        )

        response = self._action({"action": "heal", "orderId": 7})

        assert response.status_code == 200
        assert response.json()["errors"][0] == {
            "orderId": "7",
            "pk": None,
            "sk": None,
            "error": "No success record for order 7",
        }
        mock_heal.assert_called_once_with([7])

    def test_heal_without_ids(self):
        response = self._action({"action": "heal"})

        assert response.status_code == 400
        assert response.json() == {"error": "No order IDs provided"}

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_cleanup_errors(self, mock_build):
        mock_build.return_value.cleanup_errors.return_value = CleanupReport(deleted=3)

        response = self._action({"action": "cleanupErrors"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 3, "records": [], "errors": []}

    @patch("apps.web.dispatch.views.build_healing_service")
    def test_fix_dates(self, mock_build):
        mock_build.return_value.fix_dates.return_value = FixDatesReport(fixed=1, skipped=4)

        response = self._action({"action": "fixDates"})

        assert response.status_code == 200
        assert response.json()["fixed"] == 1
        assert response.json()["skipped"] == 4

    def test_unknown_action(self):
        response = self._action({"action": "explode"})

        assert response.status_code == 400
        assert "Invalid action" in response.json()["error"]

    def test_invalid_json(self):
        response = self.http_client.post(self.url, data="{", content_type="application/json")

        assert response.status_code == 400

    def test_method_not_allowed(self):
        assert self.http_client.delete(self.url).status_code == 405
