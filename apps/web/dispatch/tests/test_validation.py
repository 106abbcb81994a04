"""Tests for inbound order event validation."""

import json

import pytest

from apps.web.dispatch.exceptions import OrderValidationError
from apps.web.dispatch.services import parse_order_event, validate_order_event
from apps.web.dispatch.tests.factories import OrderPayloadFactory


class TestValidateOrderEvent:
    def test_accepts_dict(self, order_payload):
        assert validate_order_event(order_payload) is order_payload

    def test_accepts_json_string(self, order_payload):
        payload = validate_order_event(json.dumps(order_payload))
        assert payload["id"] == order_payload["id"]

    def test_accepts_raw_bytes(self, order_payload):
        payload = validate_order_event(json.dumps(order_payload).encode())
        assert payload["order_number"] == 1001

    def test_unwraps_gateway_envelope(self, order_payload):
        payload = validate_order_event({"body": json.dumps(order_payload)})
        assert payload["id"] == order_payload["id"]

    def test_missing_id_rejected(self):
        payload = OrderPayloadFactory()
        del payload["id"]

        with pytest.raises(OrderValidationError) as exc_info:
            validate_order_event(payload)

        assert "missing order id" in exc_info.value.message

    def test_invalid_json_rejected(self):
        with pytest.raises(OrderValidationError):
            validate_order_event("{not json")

    def test_invalid_utf8_rejected(self):
        with pytest.raises(OrderValidationError) as exc_info:
            validate_order_event(b'{"id": 1, "note": "\xff"}')

        assert "UTF-8" in exc_info.value.message

    def test_non_object_rejected(self):
        with pytest.raises(OrderValidationError):
            validate_order_event("[1, 2, 3]")


class TestParseOrderEvent:
    def test_parses_with_defaults(self):
        order = parse_order_event({"id": 42})

        assert order.id == 42
        assert order.line_items == []
        assert order.shipping_lines == []
        assert order.shipping_address is None
        assert order.currency == "USD"
        assert order.display_number == "42"

    def test_null_collections_become_empty(self):
        order = parse_order_event({"id": 42, "line_items": None, "shipping_lines": None})

        assert order.line_items == []
        assert order.shipping_line is None

    def test_customer_helpers(self, order_payload):
        order = parse_order_event(order_payload)

        assert order.customer_name == "Jane Smith"
        assert order.customer_first_name == "Jane"
        assert order.customer_phone == "+16175550100"

    def test_customer_phone_falls_back_to_order_phone(self, order_payload):
        order_payload["shipping_address"]["phone"] = None
        order = parse_order_event(order_payload)

        assert order.customer_phone == "+16175550199"

    def test_unknown_keys_ignored(self, order_payload):
        order_payload["buyer_accepts_marketing"] = True
        order = parse_order_event(order_payload)
        assert not hasattr(order, "buyer_accepts_marketing")

    def test_bad_field_type_rejected(self):
        with pytest.raises(OrderValidationError):
            parse_order_event({"id": "not-a-number"})
