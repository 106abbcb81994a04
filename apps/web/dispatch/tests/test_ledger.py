"""Tests for the audit ledger and its derivations."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from dispatch_schemas import (
    DeliveryResult,
    DeliveryType,
    DispatchStatus,
    FeeBreakdown,
    LineItem,
    OrderEvent,
    POSResult,
    ShippingLine,
)

from apps.web.dispatch.services import (
    AuditLedger,
    classify_delivery,
    compute_subtotal,
    grouping_key,
    local_business_date,
    shipping_price,
    visible_line_items,
)

FEES = FeeBreakdown(gross=Decimal("24.00"), fee=Decimal("0.75"), transaction_id="txn-1")
POS_RESULT = POSResult(pos_order_id="sq-order-1", payment_id="sq-pay-1", total=2400)


class TestClassifyDelivery:
    @pytest.mark.parametrize(
        ("shipping_line", "expected"),
        [
            (ShippingLine(title="Local Delivery"), DeliveryType.LOCAL),
            (ShippingLine(title="Standard Shipping"), DeliveryType.SHIPPING),
            (ShippingLine(title=None, code="LOCAL-ZONE-2"), DeliveryType.LOCAL),
            (ShippingLine(title="Courier", source="shopify-local-delivery"), DeliveryType.LOCAL),
            (ShippingLine(title="Home DELIVERY"), DeliveryType.LOCAL),
            (None, DeliveryType.SHIPPING),
        ],
    )
    def test_classification(self, shipping_line, expected):
        assert classify_delivery(shipping_line) == expected


class TestDerivations:
    def test_subtotal_and_shipping(self, order):
        assert compute_subtotal(order.line_items) == Decimal("20.00")
        assert shipping_price(order) == Decimal("4.00")
        assert classify_delivery(order.shipping_line) == DeliveryType.LOCAL

    def test_shipping_price_without_shipping_line(self):
        assert shipping_price(OrderEvent(id=1)) == Decimal("0")

    def test_visible_line_items_drop_internal_properties(self):
        items = visible_line_items(
            [
                LineItem(
                    name="Burger",
                    quantity=2,
                    price=Decimal("10"),
                    variant_title="Large",
                    properties=[
                        {"name": "_square_catalog", "value": "{}"},
                        {"name": "Sauce", "value": "Hot"},
                    ],
                )
            ]
        )

        assert items[0].variant == "Large"
        assert items[0].properties == [{"name": "Sauce", "value": "Hot"}]

    def test_local_business_date_uses_location_day(self):
        instant = datetime(2025, 1, 15, 23, 30, tzinfo=UTC)

        assert local_business_date(instant, "America/New_York") == "2025-01-15"

    def test_late_evening_order_stays_on_local_day(self):
        instant = datetime(2025, 1, 16, 4, 30, tzinfo=UTC)

        assert local_business_date(instant, "America/New_York") == "2025-01-15"
        assert local_business_date(instant, "UTC") == "2025-01-16"

    def test_grouping_key(self):
        assert grouping_key("SQ-SOUTH", "2025-01-15") == "SQ-SOUTH#2025-01-15"
        assert grouping_key(None, "2025-01-15") is None


class TestAuditLedger:
    def test_record_dispatch_writes_success_record(self, order, location, store, table, clock):
        ledger = AuditLedger(store, clock=clock)

        record = ledger.record_dispatch(
            order,
            location,
            FEES,
            POS_RESULT,
            DeliveryResult(delivery_order_id="9001"),
            DispatchStatus.DISPATCHED,
        )

        item = table.items[("ORDER#5551234", "SHOPIFY#5551234")]
        assert record is not None
        assert item["orderId"] == "5551234"
        assert item["orderNumber"] == 1001
        assert item["posOrderId"] == "sq-order-1"
        assert item["paymentId"] == "sq-pay-1"
        assert item["deliveryOrderId"] == "9001"
        assert item["locationName"] == "South End"
        assert item["posLocationId"] == "SQ-SOUTH"
        assert item["status"] == "DISPATCHED"
        assert item["deliveryType"] == "local"
        assert item["subtotalPrice"] == Decimal("20.00")
        assert item["shippingPrice"] == Decimal("4.00")
        assert item["grossAmount"] == Decimal("24.00")
        assert item["transactionFee"] == Decimal("0.75")
        assert item["netAmount"] == Decimal("23.25")
        assert item["createdAt"] == "2025-01-16T04:30:00.000Z"
        assert item["date"] == "2025-01-15"
        assert item["location-date"] == "SQ-SOUTH#2025-01-15"
        assert item["shippingAddress"]["city"] == "Boston"

    def test_rewrite_replaces_success_record(self, order, location, store, table, clock):
        ledger = AuditLedger(store, clock=clock)

        for _ in range(2):
            ledger.record_dispatch(order, location, FEES, POS_RESULT, None, DispatchStatus.POS_ONLY)

        assert len(table.records("SHOPIFY#")) == 1

    def test_no_pos_order_writes_nothing(self, order, location, store, table, clock):
        ledger = AuditLedger(store, clock=clock)

        record = ledger.record_dispatch(order, location, FEES, None, None, DispatchStatus.FAILED)

        assert record is None
        assert table.items == {}

    def test_record_failure(self, store, table, clock):
        ledger = AuditLedger(store, clock=clock)
        try:
            raise RuntimeError("Square location not configured")
        except RuntimeError as e:
            ledger.record_failure(5551234, 1001, e)

        [item] = table.records("ERROR#")
        assert item["pk"] == "ORDER#5551234"
        assert item["sk"] == f"ERROR#{int(datetime(2025, 1, 16, 4, 30, tzinfo=UTC).timestamp() * 1000)}"
        assert item["status"] == "FAILED"
        assert item["error"] == "Square location not configured"
        assert "RuntimeError" in item["errorStack"]
        assert item["createdAt"] == "2025-01-16T04:30:00.000Z"
