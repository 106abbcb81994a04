"""Tests for the DynamoDB audit store."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from dispatch_schemas import DispatchAuditRecord, DispatchStatus, RecordType

from apps.web.dispatch.exceptions import AuditRecordNotFound
from apps.web.dispatch.store import AuditStore, to_dynamo


@pytest.fixture
def table() -> MagicMock:
    return MagicMock()


class TestToDynamo:
    def test_converts_floats_recursively(self):
        value = to_dynamo({"price": 1.5, "items": [{"qty": 2, "unit": 0.1}], "name": "x"})

        assert value == {
            "price": Decimal("1.5"),
            "items": [{"qty": 2, "unit": Decimal("0.1")}],
            "name": "x",
        }


class TestAuditStore:
    def test_put_writes_camel_case_item(self, table):
        record = DispatchAuditRecord(
            pk="ORDER#1",
            sk="SHOPIFY#1",
            pos_order_id="sq-1",
            status=DispatchStatus.DISPATCHED,
            date="2025-01-15",
            location_date="SQ#2025-01-15",
        )

        AuditStore(table).put(record)

        item = table.put_item.call_args.kwargs["Item"]
        assert item == {
            "pk": "ORDER#1",
            "sk": "SHOPIFY#1",
            "posOrderId": "sq-1",
            "status": "DISPATCHED",
            "date": "2025-01-15",
            "location-date": "SQ#2025-01-15",
            "lineItems": [],
        }

    def test_get_returns_record(self, table):
        table.get_item.return_value = {
            "Item": {"pk": "ORDER#1", "sk": "ERROR#1700000000000", "error": "boom"}
        }

        record = AuditStore(table).get("ORDER#1", "ERROR#1700000000000")

        assert record is not None
        assert record.error == "boom"
        assert record.record_type == RecordType.ERROR

    def test_get_missing_returns_none(self, table):
        table.get_item.return_value = {}

        assert AuditStore(table).get("ORDER#1", "SHOPIFY#1") is None

    def test_update_is_conditional(self, table):
        table.update_item.return_value = {
            "Attributes": {"pk": "ORDER#1", "sk": "SHOPIFY#1", "date": "2025-01-15"}
        }

        record = AuditStore(table).update("ORDER#1", "SHOPIFY#1", {"date": "2025-01-15"})

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0"
        assert kwargs["ConditionExpression"] == "attribute_exists(pk)"
        assert kwargs["ExpressionAttributeNames"] == {"#f0": "date"}
        assert kwargs["ExpressionAttributeValues"] == {":v0": "2025-01-15"}
        assert record.date == "2025-01-15"

    def test_update_missing_record_raises(self, table):
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ConditionalCheckFailedException", "Message": "x"}},
            "UpdateItem",
        )

        with pytest.raises(AuditRecordNotFound):
            AuditStore(table).update("ORDER#1", "SHOPIFY#1", {"date": "2025-01-15"})

    def test_update_other_errors_propagate(self, table):
        table.update_item.side_effect = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "x"}},
            "UpdateItem",
        )

        with pytest.raises(ClientError):
            AuditStore(table).update("ORDER#1", "SHOPIFY#1", {"date": "2025-01-15"})

    def test_scan_follows_pagination(self, table):
        table.scan.side_effect = [
            {"Items": [{"pk": "ORDER#1", "sk": "SHOPIFY#1"}], "LastEvaluatedKey": {"pk": "ORDER#1"}},
            {"Items": [{"pk": "ORDER#2", "sk": "ERROR#5"}]},
        ]

        records = AuditStore(table).scan()

        assert [r.pk for r in records] == ["ORDER#1", "ORDER#2"]
        second_call = table.scan.call_args_list[1]
        assert second_call.kwargs["ExclusiveStartKey"] == {"pk": "ORDER#1"}

    def test_scan_filters_by_date(self, table):
        table.scan.return_value = {"Items": []}

        AuditStore(table).scan(date="2025-01-15")

        assert "FilterExpression" in table.scan.call_args.kwargs

    def test_delete(self, table):
        AuditStore(table).delete("ORDER#1", "ERROR#5")

        table.delete_item.assert_called_once_with(Key={"pk": "ORDER#1", "sk": "ERROR#5"})
