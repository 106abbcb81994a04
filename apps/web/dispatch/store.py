"""
Audit store - DynamoDB table holding one record per dispatch attempt.

Key schema: ``pk = ORDER#<order id>``; ``sk`` discriminates the record kind
(``SHOPIFY#<order id>`` success, ``ERROR#<epoch millis>`` failure,
``METADATA#...`` reserved).
"""

import logging
from decimal import Decimal
from typing import Any

from django.conf import settings

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError
from dispatch_schemas import DispatchAuditRecord
from pydantic import ValidationError

from apps.web.dispatch.exceptions import AuditRecordNotFound

logger = logging.getLogger(__name__)


def get_table(table_name: str | None = None) -> Any:
    """Return the boto3 Table resource for the orders audit table."""
    dynamodb = boto3.resource("dynamodb", region_name=settings.AWS_REGION)
    return dynamodb.Table(table_name or settings.DISPATCH_ORDERS_TABLE)


def to_dynamo(value: Any) -> Any:
    """Convert a value for DynamoDB, which rejects floats."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_dynamo(v) for v in value]
    return value


class AuditStore:
    """Typed access to the audit table."""

    def __init__(self, table: Any) -> None:
        """
        Args:
            table: boto3 DynamoDB Table resource (or a test double).
        """
        self._table = table

    def put(self, record: DispatchAuditRecord) -> None:
        """Write a record, replacing any record under the same key."""
        self._table.put_item(Item=to_dynamo(record.to_item()))
        logger.info("Audit record written: %s / %s", record.pk, record.sk)

    def get(self, pk: str, sk: str) -> DispatchAuditRecord | None:
        response = self._table.get_item(Key={"pk": pk, "sk": sk})
        item = response.get("Item")
        return DispatchAuditRecord.model_validate(item) if item else None

    def update(self, pk: str, sk: str, fields: dict[str, Any]) -> DispatchAuditRecord:
        """
        Overwrite the given attributes of an existing record.

        Args:
            pk: Partition key.
            sk: Sort key.
            fields: Attribute name (storage name) to new value.

        Returns:
            The record as stored after the update.

        Raises:
            AuditRecordNotFound: If no record exists under the key.
        """
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for index, (name, value) in enumerate(fields.items()):
            names[f"#f{index}"] = name
            values[f":v{index}"] = to_dynamo(value)
            assignments.append(f"#f{index} = :v{index}")

        try:
            response = self._table.update_item(
                Key={"pk": pk, "sk": sk},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise AuditRecordNotFound(f"No audit record {pk} / {sk}") from e
            raise

        return DispatchAuditRecord.model_validate(response["Attributes"])

    def delete(self, pk: str, sk: str) -> None:
        self._table.delete_item(Key={"pk": pk, "sk": sk})
        logger.info("Audit record deleted: %s / %s", pk, sk)

    def scan_items(self, date: str | None = None) -> list[dict[str, Any]]:
        """
        Read every raw item, following pagination.

        Args:
            date: Only return items whose ``date`` attribute equals this.
        """
        kwargs: dict[str, Any] = {}
        if date:
            kwargs["FilterExpression"] = Attr("date").eq(date)

        items: list[dict[str, Any]] = []
        while True:
            response = self._table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key

        return items

    def scan(self, date: str | None = None) -> list[DispatchAuditRecord]:
        """Read every record; rows that do not parse are logged and skipped."""
        records: list[DispatchAuditRecord] = []
        for item in self.scan_items(date):
            try:
                records.append(DispatchAuditRecord.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "Skipping unreadable audit record %s / %s: %s",
                    item.get("pk"),
                    item.get("sk"),
                    e,
                )
        return records
