"""
Healing service - operator repairs over the audit store.

- heal: re-derive order fields from the commerce platform onto an existing
  success record (POS, payment and delivery ids are never touched)
- fix_dates: move ``date`` / ``location-date`` onto the location's local
  business day
- cleanup_errors: delete failure records of orders that later succeeded
- list_records: the read path used by the operator dashboard

Each batch walks a bounded list sequentially and reports per-item failures
without stopping.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import httpx
from dispatch_schemas import (
    DispatchAuditRecord,
    RecordType,
    order_pk,
    record_type_for,
    success_sk,
)
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from apps.web.dispatch.clients import ShopifyClient
from apps.web.dispatch.clients.base import CommerceClient
from apps.web.dispatch.exceptions import (
    AuditRecordNotFound,
    CommerceAPIError,
    ConfigurationError,
    HealingItemError,
)
from apps.web.dispatch.runtime_config import RuntimeConfig, get_runtime_config
from apps.web.dispatch.services.ledger import (
    grouping_key,
    isoformat,
    local_business_date,
    order_fields,
    utc_now,
)
from apps.web.dispatch.store import AuditStore, get_table

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"
DEFAULT_LIST_LIMIT = 50


# =============================================================================
# Reports
# =============================================================================


class _Report(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> dict[str, Any]:
        return {"success": True, **self.model_dump(by_alias=True, mode="json")}


class HealResult(_Report):
    order_id: str
    order_number: int | str | None = None
    location_name: str
    fulfillment_location_id: str | None = None
    delivery_type: str
    shipping_method: str
    subtotal_price: Decimal
    shipping_price: Decimal
    total_price: Decimal
    line_items_count: int
    customer_name: str
    healed_at: str


class ItemError(_Report):
    order_id: str | None = None
    pk: str | None = None
    sk: str | None = None
    error: str

    @classmethod
    def for_item(cls, item: dict[str, Any], error: Exception) -> "ItemError":
        order_id = item.get("orderId")
        return cls(
            order_id=str(order_id) if order_id is not None else None,
            pk=item.get("pk"),
            sk=item.get("sk"),
            error=str(error),
        )


class HealReport(_Report):
    healed: int = 0
    failed: int = 0
    results: list[HealResult] = Field(default_factory=list)
    errors: list[ItemError] = Field(default_factory=list)


class DateFix(_Report):
    pk: str
    sk: str
    old_date: str | None = None
    new_date: str
    location_date: str | None = None


class FixDatesReport(_Report):
    fixed: int = 0
    skipped: int = 0
    errors: list[ItemError] = Field(default_factory=list)
    records: list[DateFix] = Field(default_factory=list)


class DeletedRecord(_Report):
    pk: str
    sk: str
    order_number: int | str | None = None


class CleanupReport(_Report):
    deleted: int = 0
    records: list[DeletedRecord] = Field(default_factory=list)
    errors: list[ItemError] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def storage_fields(values: dict[str, Any]) -> dict[str, Any]:
    """Map record field names to storage attribute names and values."""
    fields = DispatchAuditRecord.model_fields
    stored: dict[str, Any] = {}
    for name, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, list):
            value = [
                v.model_dump(by_alias=True) if isinstance(v, BaseModel) else v
                for v in value
            ]
        stored[fields[name].alias or name] = value
    return stored


def _parse_instant(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _order_number(value: Any) -> int | str | None:
    # DynamoDB hands numbers back as Decimal
    if isinstance(value, Decimal):
        return int(value)
    return value


# =============================================================================
# Service
# =============================================================================


class HealingService:
    """Operator-triggered repairs and reads over the audit store."""

    def __init__(
        self,
        store: AuditStore,
        commerce_client: CommerceClient,
        clock: Callable[[], datetime] = utc_now,
        default_timezone: str = "America/New_York",
    ) -> None:
        self._store = store
        self._commerce = commerce_client
        self._clock = clock
        self._default_timezone = default_timezone

    # -------------------------------------------------------------------------
    # heal
    # -------------------------------------------------------------------------

    async def heal_order(self, order_id: int | str) -> HealResult:
        """
        Re-derive one order's fields onto its success record.

        Raises:
            HealingItemError: If the order cannot be fetched or has no
                success record.
        """
        try:
            order = await self._commerce.get_order(order_id)
        except (CommerceAPIError, ConfigurationError) as e:
            raise HealingItemError(str(e), order_id=order_id) from e

        try:
            assignment = await self._commerce.get_fulfillment_assignment(order_id)
        except (CommerceAPIError, ConfigurationError) as e:
            logger.warning("Fulfillment lookup failed for order %s: %s", order_id, e)
            assignment = None

        location_name = (assignment.location_name if assignment else None) or UNKNOWN_LOCATION
        now = isoformat(self._clock())
        derived = order_fields(order)
        # Identity fields are written once by the dispatch path
        derived.pop("order_number")
        derived.pop("order_name")
        derived.pop("currency")

        update = {
            "location_name": location_name,
            "fulfillment_location_id": assignment.location_id if assignment else None,
            **derived,
            "updated_at": now,
            "healed_at": now,
        }

        try:
            self._store.update(order_pk(order_id), success_sk(order_id), storage_fields(update))
        except AuditRecordNotFound as e:
            raise HealingItemError(
                f"No success record for order {order_id}", order_id=order_id
            ) from e

        logger.info("Order %s healed (%s)", order_id, location_name)
        return HealResult(
            order_id=str(order_id),
            order_number=order.order_number,
            location_name=location_name,
            fulfillment_location_id=update["fulfillment_location_id"],
            delivery_type=derived["delivery_type"].value,
            shipping_method=derived["shipping_method"],
            subtotal_price=derived["subtotal_price"],
            shipping_price=derived["shipping_price"],
            total_price=derived["total_price"],
            line_items_count=len(derived["line_items"]),
            customer_name=derived["customer_name"],
            healed_at=now,
        )

    async def heal(self, order_ids: list[int | str]) -> HealReport:
        report = HealReport()
        for order_id in order_ids:
            try:
                report.results.append(await self.heal_order(order_id))
            except Exception as e:
                logger.exception("Failed to heal order %s", order_id)
                report.errors.append(ItemError(order_id=str(order_id), error=str(e)))

        report.healed = len(report.results)
        report.failed = len(report.errors)
        return report

    # -------------------------------------------------------------------------
    # fixDates
    # -------------------------------------------------------------------------

    def fix_dates(self) -> FixDatesReport:
        report = FixDatesReport()
        for item in self._store.scan_items():
            pk, sk = item.get("pk"), item.get("sk")
            if record_type_for(sk) != RecordType.SUCCESS or not item.get("createdAt"):
                continue

            try:
                record = DispatchAuditRecord.model_validate(item)
                new_date = local_business_date(
                    _parse_instant(record.created_at or ""),
                    record.timezone or self._default_timezone,
                )
                new_location_date = grouping_key(record.pos_location_id, new_date)

                changes: dict[str, Any] = {}
                if new_date != record.date:
                    changes["date"] = new_date
                if new_location_date and new_location_date != record.location_date:
                    changes["location_date"] = new_location_date

                if not changes:
                    report.skipped += 1
                    continue

                self._store.update(record.pk, record.sk, storage_fields(changes))
            except Exception as e:
                logger.exception("Failed to fix date on %s / %s", pk, sk)
                report.errors.append(ItemError.for_item(item, e))
                continue

            report.fixed += 1
            report.records.append(
                DateFix(
                    pk=record.pk,
                    sk=record.sk,
                    old_date=record.date,
                    new_date=new_date,
                    location_date=new_location_date,
                )
            )

        logger.info("Date fix complete: %d fixed, %d skipped", report.fixed, report.skipped)
        return report

    # -------------------------------------------------------------------------
    # cleanupErrors
    # -------------------------------------------------------------------------

    def cleanup_errors(self) -> CleanupReport:
        # Only keys are needed here, so rows the record schema rejects still count
        groups: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for item in self._store.scan_items():
            groups[item.get("pk", "")].append(item)

        report = CleanupReport()
        for items in groups.values():
            if not any(record_type_for(i.get("sk")) == RecordType.SUCCESS for i in items):
                continue

            for item in items:
                if record_type_for(item.get("sk")) != RecordType.ERROR:
                    continue
                try:
                    deleted = DeletedRecord(
                        pk=item["pk"],
                        sk=item["sk"],
                        order_number=_order_number(item.get("orderNumber")),
                    )
                    self._store.delete(deleted.pk, deleted.sk)
                except Exception as e:
                    logger.exception("Failed to delete %s / %s", item.get("pk"), item.get("sk"))
                    report.errors.append(ItemError.for_item(item, e))
                    continue
                report.records.append(deleted)

        report.deleted = len(report.records)
        logger.info("Cleanup complete. Deleted %d error records.", report.deleted)
        return report

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    def list_records(
        self, date: str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, Any]]:
        """Records (optionally for one business day), newest first."""
        records = sorted(
            self._store.scan(date=date),
            key=lambda r: r.created_at or "",
            reverse=True,
        )
        return [record.to_summary() for record in records[:limit]]


# =============================================================================
# Entry points
# =============================================================================


def build_healing_service(
    http_client: httpx.AsyncClient | None = None,
    config: RuntimeConfig | None = None,
    store: AuditStore | None = None,
) -> HealingService:
    config = config or get_runtime_config()
    return HealingService(
        store=store or AuditStore(get_table(config.get("DISPATCH_ORDERS_TABLE"))),
        commerce_client=ShopifyClient(
            config.get("SHOPIFY_STORE_DOMAIN"),
            config.get("SHOPIFY_ACCESS_TOKEN"),
            http_client=http_client,
        ),
        default_timezone=config.get("DEFAULT_LOCATION_TIMEZONE", "America/New_York"),
    )


async def _heal_async(order_ids: list[int | str]) -> HealReport:
    async with httpx.AsyncClient(timeout=None) as http_client:
        return await build_healing_service(http_client).heal(order_ids)


def heal_orders(order_ids: list[int | str]) -> HealReport:
    """Synchronous entry point for views and commands."""
    return asyncio.run(_heal_async(order_ids))
