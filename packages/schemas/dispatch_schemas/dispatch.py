"""Dispatch pipeline schemas - location, fees, results and the audit record."""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel

# =============================================================================
# Enums
# =============================================================================


class DispatchStatus(str, Enum):
    """Outcome tag stored on every audit record."""

    DISPATCHED = "DISPATCHED"  # POS order paid and delivery job created
    POS_ONLY = "POS_ONLY"  # POS order paid, delivery submission failed
    FAILED = "FAILED"


class DeliveryType(str, Enum):
    """How the order reaches the customer."""

    LOCAL = "local"
    SHIPPING = "shipping"


class RecordType(str, Enum):
    """Audit record kind, derived from the sort key prefix."""

    SUCCESS = "success"
    ERROR = "error"
    METADATA = "metadata"
    UNKNOWN = "unknown"


# =============================================================================
# Location & Fees
# =============================================================================


class LocationConfig(BaseModel):
    """Per-location settings resolved at dispatch time."""

    model_config = ConfigDict(frozen=True)

    fulfillment_location_id: str | None = None
    pos_location_id: str | None = None
    delivery_api_key: str | None = None
    name: str | None = None
    timezone: str = "America/New_York"
    is_default: bool = False

    @property
    def is_complete(self) -> bool:
        return bool(self.pos_location_id and self.delivery_api_key)


class FeeBreakdown(BaseModel):
    """Processor fee taken on an order. ``net`` is always ``gross - fee``."""

    model_config = ConfigDict(frozen=True)

    gross: Decimal = Field(ge=0)
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    transaction_id: str | None = None

    @model_validator(mode="after")
    def fee_within_gross(self) -> "FeeBreakdown":
        if self.fee > self.gross:
            raise ValueError(f"fee {self.fee} exceeds gross {self.gross}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def net(self) -> Decimal:
        return self.gross - self.fee

    @classmethod
    def zero_fee(cls, total: Decimal) -> "FeeBreakdown":
        """Degraded estimate used when the real fee cannot be determined."""
        return cls(gross=total, fee=Decimal("0"), transaction_id=None)


# =============================================================================
# Downstream Results
# =============================================================================


class POSResult(BaseModel):
    """POS order and the external payment recorded against it."""

    pos_order_id: str
    payment_id: str
    total: int = Field(description="Amount paid, in minor units")
    currency: str = "USD"


class DeliveryResult(BaseModel):
    """Delivery job created in the dispatch service."""

    delivery_order_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class DispatchOutcome(BaseModel):
    """What one dispatch invocation did, returned to the webhook caller."""

    order_id: int
    order_number: str
    pos_order_id: str
    payment_id: str
    delivery_order_id: str | None = None
    location: str | None = None
    status: DispatchStatus
    fees: FeeBreakdown

    def to_response(self) -> dict[str, Any]:
        return {
            "success": True,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "posOrderId": self.pos_order_id,
            "paymentId": self.payment_id,
            "deliveryOrderId": self.delivery_order_id,
            "location": self.location,
            "status": self.status.value,
            "fees": {
                "gross": str(self.fees.gross),
                "fee": str(self.fees.fee),
                "net": str(self.fees.net),
                "transactionId": self.fees.transaction_id,
            },
        }


# =============================================================================
# Audit Record
# =============================================================================

ORDER_KEY_PREFIX = "ORDER#"
SUCCESS_KEY_PREFIX = "SHOPIFY#"
ERROR_KEY_PREFIX = "ERROR#"
METADATA_KEY_PREFIX = "METADATA#"


def order_pk(order_id: int | str) -> str:
    return f"{ORDER_KEY_PREFIX}{order_id}"


def success_sk(order_id: int | str) -> str:
    return f"{SUCCESS_KEY_PREFIX}{order_id}"


def error_sk(epoch_millis: int) -> str:
    return f"{ERROR_KEY_PREFIX}{epoch_millis}"


def record_type_for(sk: str | None) -> RecordType:
    sk = sk or ""
    if sk.startswith(SUCCESS_KEY_PREFIX):
        return RecordType.SUCCESS
    if sk.startswith(ERROR_KEY_PREFIX):
        return RecordType.ERROR
    if sk.startswith(METADATA_KEY_PREFIX):
        return RecordType.METADATA
    return RecordType.UNKNOWN


class AuditLineItem(BaseModel):
    """Line item as stored on an audit record (visible properties only)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    quantity: int = 1
    price: Decimal = Decimal("0")
    variant: str | None = None
    properties: list[dict[str, Any]] = Field(default_factory=list)


class DispatchAuditRecord(BaseModel):
    """
    One row of the audit store.

    Attribute names are camelCase in storage; ``location-date`` is the
    ``<POS location id>#<date>`` grouping key used by per-location reports.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    pk: str
    sk: str
    order_id: str | None = None
    order_number: int | str | None = None
    order_name: str | None = None

    # Downstream ids
    pos_order_id: str | None = None
    payment_id: str | None = None
    delivery_order_id: str | None = None

    # Location
    location_name: str | None = None
    fulfillment_location_id: str | None = None
    pos_location_id: str | None = None
    timezone: str | None = None

    # Customer
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: dict[str, Any] | None = None
    shipping_method: str | None = None
    delivery_type: DeliveryType | str | None = Field(default=None, union_mode="left_to_right")

    # Money
    subtotal_price: Decimal | None = None
    shipping_price: Decimal | None = None
    total_price: Decimal | None = None
    gross_amount: Decimal | None = None
    transaction_fee: Decimal | None = None
    net_amount: Decimal | None = None
    transaction_id: str | None = None
    currency: str | None = None

    line_items: list[AuditLineItem] = Field(default_factory=list)

    # Rows written by older releases may carry statuses outside the enum
    status: DispatchStatus | str | None = Field(default=None, union_mode="left_to_right")
    date: str | None = None
    location_date: str | None = Field(default=None, alias="location-date")
    created_at: str | None = None
    updated_at: str | None = None
    healed_at: str | None = None

    # Failure records only
    error: str | None = None
    error_stack: str | None = None

    @property
    def record_type(self) -> RecordType:
        return record_type_for(self.sk)

    def to_item(self) -> dict[str, Any]:
        """Storage representation (camelCase, enums as values, no empty keys)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="python") | {
            key: value.value if isinstance(value, Enum) else value
            for key, value in (
                ("status", self.status),
                ("deliveryType", self.delivery_type),
            )
            if value is not None
        }

    def to_summary(self) -> dict[str, Any]:
        """Read-path representation with the derived ``recordType``."""
        data = self.model_dump(by_alias=True, mode="json")
        data["orderId"] = self.order_id or self.pk.removeprefix(ORDER_KEY_PREFIX)
        data["recordType"] = self.record_type.value
        return data
