"""Commerce order schemas - the inbound Shopify order payload."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Option properties whose name starts with this prefix are internal to the
# storefront and never shown to customers or staff.
INTERNAL_PROPERTY_PREFIX = "_"


class LineItemProperty(BaseModel):
    """A selected option attached to a line item."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    value: Any = None

    @property
    def is_internal(self) -> bool:
        return self.name.startswith(INTERNAL_PROPERTY_PREFIX)

    @property
    def is_visible(self) -> bool:
        """Customer-visible: named, non-internal and carrying a value."""
        return bool(self.name) and not self.is_internal and self.value not in (None, "")


class LineItem(BaseModel):
    """A single order line."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    quantity: int = 1
    price: Decimal = Decimal("0")
    variant_title: str | None = None
    properties: list[LineItemProperty] = Field(default_factory=list)

    @field_validator("properties", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return value or []

    @property
    def visible_properties(self) -> list[LineItemProperty]:
        return [p for p in self.properties if p.is_visible]

    def get_property(self, name: str) -> LineItemProperty | None:
        return next((p for p in self.properties if p.name == name), None)


class ShippingLine(BaseModel):
    """The shipping / delivery charge selected at checkout."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str | None = None
    code: str | None = None
    price: Decimal = Decimal("0")
    source: str | None = None

    @property
    def method(self) -> str:
        return self.title or self.code or ""


class ShippingAddress(BaseModel):
    """Delivery address. Unknown keys are kept so the audit record stores them."""

    model_config = ConfigDict(frozen=True, extra="allow")

    first_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province_code: str | None = None
    zip: str | None = None
    country: str | None = None
    phone: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def one_line(self) -> str:
        parts = [self.address1, self.address2, self.city, self.province_code, self.zip]
        return ", ".join(p for p in parts if p)


class OrderEvent(BaseModel):
    """
    A Shopify order as delivered by the orders/create webhook.

    Only ``id`` is required; every other field has an explicit default so
    downstream code never has to guess at missing keys.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str | None = None
    order_number: int | None = None
    email: str | None = None
    phone: str | None = None
    note: str | None = None
    currency: str = "USD"
    total_price: Decimal = Decimal("0")
    line_items: list[LineItem] = Field(default_factory=list)
    shipping_lines: list[ShippingLine] = Field(default_factory=list)
    shipping_address: ShippingAddress | None = None

    @field_validator("line_items", "shipping_lines", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return value or []

    @property
    def display_number(self) -> str:
        """Order number as shown to staff, falling back to the order name."""
        if self.order_number is not None:
            return str(self.order_number)
        return self.name or str(self.id)

    @property
    def shipping_line(self) -> ShippingLine | None:
        return self.shipping_lines[0] if self.shipping_lines else None

    @property
    def customer_name(self) -> str:
        return self.shipping_address.full_name if self.shipping_address else ""

    @property
    def customer_first_name(self) -> str:
        if self.shipping_address and self.shipping_address.first_name:
            return self.shipping_address.first_name
        return ""

    @property
    def customer_phone(self) -> str | None:
        if self.shipping_address and self.shipping_address.phone:
            return self.shipping_address.phone
        return self.phone


class FulfillmentAssignment(BaseModel):
    """Location a Shopify fulfillment order is assigned to."""

    location_id: str
    location_name: str | None = None
