"""Delivery-dispatch (Shipday) request schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class DeliveryOrderItem(BaseModel):
    """One line of a delivery job."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    quantity: int
    unit_price: Decimal
    detail: str = ""

    @field_serializer("unit_price")
    def serialize_number(self, value: Decimal) -> float:
        return float(value)


class DeliveryOrder(BaseModel):
    """Delivery job as accepted by ``POST /orders``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_number: str
    customer_name: str
    customer_address: str
    customer_email: str = ""
    customer_phone_number: str = ""
    order_item: list[DeliveryOrderItem] = Field(default_factory=list)
    delivery_instruction: str = ""
    order_source: str = "Shopify"
    additional_id: str | None = Field(
        default=None, description="POS order id, for cross-reference"
    )
    total_order_cost: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    payment_method: str = "Prepaid"

    # Shipday expects JSON numbers, not the strings pydantic emits for Decimal
    @field_serializer("total_order_cost", "delivery_fee")
    def serialize_number(self, value: Decimal) -> float:
        return float(value)
