"""POS (Square) request schemas - orders and external payments."""

from enum import Enum

from pydantic import BaseModel, Field


class FulfillmentState(str, Enum):
    """Square fulfillment states used by the dispatch pipeline."""

    PROPOSED = "PROPOSED"
    RESERVED = "RESERVED"  # shown on the kitchen display


class Money(BaseModel):
    """Amount in integer minor units."""

    amount: int
    currency: str = "USD"


class POSOrderModifier(BaseModel):
    """Catalog modifier applied to a POS line item."""

    catalog_object_id: str | None = None
    name: str | None = None
    base_price_money: Money


class POSOrderLineItem(BaseModel):
    """Line item in a POS order."""

    name: str
    quantity: str = "1"
    base_price_money: Money
    modifiers: list[POSOrderModifier] = Field(default_factory=list)
    note: str | None = None


class POSPickupRecipient(BaseModel):
    display_name: str
    phone_number: str = ""


class POSPickupDetails(BaseModel):
    recipient: POSPickupRecipient
    note: str = ""
    schedule_type: str = "ASAP"


class POSFulfillment(BaseModel):
    type: str = "PICKUP"
    state: FulfillmentState = FulfillmentState.PROPOSED
    pickup_details: POSPickupDetails


class POSOrderRequest(BaseModel):
    """Body of a Square CreateOrder call, minus the idempotency key."""

    location_id: str
    reference_id: str | None = None
    ticket_name: str | None = None
    line_items: list[POSOrderLineItem]
    fulfillments: list[POSFulfillment]


class POSOrderSnapshot(BaseModel):
    """Fields of a Square order the pipeline reads back."""

    id: str
    version: int | None = None
    fulfillment_uids: list[str] = Field(default_factory=list)
    total_money: Money


class POSPaymentRequest(BaseModel):
    """External payment recorded against a POS order."""

    order_id: str
    location_id: str
    amount_money: Money
    source: str = Field(description="Free-text description of the payment origin")
