"""
Fixtures for dispatch tests.
"""

from datetime import UTC, datetime
from typing import Any

import pytest
from dispatch_schemas import FulfillmentAssignment, LocationConfig, OrderEvent

from apps.web.dispatch.services import (
    AuditLedger,
    DeliverySubmitter,
    DispatchOrchestrator,
    FeeReconciler,
    LocationResolver,
    POSSubmitter,
)
from apps.web.dispatch.store import AuditStore
from apps.web.dispatch.tests.doubles import (
    FakeCommerceClient,
    FakeDeliveryClient,
    FakePOSClient,
    FakeTable,
)
from apps.web.dispatch.tests.factories import OrderPayloadFactory, transactions_response

# 23:30 on 2025-01-15 in New York, already 2025-01-16 in UTC
FIXED_NOW = datetime(2025, 1, 16, 4, 30, tzinfo=UTC)
PAYMENT_CLOCK = 1_700_000_000.0


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def order_payload() -> dict[str, Any]:
    return OrderPayloadFactory(id=5551234, order_number=1001)


@pytest.fixture
def order(order_payload: dict[str, Any]) -> OrderEvent:
    return OrderEvent.model_validate(order_payload)


@pytest.fixture
def location() -> LocationConfig:
    return LocationConfig(
        fulfillment_location_id="71234",
        pos_location_id="SQ-SOUTH",
        delivery_api_key="shipday-south",
        name="South End",
        timezone="America/New_York",
    )


@pytest.fixture
def default_location() -> LocationConfig:
    return LocationConfig(
        fulfillment_location_id="70000",
        pos_location_id="SQ-MAIN",
        delivery_api_key="shipday-main",
        name="Main Kitchen",
        timezone="America/New_York",
        is_default=True,
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def store(table: FakeTable) -> AuditStore:
    return AuditStore(table)


@pytest.fixture
def commerce_client() -> FakeCommerceClient:
    return FakeCommerceClient(
        assignment=FulfillmentAssignment(location_id="71234", location_name="South End"),
        metafields={"pos_location_id": "SQ-SOUTH", "delivery_api_key": "shipday-south"},
        transactions=transactions_response(gross="24.00", fees=("0.75",)),
    )


@pytest.fixture
def pos_client() -> FakePOSClient:
    return FakePOSClient()


@pytest.fixture
def delivery_client() -> FakeDeliveryClient:
    return FakeDeliveryClient()


@pytest.fixture
def orchestrator(
    commerce_client: FakeCommerceClient,
    pos_client: FakePOSClient,
    delivery_client: FakeDeliveryClient,
    store: AuditStore,
    default_location: LocationConfig,
    clock,
) -> DispatchOrchestrator:
    return DispatchOrchestrator(
        resolver=LocationResolver(commerce_client, default_location),
        fee_reconciler=FeeReconciler(commerce_client),
        pos_submitter=POSSubmitter(
            pos_client, payment_window_seconds=600, clock=lambda: PAYMENT_CLOCK
        ),
        delivery_submitter=DeliverySubmitter(delivery_client),
        ledger=AuditLedger(store, clock=clock),
    )
