# tests/fixtures/order_fixtures.py
"""Test fixtures for order synchronization tests."""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from xero_sync.domains.orders.models import Order, OrderAddress, OrderLine


@pytest.fixture
def billing_address() -> OrderAddress:
    return OrderAddress(
        first_name="Jane",
        last_name="Doe",
        address_1="1 Queen St",
        city="Auckland",
        state="AUK",
        postcode="1010",
        country="NZ",
    )


@pytest.fixture
def shipping_address() -> OrderAddress:
    return OrderAddress(
        first_name="John",
        last_name="Doe",
        address_1="22 Shortland St",
        city="Auckland",
        postcode="1010",
        country="NZ",
    )


@pytest.fixture
def sample_order(billing_address: OrderAddress, shipping_address: OrderAddress) -> Order:
    """Paid order 42: two SKU lines, shipping, paid by Stripe."""
    return Order(
        id=42,
        created_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
        total=Decimal("125.50"),
        shipping_total=Decimal("10.00"),
        shipping_tax=Decimal("1.50"),
        payment_method="stripe",
        billing_email="jane@example.com",
        billing_phone="+64 21 555 0100",
        billing=billing_address,
        shipping=shipping_address,
        lines=[
            OrderLine(
                name="Blue Mug",
                quantity=Decimal("2"),
                unit_price=Decimal("20.00"),
                total_tax=Decimal("6.00"),
                sku="MUG-BLUE",
                product_name="Blue Mug",
                product_price=Decimal("20.00"),
            ),
            OrderLine(
                name="Teapot",
                quantity=Decimal("1"),
                unit_price=Decimal("60.00"),
                total_tax=Decimal("9.00"),
                sku="TEAPOT",
                product_name="Teapot",
                product_price=Decimal("65.00"),
            ),
        ],
    )


@pytest.fixture
def guest_order() -> Order:
    """Order without names, email, addresses, SKUs or shipping."""
    return Order(
        id="77",
        created_at=datetime(2024, 6, 3, tzinfo=timezone.utc),
        total=Decimal("15.00"),
        payment_method="cod",
        lines=[
            OrderLine(
                name="Gift card",
                quantity=Decimal("1"),
                unit_price=Decimal("15.00"),
            )
        ],
    )
