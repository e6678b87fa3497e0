"""
Shared test fixtures for FulfillOps tests

Provides the API client and common order snapshots
"""
import pytest
from fastapi.testclient import TestClient

from fulfillops.main import app
from tests.factories import (
    create_test_fulfillment,
    create_test_order,
    create_test_refund,
    reset_sequences,
)


@pytest.fixture(autouse=True)
def _reset_sequences():
    """Predictable ids in every test."""
    reset_sequences()
    yield


@pytest.fixture
def client():
    """Create a test client"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def two_line_order():
    """Order 1 with line item 1 (product 101, qty 5) and line item 2 (product 102, qty 2)"""
    return create_test_order(
        [
            {"id": 1, "product_id": 101, "quantity": 5, "name": "Widget"},
            {"id": 2, "product_id": 102, "quantity": 2, "name": "Gadget"},
        ],
        order_id=1,
    )


@pytest.fixture
def partially_fulfilled_context(two_line_order):
    """
    Order with one refund and two fulfillments:
        refund: 1 widget
        fulfillment 10: 2 widgets (fulfilled)
        fulfillment 11: 1 gadget (draft)
    Leaves 2 widgets and 1 gadget free.
    """
    return {
        "order": two_line_order,
        "fulfillments": [
            create_test_fulfillment([(1, 2)], fulfillment_id=10, is_fulfilled=True),
            create_test_fulfillment([(2, 1)], fulfillment_id=11),
        ],
        "refunds": [create_test_refund([(101, 1)], refund_id=50)],
    }
