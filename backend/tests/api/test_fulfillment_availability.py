"""
Tests for the fulfillment availability endpoints

POST /api/v1/orders/{id}/fulfillments/availability
POST /api/v1/orders/{id}/fulfillments/{fulfillment_id}/selection
POST /api/v1/orders/{id}/fulfillments/items
"""
from fulfillops.core.settings import settings
from tests.factories import (
    context_payload,
    create_test_fulfillment,
    create_test_order,
    make_selection,
)


class TestAvailabilityEndpoint:
    """Tests for POST /orders/{id}/fulfillments/availability"""

    def test_returns_free_units(self, client, partially_fulfilled_context):
        response = client.post(
            "/api/v1/orders/1/fulfillments/availability",
            json=context_payload(partially_fulfilled_context),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["order_id"] == 1
        assert {item["item_id"]: len(item["selection"]) for item in data["items"]} == {1: 2, 2: 1}
        assert data["items"][0]["item"]["name"] == "Widget"
        assert data["summary"]["total_units"] == 3
        assert data["summary"]["selected_units"] == 0

    def test_plain_json_metadata(self, client):
        payload = {
            "order": {"id": 3, "line_items": [{"id": 1, "product_id": 11, "quantity": 3}]},
            "fulfillments": [{
                "id": 1,
                "status": "unfulfilled",
                "is_fulfilled": False,
                "meta_data": [{"id": 1, "key": "_items", "value": [{"item_id": 1, "qty": 2}]}],
            }],
        }

        response = client.post("/api/v1/orders/3/fulfillments/availability", json=payload)

        assert response.status_code == 200
        assert [len(item["selection"]) for item in response.json()["items"]] == [1]

    def test_malformed_item_rows_do_not_fail(self, client):
        payload = {
            "order": {"id": 3, "line_items": [{"id": 1, "product_id": 11, "quantity": 3}]},
            "fulfillments": [{
                "id": 1,
                "meta_data": [{"key": "_items", "value": [{"item_id": 1, "qty": "two"}, {"item_id": 1, "qty": 1}]}],
            }],
        }

        response = client.post("/api/v1/orders/3/fulfillments/availability", json=payload)

        assert response.status_code == 200
        assert [len(item["selection"]) for item in response.json()["items"]] == [2]

    def test_unmatched_refund_is_not_selected(self, client):
        payload = {
            "order": {"id": 4, "line_items": [{"id": 1, "product_id": 101, "quantity": 2}]},
            "refunds": [{
                "id": 7,
                "refunded_line_items": [{"id": 900, "product_id": 555, "quantity": -1}],
            }],
        }

        response = client.post("/api/v1/orders/4/fulfillments/availability", json=payload)

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["selected_units"] == 0
        assert summary["total_units"] == 2

    def test_order_id_mismatch(self, client, partially_fulfilled_context):
        response = client.post(
            "/api/v1/orders/2/fulfillments/availability",
            json=context_payload(partially_fulfilled_context),
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["details"]["field"] == "order.id"
        assert data["timestamp"].endswith("Z")

    def test_malformed_body(self, client):
        response = client.post(
            "/api/v1/orders/1/fulfillments/availability",
            json={"order": {"line_items": []}},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert any(error["field"].startswith("order") for error in data["details"]["errors"])

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_root_uses_project_name(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == f"{settings.PROJECT_NAME} API"
        assert client.app.title == f"{settings.PROJECT_NAME} API"


class TestSelectionEndpoint:
    """Tests for POST /orders/{id}/fulfillments/{fulfillment_id}/selection"""

    def test_editable_selection(self, client, partially_fulfilled_context):
        response = client.post(
            "/api/v1/orders/1/fulfillments/10/selection",
            json=context_payload(partially_fulfilled_context),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "fulfilled"
        assert data["is_locked"] is False
        assert data["lock_message"] is None
        widgets = next(item for item in data["items"] if item["item_id"] == 1)
        assert [slot["checked"] for slot in widgets["selection"]] == [True, True, False, False]
        assert data["summary"]["selected_units"] == 2

    def test_locked_fulfillment(self, client):
        order = create_test_order([{"id": 1, "quantity": 2}], order_id=4)
        context = {
            "order": order,
            "fulfillments": [
                create_test_fulfillment(
                    [(1, 1)], fulfillment_id=8, is_locked=True,
                    lock_message="This fulfillment is locked.",
                ),
            ],
            "refunds": [],
        }

        response = client.post("/api/v1/orders/4/fulfillments/8/selection", json=context_payload(context))

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "locked"
        assert data["is_locked"] is True
        assert data["lock_message"] == "This fulfillment is locked."

    def test_unknown_fulfillment(self, client, partially_fulfilled_context):
        response = client.post(
            "/api/v1/orders/1/fulfillments/999/selection",
            json=context_payload(partially_fulfilled_context),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestSelectionItemsEndpoint:
    """Tests for POST /orders/{id}/fulfillments/items"""

    def test_converts_checked_units(self, client):
        items = [make_selection(1, 2, checked=True), make_selection(2, 3)]

        response = client.post(
            "/api/v1/orders/1/fulfillments/items",
            json={"items": [item.model_dump() for item in items]},
        )

        assert response.status_code == 200
        assert response.json()["items"] == [{"item_id": 1, "qty": 2}]

    def test_nothing_selected(self, client):
        response = client.post(
            "/api/v1/orders/1/fulfillments/items",
            json={"items": [make_selection(1, 2).model_dump()]},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert data["message"] == "Select at least one item to fulfill."
