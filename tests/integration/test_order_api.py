"""Integration tests for the order endpoints."""

from decimal import Decimal

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def place(client, *lines):
    return client.post(
        ORDERS_URL,
        {"items": [{"product_id": pid, "quantity": qty} for pid, qty in lines]},
        format="json",
    )


class TestPlaceOrder:
    def test_place_order_reserves_stock(self, customer_client, product):
        response = place(customer_client, (product.id, 2))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == OrderStatus.PROCESSING
        assert data["total_amount"] == "20.00"
        assert data["items"][0]["unit_price"] == "10.00"
        assert data["items"][0]["product_name"] == "Widget"
        product.refresh_from_db()
        assert product.stock == 3

    def test_insufficient_stock_is_409(self, customer_client, make_product):
        scarce = make_product(name="Scarce", stock=3)

        response = place(customer_client, (scarce.id, 5))

        assert response.status_code == 409
        data = response.json()
        assert data["title"] == "Resource Conflict"
        assert data["detail"] == (
            "Insufficient stock for product Scarce. Available: 3, Requested: 5"
        )
        scarce.refresh_from_db()
        assert scarce.stock == 3
        assert Order.objects.count() == 0

    def test_unapproved_product_is_400_with_errors(self, customer_client, make_product):
        pending = make_product(status="PENDING")

        response = place(customer_client, (pending.id, 1))

        assert response.status_code == 400
        data = response.json()
        assert data["title"] == "Validation Error"
        assert str(pending.id) in data["errors"]["items"][0]

    def test_empty_items_is_validation_error(self, customer_client):
        response = customer_client.post(ORDERS_URL, {"items": []}, format="json")

        assert response.status_code == 400
        assert any(key.startswith("items") for key in response.json()["errors"])

    def test_non_positive_quantity_is_validation_error(self, customer_client, product):
        response = place(customer_client, (product.id, 0))

        assert response.status_code == 400
        assert "items.0.quantity" in response.json()["errors"]

    def test_out_of_range_product_id_is_validation_error(self, customer_client):
        response = place(customer_client, (2**70, 1))

        assert response.status_code == 400
        assert response.json()["title"] == "Validation Error"
        assert "items.0.product_id" in response.json()["errors"]

    def test_out_of_range_quantity_is_validation_error(self, customer_client, product):
        response = place(customer_client, (product.id, 2**31))

        assert response.status_code == 400
        assert "items.0.quantity" in response.json()["errors"]
        product.refresh_from_db()
        assert product.stock == 5

    def test_anonymous_is_401(self, api_client, product):
        response = place(api_client, (product.id, 1))

        assert response.status_code == 401
        assert response.json()["title"] == "Unauthorized Access"
        product.refresh_from_db()
        assert product.stock == 5


class TestReadOrders:
    def test_list_only_shows_own_orders(
        self, customer_client, other_client, admin_client, product
    ):
        place(customer_client, (product.id, 1))
        place(other_client, (product.id, 1))

        assert customer_client.get(ORDERS_URL).json()["count"] == 1
        assert admin_client.get(ORDERS_URL).json()["count"] == 2

    def test_filter_by_status(self, customer_client, product):
        place(customer_client, (product.id, 1))

        response = customer_client.get(ORDERS_URL, {"status": "CANCELLED"})
        assert response.json()["count"] == 0
        response = customer_client.get(ORDERS_URL, {"status": "PROCESSING"})
        assert response.json()["count"] == 1

    def test_other_users_order_is_403(self, customer_client, other_client, product):
        order_id = place(customer_client, (product.id, 1)).json()["id"]

        response = other_client.get(f"{ORDERS_URL}{order_id}/")

        assert response.status_code == 403
        assert response.json()["title"] == "Access Forbidden"

    def test_missing_order_is_404(self, customer_client):
        response = customer_client.get(f"{ORDERS_URL}999999/")

        assert response.status_code == 404
        assert response.json()["detail"] == "Order with ID '999999' was not found"


class TestCancelOrder:
    def test_owner_cancel_restores_stock(self, customer_client, product):
        order_id = place(customer_client, (product.id, 2)).json()["id"]

        response = customer_client.post(f"{ORDERS_URL}{order_id}/cancel/")

        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.CANCELLED
        product.refresh_from_db()
        assert product.stock == 5

    def test_delete_route_also_cancels(self, customer_client, product):
        order_id = place(customer_client, (product.id, 2)).json()["id"]

        response = customer_client.delete(f"{ORDERS_URL}{order_id}/")

        assert response.status_code == 204
        assert Order.objects.get(id=order_id).status == OrderStatus.CANCELLED

    def test_non_owner_cancel_is_403_and_stock_unchanged(
        self, customer_client, other_client, product
    ):
        order_id = place(customer_client, (product.id, 2)).json()["id"]

        response = other_client.post(f"{ORDERS_URL}{order_id}/cancel/")

        assert response.status_code == 403
        product.refresh_from_db()
        assert product.stock == 3

    def test_double_cancel_is_invalid_state(self, customer_client, product):
        order_id = place(customer_client, (product.id, 2)).json()["id"]
        customer_client.post(f"{ORDERS_URL}{order_id}/cancel/")

        response = customer_client.post(f"{ORDERS_URL}{order_id}/cancel/")

        assert response.status_code == 400
        data = response.json()
        assert data["title"] == "Invalid State Transition"
        assert data["detail"] == "Order is already cancelled"
        product.refresh_from_db()
        assert product.stock == 5


class TestUpdateStatus:
    def test_admin_completes_order(self, customer_client, admin_client, product):
        order_id = place(customer_client, (product.id, 1)).json()["id"]

        response = admin_client.put(
            f"{ORDERS_URL}{order_id}/status/", {"status": "COMPLETED"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.COMPLETED
        assert data["completed_at"] is not None

    def test_plain_user_is_403(self, customer_client, product):
        order_id = place(customer_client, (product.id, 1)).json()["id"]

        response = customer_client.put(
            f"{ORDERS_URL}{order_id}/status/", {"status": "COMPLETED"}, format="json"
        )

        assert response.status_code == 403

    def test_cancelled_via_status_is_invalid_operation(
        self, customer_client, admin_client, product
    ):
        order_id = place(customer_client, (product.id, 1)).json()["id"]

        response = admin_client.put(
            f"{ORDERS_URL}{order_id}/status/", {"status": "CANCELLED"}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["title"] == "Invalid Operation"
        product.refresh_from_db()
        assert product.stock == 4

    def test_completed_order_is_frozen(self, customer_client, admin_client, product):
        order_id = place(customer_client, (product.id, 1)).json()["id"]
        url = f"{ORDERS_URL}{order_id}/status/"
        admin_client.put(url, {"status": "COMPLETED"}, format="json")

        response = admin_client.put(url, {"status": "PROCESSING"}, format="json")

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Cannot update status of completed or cancelled orders"
        )

    def test_unknown_status_is_validation_error(
        self, customer_client, admin_client, product
    ):
        order_id = place(customer_client, (product.id, 1)).json()["id"]

        response = admin_client.put(
            f"{ORDERS_URL}{order_id}/status/", {"status": "SHIPPED"}, format="json"
        )

        assert response.status_code == 400
        assert "status" in response.json()["errors"]


class TestTotals:
    def test_total_matches_items(self, customer_client, make_product):
        a = make_product(name="A", price="3.33", stock=10)
        b = make_product(name="B", price="0.01", stock=10)

        data = place(customer_client, (a.id, 3), (b.id, 7)).json()

        item_sum = sum(Decimal(item["total_price"]) for item in data["items"])
        assert Decimal(data["total_amount"]) == item_sum == Decimal("10.06")
