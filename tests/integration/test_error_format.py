"""Integration tests for the problem-details error responses."""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from modules.core.pipeline import GENERIC_DETAIL, PROBLEM_CONTENT_TYPE, TRANSACTION_DETAIL
from modules.orders.models import Order
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration

PROBLEM_FIELDS = {"type", "title", "status", "detail", "instance", "traceId", "timestamp"}


class TestProblemDetails:
    def test_unauthenticated_request(self, api_client):
        response = api_client.get("/api/v1/orders/")

        assert response.status_code == 401
        assert response["Content-Type"] == PROBLEM_CONTENT_TYPE
        assert response["WWW-Authenticate"].startswith("Bearer")
        data = response.json()
        assert PROBLEM_FIELDS <= set(data)
        assert data["type"] == "https://httpstatuses.com/401"
        assert data["title"] == "Unauthorized Access"
        assert data["instance"] == "/api/v1/orders/"
        assert "errors" not in data

    def test_trace_id_matches_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation

        response = client.get("/api/v1/orders/")

        assert response.json()["traceId"] == cid
        assert response["X-Request-ID"] == cid

    def test_validation_errors_map(self, admin_client):
        response = admin_client.post(
            "/api/v1/products/", {"price": "abc"}, format="json"
        )

        assert response.status_code == 400
        data = response.json()
        assert data["title"] == "Validation Error"
        assert set(data["errors"]) >= {"name", "price", "stock"}
        assert all(isinstance(messages, list) for messages in data["errors"].values())

    def test_malformed_json_is_bad_request(self, admin_client):
        response = admin_client.post(
            "/api/v1/products/", data="{", content_type="application/json"
        )

        assert response.status_code == 400
        assert response.json()["title"] == "Bad Request"

    def test_method_not_allowed_is_bad_request(self, customer_client):
        response = customer_client.patch("/api/v1/orders/", {}, format="json")

        assert response.status_code == 400
        assert response.json()["title"] == "Bad Request"

    def test_unrouted_path_uses_problem_format(self, api_client):
        response = api_client.get("/no/such/path/")

        assert response.status_code == 404
        assert response["Content-Type"] == PROBLEM_CONTENT_TYPE
        assert response.json()["title"] == "Resource Not Found"


class TestUnexpectedFailures:
    def test_internal_error_hides_details(self, customer_client, settings):
        settings.IS_DEVELOPMENT = False
        with patch.object(OrderService, "get_order", side_effect=RuntimeError("kaboom")):
            response = customer_client.get("/api/v1/orders/1/")

        assert response.status_code == 500
        data = response.json()
        assert data["title"] == "Internal Server Error"
        assert data["detail"] == GENERIC_DETAIL
        assert "kaboom" not in response.content.decode()
        assert "stackTrace" not in data

    def test_development_adds_stack_trace(self, customer_client, settings):
        settings.IS_DEVELOPMENT = True
        with patch.object(OrderService, "get_order", side_effect=RuntimeError("kaboom")):
            response = customer_client.get("/api/v1/orders/1/")

        data = response.json()
        assert "RuntimeError: kaboom" in data["stackTrace"]
        assert data["source"]

    def test_plain_django_view_failure(self, client):
        with patch("modules.core.views.connections") as connections:
            connections.__getitem__.side_effect = RuntimeError("pool exhausted")
            response = client.get("/health")

        assert response.status_code == 500
        assert response["Content-Type"] == PROBLEM_CONTENT_TYPE
        assert response.json()["instance"] == "/health"

    def test_unsupported_operation_is_501(self, customer_client):
        with patch.object(
            OrderService, "get_order", side_effect=NotImplementedError("Order export")
        ):
            response = customer_client.get("/api/v1/orders/1/")

        assert response.status_code == 501
        data = response.json()
        assert data["title"] == "Operation Not Supported"
        assert data["detail"] == "Order export"

    def test_storage_failure_rolls_back_order(self, customer_client, product):
        with patch.object(
            ProductDjangoRepository, "save_stock", side_effect=DatabaseError("io error")
        ):
            response = customer_client.post(
                "/api/v1/orders/",
                {"items": [{"product_id": product.id, "quantity": 2}]},
                format="json",
            )

        assert response.status_code == 500
        data = response.json()
        assert data["title"] == "Transaction Failed"
        assert data["detail"] == TRANSACTION_DETAIL
        assert not Order.objects.exists()
        product.refresh_from_db()
        assert product.stock == 5
