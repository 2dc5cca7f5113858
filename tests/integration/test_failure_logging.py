"""Each failed request is logged by the error pipeline and nowhere else."""

import logging
from unittest.mock import patch

import pytest

from modules.orders.services import OrderService

pytestmark = pytest.mark.integration

PIPELINE_LOGGER = "modules.core.pipeline"


@pytest.fixture()
def failure_records(caplog):
    """caplog records, including ``django.request`` (which does not propagate)."""
    request_logger = logging.getLogger("django.request")
    request_logger.addHandler(caplog.handler)
    caplog.set_level(logging.INFO)
    try:
        yield caplog
    finally:
        request_logger.removeHandler(caplog.handler)


def _levels(caplog, name):
    return [record.levelname for record in caplog.records if record.name == name]


def test_conflict_is_logged_once(customer_client, make_product, failure_records):
    scarce = make_product(stock=1)

    response = customer_client.post(
        "/api/v1/orders/",
        {"items": [{"product_id": scarce.id, "quantity": 999}]},
        format="json",
    )

    assert response.status_code == 409
    assert _levels(failure_records, PIPELINE_LOGGER) == ["WARNING"]
    assert _levels(failure_records, "django.request") == []


def test_server_error_is_logged_once(customer_client, failure_records):
    with patch.object(OrderService, "get_order", side_effect=RuntimeError("kaboom")):
        response = customer_client.get("/api/v1/orders/1/")

    assert response.status_code == 500
    assert _levels(failure_records, PIPELINE_LOGGER) == ["ERROR", "CRITICAL"]
    assert _levels(failure_records, "django.request") == []


def test_unrouted_path_is_logged_once(api_client, failure_records):
    response = api_client.get("/no/such/path/")

    assert response.status_code == 404
    assert _levels(failure_records, PIPELINE_LOGGER) == ["WARNING"]
    assert _levels(failure_records, "django.request") == []
