from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from rest_framework.test import APIClient

from modules.core.identity import Identity, Roles
from modules.products.models import Product, ProductStatus

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users by role
# ---------------------------------------------------------------------------


def make_user(username: str, *roles: str):
    user = User.objects.create_user(
        username=username, email=f"{username}@example.com", password="testpass123"
    )
    for role in roles:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
    return user


@pytest.fixture()
def customer_user():
    return make_user("customer", Roles.USER)


@pytest.fixture()
def other_user():
    return make_user("other", Roles.USER)


@pytest.fixture()
def admin_user():
    return make_user("admin", Roles.USER, Roles.ADMIN)


@pytest.fixture()
def super_admin_user():
    return make_user("root", Roles.USER, Roles.SUPER_ADMIN)


@pytest.fixture()
def customer_identity(customer_user):
    return Identity.from_user(customer_user)


@pytest.fixture()
def other_identity(other_user):
    return Identity.from_user(other_user)


@pytest.fixture()
def admin_identity(admin_user):
    return Identity.from_user(admin_user)


@pytest.fixture()
def super_admin_identity(super_admin_user):
    return Identity.from_user(super_admin_user)


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def customer_client(customer_user):
    return client_for(customer_user)


@pytest.fixture()
def other_client(other_user):
    return client_for(other_user)


@pytest.fixture()
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture()
def super_admin_client(super_admin_user):
    return client_for(super_admin_user)


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product(admin_user):
    def _make(
        name: str = "Widget",
        price: str = "10.00",
        stock: int = 5,
        status: str = ProductStatus.APPROVED,
    ) -> Product:
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock=stock,
            status=status,
            created_by=admin_user,
        )

    return _make


@pytest.fixture()
def product(make_product):
    """Approved product: price 10.00, stock 5."""
    return make_product()
