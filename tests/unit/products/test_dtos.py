"""Unit tests for product DTO validation."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.products.dtos import CreateProductDTO, ReviewProductDTO, UpdateProductDTO
from modules.products.models import ProductStatus

pytestmark = pytest.mark.unit


class TestCreateProductDTO:
    def test_name_is_stripped(self):
        dto = CreateProductDTO(name="  Lamp  ", price=Decimal("1.00"))
        assert dto.name == "Lamp"
        assert dto.stock == 0

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-3.50")])
    def test_price_must_be_positive(self, price):
        with pytest.raises(ValidationError):
            CreateProductDTO(name="Lamp", price=price)

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            CreateProductDTO(name="Lamp", price=Decimal("1.00"), stock=-1)

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            CreateProductDTO(name="   ", price=Decimal("1.00"))

    def test_is_frozen(self):
        dto = CreateProductDTO(name="Lamp", price=Decimal("1.00"))
        with pytest.raises(ValidationError):
            dto.name = "Other"


class TestUpdateProductDTO:
    def test_changes_only_lists_supplied_fields(self):
        dto = UpdateProductDTO(description="New copy")
        assert dto.changes() == {"description": "New copy"}

    def test_price_must_be_positive_when_given(self):
        with pytest.raises(ValidationError):
            UpdateProductDTO(price=Decimal("0"))


class TestReviewProductDTO:
    def test_pending_is_not_a_decision(self):
        with pytest.raises(ValidationError):
            ReviewProductDTO(status=ProductStatus.PENDING)

    def test_rejected_is_accepted(self):
        assert ReviewProductDTO(status="REJECTED").status == ProductStatus.REJECTED
