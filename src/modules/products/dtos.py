"""Product DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation.
- ``UpdateProductDTO``: input for partial product updates.
- ``ReviewProductDTO``: SuperAdmin approve/reject decision.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.products.models import ProductStatus


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``name`` is a non-empty string of at most 100 characters.
    - ``price`` is a Decimal greater than zero.
    - ``stock`` is non-negative.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(max_length=100)
    price: Decimal
    description: str = Field(default="", max_length=500)
    stock: int = 0

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


class UpdateProductDTO(BaseModel):
    """Immutable DTO for product update requests.

    All fields are optional; only supplied fields are updated.  Stock is
    not editable here: it only moves through orders.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip() if v is not None else v

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class ReviewProductDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ProductStatus

    @field_validator("status")
    @classmethod
    def must_be_a_decision(cls, v: ProductStatus) -> ProductStatus:
        if v == ProductStatus.PENDING:
            raise ValueError("Status must be APPROVED or REJECTED.")
        return v
