"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line.
- ``CreateOrderDTO``: input for order placement (nested items).
- ``UpdateOrderStatusDTO``: administrative status change.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import OrderStatus


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order line in a placement request.

    The client sends ``product_id`` and ``quantity``.
    ``unit_price`` is resolved by the Service Layer from the product catalogue.
    """

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order placement requests.

    Validates:
    - ``items`` must contain at least one line.
    - Each line quantity must be positive.

    The same product may appear on several lines; stock is checked against
    the accumulated quantity.
    """

    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @property
    def product_ids(self) -> List[int]:
        """Distinct product ids in first-seen order."""
        return list(dict.fromkeys(item.product_id for item in self.items))

    def quantities(self) -> Dict[int, int]:
        """Total quantity per product id, in first-seen order."""
        totals: Dict[int, int] = {}
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals


class UpdateOrderStatusDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
