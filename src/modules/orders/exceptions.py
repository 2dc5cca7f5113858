"""Order domain errors.

Two order-specific details variants plus helpers for the common ones.
All of them travel as ``AppError`` and are rendered by the error pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Tuple

from modules.core.errors import (
    AppError,
    ErrorDetails,
    ErrorKind,
    Forbidden,
    InvalidOperation,
    InvalidState,
    NotFound,
)


@dataclass(frozen=True)
class UnavailableProducts(ErrorDetails):
    """One or more requested products do not exist or are not approved."""

    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION

    product_ids: Tuple[int, ...] = field(default_factory=tuple)

    def default_message(self) -> str:
        return "One or more products are not available or not approved"

    def field_errors(self) -> Dict[str, List[str]]:
        ids = ", ".join(str(pid) for pid in self.product_ids)
        return {"items": [f"Products unavailable or not approved: {ids}"]}

    def log_fields(self) -> Dict[str, Any]:
        return {"unavailable_product_ids": list(self.product_ids)}


@dataclass(frozen=True)
class InsufficientStock(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT

    product_id: int = 0
    product_name: str = ""
    available: int = 0
    requested: int = 0

    def default_message(self) -> str:
        return (
            f"Insufficient stock for product {self.product_name}. "
            f"Available: {self.available}, Requested: {self.requested}"
        )

    def log_fields(self) -> Dict[str, Any]:
        return {
            "resource_type": "Product",
            "conflict_reason": "insufficient stock",
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


def order_not_found(order_id: int) -> AppError:
    return AppError(NotFound("Order", order_id))


def order_forbidden(order_id: int, action: str) -> AppError:
    return AppError(Forbidden(resource=f"order {order_id}", action=action))


def order_terminal(current_status: str, attempted: str, message: str) -> AppError:
    return AppError(
        InvalidState(
            resource_type="Order",
            current_state=current_status,
            attempted=attempted,
        ),
        message,
    )


def cancel_via_status_update() -> AppError:
    return AppError(
        InvalidOperation(operation="update_status"),
        "Orders are cancelled through the cancel endpoint so stock is restored.",
    )
