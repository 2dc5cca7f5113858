"""Product domain errors.

Raised by the Service Layer when business rules are violated.  They are
plain ``AppError`` instances; the error pipeline turns them into HTTP
responses.
"""

from __future__ import annotations

from modules.core.errors import AppError, Conflict, Forbidden, InvalidOperation, NotFound


def product_not_found(product_id: int) -> AppError:
    return AppError(NotFound("Product", product_id))


def product_forbidden(product_id: int, action: str) -> AppError:
    """The caller neither created the product nor is a SuperAdmin."""
    return AppError(Forbidden(resource=f"product {product_id}", action=action))


def product_in_use() -> AppError:
    return AppError(
        Conflict("Product", "Product is referenced by existing orders"),
    )


def product_not_pending() -> AppError:
    return AppError(
        InvalidOperation(operation="review_product"),
        "Only pending products can be approved or rejected",
    )
