"""Order service layer (Use Cases).

Orchestrates the order transaction engine: placement, cancellation and
administrative status changes.  Every write runs inside one
``transaction.atomic()`` block owned by the service; a storage failure
anywhere in the block (commit included) rolls the whole unit back and is
reported as a ``TransactionFailure``.

Business rules enforced:
- Only APPROVED products can be ordered; unknown or unapproved ids fail
  the whole order.
- Stock is checked against the accumulated quantity per product before
  anything is written, with product rows locked in id order.
- Unit prices are snapshotted onto the items; the order total is their sum.
- Only the owner or an Admin/SuperAdmin may read or cancel an order.
- COMPLETED and CANCELLED are terminal; cancelling restores stock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict

import structlog
from django.db import DatabaseError, transaction
from django.utils import timezone

from modules.core.errors import AppError, TransactionFailure, Unauthorized
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InsufficientStock,
    UnavailableProducts,
    cancel_via_status_update,
    order_forbidden,
    order_not_found,
    order_terminal,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.core.identity import Identity
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(self, identity: Identity, dto: CreateOrderDTO) -> Order:
        """Place an order and reserve its stock atomically.

        Steps (one transaction):
        1. Lock the requested APPROVED products (ascending id).
        2. Fail if any requested product is missing or unapproved.
        3. Walk the lines in request order; fail on the first product whose
           accumulated quantity exceeds its stock.
        4. Create the order with price snapshots, decrement stock and move
           the order to PROCESSING.

        Raises:
            AppError(UNAUTHORIZED): anonymous caller.
            AppError(VALIDATION): ``UnavailableProducts``.
            AppError(CONFLICT): ``InsufficientStock``.
            AppError(TRANSACTION_FAILURE): storage failure; nothing persisted.
        """
        if not identity.is_authenticated or identity.user_id is None:
            raise AppError(Unauthorized())

        log = logger.bind(user_id=identity.user_id, line_count=len(dto.items))
        try:
            with transaction.atomic():
                order = self._place(identity, dto)
        except DatabaseError as exc:
            raise AppError(TransactionFailure("place_order")) from exc

        log.info(
            "order.placed",
            order_id=order.id,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(order.id) or order

    def _place(self, identity: Identity, dto: CreateOrderDTO) -> Order:
        product_ids = dto.product_ids
        products = self._product_repo.get_approved_for_update(product_ids)
        if len(products) != len(product_ids):
            missing = tuple(pid for pid in product_ids if pid not in products)
            raise AppError(UnavailableProducts(missing))

        reserved = dto.quantities()
        for product_id, quantity in reserved.items():
            product = products[product_id]
            if quantity > product.stock:
                raise AppError(
                    InsufficientStock(
                        product_id=product.id,
                        product_name=product.name,
                        available=product.stock,
                        requested=quantity,
                    )
                )

        lines = [
            {
                "product_id": item.product_id,
                "quantity": item.quantity,
                "unit_price": products[item.product_id].price,
            }
            for item in dto.items
        ]
        order = self._order_repo.create(identity.user_id, lines)

        for product_id in sorted(reserved):
            self._adjust_stock(products[product_id], -reserved[product_id])

        order.status = OrderStatus.PROCESSING
        return self._order_repo.save(order)

    def cancel_order(self, identity: Identity, order_id: int) -> Order:
        """Cancel an order and give its stock back.

        The order row is locked **first** so two concurrent cancellations
        cannot both restore stock.

        Raises:
            AppError(NOT_FOUND): order does not exist.
            AppError(FORBIDDEN): caller is neither owner nor privileged.
            AppError(INVALID_STATE): order is COMPLETED or already CANCELLED.
            AppError(TRANSACTION_FAILURE): storage failure; nothing persisted.
        """
        log = logger.bind(order_id=order_id, user_id=identity.user_id)
        try:
            with transaction.atomic():
                order = self._cancel(identity, order_id)
        except DatabaseError as exc:
            raise AppError(TransactionFailure("cancel_order")) from exc

        log.info("order.cancelled")
        return self._order_repo.get_by_id(order_id) or order

    def _cancel(self, identity: Identity, order_id: int) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise order_not_found(order_id)
        if not (order.is_owned_by(identity.user_id) or identity.is_privileged):
            raise order_forbidden(order_id, "cancel")
        if order.status == OrderStatus.COMPLETED:
            raise order_terminal(
                order.status, "cancel", "Cannot cancel completed orders"
            )
        if order.status == OrderStatus.CANCELLED:
            raise order_terminal(order.status, "cancel", "Order is already cancelled")

        released: Dict[int, int] = {}
        for item in order.items.all():
            released[item.product_id] = released.get(item.product_id, 0) + item.quantity

        products = self._product_repo.get_many_for_update(released)
        for product_id in sorted(released):
            self._adjust_stock(products[product_id], released[product_id])

        order.status = OrderStatus.CANCELLED
        return self._order_repo.save(order)

    def update_status(self, order_id: int, new_status: str) -> Order:
        """Administrative status change.

        Raises:
            AppError(NOT_FOUND): order does not exist.
            AppError(INVALID_STATE): order is already terminal.
            AppError(INVALID_OPERATION): target is CANCELLED (use ``cancel_order``).
            AppError(TRANSACTION_FAILURE): storage failure; nothing persisted.
        """
        log = logger.bind(order_id=order_id, new_status=str(new_status))
        try:
            with transaction.atomic():
                order = self._order_repo.get_for_update(order_id)
                if order is None:
                    raise order_not_found(order_id)
                if order.is_terminal:
                    raise order_terminal(
                        order.status,
                        f"change status to {new_status}",
                        "Cannot update status of completed or cancelled orders",
                    )
                if new_status == OrderStatus.CANCELLED:
                    raise cancel_via_status_update()

                old_status = order.status
                order.status = new_status
                if new_status == OrderStatus.COMPLETED and order.completed_at is None:
                    order.completed_at = timezone.now()
                order = self._order_repo.save(order)
        except DatabaseError as exc:
            raise AppError(TransactionFailure("update_status")) from exc

        log.info("order.status_updated", old_status=old_status)
        return self._order_repo.get_by_id(order_id) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, identity: Identity, order_id: int) -> Order:
        """Retrieve a single order visible to *identity*.

        Raises:
            AppError(NOT_FOUND): order does not exist.
            AppError(FORBIDDEN): caller is neither owner nor privileged.
        """
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise order_not_found(order_id)
        if not (order.is_owned_by(identity.user_id) or identity.is_privileged):
            raise order_forbidden(order_id, "view")
        return order

    def list_orders(self, identity: Identity) -> QuerySet:
        """Every order for privileged callers, otherwise only the caller's own."""
        if identity.is_privileged:
            return self._order_repo.list()
        return self._order_repo.list({"user_id": identity.user_id})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _adjust_stock(self, product: Product, delta: int) -> None:
        product.stock += delta
        self._product_repo.save_stock(product)
        logger.debug(
            "order.stock_adjusted",
            product_id=product.id,
            delta=delta,
            stock=product.stock,
        )
