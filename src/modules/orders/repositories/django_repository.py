"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  The service
layer owns the ``transaction.atomic()`` boundary; the methods here assume
they run inside it whenever they write or lock.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.db import models

from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    def create(self, user_id: int, lines: List[Dict[str, Any]]) -> Order:
        order = Order(user_id=user_id)
        order.save()

        total = Decimal("0.00")
        for line in lines:
            item = OrderItem(
                order=order,
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
            )
            item.save()
            total += item.total_price

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.debug("order.persisted", order_id=order.id, item_count=len(lines))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: int) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the owner FK (single JOIN) and
        ``prefetch_related`` for items and item products (separate
        batched queries).  Prevents N+1.
        """
        return (
            Order.objects.select_related("user")
            .prefetch_related("items__product")
            .filter(id=id)
            .first()
        )

    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        ``of=("self",)`` keeps the lock on the order row only; products
        are locked separately, in id order, by the product repository.
        """
        return (
            Order.objects.select_for_update(of=("self",))
            .select_related("user")
            .prefetch_related("items")
            .filter(id=id)
            .first()
        )

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List orders with optional filters and eager-loaded relations.

        Supported filter keys are any Django look-ups, e.g. ``user_id``
        or ``status``.
        """
        queryset = Order.objects.select_related("user").prefetch_related(
            "items__product"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        entity.save()
        return entity

    def delete(self, id: int) -> bool:
        deleted, _ = Order.objects.filter(id=id).delete()
        return deleted > 0
