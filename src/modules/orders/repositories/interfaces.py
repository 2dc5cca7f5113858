"""Order repository interface.

Extends ``IRepository[Order]`` with methods required by the Order
aggregate: creation together with its items and locked reads for
cancellation and status changes.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes its OrderItem children.  Callers own the
    transaction; repository methods never open one themselves.
    """

    @abstractmethod
    def create(self, user_id: int, lines: List[Dict[str, Any]]) -> Order:
        """Create a PENDING order with one item per line and its total set.

        Each line is a dict with ``product_id``, ``quantity`` and
        ``unit_price``; items keep the order of *lines*.
        """

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[Order]:
        """Retrieve an order with prefetched items and products."""

    @abstractmethod
    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve and row-lock an order; its items are prefetched."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders, newest first, with optional filters."""
