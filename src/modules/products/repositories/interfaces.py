"""Product repository interface.

Extends ``IRepository[Product]`` with the locked look-ups the order
service needs for atomic stock reservation and release.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products with optional filters."""

    @abstractmethod
    def get_approved_for_update(self, ids: Iterable[int]) -> Dict[int, "Product"]:
        """Lock the APPROVED products among *ids*, keyed by id.

        Rows are locked in ascending id order so concurrent transactions
        touching overlapping products cannot deadlock.  Ids that do not
        exist or are not approved are simply absent from the result.
        """

    @abstractmethod
    def get_many_for_update(self, ids: Iterable[int]) -> Dict[int, "Product"]:
        """Lock the products among *ids* regardless of status, keyed by id."""

    @abstractmethod
    def is_referenced_by_orders(self, id: int) -> bool:
        """Whether any order item points at the product."""

    @abstractmethod
    def save_stock(self, product: "Product") -> None:
        """Persist only the ``stock`` column of a locked product."""
