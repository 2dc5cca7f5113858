"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising HTTP-level exceptions; the Service Layer decides
how to translate a missing entity into an API response.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import structlog
from django.db import models

from modules.products.models import Product, ProductStatus
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: int) -> Optional[Product]:
        return Product.objects.filter(id=id).first()

    def get_for_update(self, id: int) -> Optional[Product]:
        return Product.objects.select_for_update().filter(id=id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"status": "APPROVED"}
            {"name__icontains": "widget"}
        """
        queryset = Product.objects.select_related("created_by", "approved_by")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def save(self, entity: Product) -> Product:
        entity.save()
        logger.debug("product.saved", product_id=entity.id)
        return entity

    def delete(self, id: int) -> bool:
        """Delete a product by ID.

        Returns ``False`` if no product exists with the given ID.  A product
        referenced by order items raises ``ProtectedError``.
        """
        deleted, _ = Product.objects.filter(id=id).delete()
        return deleted > 0

    def get_approved_for_update(self, ids: Iterable[int]) -> Dict[int, Product]:
        queryset = (
            Product.objects.select_for_update()
            .filter(id__in=set(ids), status=ProductStatus.APPROVED)
            .order_by("id")
        )
        return {product.id: product for product in queryset}

    def get_many_for_update(self, ids: Iterable[int]) -> Dict[int, Product]:
        queryset = (
            Product.objects.select_for_update().filter(id__in=set(ids)).order_by("id")
        )
        return {product.id: product for product in queryset}

    def is_referenced_by_orders(self, id: int) -> bool:
        return Product.objects.filter(id=id, order_items__isnull=False).exists()

    def save_stock(self, product: Product) -> None:
        product.save(update_fields=["stock"])
