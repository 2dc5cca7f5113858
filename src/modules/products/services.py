"""Product service layer (Use Cases).

Orchestrates business logic for the Product aggregate, delegating
persistence to the injected ``IProductRepository``.

Business rules enforced here:
- Only Admin/SuperAdmin create products; new products start PENDING.
- Only the creator or a SuperAdmin edits or deletes a product.
- Editing a product sends it back to review (PENDING).
- A SuperAdmin reviews a PENDING product exactly once.
- A product referenced by orders cannot be deleted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction
from django.db.models import ProtectedError
from django.utils import timezone

from modules.core.errors import AppError, Forbidden
from modules.products.exceptions import (
    product_forbidden,
    product_in_use,
    product_not_found,
    product_not_pending,
)
from modules.products.models import Product, ProductStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.core.identity import Identity
    from modules.products.dtos import (
        CreateProductDTO,
        ReviewProductDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, identity: Identity, dto: CreateProductDTO) -> Product:
        if not identity.is_privileged:
            raise AppError(Forbidden(resource="products", action="create"))

        product = Product(
            name=dto.name,
            description=dto.description,
            price=dto.price,
            stock=dto.stock,
            status=ProductStatus.PENDING,
            created_by_id=identity.user_id,
        )
        product = self._repo.save(product)
        logger.info(
            "product.created",
            product_id=product.id,
            created_by=identity.user_id,
        )
        return product

    @transaction.atomic
    def update_product(
        self, identity: Identity, id: int, dto: UpdateProductDTO
    ) -> Product:
        """Apply the supplied fields and send the product back to review.

        Raises:
            AppError(NOT_FOUND): the product does not exist.
            AppError(FORBIDDEN): caller is neither creator nor SuperAdmin.
        """
        product = self._repo.get_for_update(id)
        if product is None:
            raise product_not_found(id)
        self._ensure_can_manage(identity, product, "update")

        for field, value in dto.changes().items():
            setattr(product, field, value)
        product.status = ProductStatus.PENDING
        product.approved_at = None
        product.approved_by = None

        product = self._repo.save(product)
        logger.info("product.updated", product_id=id, updated_by=identity.user_id)
        return product

    @transaction.atomic
    def delete_product(self, identity: Identity, id: int) -> None:
        """Hard-delete a product that no order references.

        Raises:
            AppError(NOT_FOUND): the product does not exist.
            AppError(FORBIDDEN): caller is neither creator nor SuperAdmin.
            AppError(CONFLICT): order items reference the product.
        """
        product = self._repo.get_for_update(id)
        if product is None:
            raise product_not_found(id)
        self._ensure_can_manage(identity, product, "delete")

        if self._repo.is_referenced_by_orders(id):
            raise product_in_use()
        try:
            self._repo.delete(id)
        except ProtectedError as exc:
            raise product_in_use() from exc
        logger.info("product.deleted", product_id=id, deleted_by=identity.user_id)

    @transaction.atomic
    def review_product(
        self, identity: Identity, id: int, dto: ReviewProductDTO
    ) -> Product:
        """Approve or reject a PENDING product (SuperAdmin only).

        The row is locked so two concurrent reviews cannot both succeed.
        """
        if not identity.is_super_admin:
            raise AppError(Forbidden(resource=f"product {id}", action="review"))

        product = self._repo.get_for_update(id)
        if product is None:
            raise product_not_found(id)
        if product.status != ProductStatus.PENDING:
            raise product_not_pending()

        product.status = dto.status
        product.approved_at = timezone.now()
        product.approved_by_id = identity.user_id
        product = self._repo.save(product)
        logger.info(
            "product.reviewed",
            product_id=id,
            decision=str(dto.status),
            reviewed_by=identity.user_id,
        )
        return product

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, include_pending: bool = False) -> QuerySet:
        """Approved products; every product when *include_pending* is set."""
        if include_pending:
            return self._repo.list()
        return self._repo.list({"status": ProductStatus.APPROVED})

    def list_pending(self, identity: Optional[Identity] = None) -> QuerySet:
        if identity is not None and not identity.is_super_admin:
            raise AppError(Forbidden(resource="pending products", action="list"))
        return self._repo.list({"status": ProductStatus.PENDING})

    def get_product(self, id: int) -> Product:
        """Retrieve a single product by ID.

        Raises:
            AppError(NOT_FOUND): the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if product is None:
            raise product_not_found(id)
        return product

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_can_manage(identity: Identity, product: Product, action: str) -> None:
        if identity.is_super_admin:
            return
        if product.created_by_id == identity.user_id:
            return
        logger.warning(
            "product.manage_denied",
            product_id=product.id,
            user_id=identity.user_id,
            action=action,
        )
        raise product_forbidden(product.id, action)
