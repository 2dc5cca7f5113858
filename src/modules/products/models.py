"""Product catalogue model with review workflow and stock control.

Business rules implemented:
- Price must be greater than zero.
- Stock cannot be negative (DB check constraint).
- Only APPROVED products can be ordered (enforced at the order service).
- A product is reviewed (APPROVED/REJECTED) once, while PENDING.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class ProductStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class Product(BaseModel):
    """Product aggregate root.

    ``stock`` is only changed by order placement and cancellation, always
    under a row lock taken by the order service.
    """

    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    stock = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.PENDING,
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_products",
    )
    approved_at = models.DateTimeField(null=True, blank=True, default=None)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        default=None,
        related_name="reviewed_products",
    )

    class Meta:
        db_table = "products"
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    @property
    def is_orderable(self) -> bool:
        return self.status == ProductStatus.APPROVED

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"
