"""Product DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.products.models import Product, ProductStatus

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(
        max_length=500, required=False, default="", allow_blank=True
    )
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01")
    )
    stock = serializers.IntegerField(min_value=0)


class UpdateProductSerializer(serializers.Serializer):
    """All fields optional; ``stock`` is rejected rather than ignored."""

    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(
        max_length=500, required=False, allow_blank=True
    )
    price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
    )

    def validate(self, attrs):
        if "stock" in self.initial_data:
            raise serializers.ValidationError(
                {"stock": ["Stock can only change through orders."]}
            )
        return attrs


class ReviewProductSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[ProductStatus.APPROVED, ProductStatus.REJECTED]
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for the Product resource."""

    created_by_username = serializers.CharField(
        source="created_by.username", read_only=True
    )
    approved_by_username = serializers.CharField(
        source="approved_by.username", read_only=True, default=None
    )

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "price",
            "stock",
            "status",
            "created_by_id",
            "created_by_username",
            "created_at",
            "updated_at",
            "approved_at",
            "approved_by_id",
            "approved_by_username",
        ]
        read_only_fields = fields
