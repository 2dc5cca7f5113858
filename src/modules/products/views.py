"""Product API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.
Failures propagate as exceptions; the error pipeline renders them.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.identity import Identity
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsPrivileged, IsSuperAdmin, IsUserOrAbove
from modules.products.dtos import CreateProductDTO, ReviewProductDTO, UpdateProductDTO
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import (
    CreateProductSerializer,
    ProductSerializer,
    ReviewProductSerializer,
    UpdateProductSerializer,
)
from modules.products.services import ProductService


@extend_schema_view(
    list=extend_schema(
        parameters=[
            OpenApiParameter(
                "include_pending",
                bool,
                description="Include PENDING and REJECTED products.",
            )
        ]
    ),
)
@extend_schema(tags=["Products"])
class ProductViewSet(GenericViewSet):
    """ViewSet for Product operations.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination
    filterset_class = ProductFilter
    search_fields = ["name", "description"]
    ordering_fields = ["name", "price", "stock", "created_at"]
    ordering = ["name", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    lookup_value_regex = r"[0-9]+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(repository=ProductDjangoRepository())

    def get_permissions(self):
        if self.action in {"create", "update", "partial_update", "destroy"}:
            permission_classes = [IsPrivileged]
        elif self.action in {"approve", "pending"}:
            permission_classes = [IsSuperAdmin]
        else:
            permission_classes = [IsUserOrAbove]
        return [permission() for permission in permission_classes]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Product.objects.none()
        include_pending = self.request.query_params.get("include_pending", "")
        return self._service.list_products(
            include_pending=include_pending.lower() in {"1", "true", "yes"}
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/products/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = ProductSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.get_product(int(pk))
        return Response(ProductSerializer(product).data)

    @action(detail=False, methods=["get"])
    def pending(self, request: Request) -> Response:
        """GET /api/v1/products/pending/"""
        identity = Identity.from_user(request.user)
        queryset = self._service.list_pending(identity)
        page = self.paginate_queryset(queryset)
        serializer = ProductSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Create / Update / Destroy
    # ------------------------------------------------------------------

    @extend_schema(request=CreateProductSerializer, responses=ProductSerializer)
    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        serializer = CreateProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CreateProductDTO(**serializer.validated_data)

        product = self._service.create_product(Identity.from_user(request.user), dto)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=UpdateProductSerializer, responses=ProductSerializer)
    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/products/{pk}/"""
        serializer = UpdateProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateProductDTO(**serializer.validated_data)

        product = self._service.update_product(
            Identity.from_user(request.user), int(pk), dto
        )
        return Response(ProductSerializer(product).data)

    @extend_schema(request=UpdateProductSerializer, responses=ProductSerializer)
    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{pk}/"""
        self._service.delete_product(Identity.from_user(request.user), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ReviewProductSerializer, responses=ProductSerializer)
    @action(detail=True, methods=["post"])
    def approve(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/products/{pk}/approve/

        Accepts ``{"status": "APPROVED"}`` or ``{"status": "REJECTED"}``.
        """
        serializer = ReviewProductSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = ReviewProductDTO(status=serializer.validated_data["status"])

        product = self._service.review_product(
            Identity.from_user(request.user), int(pk), dto
        )
        return Response(ProductSerializer(product).data)
