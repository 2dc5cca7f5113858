"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Failures propagate as exceptions; the error pipeline renders them.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.identity import Identity
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import IsPrivileged, IsUserOrAbove
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, UpdateOrderStatusDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository


@extend_schema(tags=["Orders"])
class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    lookup_value_regex = r"[0-9]+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def get_permissions(self):
        if self.action == "update_status":
            return [IsPrivileged()]
        return [IsUserOrAbove()]

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        return self._service.list_orders(Identity.from_user(self.request.user))

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------

    @extend_schema(request=CreateOrderSerializer, responses={201: OrderSerializer})
    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                )
                for item in serializer.validated_data["items"]
            ]
        )
        order = self._service.place_order(Identity.from_user(request.user), dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    @extend_schema(responses=OrderListSerializer(many=True))
    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Privileged callers see every order; everyone else only their own.
        Filtering (status, date range, total range) is handled by
        ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(Identity.from_user(request.user), int(pk))
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @extend_schema(request=None, responses=OrderSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels an order and restores the stock of every item.
        """
        order = self._service.cancel_order(Identity.from_user(request.user), int(pk))
        return Response(OrderSerializer(order).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/

        Same as ``cancel``; orders are never physically deleted.
        """
        self._service.cancel_order(Identity.from_user(request.user), int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Status Update (Admin / SuperAdmin)
    # ------------------------------------------------------------------

    @extend_schema(request=UpdateOrderStatusSerializer, responses=OrderSerializer)
    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/

        Cancellations are **not** allowed here; use
        ``POST /orders/{id}/cancel/`` so stock is restored.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateOrderStatusDTO(status=serializer.validated_data["status"])

        order = self._service.update_status(int(pk), dto.status)
        return Response(OrderSerializer(order).data)
