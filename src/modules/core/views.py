import time
from typing import Any, Dict

import structlog
from django.db import DatabaseError, connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.dtos import RegisterUserDTO
from modules.core.identity import Identity
from modules.core.serializers import AuthResponseSerializer, RegisterSerializer
from modules.core.services import AccountService

logger = structlog.get_logger(__name__)


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    healthy = True

    try:
        start = time.monotonic()
        conn = connections["default"]
        conn.ensure_connection()
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        services["database"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except DatabaseError:
        services["database"] = {"status": "down"}
        healthy = False
        logger.error("health_check.db_failure", exc_info=True)

    logger.info("health_check.completed", status="healthy" if healthy else "unhealthy")

    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if healthy else 503,
    )


class MeView(APIView):
    """Identity of the caller as the API sees it.

    * No token  -> 401
    * Bad token -> 401
    * Valid JWT -> 200 with id, email and roles
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Auth"], summary="Current identity")
    def get(self, request: HttpRequest) -> Response:
        identity = Identity.from_user(request.user)
        return Response(
            {
                "id": identity.user_id,
                "email": identity.email,
                "roles": sorted(identity.roles),
                "is_privileged": identity.is_privileged,
            }
        )


class RegisterView(APIView):
    """POST /api/v1/auth/register/: open self-registration as a plain User."""

    permission_classes = [AllowAny]
    authentication_classes: list = []

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = AccountService()

    @extend_schema(
        tags=["Auth"],
        summary="Register a new user",
        request=RegisterSerializer,
        responses={201: AuthResponseSerializer},
    )
    def post(self, request: HttpRequest) -> Response:
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RegisterUserDTO(**serializer.validated_data)

        result = self._service.register(dto)
        return Response(
            AuthResponseSerializer(result).data, status=status.HTTP_201_CREATED
        )
