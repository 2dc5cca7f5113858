"""Account service layer.

Self-registration creates a plain ``User``: the email is both the login
username and the contact address, and the account joins only the
``User`` role group.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.db import IntegrityError, transaction
from django.db.models import Q
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.utils import datetime_from_epoch

from modules.core.errors import AppError, Conflict
from modules.core.identity import Identity, Roles

if TYPE_CHECKING:
    from modules.core.dtos import RegisterUserDTO

logger = structlog.get_logger(__name__)


def email_taken() -> AppError:
    return AppError(Conflict("User", "Email address is already registered"))


class AccountService:
    @transaction.atomic
    def register(self, dto: RegisterUserDTO) -> Dict[str, Any]:
        """Create the account and issue its first token pair.

        Raises:
            AppError(CONFLICT): the email is already used as an email or
                username by another account.
        """
        User = get_user_model()
        if User.objects.filter(
            Q(email__iexact=dto.email) | Q(username__iexact=dto.email)
        ).exists():
            raise email_taken()

        try:
            user = User.objects.create_user(
                username=dto.email,
                email=dto.email,
                password=dto.password,
                first_name=dto.first_name,
                last_name=dto.last_name,
            )
        except IntegrityError as exc:
            # lost a race with a concurrent registration of the same email
            raise email_taken() from exc

        user.groups.add(Group.objects.get_or_create(name=Roles.USER)[0])
        identity = Identity.from_user(user)

        refresh = RefreshToken.for_user(user)
        access = refresh.access_token
        logger.info("user.registered", user_id=user.pk)

        return {
            "access": str(access),
            "refresh": str(refresh),
            "user_id": user.pk,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "roles": sorted(identity.roles),
            "expires_at": datetime_from_epoch(access["exp"]),
        }
