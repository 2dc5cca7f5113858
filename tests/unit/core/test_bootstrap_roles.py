"""Unit tests for the ``bootstrap_roles`` management command."""

from io import StringIO

import pytest
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.core.management.base import CommandError

from modules.core.identity import Identity, Roles

pytestmark = pytest.mark.unit


def test_creates_role_groups_once():
    out = StringIO()
    call_command("bootstrap_roles", stdout=out)
    call_command("bootstrap_roles", stdout=out)

    assert set(Group.objects.values_list("name", flat=True)) == set(Roles.ALL)
    assert "Role groups created: 3" in out.getvalue()
    assert "Role groups created: 0" in out.getvalue()


def test_creates_super_admin_account(django_user_model):
    call_command(
        "bootstrap_roles",
        email="boss@example.com",
        password="s3cret-pass",
        stdout=StringIO(),
    )

    user = django_user_model.objects.get(email="boss@example.com")
    assert user.check_password("s3cret-pass")
    assert Identity.from_user(user).is_super_admin


def test_email_without_password_is_rejected():
    with pytest.raises(CommandError):
        call_command("bootstrap_roles", email="boss@example.com", stdout=StringIO())
