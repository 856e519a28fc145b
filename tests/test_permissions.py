import pytest

from permissions import PermissionDenied, is_admin, require_admin
from schemas import Identity


def identity(email):
    return Identity(id="u-1", email=email)


def test_no_identity_is_not_admin():
    assert is_admin(None) is False


@pytest.mark.parametrize("email", ["admin@admin.com", "admin", "Admin@Admin.com"])
def test_default_admin_identifiers(email):
    assert is_admin(identity(email), {"admin@admin.com", "admin"})


def test_other_emails_are_not_admin():
    assert is_admin(identity("tech@example.com"), {"admin@admin.com"}) is False


def test_identifiers_come_from_configuration():
    ops = identity("ops@corp.example")

    assert is_admin(ops, ["ops@corp.example"])
    assert is_admin(identity("admin@admin.com"), ["ops@corp.example"]) is False


def test_require_admin():
    with pytest.raises(PermissionDenied):
        require_admin(identity("tech@example.com"), ["admin@admin.com"])
    assert require_admin(identity("admin@admin.com"), ["admin@admin.com"]).email == "admin@admin.com"
