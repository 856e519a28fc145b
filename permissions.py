"""
Admin gating for restricted views.
"""
from typing import Iterable, Optional

import config
from schemas import Identity


class PermissionDenied(Exception):
    pass


def is_admin(identity: Optional[Identity], admin_identifiers: Optional[Iterable[str]] = None) -> bool:
    """True when the identity's email is one of the privileged identifiers."""
    if identity is None or not identity.email:
        return False
    if admin_identifiers is None:
        admin_identifiers = config.ADMIN_IDENTIFIERS
    allowed = {ident.strip().lower() for ident in admin_identifiers}
    return identity.email.strip().lower() in allowed


def require_admin(identity: Optional[Identity], admin_identifiers: Optional[Iterable[str]] = None) -> Identity:
    if not is_admin(identity, admin_identifiers):
        raise PermissionDenied("Admin access required")
    return identity
