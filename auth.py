"""
Session identity for one dashboard session.

Sign-in state lives on the provider instance; callers that need the current
user receive it explicitly (see DashboardData.attach).
"""
from typing import Callable, List, Optional

import structlog
from pydantic import ValidationError

import config
from database import BackendError
from permissions import require_admin
from schemas import Identity, SignUp, describe_validation

log = structlog.get_logger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


def _identity(user):
    return Identity(id=user['id'], email=user['email'], full_name=user.get('full_name'), role=user.get('role'))


class AuthProvider:
    def __init__(self, db):
        self.db = db
        self._identity: Optional[Identity] = None
        self._listeners: List[Callable[[str, Optional[Identity]], None]] = []

    def get_current_identity(self) -> Optional[Identity]:
        return self._identity

    def subscribe(self, callback):
        """Register `callback(event, identity)`; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _emit(self, event):
        for callback in list(self._listeners):
            callback(event, self._identity)

    def sign_in(self, email, password):
        email = (email or "").strip().lower()
        if email == config.ADMIN_LOGIN_ALIAS:
            email = config.ADMIN_EMAIL.lower()
        if not email or not password:
            return "Email and password are required"

        user = self.db.verify_user(email, password)
        if user is None:
            log.info("login_failed", email=email)
            return "Invalid login credentials"

        self._identity = _identity(user)
        log.info("login_succeeded", email=email)
        self._emit(SIGNED_IN)
        return None

    def sign_up(self, email, password, full_name):
        try:
            form = SignUp(email=(email or "").strip(), password=password or "", full_name=(full_name or "").strip())
        except ValidationError as e:
            return describe_validation(e)
        try:
            user = self.db.add_user(form.email, form.password, full_name=form.full_name)
        except BackendError as e:
            log.error("signup_failed", email=form.email, error=e.message)
            return e.message
        if user is None:
            return "User already registered"
        log.info("signup_succeeded", email=form.email)
        return None

    def sign_out(self):
        if self._identity is None:
            return
        log.info("logout", email=self._identity.email)
        self._identity = None
        self._emit(SIGNED_OUT)

    # --- USER MANAGEMENT (admin view) ---
    def list_users(self):
        require_admin(self._identity)
        return [_identity(u) for u in self.db.get_all_users()]

    def update_password(self, user_id, new_password):
        require_admin(self._identity)
        if not new_password:
            return False
        return self.db.update_user(user_id, password=new_password)

    def update_role(self, user_id, role):
        require_admin(self._identity)
        if role not in config.ROLES:
            raise ValueError(f"Unknown role: {role}")
        return self.db.update_user(user_id, role=role)

    def delete_user(self, user_id):
        require_admin(self._identity)
        if self._identity.id == user_id:
            return False
        return self.db.delete_user(user_id)
