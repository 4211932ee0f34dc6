"""Identity provider: registration, sign-in and the per-request session context."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import CarHireError
from ..models.store import Store
from ..utils.security import check_hash, generate_hash
from .common import resolve_store

logger = logging.getLogger(__name__)

# Compile once at module import
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")

ACCOUNT_DELETED = "Your account has been deleted. Please contact an administrator to restore your account."
PREVIOUSLY_REGISTERED = "User previously registered. Please contact an administrator to restore your account."
INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(frozen=True)
class SessionContext:
    """Who is making the request. Built at sign-in, rebuilt per request, dropped at sign-out."""
    identity_id: str
    email: str
    is_admin: bool = False

    def to_session(self) -> dict:
        return {"identity_id": self.identity_id, "email": self.email}

    @classmethod
    def from_session(cls, data: Optional[dict], store: Optional[Store] = None) -> Optional["SessionContext"]:
        """
        Rebuild the context from session data. Returns None when the identity
        or its profile no longer exists; the admin flag comes from the profile.
        """
        if not data or not data.get("identity_id"):
            return None
        st = resolve_store(store)
        if st.get_identity(data["identity_id"]) is None:
            return None
        profile = st.fetch_customer_profile(data["identity_id"])
        if profile is None:
            return None
        return cls(identity_id=data["identity_id"], email=data.get("email") or "",
                   is_admin=bool(profile.get("admin")))


class AuthService:
    """Register and sign in e-mail/password identities."""

    @staticmethod
    def register(email: str, password: str, store: Optional[Store] = None):
        """
        Create an identity plus an empty customer profile.

        An existing identity with the right password either signs in (profile
        present) or is refused (profile deleted).

        Returns:
            (ok: bool, message: str, ctx: Optional[SessionContext])
        """
        st = resolve_store(store)
        email = (email or "").strip().lower()
        password = password or ""

        if not email or not password:
            return False, "Email and password are required.", None
        if not EMAIL_PATTERN.match(email):
            return False, "Please enter a valid email address.", None

        existing = st.find_identity(email)
        if existing:
            if check_hash(password, existing["password_hash"]):
                if st.fetch_customer_profile(existing["identity_id"]) is None:
                    return False, PREVIOUSLY_REGISTERED, None
                return True, "Welcome back.", AuthService._context(st, existing)
            return False, "Email already registered.", None

        if not PASSWORD_PATTERN.match(password):
            return False, "Password must have at least 6 characters, including A-Z, a-z, and 0-9.", None

        try:
            identity_id = st.create_identity(email, generate_hash(password))
            st.upsert_customer_profile(identity_id, {})
        except CarHireError as e:
            logger.error("Registration for %s failed: %s", email, e)
            return False, "Registration failed. Please try again.", None

        logger.info("Registered identity %s", identity_id)
        return True, "Registration successful. Please complete your profile.", SessionContext(identity_id, email)

    @staticmethod
    def sign_in(email: str, password: str, store: Optional[Store] = None):
        """
        Returns:
            (ok: bool, message: str, ctx: Optional[SessionContext])
        """
        st = resolve_store(store)
        ident = st.find_identity(email or "")
        if not ident or not check_hash(password or "", ident["password_hash"]):
            return False, INVALID_CREDENTIALS, None
        if st.fetch_customer_profile(ident["identity_id"]) is None:
            logger.info("Sign-in refused for %s: profile deleted", ident["identity_id"])
            return False, ACCOUNT_DELETED, None
        return True, "Signed in", AuthService._context(st, ident)

    @staticmethod
    def _context(st: Store, ident: dict) -> SessionContext:
        profile = st.fetch_customer_profile(ident["identity_id"]) or {}
        return SessionContext(ident["identity_id"], ident["email"], bool(profile.get("admin")))
