from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from fastapi import Depends, Request, Response

from config import get_config_value
from db import Gateway, get_db
from models.user import AuthUser
from utils.errors import InvalidCredentialsError, UnauthorizedError

SESSION_COOKIE_NAME = "session_token"
PASSWORD_HASH_ALGO = "pbkdf2_sha256"
PASSWORD_HASH_ITERATIONS = 200_000
DEFAULT_SESSION_DAYS = 7

logger = logging.getLogger(__name__)


def get_session_days() -> int:
    days = get_config_value("session", "days", DEFAULT_SESSION_DAYS)
    try:
        return int(days)
    except (TypeError, ValueError):
        return DEFAULT_SESSION_DAYS


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PASSWORD_HASH_ITERATIONS,
    )
    digest = base64.urlsafe_b64encode(dk).decode("utf-8")
    return f"{PASSWORD_HASH_ALGO}${PASSWORD_HASH_ITERATIONS}${salt}${digest}"


def _verify_legacy_sha256(password: str, stored_hash: str) -> bool:
    # salt:hex(sha256(password + salt)) from the previous system
    salt, _, digest = stored_hash.partition(":")
    if not salt or not digest:
        return False
    computed = hashlib.sha256((password + salt).encode("utf-8")).hexdigest()
    return hmac.compare_digest(computed, digest)


def verify_password(password: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash or password is None:
        return False
    if not stored_hash.startswith(f"{PASSWORD_HASH_ALGO}$"):
        return _verify_legacy_sha256(password, stored_hash)
    try:
        algo, iterations_str, salt, digest = stored_hash.split("$", 3)
        iterations = int(iterations_str)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    computed = base64.urlsafe_b64encode(dk).decode("utf-8")
    return hmac.compare_digest(computed, digest)


def _to_auth_user(row: dict) -> AuthUser:
    return AuthUser(
        id=row["id"],
        name=row["name"],
        role=row["role"],
        is_leader=bool(row["is_leader"]),
    )


class AuthProvider(Protocol):
    """Capabilities every authentication backend offers to the routes."""

    def login(self, response: Response, name: str, password: str) -> AuthUser: ...

    def get_current_user(self, request: Request) -> Optional[AuthUser]: ...

    def logout(self, request: Request, response: Response) -> None: ...

    def require_auth(self, request: Request) -> AuthUser: ...

    def require_admin(self, request: Request) -> AuthUser: ...

    def is_authenticated(self, request: Request) -> bool: ...

    def is_admin(self, request: Request) -> bool: ...


class SessionAuthProvider:
    """Name/password login backed by the sessions table and an httponly cookie."""

    def __init__(self, conn):
        self.conn = conn
        self.db = Gateway(conn)

    def _create_session(self, user_id: int, days: int) -> str:
        token = secrets.token_hex(32)
        now = datetime.now(timezone.utc)
        self.db.delete("sessions", {"user_id": user_id, "expires_at": ("<", now.isoformat())})
        self.db.insert(
            "sessions",
            {
                "token": token,
                "user_id": user_id,
                "expires_at": (now + timedelta(days=days)).isoformat(),
            },
        )
        self.conn.commit()
        return token

    def _session_user(self, token: str) -> Optional[AuthUser]:
        session = self.db.single("sessions", {"token": token})
        if not session:
            return None
        try:
            expires_at = datetime.fromisoformat(session["expires_at"])
        except (TypeError, ValueError):
            return None
        if expires_at < datetime.now(timezone.utc):
            return None
        user = self.db.single("users", {"id": session["user_id"]})
        if not user:
            return None
        return _to_auth_user(user)

    def login(self, response: Response, name: str, password: str) -> AuthUser:
        user = self.db.single("users", {"name": name.strip()})
        if not user or not verify_password(password, user.get("password_hash")):
            logger.warning("Failed login attempt for %r", name)
            raise InvalidCredentialsError()
        days = get_session_days()
        token = self._create_session(user["id"], days)
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=days * 24 * 60 * 60,
            httponly=True,
            secure=bool(get_config_value("session", "cookie_secure", False)),
            samesite="lax",
            path="/",
        )
        logger.info("User %s logged in", user["id"])
        return _to_auth_user(user)

    def get_current_user(self, request: Request) -> Optional[AuthUser]:
        token = request.cookies.get(SESSION_COOKIE_NAME)
        if not token:
            return None
        return self._session_user(token)

    def logout(self, request: Request, response: Response) -> None:
        token = request.cookies.get(SESSION_COOKIE_NAME)
        if token:
            self.db.delete("sessions", {"token": token})
            self.conn.commit()
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")

    def require_auth(self, request: Request) -> AuthUser:
        user = self.get_current_user(request)
        if not user:
            raise UnauthorizedError()
        return user

    def require_admin(self, request: Request) -> AuthUser:
        user = self.require_auth(request)
        if user.role != "admin":
            raise UnauthorizedError("Admin access required")
        return user

    def is_authenticated(self, request: Request) -> bool:
        return self.get_current_user(request) is not None

    def is_admin(self, request: Request) -> bool:
        user = self.get_current_user(request)
        return bool(user and user.role == "admin")


def get_auth_provider(conn=Depends(get_db)) -> AuthProvider:
    """FastAPI dependency; override it to swap the authentication backend."""
    return SessionAuthProvider(conn)


def get_current_user(
    request: Request, provider: AuthProvider = Depends(get_auth_provider)
) -> Optional[AuthUser]:
    return provider.get_current_user(request)


def require_auth(request: Request, provider: AuthProvider = Depends(get_auth_provider)) -> AuthUser:
    return provider.require_auth(request)


def require_admin(request: Request, provider: AuthProvider = Depends(get_auth_provider)) -> AuthUser:
    return provider.require_admin(request)
