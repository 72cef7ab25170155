from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from formcraft.config import PASSWORD_MIN_LENGTH, Settings
from formcraft.errors import Conflict, Unauthorized, ValidationFailed
from formcraft.protocols import Storage
from formcraft.utils import new_ulid, now_utc, to_iso

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name", ""),
        "createdAt": to_iso(user.get("created_at") or now_utc()),
    }


class TokenAuthProvider:
    """Issues and checks HS256 bearer tokens whose ``sub`` claim is the user id."""

    def __init__(self, settings: Settings) -> None:
        secret = settings.jwt_secret
        if not secret:
            logger.warning("JWT_SECRET is not set; tokens will not survive a restart")
            secret = secrets.token_urlsafe(32)
        self._secret = secret
        self._algorithm = settings.jwt_algorithm
        self._expires = timedelta(minutes=settings.jwt_expires_minutes)

    def issue_token(self, user: dict[str, Any]) -> str:
        claims = {
            "sub": user["id"],
            "email": user["email"],
            "exp": now_utc() + self._expires,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise Unauthorized("Token has expired") from exc
        except JWTError as exc:
            raise Unauthorized("Invalid token") from exc

    def require_user(self, request: Request) -> str:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise Unauthorized("No token provided. Please authenticate.")
        user_id = self.decode_token(token.strip()).get("sub")
        if not user_id:
            raise Unauthorized("Invalid token")
        return str(user_id)


def register_user(storage: Storage, payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    name = str(payload.get("name") or "").strip()

    errors: list[str] = []
    if not email or "@" not in email:
        errors.append("A valid email is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not name:
        errors.append("Name is required")
    if errors:
        raise ValidationFailed("; ".join(errors), errors)

    if storage.users.get_user_by_email(email):
        raise Conflict("User with this email already exists")

    user = {
        "id": new_ulid(),
        "email": email,
        "name": name,
        "password_hash": hash_password(password),
        "created_at": now_utc(),
    }
    storage.users.create_user(user)
    logger.info("New user registered: %s", email)
    return user


def authenticate_user(storage: Storage, payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    user = storage.users.get_user_by_email(email) if email else None
    if not user or not verify_password(password, user["password_hash"]):
        raise Unauthorized("Invalid email or password")
    logger.info("User logged in: %s", email)
    return user
