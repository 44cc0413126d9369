"""
Password hashing, bearer tokens and the caller-identity dependency.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from drycraft.config import get_settings
from drycraft.db import USERS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.errors import ForbiddenError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _password_bytes(password: str) -> bytes:
    # Request schemas cap passwords at 72 bytes; bcrypt rejects longer input.
    return password.encode("utf-8")


def hash_password(password: str) -> str:
    rounds = get_settings().bcrypt_rounds
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


def create_access_token(user: dict) -> str:
    settings = get_settings()
    payload = {
        "userId": user["id"],
        "username": user.get("username"),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Return the token claims; raises ForbiddenError for bad or expired tokens."""
    settings = get_settings()
    try:
        return jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as exc:
        raise ForbiddenError("Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise ForbiddenError("Invalid session") from exc


def public_user(user: dict) -> dict:
    return {k: v for k, v in user.items() if k != "passwordHash"}


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DbClient = Depends(get_db_client),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise ForbiddenError("Not authenticated")
    claims = decode_access_token(credentials.credentials)
    user_id = claims.get("userId")
    user = db.get(USERS, user_id) if user_id else None
    if not user:
        raise ForbiddenError("Invalid session")
    return public_user(user)


def ensure_owner(owner_id: Optional[str], user: dict, message: str) -> None:
    """Raise ForbiddenError unless ``user`` owns the resource."""
    if not owner_id or owner_id != user["id"]:
        logger.warning("User %s denied: %s", user["id"], message)
        raise ForbiddenError(message)
