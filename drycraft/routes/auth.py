"""
Login and registration routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from drycraft.db import USERS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.errors import AuthError
from drycraft.routes.users import create_user
from drycraft.schemas import AuthResponse, LoginRequest, RegisterRequest
from drycraft.security import create_access_token, public_user, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: dict) -> AuthResponse:
    return AuthResponse(token=create_access_token(user), user=public_user(user))


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: DbClient = Depends(get_db_client)):
    user = db.find_one(USERS, {"username": payload.username})
    if not user or not verify_password(payload.password, user.get("passwordHash")):
        logger.warning("Rejected login for username %s", payload.username)
        raise AuthError("Invalid credentials")
    return _auth_response(user)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    user = create_user(db, payload)
    return _auth_response(user)
