"""
User directory, profile and follow-graph routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft.db import USERS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.errors import ConflictError, ForbiddenError, ValidationError
from drycraft.records import get_or_404, utcnow
from drycraft.routes.notifications import notify
from drycraft.schemas import (
    FollowRequest,
    RegisterRequest,
    UserResponse,
    UserSuggestion,
    UserUpdate,
)
from drycraft.security import ensure_owner, get_current_user, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

PRIVATE_FIELDS = ("passwordHash",)
SUGGESTION_LIMIT = 10


def create_user(db: DbClient, payload: RegisterRequest) -> dict:
    """Insert a new user after the username/email uniqueness checks."""
    email = str(payload.email).lower()
    if db.find_one(USERS, {"username": payload.username}) or db.find_one(
        USERS, {"email": email}
    ):
        raise ConflictError("Username or email already exists")

    now = utcnow()
    user = db.insert(
        USERS,
        {
            "username": payload.username,
            "email": email,
            "passwordHash": hash_password(payload.password),
            "firstName": payload.firstName,
            "lastName": payload.lastName,
            "bio": None,
            "profilePicture": None,
            "followers": [],
            "following": [],
            "createdAt": now,
            "updatedAt": now,
        },
    )
    logger.info("Registered user %s (%s)", user["id"], user["username"])
    return user


@router.get("", response_model=list[UserResponse])
def list_users(db: DbClient = Depends(get_db_client)):
    return db.find(USERS, exclude=PRIVATE_FIELDS)


@router.post("", response_model=UserResponse, status_code=201)
def add_user(payload: RegisterRequest, db: DbClient = Depends(get_db_client)):
    return create_user(db, payload)


@router.get("/suggestions", response_model=list[UserSuggestion])
def suggested_users(
    userId: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    """Users to follow; skips the caller and anyone they already follow."""
    skip: set[str] = set()
    if userId:
        skip.add(userId)
        me = db.get(USERS, userId)
        if me:
            skip.update(me.get("following") or [])

    suggestions = []
    for user in db.find(USERS, sort="createdAt", descending=True, exclude=PRIVATE_FIELDS):
        if user["id"] in skip:
            continue
        suggestions.append(
            UserSuggestion(
                id=user["id"],
                username=user["username"],
                firstName=user.get("firstName"),
                lastName=user.get("lastName"),
                bio=user.get("bio"),
                profilePicture=user.get("profilePicture"),
                followers=len(user.get("followers") or []),
            )
        )
        if len(suggestions) >= SUGGESTION_LIMIT:
            break
    return suggestions


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: DbClient = Depends(get_db_client)):
    return get_or_404(db, USERS, user_id, "User")


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    get_or_404(db, USERS, user_id, "User")
    ensure_owner(user_id, current_user, "You can only edit your own profile")
    changes = payload.model_dump(exclude_unset=True)
    changes["updatedAt"] = utcnow()
    return db.update(USERS, user_id, changes)


def _follow_pair(
    db: DbClient, user_id: str, payload: Optional[FollowRequest], current_user: dict
) -> tuple[dict, dict]:
    follower_id = current_user["id"]
    if payload and payload.followerId and payload.followerId != follower_id:
        raise ForbiddenError("You can only change who you follow")
    if user_id == follower_id:
        raise ValidationError("You cannot follow yourself")
    target = get_or_404(db, USERS, user_id, "User")
    follower = get_or_404(db, USERS, follower_id, "Follower")
    return target, follower


@router.post("/{user_id}/follow", response_model=UserResponse)
def follow_user(
    user_id: str,
    payload: Optional[FollowRequest] = None,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    target, follower = _follow_pair(db, user_id, payload, current_user)
    already_following = follower["id"] in (target.get("followers") or [])
    updated = db.add_to_set(USERS, user_id, "followers", follower["id"])
    db.add_to_set(USERS, follower["id"], "following", user_id)
    if not already_following:
        notify(
            db,
            recipient_id=user_id,
            sender=follower,
            kind="FOLLOW",
            content="started following you",
        )
    return updated


@router.post("/{user_id}/unfollow", response_model=UserResponse)
def unfollow_user(
    user_id: str,
    payload: Optional[FollowRequest] = None,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    _, follower = _follow_pair(db, user_id, payload, current_user)
    updated = db.pull(USERS, user_id, "followers", follower["id"])
    db.pull(USERS, follower["id"], "following", user_id)
    return updated


@router.get("/{user_id}/followers", response_model=list[UserResponse])
def list_followers(user_id: str, db: DbClient = Depends(get_db_client)):
    user = get_or_404(db, USERS, user_id, "User")
    followers = []
    for follower_id in user.get("followers") or []:
        follower = db.get(USERS, follower_id)
        if follower:
            followers.append(follower)
    return followers
