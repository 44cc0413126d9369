"""
Post routes: feed, authoring, comments and reactions.

Comment and reaction writes touch one list item or one map key at a time,
so concurrent commenters never overwrite each other.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from drycraft.db import POSTS, DbClient, new_id
from drycraft.dependencies import get_db_client
from drycraft.errors import NotFoundError, ValidationError
from drycraft.records import display_name, get_or_404, utcnow
from drycraft.routes.notifications import notify
from drycraft.schemas import (
    EMPTY_POST_MESSAGE,
    CommentRequest,
    PostCreate,
    PostResponse,
    PostUpdate,
    ReactionRequest,
    StatusMessage,
    has_post_body,
)
from drycraft.security import ensure_owner, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


def _comment_at(post: dict, index: int) -> dict:
    comments = post.get("comments") or []
    if index < 0 or index >= len(comments):
        raise ValidationError("Invalid comment index")
    return comments[index]


@router.get("", response_model=list[PostResponse])
def list_posts(db: DbClient = Depends(get_db_client)):
    return db.find(POSTS, sort="createdAt", descending=True)


@router.post("", response_model=PostResponse, status_code=201)
def create_post(
    payload: PostCreate,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    now = utcnow()
    post = db.insert(
        POSTS,
        {
            "content": payload.content,
            "authorId": current_user["id"],
            "authorName": display_name(current_user),
            "imageUrls": payload.imageUrls,
            "videoUrl": payload.videoUrl,
            "reactions": {},
            "comments": [],
            "createdAt": now,
            "updatedAt": now,
        },
    )
    logger.info("Post %s created by %s", post["id"], current_user["id"])
    return post


@router.get("/user/{user_id}", response_model=list[PostResponse])
def list_user_posts(user_id: str, db: DbClient = Depends(get_db_client)):
    return db.find(POSTS, {"authorId": user_id}, sort="createdAt", descending=True)


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: str, db: DbClient = Depends(get_db_client)):
    return get_or_404(db, POSTS, post_id, "Post")


@router.put("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    payload: PostUpdate,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    post = get_or_404(db, POSTS, post_id, "Post")
    ensure_owner(post.get("authorId"), current_user, "You can only update your own posts")

    changes = {"content": payload.content}
    if payload.imageUrls is not None:
        changes["imageUrls"] = payload.imageUrls
    if payload.videoUrl is not None:
        changes["videoUrl"] = payload.videoUrl or None
    # Omitted media fields keep their stored values.
    if not has_post_body(
        changes["content"],
        changes.get("imageUrls", post.get("imageUrls")),
        changes.get("videoUrl", post.get("videoUrl")),
    ):
        raise ValidationError(EMPTY_POST_MESSAGE)

    changes["updatedAt"] = utcnow()
    return db.update(POSTS, post_id, changes)


@router.delete("/{post_id}", response_model=StatusMessage)
def delete_post(
    post_id: str,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    post = get_or_404(db, POSTS, post_id, "Post")
    ensure_owner(post.get("authorId"), current_user, "You can only delete your own posts")
    db.delete(POSTS, post_id)
    logger.info("Post %s deleted by %s", post_id, current_user["id"])
    return StatusMessage(message="Post deleted")


@router.post("/{post_id}/comments", response_model=PostResponse, status_code=201)
def add_comment(
    post_id: str,
    payload: CommentRequest,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    post = get_or_404(db, POSTS, post_id, "Post")
    comment = {
        "id": new_id(),
        "authorId": current_user["id"],
        "authorName": display_name(current_user),
        "content": payload.content,
        "createdAt": utcnow(),
        "updatedAt": None,
    }
    updated = db.push(POSTS, post_id, "comments", comment)
    if updated is None:
        raise NotFoundError("Post not found")
    notify(
        db,
        recipient_id=post["authorId"],
        sender=current_user,
        kind="COMMENT",
        content=payload.content,
        post_id=post_id,
    )
    return updated


@router.put("/{post_id}/comments/{index}", response_model=PostResponse)
def update_comment(
    post_id: str,
    index: int,
    payload: CommentRequest,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    post = get_or_404(db, POSTS, post_id, "Post")
    comment = _comment_at(post, index)
    ensure_owner(comment.get("authorId"), current_user, "You can only edit your own comments")

    updated = db.update_in_list(
        POSTS,
        post_id,
        "comments",
        {"id": comment["id"]},
        {"content": payload.content, "updatedAt": utcnow()},
    )
    if updated is None:
        raise NotFoundError("Comment not found")
    return updated


@router.delete("/{post_id}/comments/{index}", response_model=PostResponse)
def delete_comment(
    post_id: str,
    index: int,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    post = get_or_404(db, POSTS, post_id, "Post")
    comment = _comment_at(post, index)
    # Post owners may moderate comments on their posts.
    if current_user["id"] != post.get("authorId"):
        ensure_owner(
            comment.get("authorId"),
            current_user,
            "You can only delete your own comments or comments on your posts",
        )

    updated = db.pull(POSTS, post_id, "comments", {"id": comment["id"]})
    if updated is None:
        raise NotFoundError("Post not found")
    return updated


@router.post("/{post_id}/reactions", response_model=PostResponse)
def toggle_reaction(
    post_id: str,
    payload: ReactionRequest,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    """Same reaction twice removes it; a different one replaces it."""
    post = get_or_404(db, POSTS, post_id, "Post")
    user_id = current_user["id"]
    field = f"reactions.{user_id}"

    added = (post.get("reactions") or {}).get(user_id) != payload.reactionType
    if added:
        updated = db.update(POSTS, post_id, {field: payload.reactionType})
    else:
        updated = db.unset(POSTS, post_id, field)
    if updated is None:
        raise NotFoundError("Post not found")

    if added:
        notify(
            db,
            recipient_id=post["authorId"],
            sender=current_user,
            kind="REACTION",
            content=f"reacted {payload.reactionType} to your post",
            post_id=post_id,
        )
    return updated
