"""
Buyer/seller messaging routes.

A message starts with the buyer as sender and the seller as receiver. The
seller answers in place: a reply fills ``replyContent`` on the original
message rather than creating a new one.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft.db import MESSAGES, DbClient
from drycraft.dependencies import get_db_client
from drycraft.records import get_or_404, utcnow
from drycraft.schemas import MessageCreate, MessageResponse, ReplyRequest
from drycraft.security import ensure_owner, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def _newest_first(db: DbClient, filters: dict) -> list[dict]:
    return db.find(MESSAGES, filters, sort="createdAt", descending=True)


def _user_messages(db: DbClient, user_id: str) -> list[dict]:
    merged = {m["id"]: m for m in _newest_first(db, {"buyerId": user_id})}
    for message in _newest_first(db, {"sellerId": user_id}):
        merged.setdefault(message["id"], message)
    return sorted(merged.values(), key=lambda m: m["createdAt"], reverse=True)


@router.get("", response_model=list[MessageResponse])
def list_messages(
    userId: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    if userId:
        return _user_messages(db, userId)
    return _newest_first(db, {})


@router.post("", response_model=MessageResponse, status_code=201)
def send_message(payload: MessageCreate, db: DbClient = Depends(get_db_client)):
    message = db.insert(
        MESSAGES,
        {
            "senderId": payload.buyerId,
            "receiverId": payload.sellerId,
            "sellerId": payload.sellerId,
            "buyerId": payload.buyerId,
            "productId": payload.productId,
            "content": payload.content,
            "replyContent": None,
            "replyAt": None,
            "isRead": False,
            "createdAt": utcnow(),
        },
    )
    logger.info("Message %s sent to seller %s", message["id"], payload.sellerId)
    return message


@router.get("/seller/{seller_id}", response_model=list[MessageResponse])
def seller_messages(seller_id: str, db: DbClient = Depends(get_db_client)):
    return _newest_first(db, {"sellerId": seller_id})


@router.get("/unread/{seller_id}", response_model=list[MessageResponse])
def unread_messages(seller_id: str, db: DbClient = Depends(get_db_client)):
    return _newest_first(db, {"sellerId": seller_id, "isRead": False})


@router.get("/buyer/{buyer_id}", response_model=list[MessageResponse])
def buyer_messages(buyer_id: str, db: DbClient = Depends(get_db_client)):
    return _newest_first(db, {"buyerId": buyer_id})


@router.get("/conversations/{user_id}", response_model=list[MessageResponse])
def conversations(user_id: str, db: DbClient = Depends(get_db_client)):
    """Latest message per conversation partner, newest conversation first."""
    latest: dict[str, dict] = {}
    for message in _user_messages(db, user_id):
        if message["senderId"] == user_id:
            partner = message["receiverId"]
        else:
            partner = message["senderId"]
        latest.setdefault(partner, message)
    return list(latest.values())


def _received_message(db: DbClient, message_id: str, user: dict) -> dict:
    message = get_or_404(db, MESSAGES, message_id, "Message")
    ensure_owner(
        message.get("receiverId"), user, "You can only manage messages sent to you"
    )
    return message


@router.put("/{message_id}/read", response_model=MessageResponse)
def mark_read(
    message_id: str,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    _received_message(db, message_id, current_user)
    return db.update(MESSAGES, message_id, {"isRead": True})


@router.post("/{message_id}/reply", response_model=MessageResponse)
def reply(
    message_id: str,
    payload: ReplyRequest,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    _received_message(db, message_id, current_user)
    return db.update(
        MESSAGES,
        message_id,
        {"replyContent": payload.replyContent, "replyAt": utcnow(), "isRead": True},
    )
