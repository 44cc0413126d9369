"""
Notification routes, polled by the web app for new comments, reactions and follows.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft.db import NOTIFICATIONS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.records import display_name, get_or_404, utcnow
from drycraft.schemas import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def notify(
    db: DbClient,
    *,
    recipient_id: str,
    sender: dict,
    kind: str,
    content: str,
    post_id: Optional[str] = None,
) -> Optional[dict]:
    """Record a notification unless the sender is acting on their own content."""
    if not recipient_id or recipient_id == sender["id"]:
        return None
    return db.insert(
        NOTIFICATIONS,
        {
            "recipientId": recipient_id,
            "senderId": sender["id"],
            "senderName": display_name(sender),
            "postId": post_id,
            "content": content,
            "type": kind,
            "read": False,
            "createdAt": utcnow(),
        },
    )


@router.get("/unread", response_model=list[NotificationResponse])
def unread_notifications(
    userId: str = Query(..., min_length=1),
    db: DbClient = Depends(get_db_client),
):
    return db.find(
        NOTIFICATIONS,
        {"recipientId": userId, "read": False},
        sort="createdAt",
        descending=True,
    )


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str, db: DbClient = Depends(get_db_client)
):
    get_or_404(db, NOTIFICATIONS, notification_id, "Notification")
    return db.update(NOTIFICATIONS, notification_id, {"read": True})
