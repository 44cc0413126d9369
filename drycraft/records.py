"""
Small helpers shared by the routers for loading and stamping documents.
"""

from __future__ import annotations

from datetime import datetime, timezone

from drycraft.db import DbClient
from drycraft.errors import NotFoundError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_or_404(db: DbClient, collection: str, doc_id: str, label: str) -> dict:
    record = db.get(collection, doc_id)
    if not record:
        raise NotFoundError(f"{label} not found")
    return record


def display_name(user: dict) -> str:
    full_name = " ".join(
        part for part in (user.get("firstName"), user.get("lastName")) if part
    )
    return full_name or user.get("username") or "Unknown user"
