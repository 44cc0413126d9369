"""
HTTP routes for the Dry Craft API, one module per resource.
"""

from __future__ import annotations

from fastapi import APIRouter

from drycraft.records import utcnow
from drycraft.routes import (
    auth,
    media,
    messages,
    notifications,
    orders,
    posts,
    products,
    tutorials,
    users,
)
from drycraft.schemas import HealthResponse

SERVICE_NAME = "Dry Craft API"

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="healthy", timestamp=utcnow(), service=SERVICE_NAME)


for module in (auth, users, posts, products, orders, messages, notifications, tutorials, media):
    router.include_router(module.router)
