"""
Order routes. Orders start out pending; fulfilment happens elsewhere.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft.db import ORDERS, PRODUCTS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.records import get_or_404, utcnow
from drycraft.schemas import OrderCreate, OrderResponse
from drycraft.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])

PENDING = "pending"


@router.get("", response_model=list[OrderResponse])
def list_orders(
    buyerId: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    filters = {"buyerId": buyerId} if buyerId else {}
    return db.find(ORDERS, filters, sort="createdAt", descending=True)


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    payload: OrderCreate,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    get_or_404(db, PRODUCTS, payload.productId, "Product")
    order = db.insert(
        ORDERS,
        {
            **payload.model_dump(),
            "buyerId": current_user["id"],
            "status": PENDING,
            "createdAt": utcnow(),
        },
    )
    logger.info("Order %s placed by %s", order["id"], current_user["id"])
    return order
