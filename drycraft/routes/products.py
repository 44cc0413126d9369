"""
Marketplace product routes.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft.db import PRODUCTS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.records import get_or_404, utcnow
from drycraft.schemas import ProductPayload, ProductResponse, StatusMessage
from drycraft.security import ensure_owner, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=list[ProductResponse])
def list_products(
    category: Optional[str] = Query(None),
    sellerId: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    filters = {}
    if category:
        filters["category"] = category
    if sellerId:
        filters["sellerId"] = sellerId
    return db.find(PRODUCTS, filters, sort="createdAt", descending=True)


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    payload: ProductPayload,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    now = utcnow()
    product = db.insert(
        PRODUCTS,
        {
            **payload.model_dump(),
            "sellerId": current_user["id"],
            "createdAt": now,
            "updatedAt": now,
        },
    )
    logger.info("Product %s listed by %s", product["id"], current_user["id"])
    return product


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: DbClient = Depends(get_db_client)):
    return get_or_404(db, PRODUCTS, product_id, "Product")


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductPayload,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    product = get_or_404(db, PRODUCTS, product_id, "Product")
    ensure_owner(product.get("sellerId"), current_user, "You can only edit your own products")
    changes = payload.model_dump()
    changes["updatedAt"] = utcnow()
    return db.update(PRODUCTS, product_id, changes)


@router.delete("/{product_id}", response_model=StatusMessage)
def delete_product(
    product_id: str,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    product = get_or_404(db, PRODUCTS, product_id, "Product")
    ensure_owner(product.get("sellerId"), current_user, "You can only delete your own products")
    db.delete(PRODUCTS, product_id)
    logger.info("Product %s removed by %s", product_id, current_user["id"])
    return StatusMessage(message="Product deleted")
