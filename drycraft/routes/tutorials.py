"""
Tutorial routes. Validation and ownership live in ``drycraft.tutorials``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from drycraft import tutorials
from drycraft.db import TUTORIALS, DbClient
from drycraft.dependencies import get_db_client
from drycraft.records import get_or_404
from drycraft.schemas import (
    ProgressResponse,
    ProgressUpdate,
    StatusMessage,
    TutorialPayload,
    TutorialResponse,
)
from drycraft.security import get_current_user

router = APIRouter(prefix="/tutorials", tags=["tutorials"])


@router.get("", response_model=list[TutorialResponse])
def list_tutorials(
    craftType: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    return tutorials.list_tutorials(db, craft_type=craftType)


@router.get("/craft-types", response_model=list[str])
def craft_types():
    return list(tutorials.CRAFT_TYPES)


@router.get("/user/{user_id}", response_model=list[TutorialResponse])
def list_user_tutorials(user_id: str, db: DbClient = Depends(get_db_client)):
    return tutorials.list_tutorials(db, author=user_id)


@router.post("", response_model=TutorialResponse, status_code=201)
def create_tutorial(
    payload: TutorialPayload,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    return tutorials.create_tutorial(db, payload, current_user)


@router.get("/{tutorial_id}", response_model=TutorialResponse)
def get_tutorial(tutorial_id: str, db: DbClient = Depends(get_db_client)):
    return get_or_404(db, TUTORIALS, tutorial_id, "Tutorial")


@router.put("/{tutorial_id}", response_model=TutorialResponse)
def update_tutorial(
    tutorial_id: str,
    payload: TutorialPayload,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    return tutorials.update_tutorial(db, tutorial_id, payload, current_user)


@router.delete("/{tutorial_id}", response_model=StatusMessage)
def delete_tutorial(
    tutorial_id: str,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    tutorials.delete_tutorial(db, tutorial_id, current_user)
    return StatusMessage(message="Tutorial deleted")


@router.get("/{tutorial_id}/progress", response_model=ProgressResponse)
def get_progress(
    tutorial_id: str,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    return tutorials.get_progress(db, tutorial_id, current_user)


@router.post("/{tutorial_id}/progress", response_model=ProgressResponse)
def update_progress(
    tutorial_id: str,
    payload: ProgressUpdate,
    db: DbClient = Depends(get_db_client),
    current_user: dict = Depends(get_current_user),
):
    return tutorials.toggle_step(db, tutorial_id, payload.stepIndex, current_user)
