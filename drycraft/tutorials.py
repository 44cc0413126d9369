"""
Tutorial validation and persistence.

Tutorials carry richer nested content than the other resources, so their
required-field and craft-type rules live here instead of in the request
schema. Every check runs before anything is written.
"""

from __future__ import annotations

import logging
from typing import Optional

from drycraft.db import TUTORIALS, USER_PROGRESS, DbClient
from drycraft.errors import ForbiddenError, ValidationError
from drycraft.records import get_or_404, utcnow
from drycraft.schemas import TutorialPayload
from drycraft.security import ensure_owner

logger = logging.getLogger(__name__)

CRAFT_TYPES = (
    "Paper Craft",
    "Wood Craft",
    "Textile Craft",
    "Pottery",
    "Jewelry Making",
    "Metal Craft",
    "Glass Craft",
    "Leather Craft",
    "Mixed Media",
    "Other",
)

REQUIRED_FIELDS_MESSAGE = "Please fill all required fields"


def _clean_text(value: Optional[str]) -> str:
    return (value or "").strip()


def _clean_list(values: Optional[list[str]]) -> list[str]:
    return [v.strip() for v in values or [] if v and v.strip()]


def validate_tutorial(payload: TutorialPayload) -> dict:
    """
    Return the writable tutorial fields, or raise ValidationError.

    Steps and materials are stripped and blank entries dropped before the
    emptiness check, so ``["  "]`` counts as missing.
    """
    fields = {
        "title": _clean_text(payload.title),
        "description": _clean_text(payload.description),
        "craftType": _clean_text(payload.craftType),
        "steps": _clean_list(payload.steps),
        "materials": _clean_list(payload.materials),
    }
    if not all(fields.values()):
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)
    if fields["craftType"] not in CRAFT_TYPES:
        raise ValidationError(
            "Invalid craft type. Allowed values: " + ", ".join(CRAFT_TYPES)
        )
    if payload.images is not None:
        fields["images"] = _clean_list(payload.images)
    if payload.videos is not None:
        fields["videos"] = _clean_list(payload.videos)
    return fields


def create_tutorial(db: DbClient, payload: TutorialPayload, user: dict) -> dict:
    fields = validate_tutorial(payload)
    if payload.userId and payload.userId != user["id"]:
        raise ForbiddenError("You can only create tutorials as yourself")

    now = utcnow()
    tutorial = {
        "images": [],
        "videos": [],
        **fields,
        "author": user["id"],
        "createdAt": now,
        "updatedAt": now,
    }
    created = db.insert(TUTORIALS, tutorial)
    logger.info("Tutorial %s created by %s", created["id"], user["id"])
    return created


def update_tutorial(
    db: DbClient, tutorial_id: str, payload: TutorialPayload, user: dict
) -> dict:
    fields = validate_tutorial(payload)
    tutorial = get_or_404(db, TUTORIALS, tutorial_id, "Tutorial")
    ensure_owner(tutorial.get("author"), user, "You can only update your own tutorials")

    fields["updatedAt"] = utcnow()
    return db.update(TUTORIALS, tutorial_id, fields) or tutorial


def delete_tutorial(db: DbClient, tutorial_id: str, user: dict) -> None:
    tutorial = get_or_404(db, TUTORIALS, tutorial_id, "Tutorial")
    ensure_owner(tutorial.get("author"), user, "You can only delete your own tutorials")
    db.delete(TUTORIALS, tutorial_id)
    logger.info("Tutorial %s deleted by %s", tutorial_id, user["id"])


def list_tutorials(
    db: DbClient,
    *,
    craft_type: Optional[str] = None,
    author: Optional[str] = None,
) -> list[dict]:
    if craft_type and craft_type not in CRAFT_TYPES:
        raise ValidationError(
            "Invalid craft type. Allowed values: " + ", ".join(CRAFT_TYPES)
        )
    filters: dict = {}
    if craft_type:
        filters["craftType"] = craft_type
    if author:
        filters["author"] = author
    return db.find(TUTORIALS, filters, sort="createdAt", descending=True)


def _progress_record(db: DbClient, tutorial_id: str, user_id: str) -> dict:
    progress = db.find_one(
        USER_PROGRESS, {"userId": user_id, "tutorialId": tutorial_id}
    )
    if progress:
        return progress
    return db.insert(
        USER_PROGRESS,
        {
            "userId": user_id,
            "tutorialId": tutorial_id,
            "completedSteps": [],
            "isCompleted": False,
            "lastUpdated": utcnow(),
        },
    )


def get_progress(db: DbClient, tutorial_id: str, user: dict) -> dict:
    """The caller's progress on a tutorial, started empty on first read."""
    get_or_404(db, TUTORIALS, tutorial_id, "Tutorial")
    return _progress_record(db, tutorial_id, user["id"])


def toggle_step(
    db: DbClient, tutorial_id: str, step_index: Optional[int], user: dict
) -> dict:
    """
    Mark a step done, or undo it if it already was.

    The tutorial counts as completed once every current step index is in
    ``completedSteps``.
    """
    if step_index is None:
        raise ValidationError("Step index is required")
    tutorial = get_or_404(db, TUTORIALS, tutorial_id, "Tutorial")
    step_count = len(tutorial.get("steps") or [])
    if step_index < 0 or step_index >= step_count:
        raise ValidationError("Invalid step index")

    progress = _progress_record(db, tutorial_id, user["id"])
    if step_index in progress.get("completedSteps", []):
        progress = db.pull(USER_PROGRESS, progress["id"], "completedSteps", step_index)
    else:
        progress = db.add_to_set(
            USER_PROGRESS, progress["id"], "completedSteps", step_index
        )

    done = {i for i in progress.get("completedSteps", []) if 0 <= i < step_count}
    return db.update(
        USER_PROGRESS,
        progress["id"],
        {"isCompleted": len(done) == step_count, "lastUpdated": utcnow()},
    )
