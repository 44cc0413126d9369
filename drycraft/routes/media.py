"""
Media upload signing. Files go straight to the bucket; the API only hands
out presigned URLs and enforces type and size limits.
"""

from __future__ import annotations

import logging
import os
from uuid import uuid4

from fastapi import APIRouter, Depends

from drycraft.config import get_settings
from drycraft.dependencies import get_storage_client
from drycraft.errors import ValidationError
from drycraft.schemas import MediaUploadRequest, MediaUploadResponse
from drycraft.security import get_current_user
from drycraft.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["media"])

ALLOWED_VIDEO_TYPES = ("video/mp4", "video/quicktime")
UPLOAD_URL_TTL_SECONDS = 900
DOWNLOAD_URL_TTL_SECONDS = 3600


def _media_type(content_type: str, size: int) -> str:
    settings = get_settings()
    content_type = content_type.lower()
    if content_type.startswith("image/"):
        media_type, max_mb = "image", settings.media_max_image_mb
    elif content_type in ALLOWED_VIDEO_TYPES:
        media_type, max_mb = "video", settings.media_max_video_mb
    else:
        raise ValidationError(
            "Only image files or videos of type "
            + ", ".join(ALLOWED_VIDEO_TYPES)
            + " are supported"
        )
    if size > max_mb * 1024 * 1024:
        raise ValidationError(f"{media_type.capitalize()} size must be less than {max_mb}MB")
    return media_type


@router.post("/uploads", response_model=MediaUploadResponse, status_code=201)
def sign_upload(
    payload: MediaUploadRequest,
    storage: StorageClient = Depends(get_storage_client),
    current_user: dict = Depends(get_current_user),
):
    media_type = _media_type(payload.contentType, payload.size)
    extension = os.path.splitext(payload.filename)[1].lower()
    path = f"media/{current_user['id']}/{media_type}/{uuid4().hex}{extension}"
    upload_url = storage.presign_put(
        path, payload.contentType, expires_in=UPLOAD_URL_TTL_SECONDS
    )
    logger.info("Signed %s upload %s for %s", media_type, path, current_user["id"])
    return MediaUploadResponse(
        path=path,
        uploadUrl=upload_url,
        downloadUrl=storage.presign_get(path, expires_in=DOWNLOAD_URL_TTL_SECONDS),
        mediaType=media_type,
    )
