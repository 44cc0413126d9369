"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading

from drycraft.config import get_settings
from drycraft.db import DbClient, InMemoryDbClient, MongoDbClient
from drycraft.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_lock = threading.Lock()


def get_db_client() -> DbClient:
    """
    Return the process-wide DB client, connecting on first use.

    Handlers run in a threadpool, so creation is guarded; once set the
    handle is only read.
    """
    global _db_client
    if _db_client is not None:
        return _db_client

    with _lock:
        if _db_client is not None:
            return _db_client
        settings = get_settings()
        if settings.use_in_memory_backends or not settings.mongodb_uri:
            logger.info("Using in-memory document store")
            _db_client = InMemoryDbClient()
        else:
            _db_client = MongoDbClient(
                settings.mongodb_uri, settings.mongodb_db_name
            )
    return _db_client


def reset_db_client() -> None:
    global _db_client
    with _lock:
        _db_client = None


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client
