"""
Document store abstraction for MongoDB and an in-memory test implementation.

Records cross this boundary as plain dicts with a string ``id`` key; the
Mongo ``_id`` never leaks to the routers.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Protocol

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from drycraft.errors import DependencyError

logger = logging.getLogger(__name__)

USERS = "users"
POSTS = "posts"
PRODUCTS = "products"
ORDERS = "orders"
MESSAGES = "messages"
NOTIFICATIONS = "notifications"
TUTORIALS = "tutorials"
USER_PROGRESS = "user_progress"

COLLECTIONS = (
    USERS,
    POSTS,
    PRODUCTS,
    ORDERS,
    MESSAGES,
    NOTIFICATIONS,
    TUTORIALS,
    USER_PROGRESS,
)


class DbClient(Protocol):
    """Interface for database access."""

    def insert(self, collection: str, doc: dict) -> dict:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def find_one(self, collection: str, filters: dict) -> Optional[dict]:
        ...

    def find(
        self,
        collection: str,
        filters: Optional[dict] = None,
        *,
        sort: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        exclude: Iterable[str] = (),
    ) -> list[dict]:
        ...

    def count(self, collection: str, filters: Optional[dict] = None) -> int:
        ...

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        """Set fields; dotted keys (``reactions.<userId>``) set nested values."""
        ...

    def unset(self, collection: str, doc_id: str, field: str) -> Optional[dict]:
        ...

    def add_to_set(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        ...

    def push(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        ...

    def pull(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        """Remove matching items; a dict value matches items carrying those keys."""
        ...

    def update_in_list(
        self, collection: str, doc_id: str, field: str, match: dict, changes: dict
    ) -> Optional[dict]:
        """Set ``changes`` on the first item of ``field`` matching ``match``."""
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        ...


def new_id() -> str:
    return str(ObjectId())


def _matches(doc: dict, filters: dict) -> bool:
    for key, expected in filters.items():
        actual = doc.get(key)
        # Mongo equality on an array field matches any element.
        if isinstance(actual, list) and not isinstance(expected, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


def _without(doc: dict, exclude: Iterable[str]) -> dict:
    excluded = set(exclude)
    return {k: v for k, v in doc.items() if k not in excluded}


def _item_matches(item: Any, value: Any) -> bool:
    if isinstance(value, dict):
        return isinstance(item, dict) and all(
            item.get(k) == v for k, v in value.items()
        )
    return item == value


def _set_path(doc: dict, path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    for key in parents:
        doc = doc.setdefault(key, {})
    doc[leaf] = value


def _unset_path(doc: dict, path: str) -> None:
    *parents, leaf = path.split(".")
    for key in parents:
        doc = doc.get(key)
        if not isinstance(doc, dict):
            return
    doc.pop(leaf, None)


class InMemoryDbClient:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {
            name: {} for name in COLLECTIONS
        }
        # Writes are single-document and atomic, as they are in MongoDB.
        self._lock = threading.RLock()

    def _collection(self, name: str) -> Dict[str, dict]:
        return self.collections.setdefault(name, {})

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            for docs in self.collections.values():
                docs.clear()

    def insert(self, collection: str, doc: dict) -> dict:
        record = copy.deepcopy(doc)
        record["id"] = new_id()
        with self._lock:
            self._collection(collection)[record["id"]] = record
        return copy.deepcopy(record)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            record = self._collection(collection).get(doc_id)
            return copy.deepcopy(record) if record else None

    def find_one(self, collection: str, filters: dict) -> Optional[dict]:
        with self._lock:
            for record in self._collection(collection).values():
                if _matches(record, filters):
                    return copy.deepcopy(record)
        return None

    def find(
        self,
        collection: str,
        filters: Optional[dict] = None,
        *,
        sort: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        exclude: Iterable[str] = (),
    ) -> list[dict]:
        with self._lock:
            records = [
                copy.deepcopy(_without(r, exclude))
                for r in self._collection(collection).values()
                if _matches(r, filters or {})
            ]
        if sort:
            records.sort(
                key=lambda r: (r.get(sort) is not None, r.get(sort)),
                reverse=descending,
            )
        if limit is not None:
            records = records[:limit]
        return records

    def count(self, collection: str, filters: Optional[dict] = None) -> int:
        with self._lock:
            return sum(
                1 for r in self._collection(collection).values()
                if _matches(r, filters or {})
            )

    def _modify(
        self, collection: str, doc_id: str, change: Callable[[dict], bool]
    ) -> Optional[dict]:
        with self._lock:
            record = self._collection(collection).get(doc_id)
            if not record or change(record) is False:
                return None
            return copy.deepcopy(record)

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        def change(record: dict) -> None:
            for path, value in copy.deepcopy(changes).items():
                if path != "id":
                    _set_path(record, path, value)

        return self._modify(collection, doc_id, change)

    def unset(self, collection: str, doc_id: str, field: str) -> Optional[dict]:
        return self._modify(
            collection, doc_id, lambda record: _unset_path(record, field)
        )

    def add_to_set(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        def change(record: dict) -> None:
            values = record.setdefault(field, [])
            if value not in values:
                values.append(copy.deepcopy(value))

        return self._modify(collection, doc_id, change)

    def push(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        return self._modify(
            collection,
            doc_id,
            lambda record: record.setdefault(field, []).append(copy.deepcopy(value)),
        )

    def pull(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        def change(record: dict) -> None:
            record[field] = [
                item for item in record.get(field) or []
                if not _item_matches(item, value)
            ]

        return self._modify(collection, doc_id, change)

    def update_in_list(
        self, collection: str, doc_id: str, field: str, match: dict, changes: dict
    ) -> Optional[dict]:
        def change(record: dict) -> bool:
            for item in record.get(field) or []:
                if _item_matches(item, match):
                    item.update(copy.deepcopy(changes))
                    return True
            return False

        return self._modify(collection, doc_id, change)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None


def _object_id(doc_id: str) -> Optional[ObjectId]:
    if not doc_id or not ObjectId.is_valid(doc_id):
        return None
    return ObjectId(doc_id)


def _to_record(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    record = dict(doc)
    record["id"] = str(record.pop("_id"))
    return record


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        logger.exception("MongoDB %s failed", operation)
        raise DependencyError() from exc


class MongoDbClient:
    """
    pymongo-backed implementation. Accepts an existing client (e.g. mongomock in tests).
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        db_name: str = "drycraft",
        client: Optional[MongoClient] = None,
    ):
        if client is None:
            if not uri:
                raise ValueError("MONGODB_URI is required for MongoDbClient")
            client = MongoClient(uri, tz_aware=True, serverSelectionTimeoutMS=5000)
            with _translate_errors("ping"):
                client.admin.command("ping")
            logger.info("Connected to MongoDB database %s", db_name)
        self.client = client
        self.db = client[db_name]

    def insert(self, collection: str, doc: dict) -> dict:
        payload = {k: v for k, v in doc.items() if k != "id"}
        with _translate_errors("insert"):
            result = self.db[collection].insert_one(payload)
        payload["_id"] = result.inserted_id
        return _to_record(payload)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        with _translate_errors("get"):
            return _to_record(self.db[collection].find_one({"_id": oid}))

    def find_one(self, collection: str, filters: dict) -> Optional[dict]:
        with _translate_errors("find_one"):
            return _to_record(self.db[collection].find_one(filters))

    def find(
        self,
        collection: str,
        filters: Optional[dict] = None,
        *,
        sort: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        exclude: Iterable[str] = (),
    ) -> list[dict]:
        projection = {field: 0 for field in exclude} or None
        with _translate_errors("find"):
            cursor = self.db[collection].find(filters or {}, projection)
            if sort:
                cursor = cursor.sort(sort, DESCENDING if descending else ASCENDING)
            if limit is not None:
                cursor = cursor.limit(limit)
            return [_to_record(doc) for doc in cursor]

    def count(self, collection: str, filters: Optional[dict] = None) -> int:
        with _translate_errors("count"):
            return self.db[collection].count_documents(filters or {})

    def _find_and_modify(
        self,
        collection: str,
        doc_id: str,
        operation: dict,
        filters: Optional[dict] = None,
    ) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        with _translate_errors("update"):
            doc = self.db[collection].find_one_and_update(
                {**(filters or {}), "_id": oid},
                operation,
                return_document=ReturnDocument.AFTER,
            )
        return _to_record(doc)

    def update(self, collection: str, doc_id: str, changes: dict) -> Optional[dict]:
        changes = {k: v for k, v in changes.items() if k != "id"}
        return self._find_and_modify(collection, doc_id, {"$set": changes})

    def unset(self, collection: str, doc_id: str, field: str) -> Optional[dict]:
        return self._find_and_modify(collection, doc_id, {"$unset": {field: ""}})

    def add_to_set(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        return self._find_and_modify(collection, doc_id, {"$addToSet": {field: value}})

    def push(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        return self._find_and_modify(collection, doc_id, {"$push": {field: value}})

    def pull(
        self, collection: str, doc_id: str, field: str, value: Any
    ) -> Optional[dict]:
        return self._find_and_modify(collection, doc_id, {"$pull": {field: value}})

    def update_in_list(
        self, collection: str, doc_id: str, field: str, match: dict, changes: dict
    ) -> Optional[dict]:
        return self._find_and_modify(
            collection,
            doc_id,
            {"$set": {f"{field}.$.{key}": value for key, value in changes.items()}},
            filters={field: {"$elemMatch": match}},
        )

    def delete(self, collection: str, doc_id: str) -> bool:
        oid = _object_id(doc_id)
        if oid is None:
            return False
        with _translate_errors("delete"):
            result = self.db[collection].delete_one({"_id": oid})
        return result.deleted_count > 0
