"""MongoDB document storage backend.

One document per post in the ``posts`` collection:
    {"userID": ..., "postID": ..., "data": ..., "createdAt": ..., "updatedAt": ...}

BSON dates carry millisecond precision, so timestamps are truncated to
milliseconds before they are written. The client must be created with
``tz_aware=True`` (see :func:`create_collection`) so dates come back as
UTC-aware datetimes.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from opentelemetry.trace import NoOpTracer, Tracer
from pydantic import ValidationError
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from crudapp.core.record import Record, next_update_time, truncate, utcnow
from crudapp.storage.base import RecordIterator, Storage
from crudapp.storage.errors import BackendError, PostNotFoundError

if TYPE_CHECKING:
    from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorCursor

logger = logging.getLogger(__name__)

USER_ID_FIELD = "userID"
POST_ID_FIELD = "postID"
DATA_FIELD = "data"
UPDATED_AT_FIELD = "updatedAt"

_MILLISECOND = timedelta(milliseconds=1)
_PROJECTION = {"_id": False}


def create_collection(url: str, database: str = "db", collection: str = "posts") -> Any:
    """Connect to MongoDB and return the posts collection."""
    from motor.motor_asyncio import AsyncIOMotorClient

    client = AsyncIOMotorClient(url, tz_aware=True)
    return client[database][collection]


def _decode(doc: dict[str, Any]) -> Record:
    try:
        return Record.model_validate(doc)
    except ValidationError as exc:
        raise BackendError("error decoding document") from exc


class MongoRecordIterator(RecordIterator):
    """Iterates over a MongoDB cursor."""

    def __init__(self, cursor: AsyncIOMotorCursor):
        self._cursor = cursor
        self._doc: dict[str, Any] | None = None

    async def next(self) -> bool:
        if self._closed:
            return False
        try:
            self._doc = await self._cursor.next()
        except StopAsyncIteration:
            self._doc = None
        except PyMongoError as exc:
            raise BackendError("error reading all") from exc
        return self._doc is not None

    def get(self) -> Record:
        if self._doc is None:
            raise RuntimeError("get() called without a successful next()")
        return _decode(self._doc)

    async def _release(self) -> None:
        self._doc = None
        await self._cursor.close()


class MongoStorage(Storage):
    """Motor-backed document storage backend."""

    def __init__(self, collection: AsyncIOMotorCollection, tracer: Tracer | None = None):
        self.collection = collection
        self.tracer = tracer or NoOpTracer()

    async def setup(self) -> None:
        """Ensure the (userID, postID) unique index exists."""
        try:
            await self.collection.create_index(
                [(USER_ID_FIELD, ASCENDING), (POST_ID_FIELD, ASCENDING)], unique=True
            )
        except PyMongoError as exc:
            raise BackendError("error creating index") from exc
        logger.info(f"MongoDB index ready on {self.collection.name}")

    async def close(self) -> None:
        self.collection.database.client.close()

    async def health_check(self) -> bool:
        try:
            await self.collection.database.command("ping")
            return True
        except Exception:
            return False

    async def create(self, user_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("mongodb.create"):
            record = Record.new(user_id, data, now=truncate(utcnow(), _MILLISECOND))
            try:
                await self.collection.insert_one(record.model_dump(by_alias=True))
            except PyMongoError as exc:
                raise BackendError("error creating") from exc
            return record

    async def read(self, user_id: str, post_id: str) -> Record:
        with self.tracer.start_as_current_span("mongodb.read"):
            query = {USER_ID_FIELD: user_id, POST_ID_FIELD: post_id}
            try:
                doc = await self.collection.find_one(query, _PROJECTION)
            except PyMongoError as exc:
                raise BackendError("error reading") from exc
            if doc is None:
                raise PostNotFoundError(user_id, post_id)
            return _decode(doc)

    async def read_all(self, user_id: str) -> RecordIterator:
        with self.tracer.start_as_current_span("mongodb.read_all"):
            try:
                cursor = self.collection.find({USER_ID_FIELD: user_id}, _PROJECTION)
            except PyMongoError as exc:
                raise BackendError("error reading all") from exc
            return MongoRecordIterator(cursor)

    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        with self.tracer.start_as_current_span("mongodb.update"):
            current = await self.read(user_id, post_id)
            record = current.with_data(data, next_update_time(current.updated_at, _MILLISECOND))

            query = {USER_ID_FIELD: user_id, POST_ID_FIELD: post_id}
            change = {"$set": {DATA_FIELD: record.data, UPDATED_AT_FIELD: record.updated_at}}
            try:
                result = await self.collection.update_one(query, change, upsert=False)
            except PyMongoError as exc:
                raise BackendError("error updating") from exc
            if result.matched_count == 0:
                # Deleted between the read and the write
                raise PostNotFoundError(user_id, post_id)
            return record

    async def delete(self, user_id: str, post_id: str) -> None:
        with self.tracer.start_as_current_span("mongodb.delete"):
            query = {USER_ID_FIELD: user_id, POST_ID_FIELD: post_id}
            try:
                await self.collection.delete_one(query)
            except PyMongoError as exc:
                raise BackendError("error deleting") from exc
