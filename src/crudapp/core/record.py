"""Post record domain model.

A Record is one stored post, identified by ``(user_id, post_id)``.
Records are immutable: backends build a new Record for every create and
update instead of mutating an existing one.

The JSON form (``userID``, ``postID``, ``data``, ``createdAt``,
``updatedAt``) is what key-value backends and remote caches persist.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import orjson
from pydantic import BaseModel, Field, field_validator, model_validator

ORJSON_OPTIONS = orjson.OPT_UTC_Z

_ONE_MICROSECOND = timedelta(microseconds=1)
_ONE_MILLISECOND = timedelta(milliseconds=1)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def new_post_id() -> str:
    """Allocate a new post identifier."""
    return str(uuid4())


def next_update_time(previous: datetime, resolution: timedelta = _ONE_MICROSECOND) -> datetime:
    """Return a timestamp strictly later than *previous*.

    Clocks can return the same value twice in quick succession, and some
    backends truncate timestamps (MongoDB stores milliseconds), so the result
    is bumped to ``previous + resolution`` when the clock has not advanced.
    """
    now = truncate(utcnow(), resolution)
    floor = truncate(previous, resolution) + resolution
    return now if now >= floor else floor


def truncate(value: datetime, resolution: timedelta = _ONE_MICROSECOND) -> datetime:
    """Drop precision below *resolution* (microseconds or milliseconds)."""
    if resolution == _ONE_MILLISECOND:
        return value.replace(microsecond=value.microsecond // 1000 * 1000)
    return value


class Record(BaseModel):
    """A single post owned by a user."""

    model_config = {
        "frozen": True,
        "extra": "forbid",
        "populate_by_name": True,
    }

    user_id: str = Field(alias="userID")
    post_id: str = Field(alias="postID")
    data: str = ""
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        # SQLite and MongoDB (without tz_aware) hand back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @model_validator(mode="after")
    def _check_timestamps(self) -> Record:
        if self.created_at > self.updated_at:
            raise ValueError("createdAt must not be later than updatedAt")
        return self

    @classmethod
    def new(cls, user_id: str, data: str, now: datetime | None = None) -> Record:
        """Build a freshly created record with a new post ID."""
        now = now or utcnow()
        return cls(
            user_id=user_id,
            post_id=new_post_id(),
            data=data,
            created_at=now,
            updated_at=now,
        )

    def with_data(self, data: str, updated_at: datetime) -> Record:
        """Return the updated copy of this record.

        ``post_id`` and ``created_at`` are preserved.
        """
        return self.model_copy(update={"data": data, "updated_at": updated_at})

    def to_bytes(self) -> bytes:
        """Serialize to canonical JSON bytes."""
        return orjson.dumps(self.model_dump(mode="json", by_alias=True), option=ORJSON_OPTIONS)

    @classmethod
    def from_bytes(cls, raw: bytes | str) -> Record:
        """Deserialize from JSON produced by :meth:`to_bytes`."""
        return cls.model_validate(orjson.loads(raw))
