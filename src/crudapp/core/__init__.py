"""Core domain types for crudapp."""

from crudapp.core.record import Record, new_post_id, next_update_time, utcnow

__all__ = [
    "Record",
    "new_post_id",
    "next_update_time",
    "utcnow",
]
