"""API routers for crudapp."""

from crudapp.api.routers import health, metrics, posts

__all__ = ["health", "metrics", "posts"]
