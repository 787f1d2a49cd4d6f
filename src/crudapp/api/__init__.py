"""HTTP API for crudapp."""

from crudapp.api.app import create_app

__all__ = ["create_app"]
