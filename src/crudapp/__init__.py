"""crudapp: posts CRUD service over pluggable storage backends with a cache."""

__version__ = "0.1.0"
