"""Persistence layer: engine, ORM models, migrations and repositories."""

from .database import Database

__all__ = ["Database"]
