"""HTTP API for cardforge."""

from .app import create_api

__all__ = ["create_api"]
