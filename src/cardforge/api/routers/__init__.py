"""FastAPI routers for the cardforge HTTP API."""

from . import batches, flashcards

__all__ = ["batches", "flashcards"]
