"""Flashcard study backend with AI-assisted card generation."""

from .application import CardforgeApp, bootstrap
from .api import create_api

__all__ = ["CardforgeApp", "bootstrap", "create_api"]
