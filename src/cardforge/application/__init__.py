"""Application runtime composition."""

from .runtime import CardforgeApp, bootstrap

__all__ = ["CardforgeApp", "bootstrap"]
