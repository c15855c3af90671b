"""Local storage implementations of calendar repositories."""

from .events import LocalEventRepository

__all__ = [
    "LocalEventRepository",
]
