"""In-memory implementations of calendar repositories."""

from .events import InMemoryEventRepository
from .signer import DummySigner

__all__ = [
    "InMemoryEventRepository",
    "DummySigner",
]
