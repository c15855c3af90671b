"""Repositories for the calendar domain."""

from .memory.events import InMemoryEventRepository
from .memory.signer import DummySigner
from .local.events import LocalEventRepository

__all__ = [
    "InMemoryEventRepository",
    "DummySigner",
    "LocalEventRepository",
]
