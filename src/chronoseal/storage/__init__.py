# src/chronoseal/storage/__init__.py

"""
Persistence layer for ChronoSeal.
Document stores are injected into the IntegrityEngine; the engine never
opens a connection itself.
"""

from .base import DocumentStore
from .memory import InMemoryDocumentStore
from .mongo import MongoDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
]
