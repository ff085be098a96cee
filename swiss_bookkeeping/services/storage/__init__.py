"""
Storage Services Package

Provides the abstract audit storage interface and an in-memory
implementation.
"""

from swiss_bookkeeping.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from swiss_bookkeeping.services.storage.memory import InMemoryAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
]
