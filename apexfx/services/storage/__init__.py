"""
Storage Services Package

Provides abstract interfaces and in-memory implementations for the user
directory, the audit log and the redirect-after-login slot.
"""

from apexfx.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RedirectStorageInterface,
    StorageError,
    UserStorageInterface,
)
from apexfx.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRedirectStorage,
    InMemoryUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RedirectStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRedirectStorage",
    "InMemoryUserStorage",
]
