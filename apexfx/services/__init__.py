"""Services package."""

from apexfx.services.identity import (
    IdentityError,
    IdentityRejectedError,
    IdentityResolver,
    IdentityServiceError,
)
from apexfx.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryRedirectStorage,
    InMemoryUserStorage,
    NotFoundError,
    RedirectStorageInterface,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Identity services
    "IdentityError",
    "IdentityRejectedError",
    "IdentityResolver",
    "IdentityServiceError",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryRedirectStorage",
    "InMemoryUserStorage",
    "NotFoundError",
    "RedirectStorageInterface",
    "StorageError",
    "UserStorageInterface",
]
