"""Identity resolution services package."""

from apexfx.services.identity.resolver import (
    IdentityError,
    IdentityRejectedError,
    IdentityResolver,
    IdentityServiceError,
)

__all__ = [
    "IdentityError",
    "IdentityRejectedError",
    "IdentityResolver",
    "IdentityServiceError",
]
