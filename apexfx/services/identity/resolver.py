"""
Identity Resolution

The session engine does not own a credential authority. In this system's
trust model any well-formed credential pair is accepted, and the identity
behind it is resolved here: an existing directory record is returned, or a
fresh one is provisioned on first sign-in.

This service handles:
1. Looking up the identity for an (email, role) pair
2. Provisioning standard identities on first login
3. Refusing administrator identities for addresses not on the admin list

Identities are keyed by (email, role): the same address signs in to the
user view tree and the admin view tree as two separate records, each with
the role it was provisioned with.

Transient faults (IdentityServiceError) are retried before surfacing.
"""

import asyncio
from typing import Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from apexfx.config import SessionSettings, get_settings
from apexfx.models.ledger import User, UserRole
from apexfx.models.session import Credentials
from apexfx.services.storage import UserStorageInterface


class IdentityError(Exception):
    """Base exception for identity resolution."""
    pass


class IdentityRejectedError(IdentityError):
    """The address may not be provisioned for the requested role."""

    def __init__(self, email: str, message: str):
        self.email = email
        super().__init__(message)


class IdentityServiceError(IdentityError):
    """Transient failure of the identity backend. Retried."""
    pass


class IdentityResolver:
    """
    Resolves credentials to a User record in the directory.

    IMPORTANT BOUNDARIES:
    1. The password is never stored or compared here
    2. A record's role never changes once provisioned; the other role
       resolves to a separate record
    3. Nothing here touches the session
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        settings: Optional[SessionSettings] = None,
    ):
        self._users = user_storage
        self._settings = settings or get_settings()

    def _may_be_admin(self, email: str) -> bool:
        allowed = self._settings.admin_emails
        return not allowed or email in allowed

    async def _fetch(self, email: str, role: UserRole) -> Optional[User]:
        """Round-trip to the directory. Override to plug in a remote backend."""
        if self._settings.identity_latency_seconds:
            await asyncio.sleep(self._settings.identity_latency_seconds)
        return self._users.get_user_by_email(email, role)

    def _provision(self, email: str, role: UserRole) -> User:
        start = self._settings.starting_balance
        user = User(
            email=email,
            role=role,
            balance=start,
            initial_balance=start,
        )
        return self._users.add_user(user)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(IdentityServiceError),
        reraise=True,
    )
    async def resolve(self, credentials: Credentials, role: UserRole) -> User:
        """
        Resolve credentials to a user of the given role.

        Raises:
            IdentityRejectedError: Address not on the admin allow-list
            IdentityServiceError: Backend still failing after retries
        """
        email = credentials.email
        existing = await self._fetch(email, role)
        if existing is not None:
            return existing

        if role == UserRole.ADMINISTRATOR and not self._may_be_admin(email):
            raise IdentityRejectedError(email, f"{email} is not an administrator")

        return self._provision(email, role)
