"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the session store decoupled from where user records live
2. Use in-memory storage for the active process and for tests
3. Let the consumer own the redirect-after-login value

The interface is intentionally simple - just the operations the session
engine needs. All methods are synchronous: the only suspension points in
the engine are the login-family operations.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from apexfx.models.audit import AuditEvent
from apexfx.models.ledger import User, UserRole


class UserStorageInterface(ABC):
    """
    Abstract interface for the user directory.

    Records are immutable values; ``save`` replaces the stored value
    for the user's ID. An email address identifies at most one record per
    role, so the same address may own a standard and an administrator record.
    """

    @abstractmethod
    def get_user(self, user_id: UUID) -> Optional[User]:
        """
        Retrieve a user by ID.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    def get_user_by_email(
        self,
        email: str,
        role: UserRole = UserRole.STANDARD,
    ) -> Optional[User]:
        """Retrieve the record holding (normalized) email address and role."""
        pass

    @abstractmethod
    def add_user(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateError: If the ID or the (email, role) pair is already taken
        """
        pass

    @abstractmethod
    def save_user(self, user: User) -> User:
        """
        Replace an existing user record.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    def list_users(self) -> list[User]:
        """All users in insertion order."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """Events sharing a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        """Events about one entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class RedirectStorageInterface(ABC):
    """
    Where the consumer keeps the "redirect target after login" value.

    Contract: the value is read-then-deleted, at most once per login.
    """

    @abstractmethod
    def remember(self, path: str) -> None:
        """Store the path to return to after the next successful login."""
        pass

    @abstractmethod
    def peek(self) -> Optional[str]:
        """Read the stored path without clearing it."""
        pass

    @abstractmethod
    def pop(self) -> Optional[str]:
        """Read and clear the stored path."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
