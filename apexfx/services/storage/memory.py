"""
In-Memory Storage

Process-local implementations of the storage interfaces. The ledger is not
persisted beyond the active process, so these are the production backends
as well as the test backends.
"""

from collections import OrderedDict
from typing import Optional
from uuid import UUID

from apexfx.config import get_settings
from apexfx.models.audit import AuditEvent
from apexfx.models.ledger import User, UserRole
from apexfx.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RedirectStorageInterface,
    UserStorageInterface,
)


class InMemoryUserStorage(UserStorageInterface):
    """User directory keyed by ID with a secondary (email, role) index."""

    def __init__(self, users: Optional[list[User]] = None):
        self._users: "OrderedDict[UUID, User]" = OrderedDict()
        self._email_index: dict[tuple[str, UserRole], UUID] = {}
        for user in users or []:
            self.add_user(user)

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_email(
        self,
        email: str,
        role: UserRole = UserRole.STANDARD,
    ) -> Optional[User]:
        user_id = self._email_index.get((email.strip().lower(), UserRole(role)))
        if user_id is None:
            return None
        return self._users[user_id]

    def add_user(self, user: User) -> User:
        if user.id in self._users:
            raise DuplicateError(f"User {user.id} already exists")
        key = (user.email, user.role)
        if key in self._email_index:
            raise DuplicateError(f"Email {user.email} is already registered as {user.role.value}")
        self._users[user.id] = user
        self._email_index[key] = user.id
        return user

    def save_user(self, user: User) -> User:
        existing = self._users.get(user.id)
        if existing is None:
            raise NotFoundError(f"User {user.id} not found")
        old_key = (existing.email, existing.role)
        new_key = (user.email, user.role)
        if new_key != old_key:
            owner = self._email_index.get(new_key)
            if owner is not None and owner != user.id:
                raise DuplicateError(f"Email {user.email} is already registered as {user.role.value}")
            del self._email_index[old_key]
            self._email_index[new_key] = user.id
        self._users[user.id] = user
        return user

    def list_users(self) -> list[User]:
        return list(self._users.values())

    def __len__(self) -> int:
        return len(self._users)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events[-limit:])) if limit > 0 else []

    def __len__(self) -> int:
        return len(self._events)


class InMemoryRedirectStorage(RedirectStorageInterface):
    """
    Key/value redirect store, mirroring the browser storage slot the
    front end keeps under ``redirect_storage_key``.
    """

    def __init__(self, key: Optional[str] = None):
        self._key = key or get_settings().redirect_storage_key
        self._values: dict[str, str] = {}

    @property
    def key(self) -> str:
        return self._key

    def remember(self, path: str) -> None:
        self._values[self._key] = path

    def peek(self) -> Optional[str]:
        return self._values.get(self._key)

    def pop(self) -> Optional[str]:
        return self._values.pop(self._key, None)
