"""Tests for identity resolution, storage and audit logging."""

from decimal import Decimal

import pytest

from apexfx.audit import AuditLogger, create_correlation_id
from apexfx.models import AuditEvent, AuditEventType, Credentials, User, UserRole
from apexfx.services.identity import IdentityRejectedError, IdentityResolver
from apexfx.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryRedirectStorage,
    NotFoundError,
)


class BrokenAuditStorage(AuditStorageInterface):
    def append_event(self, event):
        raise RuntimeError("disk full")

    def get_events_by_correlation_id(self, correlation_id):
        return []

    def get_events_by_entity(self, entity_type, entity_id):
        return []

    def get_recent_events(self, limit=100):
        return []


class TestIdentityResolver:
    """Tests for IdentityResolver."""

    @pytest.mark.asyncio
    async def test_provisions_on_first_login(self, settings, user_storage):
        """Test first login provisions with the starting balance."""
        funded = settings.model_copy(update={"starting_balance": Decimal("250")})
        resolver = IdentityResolver(user_storage, funded)
        user = await resolver.resolve(Credentials(email="new@apexfx.io", password="pw"), UserRole.STANDARD)
        assert user.balance == user.initial_balance == Decimal("250")
        assert user_storage.get_user_by_email("new@apexfx.io") == user

    @pytest.mark.asyncio
    async def test_returns_existing_record(self, settings, user_storage):
        """Test an existing record is reused."""
        existing = user_storage.add_user(User(email="old@apexfx.io", first_name="Old"))
        resolver = IdentityResolver(user_storage, settings)
        user = await resolver.resolve(Credentials(email="OLD@apexfx.io", password="pw"), UserRole.STANDARD)
        assert user == existing
        assert len(user_storage) == 1

    @pytest.mark.asyncio
    async def test_each_role_has_its_own_record(self, settings, user_storage):
        """Test the same address resolves per role."""
        admin = user_storage.add_user(User(email="ops@apexfx.io", role=UserRole.ADMINISTRATOR))
        resolver = IdentityResolver(user_storage, settings)
        creds = Credentials(email="ops@apexfx.io", password="pw")

        standard = await resolver.resolve(creds, UserRole.STANDARD)
        assert standard.role == UserRole.STANDARD
        assert standard.id != admin.id
        assert await resolver.resolve(creds, UserRole.ADMINISTRATOR) == admin
        assert len(user_storage) == 2

    @pytest.mark.asyncio
    async def test_admin_allow_list_is_case_insensitive(self, settings, user_storage):
        """Test the admin allow-list."""
        restricted = settings.model_copy(update={"admin_emails": ["ops@apexfx.io"]})
        resolver = IdentityResolver(user_storage, restricted)
        user = await resolver.resolve(Credentials(email="Ops@ApexFX.io", password="pw"), UserRole.ADMINISTRATOR)
        assert user.is_admin
        with pytest.raises(IdentityRejectedError):
            await resolver.resolve(Credentials(email="eve@apexfx.io", password="pw"), UserRole.ADMINISTRATOR)


class TestStorage:
    """Tests for the in-memory storages."""

    def test_duplicate_email_rejected(self, user_storage):
        """Test a duplicate (email, role) pair."""
        user_storage.add_user(User(email="a@apexfx.io"))
        with pytest.raises(DuplicateError):
            user_storage.add_user(User(email="a@apexfx.io"))

    def test_same_email_for_both_roles(self, user_storage):
        """Test one address holding both roles."""
        user = user_storage.add_user(User(email="a@apexfx.io"))
        admin = user_storage.add_user(User(email="a@apexfx.io", role=UserRole.ADMINISTRATOR))
        assert user_storage.get_user_by_email("a@apexfx.io") == user
        assert user_storage.get_user_by_email("a@apexfx.io", UserRole.ADMINISTRATOR) == admin

    def test_save_unknown_user(self, user_storage):
        """Test saving a user that was never added."""
        with pytest.raises(NotFoundError):
            user_storage.save_user(User(email="ghost@apexfx.io"))

    def test_save_tracks_email_change(self, user_storage):
        """Test the email index follows a change."""
        user = user_storage.add_user(User(email="a@apexfx.io"))
        user_storage.save_user(user.model_copy(update={"email": "b@apexfx.io"}))
        assert user_storage.get_user_by_email("a@apexfx.io") is None
        assert user_storage.get_user_by_email("b@apexfx.io").id == user.id

    def test_list_users_in_insertion_order(self, user_storage):
        """Test list order."""
        emails = ["c@apexfx.io", "a@apexfx.io", "b@apexfx.io"]
        for email in emails:
            user_storage.add_user(User(email=email))
        assert [u.email for u in user_storage.list_users()] == emails

    def test_redirect_storage_pops_once(self):
        """Test read-then-delete."""
        redirects = InMemoryRedirectStorage("apexfx_redirect_after_login")
        assert redirects.pop() is None
        redirects.remember("/deposit")
        redirects.remember("/withdraw")
        assert redirects.peek() == "/withdraw"
        assert redirects.pop() == "/withdraw"
        assert redirects.pop() is None


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_events_persisted(self, audit_storage):
        """Test events reach the audit store."""
        logger = AuditLogger(audit_storage)
        correlation_id = create_correlation_id()
        logger.log_login_failed(email="x@y.com", reason="nope", correlation_id=correlation_id)
        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.LOGIN_FAILED]

    def test_without_storage(self):
        """Test logging with no store configured."""
        event = AuditEvent(event_type=AuditEventType.LOGGED_OUT, description="bye")
        assert AuditLogger().log(event) is True

    def test_storage_failure_is_not_raised(self):
        """A failing audit store never raises."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEvent(event_type=AuditEventType.LOGGED_OUT, description="bye")
        assert logger.log(event) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
