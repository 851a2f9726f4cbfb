"""Shared fixtures: in-memory components with explicit settings."""

from decimal import Decimal

import pytest

from apexfx.audit import AuditLogger
from apexfx.config import SessionSettings
from apexfx.orchestrator import create_session_components
from apexfx.services.storage import InMemoryAuditStorage, InMemoryUserStorage
from apexfx.session import SessionStore


@pytest.fixture
def settings():
    return SessionSettings(
        _env_file=None,
        starting_balance=Decimal("0"),
        admin_emails=[],
        identity_latency_seconds=0.0,
        transactions_page_size=10,
    )


@pytest.fixture
def user_storage():
    return InMemoryUserStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def store(settings, user_storage, audit_storage):
    return SessionStore(
        user_storage=user_storage,
        audit_logger=AuditLogger(audit_storage),
        settings=settings,
    )


@pytest.fixture
def components(settings, user_storage, audit_storage):
    return create_session_components(
        settings=settings,
        user_storage=user_storage,
        audit_storage=audit_storage,
    )
