"""
Data Models Package

This package contains all Pydantic models used by the ApexFX session engine.
All data flowing through the session store must conform to these schemas.
"""

from apexfx.models.ledger import (
    LedgerTotals,
    PnL,
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    User,
    UserPatch,
    UserRole,
    apply_patch,
)
from apexfx.models.history import TransactionFilter, TransactionPage
from apexfx.models.session import (
    AccessAction,
    AccessDecision,
    Credentials,
    LoginOutcome,
    RegistrationProfile,
    Session,
    SessionMode,
)
from apexfx.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LedgerTotals",
    "PnL",
    "Transaction",
    "TransactionDraft",
    "TransactionStatus",
    "TransactionType",
    "User",
    "UserPatch",
    "UserRole",
    "apply_patch",
    # History models
    "TransactionFilter",
    "TransactionPage",
    # Session models
    "AccessAction",
    "AccessDecision",
    "Credentials",
    "LoginOutcome",
    "RegistrationProfile",
    "Session",
    "SessionMode",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
