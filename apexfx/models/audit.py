"""
Audit Models for ApexFX

Every session transition and ledger mutation is logged for audit purposes.
This provides:
1. Complete traceability of who changed which ledger, and when
2. Debugging information when a mutation is refused
3. A record of admin actions on other users' accounts

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from apexfx.models.ledger import Transaction, utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    ADMIN_LOGIN_SUCCEEDED = "admin_login_succeeded"
    ADMIN_LOGIN_FAILED = "admin_login_failed"
    STALE_COMPLETION_IGNORED = "stale_completion_ignored"
    USER_REGISTERED = "user_registered"
    REGISTRATION_FAILED = "registration_failed"
    LOGGED_OUT = "logged_out"

    # Profile
    PROFILE_UPDATED = "profile_updated"

    # Ledger
    TRANSACTION_APPENDED = "transaction_appended"
    TRANSACTION_STATUS_CHANGED = "transaction_status_changed"

    # Refusals
    INVARIANT_VIOLATION = "invariant_violation"
    TARGET_NOT_FOUND = "target_not_found"
    ACCESS_DENIED = "access_denied"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    ``actor_id`` is the identity that performed the action; ``entity_id`` the
    record it touched. They differ for admin mutations.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    actor_id: Optional[UUID] = Field(
        default=None,
        description="User who performed the action"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'transaction', 'session')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one login attempt)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_admin_action: bool = Field(
        default=False,
        description="Was this performed through the admin surface?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_admin_action": self.is_admin_action,
        }

    def to_row(self) -> list[str]:
        """
        Flatten to a row of strings for tabular audit sinks.

        Columns: [event_id, timestamp, event_type, severity, actor_id,
        entity_type, entity_id, correlation_id, description, details_json,
        error_message, is_admin_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.actor_id) if self.actor_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_admin_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_succeeded(user_id, email, correlation_id)
        event = AuditEventBuilder.transaction_appended(actor_id, owner_id, tx)
    """

    @staticmethod
    def login_succeeded(
        user_id: UUID,
        email: str,
        admin: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.ADMIN_LOGIN_SUCCEEDED if admin
                else AuditEventType.LOGIN_SUCCEEDED
            ),
            actor_id=user_id,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"{'Admin' if admin else 'User'} login succeeded: {email}",
            details={"email": email},
            is_admin_action=admin,
        )

    @staticmethod
    def login_failed(
        email: str,
        admin: bool,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.ADMIN_LOGIN_FAILED if admin
                else AuditEventType.LOGIN_FAILED
            ),
            severity=AuditSeverity.WARNING,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"{'Admin' if admin else 'User'} login failed",
            details={"email": email, "reason": reason},
            is_admin_action=admin,
        )

    @staticmethod
    def stale_completion(
        operation: str,
        attempt: int,
        latest_attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_COMPLETION_IGNORED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Ignored stale {operation} completion",
            details={
                "operation": operation,
                "attempt": attempt,
                "latest_attempt": latest_attempt,
            },
        )

    @staticmethod
    def user_registered(
        user_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"User registered: {email}",
            details={"email": email},
        )

    @staticmethod
    def registration_failed(
        email: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description="Registration failed",
            details={"email": email, "reason": reason},
        )

    @staticmethod
    def logged_out(user_id: Optional[UUID], mode: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            actor_id=user_id,
            entity_type="session",
            entity_id=user_id,
            description=f"Logged out of {mode} session",
            details={"mode": mode},
        )

    @staticmethod
    def profile_updated(
        actor_id: Optional[UUID],
        user_id: UUID,
        fields: list[str],
        admin: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            actor_id=actor_id,
            entity_type="user",
            entity_id=user_id,
            description=f"Profile updated: {', '.join(fields) or 'no changes'}",
            details={"fields": fields},
            is_admin_action=admin,
        )

    @staticmethod
    def transaction_appended(
        actor_id: Optional[UUID],
        owner_id: UUID,
        transaction: Transaction,
        balance: str,
        admin: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPENDED,
            actor_id=actor_id,
            entity_type="transaction",
            entity_id=transaction.id,
            description=(
                f"{transaction.type.value.title()} of {transaction.amount} "
                f"appended ({transaction.status.value})"
            ),
            details={
                "owner_id": str(owner_id),
                "amount": str(transaction.amount),
                "type": transaction.type.value,
                "status": transaction.status.value,
                "balance": balance,
            },
            is_admin_action=admin,
        )

    @staticmethod
    def transaction_status_changed(
        actor_id: Optional[UUID],
        owner_id: UUID,
        transaction_id: UUID,
        old_status: str,
        new_status: str,
        balance: str,
        admin: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_STATUS_CHANGED,
            actor_id=actor_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction status {old_status} -> {new_status}",
            details={
                "owner_id": str(owner_id),
                "old_status": old_status,
                "new_status": new_status,
                "balance": balance,
            },
            is_admin_action=admin,
        )

    @staticmethod
    def rejected(
        event_type: AuditEventType,
        actor_id: Optional[UUID],
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
        admin: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            entity_type="user",
            entity_id=entity_id,
            description=f"Refused {operation}",
            details={"operation": operation},
            error_code=type(error).__name__,
            error_message=str(error),
            is_admin_action=admin,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
