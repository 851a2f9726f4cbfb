"""
Audit Logger

DESIGN DECISION: Every session transition and ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. A record of which admin touched which account
3. Debugging capability when a mutation is refused

The audit logger:
- Is synchronous, because ledger mutations are synchronous
- Gracefully handles failures (a broken audit sink never breaks a mutation)
- Tags every event of one user action with a shared correlation ID
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from apexfx.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from apexfx.models.ledger import Transaction
from apexfx.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Writes session and ledger events to the structured log and, when one
    is configured, to an audit store.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Audit store. None means structured log only.
        """
        self._storage = storage
        self._logger = structlog.get_logger("apexfx.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Emit one event at its severity, then append it to the store.

        Returns False only when the store rejected or failed the write.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_login(
        self,
        user_id: UUID,
        email: str,
        admin: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.login_succeeded(
            user_id=user_id,
            email=email,
            admin=admin,
            correlation_id=correlation_id,
        ))

    def log_login_failed(
        self,
        email: str,
        reason: str,
        admin: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.login_failed(
            email=email,
            admin=admin,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_stale_completion(
        self,
        operation: str,
        attempt: int,
        latest_attempt: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a login-family completion that lost to a newer attempt or a logout."""
        self.log(AuditEventBuilder.stale_completion(
            operation=operation,
            attempt=attempt,
            latest_attempt=latest_attempt,
            correlation_id=correlation_id,
        ))

    def log_user_registered(
        self,
        user_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.user_registered(
            user_id=user_id,
            email=email,
            correlation_id=correlation_id,
        ))

    def log_registration_failed(
        self,
        email: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.registration_failed(
            email=email,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_logout(self, user_id: Optional[UUID], mode: str) -> None:
        self.log(AuditEventBuilder.logged_out(user_id=user_id, mode=mode))

    def log_profile_updated(
        self,
        actor_id: Optional[UUID],
        user_id: UUID,
        fields: list[str],
        admin: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.profile_updated(
            actor_id=actor_id,
            user_id=user_id,
            fields=fields,
            admin=admin,
        ))

    def log_transaction_appended(
        self,
        actor_id: Optional[UUID],
        owner_id: UUID,
        transaction: Transaction,
        balance: str,
        admin: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.transaction_appended(
            actor_id=actor_id,
            owner_id=owner_id,
            transaction=transaction,
            balance=balance,
            admin=admin,
        ))

    def log_transaction_status_changed(
        self,
        actor_id: Optional[UUID],
        owner_id: UUID,
        transaction_id: UUID,
        old_status: str,
        new_status: str,
        balance: str,
        admin: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.transaction_status_changed(
            actor_id=actor_id,
            owner_id=owner_id,
            transaction_id=transaction_id,
            old_status=old_status,
            new_status=new_status,
            balance=balance,
            admin=admin,
        ))

    def log_rejected(
        self,
        event_type: AuditEventType,
        actor_id: Optional[UUID],
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
        admin: bool = False,
    ) -> None:
        """Log a mutation that was refused before anything changed."""
        self.log(AuditEventBuilder.rejected(
            event_type=event_type,
            actor_id=actor_id,
            operation=operation,
            error=error,
            entity_id=entity_id,
            admin=admin,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    One ID per user action (a login attempt, a grant); every event the
    action produces carries it.
    """
    return uuid4()
