"""
Admin Mutation Gateway

The constrained mutation surface used by the admin view tree to act on
*another* user's record.

CRITICAL BOUNDARIES:
1. Every operation requires an admin session
2. Requests are validated before anything is mutated
3. Existing transactions are never deleted or reordered
4. ``initial_balance`` is never touched

A pending grant leaves the target's balance alone; the balance moves when
the grant is later flipped to success.
"""

from typing import NoReturn, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from apexfx.errors import AdminAccessDenied, InvariantViolation
from apexfx.models.audit import AuditEventType
from apexfx.models.ledger import (
    Transaction,
    TransactionDraft,
    TransactionStatus,
    TransactionType,
    User,
    UserPatch,
)
from apexfx.session.store import SessionStore


class AdminMutationGateway:
    """Admin-scoped facade over the SessionStore's arbitrary-user primitives."""

    def __init__(self, store: SessionStore):
        self._store = store

    @property
    def _audit(self):
        return self._store.audit

    def _require_admin(self, operation: str, target_user_id: Optional[UUID] = None) -> User:
        """Return the acting admin, or refuse."""
        if not self._store.is_admin_authenticated:
            error = AdminAccessDenied(f"{operation} requires an admin session")
            actor = self._store.current_user
            self._audit.log_rejected(
                AuditEventType.ACCESS_DENIED,
                actor.id if actor else None,
                operation,
                error,
                target_user_id,
                admin=True,
            )
            raise error
        return self._store.current_user

    def _refuse(self, admin: User, operation: str, target_user_id: UUID, message: str) -> NoReturn:
        error = InvariantViolation(message)
        self._audit.log_rejected(
            AuditEventType.INVARIANT_VIOLATION, admin.id, operation, error, target_user_id, admin=True,
        )
        raise error

    def _build_transaction(
        self,
        admin: User,
        target_user_id: UUID,
        request: Union[TransactionDraft, Transaction, dict],
    ) -> Transaction:
        """Validate a grant request and turn it into a ledger entry."""
        if isinstance(request, Transaction):
            return request

        try:
            draft = (
                request if isinstance(request, TransactionDraft)
                else TransactionDraft.model_validate(request)
            )
        except ValidationError as e:
            self._refuse(admin, "grant_transaction", target_user_id, f"Malformed transaction: {e}")

        if not draft.amount.is_finite():
            self._refuse(admin, "grant_transaction", target_user_id, "Amount must be finite")
        if draft.amount < 0:
            self._refuse(
                admin, "grant_transaction", target_user_id,
                f"Negative amount {draft.amount}: express a debit through the transaction type",
            )
        try:
            tx_type = TransactionType(draft.type.strip().lower())
        except ValueError:
            self._refuse(
                admin, "grant_transaction", target_user_id,
                f"Unknown transaction type {draft.type!r}",
            )

        return Transaction(
            amount=draft.amount,
            type=tx_type,
            status=draft.status,
            description=draft.description,
        )

    def grant_transaction(
        self,
        target_user_id: UUID,
        transaction: Union[TransactionDraft, Transaction, dict],
    ) -> Transaction:
        """
        Append a transaction to another user's log.

        Raises:
            AdminAccessDenied: Not in an admin session
            NotFoundError: No such target user
            InvariantViolation: Negative amount, unknown type or duplicate ID
        """
        admin = self._require_admin("grant_transaction", target_user_id)
        self._store.get_user(target_user_id, admin.id)
        tx = self._build_transaction(admin, target_user_id, transaction)
        return self._store.append_transaction_for(target_user_id, tx, actor_id=admin.id)

    def set_transaction_status(
        self,
        target_user_id: UUID,
        transaction_id: UUID,
        status: TransactionStatus,
    ) -> Transaction:
        """
        Approve or deny one of another user's pending transactions.

        Raises:
            AdminAccessDenied: Not in an admin session
            NotFoundError: No such target user or transaction
            InvariantViolation: The transition is not permitted
        """
        admin = self._require_admin("set_transaction_status", target_user_id)
        return self._store.set_transaction_status_for(
            target_user_id, transaction_id, status, actor_id=admin.id,
        )

    def approve(self, target_user_id: UUID, transaction_id: UUID) -> Transaction:
        return self.set_transaction_status(target_user_id, transaction_id, TransactionStatus.SUCCESS)

    def deny(self, target_user_id: UUID, transaction_id: UUID) -> Transaction:
        return self.set_transaction_status(target_user_id, transaction_id, TransactionStatus.DENIED)

    def revise_user_profile(self, target_user_id: UUID, patch: Union[UserPatch, dict]) -> User:
        """
        Shallow-merge a patch into another user's profile.

        Raises:
            AdminAccessDenied: Not in an admin session
            NotFoundError: No such target user
        """
        admin = self._require_admin("revise_user_profile", target_user_id)
        return self._store.update_user_for(target_user_id, patch, actor_id=admin.id)

    def list_users(self) -> list[User]:
        self._require_admin("list_users")
        return self._store.list_users()

    def get_user(self, target_user_id: UUID) -> User:
        admin = self._require_admin("get_user", target_user_id)
        return self._store.get_user(target_user_id, admin.id)
