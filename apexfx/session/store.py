"""
Session Store

The single owner of the process-wide Session value. The view tree reads
state through the accessors here and mutates it only through the
operations here.

GUARANTEES:
- Exactly one session mode at a time (anonymous, user or admin)
- Transaction logs are append-only; only a pending entry's status may change
- A ledger mutation updates the log and the balance in one commit, or not at all
- A login-family completion is applied only if no newer attempt (or logout)
  was initiated after it started: last-initiated wins, not last-completed

DESIGN DECISION: ``login``, ``admin_login`` and ``register`` are the only
coroutines. Everything else is synchronous and completes before the caller's
next statement, so no locks are needed inside a single event loop.
"""

import asyncio
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError

from apexfx.audit import AuditLogger, create_correlation_id
from apexfx.config import SessionSettings, get_settings
from apexfx.errors import InsufficientFundsError, InvariantViolation
from apexfx.ledger.math import (
    ZERO,
    balance_effect,
    compute_pnl,
    compute_totals,
    to_decimal,
    transition_effect,
)
from apexfx.models.audit import AuditEventType
from apexfx.models.ledger import (
    LedgerTotals,
    PnL,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
    UserPatch,
    UserRole,
    apply_patch,
)
from apexfx.models.session import (
    Credentials,
    RegistrationProfile,
    Session,
    SessionMode,
)
from apexfx.services.identity import IdentityRejectedError, IdentityResolver
from apexfx.services.storage import (
    DuplicateError,
    InMemoryUserStorage,
    NotFoundError,
    UserStorageInterface,
)


class SessionStore:
    """
    Holds the Session and exposes the user-facing mutation surface.

    The ``*_for`` methods address an arbitrary user record and exist for
    AdminMutationGateway; they do not check the session mode themselves.
    """

    def __init__(
        self,
        user_storage: Optional[UserStorageInterface] = None,
        identity_resolver: Optional[IdentityResolver] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[SessionSettings] = None,
    ):
        self._settings = settings or get_settings()
        self._users = user_storage if user_storage is not None else InMemoryUserStorage()
        self._identity = identity_resolver or IdentityResolver(self._users, self._settings)
        self._audit = audit_logger or AuditLogger()
        self._session = Session.anonymous()
        self._attempt = 0

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def session(self) -> Session:
        return self._session

    @property
    def mode(self) -> SessionMode:
        return self._session.mode

    @property
    def current_user(self) -> Optional[User]:
        return self._session.current_user

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def is_admin_authenticated(self) -> bool:
        return self._session.is_admin_authenticated

    @property
    def latest_attempt(self) -> int:
        return self._attempt

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        user = self.current_user
        return user.transactions if user else ()

    @property
    def balance(self) -> Optional[Decimal]:
        user = self.current_user
        return user.balance if user else None

    @property
    def available_balance(self) -> Optional[Decimal]:
        """Balance minus debits still pending."""
        user = self.current_user
        if user is None:
            return None
        reserved = sum(
            (tx.amount for tx in user.transactions
             if tx.is_pending and tx.type == TransactionType.DEBIT),
            ZERO,
        )
        return user.balance - reserved

    def totals(self) -> LedgerTotals:
        return compute_totals(self.transactions)

    def pnl(self) -> PnL:
        user = self.current_user
        if user is None:
            return PnL()
        return compute_pnl(user.balance, user.initial_balance)

    # =========================================================================
    # Login family (asynchronous)
    # =========================================================================

    def _next_attempt(self) -> int:
        self._attempt += 1
        return self._attempt

    def _is_latest(self, ticket: int) -> bool:
        return ticket == self._attempt

    def cancel_pending(self) -> None:
        """Invalidate every in-flight login-family operation without touching the session."""
        self._next_attempt()

    async def login(self, email: str, password: str) -> bool:
        """
        Sign in to the user view tree.

        Any syntactically well-formed pair is accepted. Returns False for
        malformed input, a rejected identity, a lower-level fault, or a
        completion superseded by a newer attempt.
        """
        ticket = self._next_attempt()
        return await self._authenticate(ticket, email, password, SessionMode.USER)

    async def admin_login(self, email: str, password: str) -> bool:
        """Sign in to the admin view tree. Same contract as ``login``."""
        ticket = self._next_attempt()
        return await self._authenticate(ticket, email, password, SessionMode.ADMIN)

    def start_login(self, email: str, password: str) -> "asyncio.Task[bool]":
        """
        Run ``login`` as a cancellable task.

        The attempt is numbered now, not when the task first runs. Without a
        running event loop this raises RuntimeError and no attempt is taken.
        """
        loop = asyncio.get_running_loop()
        ticket = self._next_attempt()
        return loop.create_task(
            self._authenticate(ticket, email, password, SessionMode.USER)
        )

    def start_admin_login(self, email: str, password: str) -> "asyncio.Task[bool]":
        loop = asyncio.get_running_loop()
        ticket = self._next_attempt()
        return loop.create_task(
            self._authenticate(ticket, email, password, SessionMode.ADMIN)
        )

    async def _authenticate(
        self,
        ticket: int,
        email: str,
        password: str,
        mode: SessionMode,
    ) -> bool:
        admin = mode == SessionMode.ADMIN
        operation = "admin_login" if admin else "login"
        role = UserRole.ADMINISTRATOR if admin else UserRole.STANDARD
        correlation_id = create_correlation_id()

        try:
            credentials = Credentials(email=email, password=password)
        except ValidationError:
            self._audit.log_login_failed(
                email=str(email),
                reason="malformed_credentials",
                admin=admin,
                correlation_id=correlation_id,
            )
            return False

        try:
            user = await self._identity.resolve(credentials, role)
        except IdentityRejectedError as e:
            self._audit.log_login_failed(
                email=credentials.email,
                reason=str(e),
                admin=admin,
                correlation_id=correlation_id,
            )
            return False
        except Exception as e:
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation, "email": credentials.email},
                correlation_id=correlation_id,
            )
            return False

        if not self._is_latest(ticket):
            self._audit.log_stale_completion(
                operation=operation,
                attempt=ticket,
                latest_attempt=self._attempt,
                correlation_id=correlation_id,
            )
            return False

        self._session = Session(mode=mode, current_user=user)
        self._audit.log_login(
            user_id=user.id,
            email=user.email,
            admin=admin,
            correlation_id=correlation_id,
        )
        return True

    async def register(self, profile: Union[RegistrationProfile, dict]) -> bool:
        """
        Create a standard user with the configured starting balance.

        Does not change the session mode; the caller decides what happens
        after registration. Returns False for an invalid profile, an email
        that is already registered, or a superseded completion.
        """
        ticket = self._next_attempt()
        correlation_id = create_correlation_id()

        try:
            if not isinstance(profile, RegistrationProfile):
                profile = RegistrationProfile.model_validate(profile)
        except ValidationError as e:
            email = profile.get("email", "") if isinstance(profile, dict) else ""
            self._audit.log_registration_failed(
                email=str(email),
                reason=f"invalid_profile: {e.error_count()} error(s)",
                correlation_id=correlation_id,
            )
            return False

        # Yield to the loop: registration completes asynchronously like login
        await asyncio.sleep(self._settings.identity_latency_seconds)

        if not self._is_latest(ticket):
            self._audit.log_stale_completion(
                operation="register",
                attempt=ticket,
                latest_attempt=self._attempt,
                correlation_id=correlation_id,
            )
            return False

        start = self._settings.starting_balance
        user = User(
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            avatar=profile.avatar,
            balance=start,
            initial_balance=start,
        )
        try:
            self._users.add_user(user)
        except DuplicateError as e:
            self._audit.log_registration_failed(
                email=profile.email,
                reason=str(e),
                correlation_id=correlation_id,
            )
            return False

        self._audit.log_user_registered(
            user_id=user.id,
            email=user.email,
            correlation_id=correlation_id,
        )
        return True

    def logout(self) -> None:
        """Reset to anonymous and invalidate every in-flight login-family operation."""
        previous = self._session
        self._next_attempt()
        self._session = Session.anonymous()
        if previous.current_user is not None:
            self._audit.log_logout(
                user_id=previous.current_user.id,
                mode=previous.mode.value,
            )

    # =========================================================================
    # Current-user mutations (synchronous)
    # =========================================================================

    def update_user(self, patch: Union[UserPatch, dict]) -> Optional[User]:
        """
        Shallow-merge a patch into the current user.

        No-op (returns None) when nobody is signed in. Does NOT re-check
        the balance invariant: a patched balance is taken as given.
        """
        user = self.current_user
        if user is None:
            return None
        return self._update(user, patch, actor_id=user.id, admin=False)

    def append_transaction(self, transaction: Union[Transaction, dict]) -> Optional[Transaction]:
        """
        Append a transaction to the current user's log.

        A successful entry moves the balance in the same commit.
        No-op (returns None) when nobody is signed in.

        Raises:
            InvariantViolation: The transaction ID is already in the log
        """
        user = self.current_user
        if user is None:
            return None
        return self._append(user, transaction, actor_id=user.id, admin=False)

    def set_transaction_status(
        self,
        transaction_id: UUID,
        status: TransactionStatus,
    ) -> Optional[Transaction]:
        """
        Move one of the current user's pending transactions to success or denied.

        Raises:
            NotFoundError: No such transaction in the log
            InvariantViolation: The transition is not permitted
        """
        user = self.current_user
        if user is None:
            return None
        return self._set_status(user, transaction_id, status, actor_id=user.id, admin=False)

    def request_deposit(self, amount, description: str = "Deposit") -> Optional[Transaction]:
        """Record a pending credit for the current user."""
        user = self.current_user
        if user is None:
            return None
        amount = self._positive_amount(user, amount, "request_deposit")
        return self.append_transaction(Transaction(
            amount=amount,
            type=TransactionType.CREDIT,
            status=TransactionStatus.PENDING,
            description=description,
        ))

    def request_withdrawal(self, amount, description: str = "Withdrawal") -> Optional[Transaction]:
        """
        Record a pending debit for the current user.

        Raises:
            InsufficientFundsError: Amount exceeds the available balance
        """
        user = self.current_user
        if user is None:
            return None
        amount = self._positive_amount(user, amount, "request_withdrawal")
        available = self.available_balance
        if amount > available:
            error = InsufficientFundsError(amount, available)
            self._audit.log_rejected(
                AuditEventType.INVARIANT_VIOLATION, user.id, "request_withdrawal", error, user.id,
            )
            raise error
        return self.append_transaction(Transaction(
            amount=amount,
            type=TransactionType.DEBIT,
            status=TransactionStatus.PENDING,
            description=description,
        ))

    def _positive_amount(self, user: User, amount, operation: str) -> Decimal:
        try:
            amount = to_decimal(amount)
        except ArithmeticError:
            amount = None
        if amount is None or not amount.is_finite() or amount <= 0:
            error = InvariantViolation(f"Amount must be a positive number, got {amount!r}")
            self._audit.log_rejected(
                AuditEventType.INVARIANT_VIOLATION, user.id, operation, error, user.id,
            )
            raise error
        return amount

    # =========================================================================
    # Arbitrary-user primitives (used by AdminMutationGateway)
    # =========================================================================

    def get_user(self, user_id: UUID, actor_id: Optional[UUID] = None) -> User:
        """
        Raises:
            NotFoundError: No such user
        """
        user = self._users.get_user(user_id)
        if user is None:
            error = NotFoundError(f"User {user_id} not found")
            self._audit.log_rejected(
                AuditEventType.TARGET_NOT_FOUND, actor_id, "get_user", error, user_id, admin=True,
            )
            raise error
        return user

    def list_users(self) -> list[User]:
        return self._users.list_users()

    def update_user_for(self, user_id: UUID, patch: Union[UserPatch, dict], actor_id: UUID) -> User:
        return self._update(self.get_user(user_id, actor_id), patch, actor_id=actor_id, admin=True)

    def append_transaction_for(
        self,
        user_id: UUID,
        transaction: Union[Transaction, dict],
        actor_id: UUID,
    ) -> Transaction:
        return self._append(self.get_user(user_id, actor_id), transaction, actor_id=actor_id, admin=True)

    def set_transaction_status_for(
        self,
        user_id: UUID,
        transaction_id: UUID,
        status: TransactionStatus,
        actor_id: UUID,
    ) -> Transaction:
        return self._set_status(
            self.get_user(user_id, actor_id), transaction_id, status, actor_id=actor_id, admin=True,
        )

    # =========================================================================
    # Commit helpers
    # =========================================================================

    def _commit(self, user: User) -> User:
        """Write a user record to the directory and mirror it into the session."""
        self._users.save_user(user)
        current = self._session.current_user
        if current is not None and current.id == user.id:
            self._session = self._session.with_user(user)
        return user

    def _update(self, user: User, patch, actor_id: Optional[UUID], admin: bool) -> User:
        if not isinstance(patch, UserPatch):
            patch = UserPatch.model_validate(patch)
        updated = apply_patch(user, patch)
        if updated is user:
            return user
        self._commit(updated)
        self._audit.log_profile_updated(
            actor_id=actor_id,
            user_id=user.id,
            fields=list(patch.changes()),
            admin=admin,
        )
        return updated

    def _append(self, owner: User, transaction, actor_id: Optional[UUID], admin: bool) -> Transaction:
        if not isinstance(transaction, Transaction):
            transaction = Transaction.model_validate(transaction)
        if owner.find_transaction(transaction.id) is not None:
            error = InvariantViolation(f"Transaction {transaction.id} is already in the log")
            self._audit.log_rejected(
                AuditEventType.INVARIANT_VIOLATION, actor_id, "append_transaction", error,
                owner.id, admin=admin,
            )
            raise error

        updated = owner.model_copy(update={
            "transactions": owner.transactions + (transaction,),
            "balance": owner.balance + balance_effect(transaction),
        })
        self._commit(updated)
        self._audit.log_transaction_appended(
            actor_id=actor_id,
            owner_id=owner.id,
            transaction=transaction,
            balance=str(updated.balance),
            admin=admin,
        )
        return transaction

    def _set_status(
        self,
        owner: User,
        transaction_id: UUID,
        status: TransactionStatus,
        actor_id: Optional[UUID],
        admin: bool,
    ) -> Transaction:
        index = owner.find_transaction(transaction_id)
        if index is None:
            error = NotFoundError(f"Transaction {transaction_id} not found for user {owner.id}")
            self._audit.log_rejected(
                AuditEventType.TARGET_NOT_FOUND, actor_id, "set_transaction_status", error,
                owner.id, admin=admin,
            )
            raise error

        before = owner.transactions[index]
        try:
            after = before.with_status(status)
        except InvariantViolation as error:
            self._audit.log_rejected(
                AuditEventType.INVARIANT_VIOLATION, actor_id, "set_transaction_status", error,
                owner.id, admin=admin,
            )
            raise

        log = list(owner.transactions)
        log[index] = after
        updated = owner.model_copy(update={
            "transactions": tuple(log),
            "balance": owner.balance + transition_effect(before, after),
        })
        self._commit(updated)
        self._audit.log_transaction_status_changed(
            actor_id=actor_id,
            owner_id=owner.id,
            transaction_id=transaction_id,
            old_status=before.status.value,
            new_status=after.status.value,
            balance=str(updated.balance),
            admin=admin,
        )
        return after
