"""
Core Ledger Models for ApexFX

These models define the strict schemas for the account ledger:
transactions, users and the patch structure used for profile edits.

DESIGN DECISION: Transactions are frozen. The only field that may change
is ``status``, and a change produces a NEW transaction value that replaces
the old one at the same position in the owner's log. The log itself is a
tuple, so nothing can be removed or reordered behind the store's back.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from apexfx.errors import InvariantViolation


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_email_shape(value: str) -> str:
    """Normalize an email address and check it is syntactically well formed."""
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError(f"Invalid email address: {value!r}")
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Fixed at creation."""
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, Enum):
    """
    Settlement status of a transaction.

    PENDING is the only non-terminal status.
    """
    PENDING = "pending"
    SUCCESS = "success"
    DENIED = "denied"


class UserRole(str, Enum):
    """Role of an identity. Fixed at creation."""
    STANDARD = "standard"
    ADMINISTRATOR = "administrator"


ALLOWED_STATUS_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.SUCCESS, TransactionStatus.DENIED}),
    TransactionStatus.SUCCESS: frozenset(),
    TransactionStatus.DENIED: frozenset(),
}


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry owned by exactly one user.

    ``amount`` is a magnitude; the direction is carried by ``type``.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID (never reused)"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, description="Non-negative magnitude")
    ]
    type: TransactionType = Field(
        ...,
        description="Credit or debit"
    )
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        description="Settlement status"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Free-form description"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was created (UTC)"
    )

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def can_transition_to(self, status: TransactionStatus) -> bool:
        return status in ALLOWED_STATUS_TRANSITIONS[self.status]

    def with_status(self, status: TransactionStatus) -> "Transaction":
        """
        Return a copy of this transaction with a new status.

        Only ``pending -> success`` and ``pending -> denied`` are allowed.

        Raises:
            InvariantViolation: If the transition is not permitted
        """
        try:
            status = TransactionStatus(status)
        except ValueError:
            raise InvariantViolation(f"Unknown transaction status: {status!r}")
        if not self.can_transition_to(status):
            raise InvariantViolation(
                f"Transaction {self.id}: status transition "
                f"{self.status.value} -> {status.value} is not permitted"
            )
        return self.model_copy(update={"status": status})


class TransactionDraft(BaseModel):
    """
    An unvalidated transaction request from the admin surface.

    Lenient on sign and type: AdminMutationGateway checks both and refuses
    with InvariantViolation rather than a schema error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal
    type: str
    status: TransactionStatus = TransactionStatus.PENDING
    description: str = ""

    @classmethod
    def from_signed_amount(cls, amount: Decimal, **fields) -> "TransactionDraft":
        """Translate a signed adjustment into a magnitude plus a direction."""
        amount = Decimal(str(amount))
        tx_type = TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT
        return cls(amount=abs(amount), type=tx_type.value, **fields)


class LedgerTotals(BaseModel):
    """Summary over a transaction log."""
    model_config = ConfigDict(frozen=True)

    total_credits: Decimal = Decimal("0")
    total_debits: Decimal = Decimal("0")
    pending_count: int = 0


class PnL(BaseModel):
    """Profit and loss against the initial balance."""
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    """
    An authenticated identity with its account ledger.

    ``balance`` is stored. Ledger mutations keep it equal to
    ``initial_balance`` plus the signed successful transactions;
    see ``apexfx.ledger.math.is_consistent``.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique user ID"
    )
    email: str = Field(
        ...,
        max_length=254,
        description="Login address"
    )
    first_name: str = Field(
        default="",
        max_length=100
    )
    last_name: str = Field(
        default="",
        max_length=100
    )
    avatar: Optional[str] = Field(
        default=None,
        description="Avatar URL or data URL"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current spendable total"
    )
    initial_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance at onboarding; never changes"
    )
    transactions: tuple[Transaction, ...] = Field(
        default_factory=tuple,
        description="Append-only log in insertion order"
    )
    role: UserRole = Field(
        default=UserRole.STANDARD,
        description="Role fixed at creation"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return validate_email_shape(v)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMINISTRATOR

    def find_transaction(self, transaction_id: UUID) -> Optional[int]:
        """Return the position of a transaction in the log, or None."""
        for index, tx in enumerate(self.transactions):
            if tx.id == transaction_id:
                return index
        return None


class UserPatch(BaseModel):
    """
    Named optional fields for a shallow profile merge.

    Omitted fields are left untouched. ``avatar`` is nullable: passing
    ``avatar=None`` explicitly clears it. The other fields are omittable
    but not nullable.

    ``transactions``, ``initial_balance``, ``role`` and ``id`` cannot be
    patched.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    email: Optional[str] = None
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = None
    balance: Optional[Decimal] = None

    NULLABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"avatar"})

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_email_shape(v)

    @field_validator("first_name", "last_name", "balance")
    @classmethod
    def reject_null(cls, v, info):
        # Validators run only for provided values, so None here means an explicit null
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v

    @classmethod
    def from_display_name(cls, full_name: str, **fields) -> "UserPatch":
        """
        Build a patch from a single display name.

        The first whitespace-separated token becomes the first name and the
        remainder the last name. Empty parts are left out of the patch so the
        current values survive.
        """
        first, _, rest = full_name.strip().partition(" ")
        last = " ".join(rest.split())
        if first:
            fields["first_name"] = first
        if last:
            fields["last_name"] = last
        return cls(**fields)

    def changes(self) -> dict:
        """The fields this patch actually sets, in declaration order."""
        changes = {}
        for name in type(self).model_fields:
            if name not in self.model_fields_set:
                continue
            value = getattr(self, name)
            if value is None and name not in self.NULLABLE_FIELDS:
                continue
            changes[name] = value
        return changes

    @property
    def is_empty(self) -> bool:
        return not self.changes()


def apply_patch(user: User, patch: UserPatch) -> User:
    """Shallow, last-write-wins merge of a patch into a user. Pure."""
    changes = patch.changes()
    if not changes:
        return user
    return user.model_copy(update=changes)
