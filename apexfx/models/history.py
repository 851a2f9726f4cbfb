"""Models for browsing a transaction log."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from apexfx.models.ledger import Transaction, TransactionStatus, TransactionType


class TransactionFilter(BaseModel):
    """
    Filters offered by the transaction history view.

    ``None`` for status or type means "all".
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    search: str = Field(
        default="",
        description="Case-insensitive match on transaction id or description"
    )
    status: Optional[TransactionStatus] = None
    type: Optional[TransactionType] = None


class TransactionPage(BaseModel):
    """One page of a (filtered) transaction log."""
    model_config = ConfigDict(frozen=True)

    items: list[Transaction] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_items: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1
