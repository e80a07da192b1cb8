"""
Scoring request models, shared by the aggregator and the HTTP API.

Field aliases follow what upstream callers send: from / fromAddress,
to / toAddress, amount.denom / unit, amount.amount / quantity. Action names
are accepted in dotted (escrow.open) or camelCase (escrowOpen) form.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Action(str, Enum):
    TRANSFER = "transfer"
    CLAIM = "claim"
    REFUND = "refund"
    CONTRIBUTE = "contribute"
    ESCROW_OPEN = "escrow.open"
    VAULT_DEPOSIT = "vault.deposit"


_ACTION_ALIASES = {
    "escrowOpen": Action.ESCROW_OPEN.value,
    "escrow_open": Action.ESCROW_OPEN.value,
    "vaultDeposit": Action.VAULT_DEPOSIT.value,
    "vault_deposit": Action.VAULT_DEPOSIT.value,
}


class AmountSpec(BaseModel):
    """Amount in smallest on-chain units (1 unit = 1,000,000)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    unit: str | None = Field(
        None,
        validation_alias=AliasChoices("denom", "unit"),
        serialization_alias="denom",
        description="Denomination, e.g. usei",
    )
    quantity: str | int | float | None = Field(
        None,
        validation_alias=AliasChoices("amount", "quantity"),
        serialization_alias="amount",
        description="Integer string in smallest units; validated by the amount policy",
    )


class ScoringRequest(BaseModel):
    """POST /risk/score body."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_address: str | None = Field(
        None,
        validation_alias=AliasChoices("from", "fromAddress", "from_address"),
        serialization_alias="from",
    )
    to_address: str | None = Field(
        None,
        validation_alias=AliasChoices("to", "toAddress", "to_address"),
        serialization_alias="to",
    )
    amount: AmountSpec | None = None
    action: Action
    context: dict[str, Any] | None = Field(None, description="Caller-supplied hints, e.g. txPerHour / txPerDay")

    @field_validator("action", mode="before")
    @classmethod
    def _normalize_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _ACTION_ALIASES.get(value, value)
        return value

    @property
    def quantity(self) -> str | int | float | None:
        return self.amount.quantity if self.amount else None

    def to_wire(self) -> dict[str, Any]:
        """Echo form used in batch responses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
