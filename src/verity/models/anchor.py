"""Pydantic models for per-ledger anchoring outcomes."""

import re
from enum import Enum

from pydantic import BaseModel, Field

TX_REF_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_transaction_ref(value: str | None) -> bool:
    """Return True if value has the shape of a real transaction hash.

    Sentinel strings keep the 0x prefix and length but contain non-hex
    letters, so they never pass this check.
    """
    return bool(value) and TX_REF_PATTERN.match(value) is not None


def _sentinel(word: str) -> str:
    return "0x" + word.ljust(64, "0")


class AnchorStatus(str, Enum):
    """Terminal state of one anchoring attempt on one ledger."""

    CONFIRMED = "confirmed"
    FAILED = "failed"
    SKIPPED = "skipped"
    MOCK = "mock"


SENTINELS: dict[AnchorStatus, str] = {
    AnchorStatus.FAILED: _sentinel("error"),
    AnchorStatus.SKIPPED: _sentinel("notconfigured"),
    AnchorStatus.MOCK: _sentinel("mock"),
}


class AnchorOutcome(BaseModel):
    """Outcome of anchoring a record on a single ledger.

    Only CONFIRMED carries a real transaction reference. The other states are
    projected to sentinel strings by ``to_ref()`` when serialized.
    """

    ledger: str = Field(..., description="Ledger network name")
    status: AnchorStatus = Field(..., description="Terminal anchoring state")
    tx_ref: str | None = Field(None, description="Transaction hash when confirmed")
    reason: str | None = Field(None, description="Why the ledger failed or was skipped")
    block_number: int | None = Field(None, description="Block containing the transaction")

    model_config = {"frozen": True}

    @classmethod
    def confirmed(cls, ledger: str, tx_ref: str, block_number: int | None = None) -> "AnchorOutcome":
        return cls(ledger=ledger, status=AnchorStatus.CONFIRMED, tx_ref=tx_ref, block_number=block_number)

    @classmethod
    def failed(cls, ledger: str, reason: str) -> "AnchorOutcome":
        return cls(ledger=ledger, status=AnchorStatus.FAILED, reason=reason)

    @classmethod
    def skipped(cls, ledger: str, reason: str) -> "AnchorOutcome":
        return cls(ledger=ledger, status=AnchorStatus.SKIPPED, reason=reason)

    @classmethod
    def mock(cls, ledger: str) -> "AnchorOutcome":
        return cls(ledger=ledger, status=AnchorStatus.MOCK, reason="no ledger configured")

    @classmethod
    def from_ref(cls, ledger: str, ref: str | None) -> "AnchorOutcome":
        """Rebuild an outcome from its persisted display string."""
        if is_transaction_ref(ref):
            return cls.confirmed(ledger, ref)
        for status, sentinel in SENTINELS.items():
            if ref == sentinel:
                return cls(ledger=ledger, status=status)
        # Unknown or empty values read back from older records
        return cls.failed(ledger, f"unrecognized reference: {ref!r}")

    @property
    def is_confirmed(self) -> bool:
        return self.status == AnchorStatus.CONFIRMED

    def to_ref(self) -> str:
        """Project to the string stored in ``ledger_refs``."""
        if self.status == AnchorStatus.CONFIRMED and self.tx_ref:
            return self.tx_ref
        return SENTINELS.get(self.status, SENTINELS[AnchorStatus.FAILED])
