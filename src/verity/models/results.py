"""Pydantic models for pipeline results."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .anchor import AnchorOutcome, AnchorStatus
from .evidence import EvidenceRecord


class UploadResult(BaseModel):
    """Result of EvidencePipeline.upload.

    Partial or total ledger failure is still a successful upload; inspect
    ``ledger_refs`` for per-ledger status.
    """

    record_id: str
    content_hash: str
    content_id: str
    timestamp: int
    ledger_refs: dict[str, AnchorOutcome] = Field(default_factory=dict)
    local_id: str

    def ref_strings(self) -> dict[str, str]:
        return {name: outcome.to_ref() for name, outcome in self.ledger_refs.items()}

    @property
    def all_confirmed(self) -> bool:
        return bool(self.ledger_refs) and all(o.is_confirmed for o in self.ledger_refs.values())

    @property
    def demo_mode(self) -> bool:
        """True when no ledger was configured at all."""
        return bool(self.ledger_refs) and all(
            o.status == AnchorStatus.MOCK for o in self.ledger_refs.values()
        )


class VerificationResult(BaseModel):
    """Single-record verification verdict.

    ``matches`` False means the retrieved bytes differ from what was anchored;
    that is a valid outcome, not an error.
    """

    record_id: str
    plate: str
    content_id: str
    anchored_hash: str
    computed_hash: str
    matches: bool
    source: Literal["ledger", "local"]
    ledger: str | None = Field(None, description="Ledger that answered, when source is 'ledger'")
    gateway: str | None = Field(None, description="Gateway URL the bytes came from")
    timestamp: int | None = None
    ledger_refs: dict[str, str] = Field(default_factory=dict)
    explorer_links: dict[str, str] = Field(default_factory=dict)
    verified_at: datetime


class PlateLookupResult(BaseModel):
    """Every locally indexed record for a plate, in insertion order."""

    plate: str = Field(..., description="Normalized query plate")
    records: list[EvidenceRecord] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)
