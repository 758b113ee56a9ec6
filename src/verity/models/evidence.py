"""Pydantic models for evidence records."""

from datetime import datetime

from pydantic import BaseModel, Field


class FileMeta(BaseModel):
    """Informational metadata about the uploaded file.

    Not part of the integrity guarantee.
    """

    file_name: str | None = Field(None, description="Original filename as uploaded")
    file_size: int | None = Field(None, description="Size in bytes")


class EvidenceRecord(BaseModel):
    """A piece of anchored evidence.

    Persisted in records.json by RecordIndex. ``content_hash`` is the ground
    truth every later verification compares against; it is never rewritten.
    """

    record_id: str = Field(..., description="Human-meaningful id: <plate>-<unix seconds>")
    plate: str = Field(..., description="Vehicle plate exactly as supplied")
    timestamp: int = Field(..., description="Unix seconds embedded in record_id")
    content_hash: str = Field(..., description="SHA-256 of the raw bytes (lowercase hex)")
    content_id: str = Field(..., description="CID returned by the content store")
    ledger_refs: dict[str, str] = Field(
        default_factory=dict,
        description="Ledger name -> transaction hash or sentinel",
    )
    file_meta: FileMeta = Field(default_factory=FileMeta)
    created_at: datetime | None = Field(None, description="Set once by RecordIndex.save (UTC)")
    local_id: str | None = Field(None, description="RecordIndex storage key")

    model_config = {"extra": "ignore"}


class LedgerEvidence(BaseModel):
    """A record as read back from a ledger's getEvidence view."""

    ledger: str = Field(..., description="Ledger network name the record came from")
    record_id: str
    plate: str
    content_id: str
    content_hash: str
    timestamp: int
    submitted_by: str | None = Field(None, description="Address that anchored the record")

    model_config = {"frozen": True}
