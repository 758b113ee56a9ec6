"""Pydantic models for Verity."""

from .anchor import AnchorOutcome, AnchorStatus, SENTINELS, is_transaction_ref
from .evidence import EvidenceRecord, FileMeta, LedgerEvidence
from .results import PlateLookupResult, UploadResult, VerificationResult

__all__ = [
    # Anchoring
    "AnchorOutcome",
    "AnchorStatus",
    "SENTINELS",
    "is_transaction_ref",
    # Records
    "EvidenceRecord",
    "FileMeta",
    "LedgerEvidence",
    # Results
    "UploadResult",
    "VerificationResult",
    "PlateLookupResult",
]
