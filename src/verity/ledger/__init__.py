"""Ledger anchoring for Verity.

Provides the per-network EVM client and the coordinator that fans anchoring
out across every configured network.
"""

from .client import LedgerClient, LedgerDiagnostics, SubmissionReceipt
from .coordinator import AnchorCoordinator, LedgerSlot

__all__ = ["LedgerClient", "LedgerDiagnostics", "SubmissionReceipt", "AnchorCoordinator", "LedgerSlot"]
