"""Pytest fixtures for Verity tests."""

import hashlib
from pathlib import Path
from unittest.mock import Mock

import pytest

from verity.content_store import RetrievedContent
from verity.errors import RetrievalExhaustedError
from verity.hasher import ContentHasher
from verity.ledger.client import SubmissionReceipt
from verity.ledger.coordinator import AnchorCoordinator, LedgerSlot
from verity.pipeline import EvidencePipeline
from verity.record_index import RecordIndex

TX_SCROLL = "0x" + "ab" * 32
TX_ARBITRUM = "0x" + "cd" * 32
FIXED_TS = 1700000000

# Every variable VerityConfig.from_env reads
ENV_VARS = [
    "PINATA_JWT",
    "VERITY_PINATA_API_URL",
    "VERITY_IPFS_GATEWAYS",
    "VERITY_MAX_GATEWAY_ATTEMPTS",
    "VERITY_GATEWAY_TIMEOUT_SECONDS",
    "PRIVATE_KEY",
    "SCROLL_RPC_URL",
    "SCROLL_CONTRACT_ADDRESS",
    "ARBITRUM_RPC_URL",
    "ARBITRUM_CONTRACT_ADDRESS",
    "BASE_RPC_URL",
    "NETWORK_CONFIRMATIONS",
    "VERITY_LEDGER_TIMEOUT_SECONDS",
    "VERITY_RECEIPT_TIMEOUT_SECONDS",
    "VERITY_RPC_TIMEOUT_SECONDS",
    "DELETE_TEMP_FILES",
    "VERITY_DATA_DIR",
]


class FakeContentStore:
    """In-memory content store; the CID is derived from the bytes."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.upload_calls = 0

    def upload(self, source, display_name=None) -> str:
        self.upload_calls += 1
        data = bytes(source) if isinstance(source, (bytes, bytearray)) else Path(source).read_bytes()
        cid = "bafy" + hashlib.sha256(data).hexdigest()[:40]
        self.blobs[cid] = data
        return cid

    def retrieve_with_source(self, content_id: str) -> RetrievedContent:
        if content_id not in self.blobs:
            raise RetrievalExhaustedError(f"Could not download {content_id}")
        return RetrievedContent(data=self.blobs[content_id], gateway=f"https://ipfs.io/ipfs/{content_id}")

    def retrieve(self, content_id: str) -> bytes:
        return self.retrieve_with_source(content_id).data


def make_ledger(tx_ref: str | None = None, error: Exception | None = None, evidence=None) -> Mock:
    """Mock LedgerClient whose submit confirms tx_ref or raises error."""
    client = Mock()
    if error is not None:
        client.submit.side_effect = error
    else:
        client.submit.return_value = SubmissionReceipt(tx_ref=tx_ref or TX_SCROLL, block_number=100)
    client.read.return_value = evidence
    return client


@pytest.fixture
def records_file(tmp_path):
    return tmp_path / "db" / "records.json"


@pytest.fixture
def index(records_file):
    return RecordIndex(records_file)


@pytest.fixture
def store():
    return FakeContentStore()


@pytest.fixture
def make_pipeline(index, store):
    """Build an EvidencePipeline around the given ledger slots."""

    def _make(slots=None, clock=lambda: FIXED_TS):
        coordinator = AnchorCoordinator(slots or [], timeout=5)
        return EvidencePipeline(
            hasher=ContentHasher(),
            store=store,
            coordinator=coordinator,
            index=index,
            clock=clock,
        )

    return _make


@pytest.fixture
def dual_ledger_slots():
    """Scroll and Arbitrum both configured and confirming."""
    return [
        LedgerSlot("scroll", client=make_ledger(TX_SCROLL), explorer_url="https://sepolia.scrollscan.com"),
        LedgerSlot("arbitrum", client=make_ledger(TX_ARBITRUM), explorer_url="https://sepolia.arbiscan.io"),
    ]
