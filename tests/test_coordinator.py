"""Tests for multi-ledger anchoring and lookup."""

import threading
from unittest.mock import Mock, patch

from conftest import TX_ARBITRUM, TX_SCROLL, make_ledger

from verity.config import LedgerConfig, LedgerNetworkConfig, VerityConfig
from verity.errors import LedgerSubmissionError, LedgerUnavailableError
from verity.ledger.coordinator import AnchorCoordinator, LedgerSlot
from verity.models.anchor import AnchorStatus
from verity.models.evidence import LedgerEvidence

RECORD = ("ABC123-1700000000", "ABC123", "QmCid", "a" * 64)


def _evidence(ledger: str) -> LedgerEvidence:
    return LedgerEvidence(
        ledger=ledger,
        record_id=RECORD[0],
        plate="ABC123",
        content_id="QmCid",
        content_hash="a" * 64,
        timestamp=1700000000,
        submitted_by="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    )


def test_both_ledgers_confirm(dual_ledger_slots):
    outcomes = AnchorCoordinator(dual_ledger_slots, timeout=5).anchor_all(*RECORD)

    assert list(outcomes) == ["scroll", "arbitrum"]
    assert outcomes["scroll"].status == AnchorStatus.CONFIRMED
    assert outcomes["scroll"].tx_ref == TX_SCROLL
    assert outcomes["arbitrum"].tx_ref == TX_ARBITRUM
    dual_ledger_slots[0].client.submit.assert_called_once_with(*RECORD)


def test_one_ledger_failing_does_not_affect_the_other():
    slots = [
        LedgerSlot("scroll", client=make_ledger(error=LedgerSubmissionError("scroll: nonce too low"))),
        LedgerSlot("arbitrum", client=make_ledger(TX_ARBITRUM)),
    ]

    outcomes = AnchorCoordinator(slots, timeout=5).anchor_all(*RECORD)

    assert outcomes["scroll"].status == AnchorStatus.FAILED
    assert "nonce too low" in outcomes["scroll"].reason
    assert outcomes["scroll"].to_ref() == "0x" + "error".ljust(64, "0")
    assert outcomes["arbitrum"].is_confirmed


def test_unexpected_exception_becomes_failed_outcome():
    slots = [LedgerSlot("scroll", client=make_ledger(error=RuntimeError("boom")))]

    outcomes = AnchorCoordinator(slots, timeout=5).anchor_all(*RECORD)

    assert outcomes["scroll"].status == AnchorStatus.FAILED
    assert outcomes["scroll"].reason == "boom"


def test_unconfigured_ledger_is_skipped():
    arbitrum = make_ledger(TX_ARBITRUM)
    slots = [
        LedgerSlot("scroll", skip_reason="scroll ledger not configured: rpc_url is missing"),
        LedgerSlot("arbitrum", client=arbitrum),
    ]

    outcomes = AnchorCoordinator(slots, timeout=5).anchor_all(*RECORD)

    assert outcomes["scroll"].status == AnchorStatus.SKIPPED
    assert "rpc_url" in outcomes["scroll"].reason
    assert outcomes["scroll"].to_ref() == "0x" + "notconfigured".ljust(64, "0")
    assert outcomes["arbitrum"].is_confirmed


def test_no_ledgers_configured_returns_mock_without_network():
    slots = [LedgerSlot("scroll", skip_reason="missing"), LedgerSlot("arbitrum", skip_reason="missing")]
    coordinator = AnchorCoordinator(slots, timeout=5)

    with patch.object(coordinator, "_fan_out") as fan_out:
        outcomes = coordinator.anchor_all(*RECORD)

    fan_out.assert_not_called()
    assert {o.status for o in outcomes.values()} == {AnchorStatus.MOCK}
    assert outcomes["scroll"].to_ref() == "0x" + "mock".ljust(64, "0")


def test_slow_ledger_times_out():
    release = threading.Event()
    slow = Mock()
    slow.submit.side_effect = lambda *args: release.wait(5)
    slots = [LedgerSlot("scroll", client=slow), LedgerSlot("arbitrum", client=make_ledger(TX_ARBITRUM))]

    try:
        outcomes = AnchorCoordinator(slots, timeout=0.2).anchor_all(*RECORD)
    finally:
        release.set()

    assert outcomes["scroll"].status == AnchorStatus.FAILED
    assert "timed out" in outcomes["scroll"].reason
    assert outcomes["arbitrum"].is_confirmed


def test_lookup_prefers_first_ledger_in_order():
    slots = [
        LedgerSlot("scroll", client=make_ledger(evidence=_evidence("scroll"))),
        LedgerSlot("arbitrum", client=make_ledger(evidence=_evidence("arbitrum"))),
    ]

    evidence = AnchorCoordinator(slots, timeout=5).lookup(RECORD[0])

    assert evidence.ledger == "scroll"


def test_lookup_falls_back_when_first_ledger_misses_or_is_down():
    down = make_ledger()
    down.read.side_effect = LedgerUnavailableError("scroll unreachable", ledger="scroll")
    slots = [
        LedgerSlot("scroll", client=down),
        LedgerSlot("arbitrum", client=make_ledger(evidence=_evidence("arbitrum"))),
    ]

    evidence = AnchorCoordinator(slots, timeout=5).lookup(RECORD[0])

    assert evidence.ledger == "arbitrum"


def test_lookup_miss_everywhere():
    slots = [LedgerSlot("scroll", client=make_ledger()), LedgerSlot("arbitrum", skip_reason="missing")]

    assert AnchorCoordinator(slots, timeout=5).lookup(RECORD[0]) is None
    assert AnchorCoordinator([], timeout=5).lookup(RECORD[0]) is None


def test_explorer_links_only_for_transaction_refs(dual_ledger_slots):
    coordinator = AnchorCoordinator(dual_ledger_slots, timeout=5)

    links = coordinator.explorer_links({
        "scroll": TX_SCROLL,
        "arbitrum": "0x" + "error".ljust(64, "0"),
    })

    assert links == {"scroll": f"https://sepolia.scrollscan.com/tx/{TX_SCROLL}"}


def test_from_config_skips_unconfigured_networks():
    config = VerityConfig(
        ledger=LedgerConfig(
            private_key=None,
            networks=[
                LedgerNetworkConfig(name="scroll", display_name="Scroll Sepolia", rpc_url="https://rpc.example"),
                LedgerNetworkConfig(name="arbitrum", display_name="Arbitrum Sepolia"),
            ],
        )
    )

    coordinator = AnchorCoordinator.from_config(config)

    assert [slot.name for slot in coordinator.slots] == ["scroll", "arbitrum"]
    assert coordinator.configured_names == []
    assert "contract_address" in coordinator.slots[0].skip_reason
    assert "rpc_url" in coordinator.slots[1].skip_reason


def _configured_ledger(**kwargs) -> LedgerConfig:
    return LedgerConfig(
        private_key="0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
        networks=[
            LedgerNetworkConfig(
                name="scroll",
                display_name="Scroll Sepolia",
                rpc_url="https://rpc.example",
                contract_address="0x5fbdb2315678afecb367f032d93f642f64180aa3",
            ),
        ],
        **kwargs,
    )


def test_from_config_receipt_wait_fits_inside_fan_out_timeout():
    coordinator = AnchorCoordinator.from_config(VerityConfig(ledger=_configured_ledger()))

    client = coordinator.slots[0].client
    assert coordinator.timeout == 180.0
    assert client.receipt_timeout == 90.0
    assert client.receipt_timeout < coordinator.timeout


def test_from_config_receipt_wait_is_clamped():
    config = VerityConfig(
        ledger=_configured_ledger(timeout_seconds=20.0, receipt_timeout_seconds=300.0, rpc_timeout_seconds=10.0)
    )

    coordinator = AnchorCoordinator.from_config(config)

    assert coordinator.slots[0].client.receipt_timeout == 1.0
