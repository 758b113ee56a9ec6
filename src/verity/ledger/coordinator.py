"""Fan-out of anchoring and lookups across every configured ledger."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable

from ..config import VerityConfig
from ..errors import LedgerNotConfiguredError, LedgerUnavailableError
from ..models.anchor import AnchorOutcome, is_transaction_ref
from ..models.evidence import LedgerEvidence
from .client import LedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSlot:
    """One position in the ordered ledger list.

    ``client`` is None when the network is not configured; ``skip_reason``
    then says which value was missing.
    """

    name: str
    client: Any = None
    skip_reason: str | None = None
    explorer_url: str | None = None

    @property
    def configured(self) -> bool:
        return self.client is not None


class AnchorCoordinator:
    """Anchors records on N independent ledgers.

    Each ledger succeeds or fails on its own. ``anchor_all`` never raises:
    failures become FAILED outcomes, unconfigured ledgers SKIPPED, and with no
    ledger configured at all every slot is MOCK and nothing touches the network.
    """

    def __init__(self, slots: list[LedgerSlot], timeout: float = 180.0):
        self.slots = list(slots)
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: VerityConfig) -> "AnchorCoordinator":
        ledger = config.ledger
        # Leave room for the RPC calls before the receipt wait so worker
        # threads finish inside the fan-out deadline
        receipt_timeout = max(
            1.0,
            min(ledger.receipt_timeout_seconds, ledger.timeout_seconds - 3 * ledger.rpc_timeout_seconds),
        )
        slots = []
        for network in ledger.networks:
            try:
                client = LedgerClient(
                    network,
                    ledger.private_key,
                    confirmations=ledger.confirmations,
                    rpc_timeout=ledger.rpc_timeout_seconds,
                    receipt_timeout=receipt_timeout,
                )
            except LedgerNotConfiguredError as e:
                logger.info(f"{network.name} not configured, skipping ({e.missing})")
                slots.append(LedgerSlot(network.name, skip_reason=str(e), explorer_url=network.explorer_url))
                continue
            slots.append(LedgerSlot(network.name, client=client, explorer_url=network.explorer_url))
        return cls(slots, timeout=ledger.timeout_seconds)

    @property
    def configured_slots(self) -> list[LedgerSlot]:
        return [slot for slot in self.slots if slot.configured]

    @property
    def configured_names(self) -> list[str]:
        return [slot.name for slot in self.configured_slots]

    def anchor_all(
        self,
        record_id: str,
        plate: str,
        content_id: str,
        content_hash: str,
    ) -> dict[str, AnchorOutcome]:
        """Submit a record to every configured ledger in parallel.

        Returns:
            Ledger name -> outcome, in slot order
        """
        if not self.configured_slots:
            logger.warning("Blockchain not configured yet. Returning mock transactions.")
            return {slot.name: AnchorOutcome.mock(slot.name) for slot in self.slots}

        futures, done = self._fan_out(
            lambda client: client.submit(record_id, plate, content_id, content_hash)
        )

        outcomes: dict[str, AnchorOutcome] = {}
        for slot in self.slots:
            if not slot.configured:
                logger.warning(f"{slot.name} not configured, skipping")
                outcomes[slot.name] = AnchorOutcome.skipped(slot.name, slot.skip_reason or "not configured")
                continue

            future = futures[slot.name]
            if future not in done:
                logger.error(f"{slot.name}: no confirmation within {self.timeout}s")
                outcomes[slot.name] = AnchorOutcome.failed(slot.name, f"timed out after {self.timeout}s")
                continue

            try:
                receipt = future.result()
            except Exception as e:
                logger.error(f"{slot.name} error: {e}")
                outcomes[slot.name] = AnchorOutcome.failed(slot.name, str(e))
                continue

            outcomes[slot.name] = AnchorOutcome.confirmed(slot.name, receipt.tx_ref, receipt.block_number)

        return outcomes

    def lookup(self, record_id: str) -> LedgerEvidence | None:
        """Read a record from every configured ledger in parallel.

        Returns the hit from the earliest ledger in slot order. Unreachable
        ledgers and timeouts count as misses.
        """
        if not self.configured_slots:
            return None

        futures, done = self._fan_out(lambda client: client.read(record_id))

        for slot in self.configured_slots:
            future = futures[slot.name]
            if future not in done:
                logger.warning(f"{slot.name}: lookup of {record_id} timed out")
                continue
            try:
                evidence = future.result()
            except LedgerUnavailableError as e:
                logger.warning(f"{slot.name} unavailable: {e}")
                continue
            except Exception as e:
                logger.warning(f"{slot.name}: lookup of {record_id} failed: {e}")
                continue
            if evidence is not None:
                return evidence

        return None

    def explorer_links(self, ledger_refs: dict[str, str]) -> dict[str, str]:
        """Explorer URLs for refs that are real transaction hashes."""
        links = {}
        for slot in self.slots:
            ref = ledger_refs.get(slot.name)
            if slot.explorer_url and is_transaction_ref(ref):
                links[slot.name] = f"{slot.explorer_url.rstrip('/')}/tx/{ref}"
        return links

    def _fan_out(self, call: Callable[[Any], Any]) -> tuple[dict[str, Future], set[Future]]:
        slots = self.configured_slots
        pool = ThreadPoolExecutor(max_workers=len(slots), thread_name_prefix="ledger")
        try:
            futures = {slot.name: pool.submit(call, slot.client) for slot in slots}
            done, _ = wait(futures.values(), timeout=self.timeout)
        finally:
            # Stragglers are abandoned; their outcome is reported as a timeout
            pool.shutdown(wait=False, cancel_futures=True)
        return futures, done
