"""Client for one EVM network carrying the EvidenceRegistry contract."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception

from ..config import ZERO_ADDRESS, LedgerNetworkConfig
from ..errors import LedgerNotConfiguredError, LedgerSubmissionError, LedgerUnavailableError
from ..models.anchor import is_transaction_ref
from ..models.evidence import LedgerEvidence
from .abi import EVIDENCE_REGISTRY_ABI

logger = logging.getLogger(__name__)

# Errors web3 raises for RPC, transport and contract failures.
# requests.RequestException (HTTPProvider transport) is an OSError.
_RPC_ERRORS = (Web3Exception, ValueError, OSError)


@dataclass(frozen=True)
class SubmissionReceipt:
    tx_ref: str
    block_number: int


@dataclass(frozen=True)
class LedgerDiagnostics:
    ledger: str
    chain_id: int
    contract_deployed: bool
    signer: str
    balance_wei: int
    total_records: int | None


class LedgerClient:
    """Write/read surface of one ledger network.

    Only constructible when the RPC URL, a non-zero contract address and a
    signing key are all present; otherwise raises LedgerNotConfiguredError
    naming the first missing value.
    """

    def __init__(
        self,
        network: LedgerNetworkConfig,
        private_key: str | None,
        *,
        confirmations: int = 1,
        rpc_timeout: float = 30.0,
        receipt_timeout: float = 120.0,
        poll_interval: float = 2.0,
        web3: Web3 | None = None,
    ):
        self.network = network
        self.name = network.name

        if not network.rpc_url:
            raise LedgerNotConfiguredError(self.name, "rpc_url")
        if not network.contract_address or network.contract_address.lower() == ZERO_ADDRESS:
            raise LedgerNotConfiguredError(self.name, "contract_address")
        if not Web3.is_address(network.contract_address):
            raise LedgerNotConfiguredError(self.name, "contract_address", "not a valid address")
        if not private_key:
            raise LedgerNotConfiguredError(self.name, "private_key")

        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            raise LedgerNotConfiguredError(self.name, "private_key", "not a valid key") from e

        self.confirmations = max(1, confirmations)
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self.contract_address = Web3.to_checksum_address(network.contract_address)

        self._w3 = web3 or Web3(
            Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": rpc_timeout})
        )
        self._contract = self._w3.eth.contract(address=self.contract_address, abi=EVIDENCE_REGISTRY_ABI)
        # Serializes nonce allocation for concurrent submissions from one signer
        self._send_lock = threading.Lock()

    @property
    def signer(self) -> str:
        return self._account.address

    def submit(self, record_id: str, plate: str, content_id: str, content_hash: str) -> SubmissionReceipt:
        """Anchor a record and wait for the configured confirmations.

        Raises:
            LedgerSubmissionError: On RPC error, revert, or confirmation timeout
        """
        logger.info(f"Storing {record_id} on {self.network.display_name}")
        fn = self._contract.functions.storeEvidence(record_id, plate, content_id, content_hash)
        return self._transact(fn, record_id)

    def amend(self, record_id: str, content_id: str, content_hash: str) -> SubmissionReceipt:
        """Replace the CID and hash of an existing record.

        The contract only accepts this from the original submitter.
        """
        logger.info(f"Amending {record_id} on {self.network.display_name}")
        fn = self._contract.functions.updateEvidence(record_id, content_id, content_hash)
        return self._transact(fn, record_id)

    def read(self, record_id: str) -> LedgerEvidence | None:
        """Read an anchored record.

        Returns:
            The record, or None if it does not exist on this ledger

        Raises:
            LedgerUnavailableError: If the ledger could not be queried
        """
        try:
            result = self._contract.functions.getEvidence(record_id).call()
        except ContractLogicError as e:
            # The registry reverts for unknown ids
            logger.debug(f"{self.name}: getEvidence({record_id}) reverted: {e}")
            return None
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"{self.name} unreachable: {e}", ledger=self.name) from e

        plate, content_id, content_hash, timestamp, submitted_by, exists = result
        if not exists:
            return None

        return LedgerEvidence(
            ledger=self.name,
            record_id=record_id,
            plate=plate,
            content_id=content_id,
            content_hash=content_hash,
            timestamp=int(timestamp),
            submitted_by=submitted_by,
        )

    def exists(self, record_id: str) -> bool:
        try:
            return bool(self._contract.functions.recordExists(record_id).call())
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"{self.name} unreachable: {e}", ledger=self.name) from e

    def total_records(self) -> int:
        try:
            return int(self._contract.functions.getTotalRecords().call())
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"{self.name} unreachable: {e}", ledger=self.name) from e

    def diagnose(self) -> LedgerDiagnostics:
        """Collect connectivity facts for the check-config command."""
        try:
            chain_id = int(self._w3.eth.chain_id)
            code = self._w3.eth.get_code(self.contract_address)
            balance = int(self._w3.eth.get_balance(self.signer))
        except _RPC_ERRORS as e:
            raise LedgerUnavailableError(f"{self.name} unreachable: {e}", ledger=self.name) from e

        deployed = len(code) > 0
        total = None
        if deployed:
            try:
                total = self.total_records()
            except LedgerUnavailableError as e:
                logger.warning(f"{self.name}: getTotalRecords failed: {e}")

        return LedgerDiagnostics(
            ledger=self.name,
            chain_id=chain_id,
            contract_deployed=deployed,
            signer=self.signer,
            balance_wei=balance,
            total_records=total,
        )

    def explorer_tx_url(self, ref: str | None) -> str | None:
        """Public explorer link for a real transaction hash; None for sentinels."""
        if not self.network.explorer_url or not is_transaction_ref(ref):
            return None
        return f"{self.network.explorer_url.rstrip('/')}/tx/{ref}"

    def _transact(self, fn: Any, record_id: str) -> SubmissionReceipt:
        deadline = time.monotonic() + self.receipt_timeout
        try:
            with self._send_lock:
                tx = fn.build_transaction({
                    "from": self.signer,
                    "nonce": self._w3.eth.get_transaction_count(self.signer, "pending"),
                })
                signed = self._account.sign_transaction(tx)
                tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            tx_ref = Web3.to_hex(tx_hash)
            logger.info(f"{self.name}: TX submitted: {tx_ref}")

            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_interval,
            )
        except _RPC_ERRORS as e:
            raise LedgerSubmissionError(f"{self.name}: {e}", ledger=self.name) from e

        if receipt["status"] != 1:
            raise LedgerSubmissionError(
                f"{self.name}: transaction {tx_ref} for {record_id} reverted",
                ledger=self.name,
            )

        block_number = int(receipt["blockNumber"])
        self._wait_for_confirmations(block_number, deadline)
        logger.info(f"{self.name}: confirmed {tx_ref} (block {block_number})")
        return SubmissionReceipt(tx_ref=tx_ref, block_number=block_number)

    def _wait_for_confirmations(self, block_number: int, deadline: float) -> None:
        # A mined receipt is the first confirmation
        if self.confirmations <= 1:
            return
        while True:
            try:
                head = int(self._w3.eth.block_number)
            except _RPC_ERRORS as e:
                raise LedgerSubmissionError(f"{self.name}: {e}", ledger=self.name) from e

            if head - block_number + 1 >= self.confirmations:
                return
            if time.monotonic() >= deadline:
                raise LedgerSubmissionError(
                    f"{self.name}: {self.confirmations} confirmations not reached before timeout",
                    ledger=self.name,
                )
            time.sleep(self.poll_interval)
