"""Evidence integrity pipeline: upload and verification flows."""

from __future__ import annotations

import logging
import re
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Union

from .config import VerityConfig
from .content_store import PinataContentStore
from .errors import NotFoundError, ValidationError
from .hasher import ContentHasher
from .ledger.coordinator import AnchorCoordinator
from .models.evidence import EvidenceRecord, FileMeta
from .models.results import PlateLookupResult, UploadResult, VerificationResult
from .record_index import RecordIndex, normalize_plate

logger = logging.getLogger(__name__)

# <plate>-<10 digit unix seconds>, optionally followed by a collision suffix
RECORD_ID_PATTERN = re.compile(r"^(?P<plate>.+)-(?P<ts>\d{10})(?:-(?P<seq>\d+))?$")


def is_record_id(value: str) -> bool:
    return RECORD_ID_PATTERN.match(value.strip()) is not None


class EvidencePipeline:
    """Orchestrates hash -> store -> anchor -> index, and later re-verification."""

    def __init__(
        self,
        hasher: ContentHasher,
        store: PinataContentStore,
        coordinator: AnchorCoordinator,
        index: RecordIndex,
        clock: Callable[[], float] = time.time,
    ):
        self.hasher = hasher
        self.store = store
        self.coordinator = coordinator
        self.index = index
        self.clock = clock
        self._id_lock = threading.Lock()
        self._issued_ids: set[str] = set()
        self._issued_ts: int | None = None

    @classmethod
    def from_config(cls, config: VerityConfig) -> "EvidencePipeline":
        return cls(
            hasher=ContentHasher(),
            store=PinataContentStore(config.content_store),
            coordinator=AnchorCoordinator.from_config(config),
            index=RecordIndex(config.records_file),
        )

    def upload(
        self,
        content: Union[bytes, str, Path],
        plate: str,
        original_filename: str | None = None,
        file_size: int | None = None,
    ) -> UploadResult:
        """Hash, store, anchor and index a piece of evidence.

        Ledger failures never fail the upload; the record is indexed locally
        whatever the anchoring outcome.

        Raises:
            ValidationError: Missing plate or content
            HashComputationError: Content could not be read
            ContentStoreError: Content could not be uploaded
        """
        if not plate or not plate.strip():
            raise ValidationError("Plate number is required")
        if content is None or (isinstance(content, (bytes, bytearray)) and len(content) == 0):
            raise ValidationError("No video file provided")

        if isinstance(content, (bytes, bytearray)):
            if file_size is None:
                file_size = len(content)
        else:
            if original_filename is None:
                original_filename = Path(content).name
            if file_size is None and Path(content).is_file():
                file_size = Path(content).stat().st_size

        logger.info(f"Starting evidence upload for plate: {plate}")

        content_hash = self.hasher.digest(content)
        logger.info(f"Hash: {content_hash}")

        content_id = self.store.upload(content, original_filename)
        logger.info(f"CID: {content_id}")

        record_id, timestamp = self._issue_record_id(plate)

        outcomes = self.coordinator.anchor_all(record_id, plate, content_id, content_hash)
        for name, outcome in outcomes.items():
            logger.info(f"{name}: {outcome.status.value} {outcome.to_ref()}")

        record = self.index.save(
            EvidenceRecord(
                record_id=record_id,
                plate=plate,
                timestamp=timestamp,
                content_hash=content_hash,
                content_id=content_id,
                ledger_refs={name: outcome.to_ref() for name, outcome in outcomes.items()},
                file_meta=FileMeta(file_name=original_filename, file_size=file_size),
            )
        )

        return UploadResult(
            record_id=record_id,
            content_hash=content_hash,
            content_id=content_id,
            timestamp=timestamp,
            ledger_refs=outcomes,
            local_id=record.local_id,
        )

    def verify(self, record_id_or_plate: str) -> Union[VerificationResult, PlateLookupResult]:
        """Verify a record by id, or list a plate's records.

        A record id (``PLATE-1700000000``) returns the single form with the
        recomputed hash. A bare plate returns every locally indexed record for
        it without re-hashing.

        Raises:
            ValidationError: Empty input
            NotFoundError: Record id unknown to every ledger and the index
            RetrievalExhaustedError: Content could not be downloaded
        """
        if not record_id_or_plate or not record_id_or_plate.strip():
            raise ValidationError("A record id or plate is required")

        key = record_id_or_plate.strip()
        if not is_record_id(key):
            return self.find_by_plate(key)

        return self._verify_record(key)

    def find_by_plate(self, plate: str) -> PlateLookupResult:
        if not plate or not plate.strip():
            raise ValidationError("Plate number is required")
        return PlateLookupResult(plate=normalize_plate(plate), records=self.index.find_by_plate(plate))

    def lookup_record(self, record_id: str) -> EvidenceRecord:
        """Return the locally indexed record for an id.

        Raises:
            NotFoundError: If the index has no such record
        """
        record = self.index.find_by_record_id(record_id.strip())
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return record

    def _verify_record(self, record_id: str) -> VerificationResult:
        local = None
        evidence = self.coordinator.lookup(record_id)
        if evidence is not None:
            source, ledger = "ledger", evidence.ledger
            plate, content_id = evidence.plate, evidence.content_id
            anchored_hash, timestamp = evidence.content_hash, evidence.timestamp
            # The index still knows the transaction refs for explorer links
            local = self.index.find_by_record_id(record_id)
        else:
            local = self.index.find_by_record_id(record_id)
            if local is None:
                raise NotFoundError(
                    f"No evidence found for record id {record_id} "
                    "(expected format: PLATE-TIMESTAMP, e.g. ABC123-1762032836)"
                )
            source, ledger = "local", None
            plate, content_id = local.plate, local.content_id
            anchored_hash, timestamp = local.content_hash, local.timestamp

        retrieved = self.store.retrieve_with_source(content_id)
        computed_hash = self.hasher.digest(retrieved.data)
        matches = anchored_hash.lower() == computed_hash.lower()
        if matches:
            logger.info(f"{record_id} verified: hashes match")
        else:
            logger.warning(f"{record_id} altered: anchored {anchored_hash}, computed {computed_hash}")

        ledger_refs = local.ledger_refs if local is not None else {}
        return VerificationResult(
            record_id=record_id,
            plate=plate,
            content_id=content_id,
            anchored_hash=anchored_hash.lower(),
            computed_hash=computed_hash,
            matches=matches,
            source=source,
            ledger=ledger,
            gateway=retrieved.gateway,
            timestamp=timestamp,
            ledger_refs=ledger_refs,
            explorer_links=self.coordinator.explorer_links(ledger_refs),
            verified_at=datetime.now(timezone.utc),
        )

    def _issue_record_id(self, plate: str) -> tuple[str, int]:
        """Build ``<plate>-<unix seconds>``, suffixing ``-2``, ``-3``... on collision."""
        with self._id_lock:
            timestamp = int(self.clock())
            # Ids from an earlier second cannot collide with this one
            if timestamp != self._issued_ts:
                self._issued_ids.clear()
                self._issued_ts = timestamp
            base = f"{plate}-{timestamp}"
            record_id, seq = base, 1
            while record_id in self._issued_ids or self.index.record_id_exists(record_id):
                seq += 1
                record_id = f"{base}-{seq}"
            self._issued_ids.add(record_id)
        return record_id, timestamp
