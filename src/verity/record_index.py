"""Local durable index of evidence records.

Records live in a single JSON document, ``{"records": [...]}``. The index is
a fallback source of truth next to the ledgers, so it favours availability: a
corrupt document is reset to an empty one instead of failing the caller.
"""

import json
import logging
import secrets
import string
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .errors import RecordIndexError
from .models.evidence import EvidenceRecord

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase

# One lock per backing file, shared by every RecordIndex instance in the process
_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


def normalize_plate(plate: str) -> str:
    return plate.strip().upper()


def new_local_id() -> str:
    """Storage key: epoch millis plus nine random base36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


class RecordIndex:
    """Append-only index of EvidenceRecords keyed by local_id.

    ``save`` never overwrites an existing entry. Writes are serialized per
    file and land through a temp file plus atomic replace.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = _lock_for(path)

    def save(self, record: EvidenceRecord) -> EvidenceRecord:
        """Append a record, assigning local_id and created_at.

        Raises:
            RecordIndexError: If the document cannot be written
        """
        saved = record.model_copy(update={
            "local_id": new_local_id(),
            "created_at": datetime.now(timezone.utc),
        })
        with self._lock:
            raw = self._load_raw()
            raw.append(saved.model_dump(mode="json"))
            self._write(raw)
        logger.info(f"Record saved with local id: {saved.local_id}")
        return saved

    def all(self) -> list[EvidenceRecord]:
        with self._lock:
            raw = self._load_raw()
        records = []
        for entry in raw:
            try:
                records.append(EvidenceRecord.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed record in {self.path}: {e.error_count()} error(s)")
        return records

    def find_by_record_id(self, record_id: str) -> EvidenceRecord | None:
        for record in self.all():
            if record.record_id == record_id:
                return record
        return None

    def find_by_plate(self, plate: str) -> list[EvidenceRecord]:
        """All records for a plate, case- and whitespace-insensitive on the query."""
        wanted = normalize_plate(plate)
        return [
            record
            for record in self.all()
            if normalize_plate(record.plate) == wanted or record.plate == plate
        ]

    def record_id_exists(self, record_id: str) -> bool:
        return self.find_by_record_id(record_id) is not None

    def _load_raw(self) -> list[dict]:
        """Read the records list, resetting the document if it is unusable.

        Caller must hold the lock.
        """
        if not self.path.exists():
            self._write([])
            return []

        try:
            content = self.path.read_text(encoding="utf-8").strip()
            if not content:
                raise ValueError("empty file")
            data = json.loads(content)
            if not isinstance(data, dict) or not isinstance(data.get("records", []), list):
                raise ValueError("expected an object with a 'records' list")
        except (OSError, ValueError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.warning(f"{self.path} is corrupted ({e}), recreating")
            self._write([])
            return []

        return [entry for entry in data.get("records", []) if isinstance(entry, dict)]

    def _write(self, records: list[dict]) -> None:
        temp_file = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump({"records": records}, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            if temp_file.exists():
                temp_file.unlink()
            raise RecordIndexError(f"Failed to write {self.path}: {e}") from e
