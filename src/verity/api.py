"""Framework-agnostic HTTP handlers for the evidence endpoints.

Each handler returns ``(status_code, body)``; the routing layer only has to
serialize the body as JSON. Failure bodies always carry ``success: false``, a
human-readable ``error`` and a machine-stable ``kind``.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import NotFoundError, ValidationError, VerityError
from .models.evidence import EvidenceRecord
from .models.results import PlateLookupResult
from .pipeline import EvidencePipeline

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]


def _error(status: int, error: VerityError) -> Response:
    return status, {"success": False, "error": error.message, "kind": error.kind}


def _status_for(error: VerityError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    return 500


def record_body(record: EvidenceRecord) -> dict[str, Any]:
    return {
        "recordId": record.record_id,
        "plate": record.plate,
        "hash": record.content_hash,
        "cid": record.content_id,
        "timestamp": record.timestamp,
        "ledgerRefs": dict(record.ledger_refs),
        "fileName": record.file_meta.file_name,
        "fileSize": record.file_meta.file_size,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "localId": record.local_id,
    }


def handle_upload(
    pipeline: EvidencePipeline,
    file_path: Path | None,
    plate: str | None,
    original_filename: str | None = None,
    file_size: int | None = None,
    delete_temp_files: bool = False,
) -> Response:
    """Upload a temp file written by the multipart layer.

    The temp file is always removed after a failure, and after a success only
    when ``delete_temp_files`` is set.
    """
    if file_path is None:
        return _error(400, ValidationError("No video file provided"))

    try:
        result = pipeline.upload(file_path, plate or "", original_filename, file_size)
    except VerityError as e:
        logger.error(f"Upload error: {e}")
        Path(file_path).unlink(missing_ok=True)
        return _error(400 if isinstance(e, ValidationError) else 500, e)

    if delete_temp_files:
        Path(file_path).unlink(missing_ok=True)
        logger.info("Temp file deleted")

    return 200, {
        "success": True,
        "recordId": result.record_id,
        "hash": result.content_hash,
        "cid": result.content_id,
        "timestamp": result.timestamp,
        "ledgerRefs": result.ref_strings(),
        "localId": result.local_id,
    }


def handle_record_lookup(pipeline: EvidencePipeline, record_id: str) -> Response:
    """Return the raw indexed fields for a record id (no re-hashing)."""
    try:
        record = pipeline.lookup_record(record_id)
    except VerityError as e:
        return _error(_status_for(e), e)
    return 200, {"success": True, **record_body(record), "source": "local"}


def handle_plate_lookup(pipeline: EvidencePipeline, plate: str) -> Response:
    """List a plate's records; 200 even when there are none."""
    try:
        result = pipeline.find_by_plate(plate)
    except VerityError as e:
        return _error(_status_for(e), e)
    return 200, _plate_body(result)


def handle_verify(pipeline: EvidencePipeline, record_id_or_plate: str) -> Response:
    """Verify a record id, or list a plate's records."""
    try:
        result = pipeline.verify(record_id_or_plate)
    except VerityError as e:
        status = _status_for(e)
        # Upstream gateways or ledgers failed rather than this service
        if status == 500:
            status = 502
        return _error(status, e)

    if isinstance(result, PlateLookupResult):
        return 200, _plate_body(result)

    return 200, {
        "success": True,
        "recordId": result.record_id,
        "plate": result.plate,
        "cid": result.content_id,
        "onChainHash": result.anchored_hash,
        "localHash": result.computed_hash,
        "matches": result.matches,
        "source": result.source,
        "chain": result.ledger,
        "gateway": result.gateway,
        "timestamp": result.timestamp,
        "ledgerRefs": result.ledger_refs,
        "explorerLinks": result.explorer_links,
        "verifiedAt": result.verified_at.isoformat(),
    }


def health() -> Response:
    return 200, {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


def _plate_body(result: PlateLookupResult) -> dict[str, Any]:
    return {
        "success": True,
        "count": result.count,
        "records": [record_body(record) for record in result.records],
    }
