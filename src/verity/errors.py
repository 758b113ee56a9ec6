"""Exception taxonomy for the evidence pipeline.

Every error carries a machine-stable ``kind`` so HTTP handlers and the CLI can
report failures without matching on message text.
"""


class VerityError(Exception):
    """Base class for all Verity errors."""

    kind = "verity"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(VerityError):
    """Missing or malformed user input (plate, content, lookup key)."""

    kind = "validation"


class HashComputationError(VerityError):
    """The content source could not be read while hashing."""

    kind = "hash_computation"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ContentStoreError(VerityError):
    """Base class for content-addressed store failures."""

    kind = "content_store"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ContentStoreAuthError(ContentStoreError):
    """Credential missing, invalid or expired (HTTP 401)."""

    kind = "content_store_auth"


class ContentStoreAuthzError(ContentStoreError):
    """Credential valid but lacking the required scope (HTTP 403)."""

    kind = "content_store_authz"


class ContentStoreUploadError(ContentStoreError):
    """Upload failed for any other reason (network, quota, server error)."""

    kind = "content_store_upload"


class RetrievalExhaustedError(ContentStoreError):
    """Every gateway failed to return the content."""

    kind = "retrieval_exhausted"

    def __init__(self, message: str, attempts: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.attempts = attempts or []


class LedgerError(VerityError):
    """Base class for ledger failures."""

    kind = "ledger"

    def __init__(self, message: str, ledger: str | None = None):
        super().__init__(message)
        self.ledger = ledger


class LedgerNotConfiguredError(LedgerError):
    """A ledger is missing one of its required configuration values.

    Expected and benign: the coordinator records it as a skipped ledger.
    """

    kind = "ledger_not_configured"

    def __init__(self, ledger: str, missing: str, detail: str | None = None):
        message = f"{ledger} ledger not configured: {missing} is {detail or 'missing'}"
        super().__init__(message, ledger=ledger)
        self.missing = missing


class LedgerSubmissionError(LedgerError):
    """A configured ledger failed to confirm a transaction."""

    kind = "ledger_submission"


class LedgerUnavailableError(LedgerError):
    """A configured ledger could not be reached for a read."""

    kind = "ledger_unavailable"


class NotFoundError(VerityError):
    """The record is absent from every ledger and the local index."""

    kind = "not_found"


class RecordIndexError(VerityError):
    """The local record index could not be written."""

    kind = "record_index"


class ConfigError(VerityError):
    """A configuration value is present but cannot be used."""

    kind = "config"
