"""Streaming SHA-256 hashing of evidence content."""

import hashlib
import re
from pathlib import Path
from typing import BinaryIO, Iterable, Union

from .errors import HashComputationError

DEFAULT_CHUNK_SIZE = 1024 * 1024

HEX_DIGEST_PATTERN = re.compile(r"^[a-fA-F0-9]{64}$")

ContentSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]


def is_valid_digest(value: str | None) -> bool:
    """Check that value is a 64-character hex SHA-256 digest (any case)."""
    return bool(value) and HEX_DIGEST_PATTERN.match(value) is not None


class ContentHasher:
    """SHA-256 digest of arbitrary-size content.

    Files and streams are consumed chunk by chunk, so the digest never needs
    the whole content in memory and does not depend on chunk boundaries.
    """

    algorithm = "sha256"

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def digest(self, source: ContentSource) -> str:
        """Return the lowercase hex digest of source.

        Args:
            source: In-memory bytes, a filesystem path, or a binary stream

        Raises:
            HashComputationError: If the source cannot be read
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            return hashlib.sha256(source).hexdigest()

        if isinstance(source, (str, Path)):
            try:
                with open(source, "rb") as f:
                    return self._digest_stream(f)
            except OSError as e:
                raise HashComputationError(f"Hash generation failed: {e}", cause=e) from e

        if hasattr(source, "read"):
            try:
                return self._digest_stream(source)
            except OSError as e:
                raise HashComputationError(f"Hash generation failed: {e}", cause=e) from e

        raise HashComputationError(f"Unsupported content source: {type(source).__name__}")

    def digest_chunks(self, chunks: Iterable[bytes]) -> str:
        """Digest content that already arrives in chunks (e.g. a streamed response)."""
        h = hashlib.sha256()
        try:
            for chunk in chunks:
                h.update(chunk)
        except OSError as e:
            raise HashComputationError(f"Hash generation failed: {e}", cause=e) from e
        return h.hexdigest()

    def _digest_stream(self, stream: BinaryIO) -> str:
        h = hashlib.sha256()
        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                break
            h.update(chunk)
        return h.hexdigest()
