"""Content-addressed storage on IPFS through the Pinata pinning API."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from .config import ContentStoreConfig
from .errors import (
    ContentStoreAuthError,
    ContentStoreAuthzError,
    ContentStoreError,
    ContentStoreUploadError,
    RetrievalExhaustedError,
)
from .hasher import ContentSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievedContent:
    data: bytes
    gateway: str


def _strip_scheme(content_id: str) -> str:
    return content_id.strip().removeprefix("ipfs://")


class PinataContentStore:
    """Client for the Pinata pinning API plus public IPFS gateways.

    Uploads are a single authenticated call with no automatic retry.
    Retrieval walks the configured gateways in priority order and only fails
    once every one of them has failed.
    """

    def __init__(self, config: ContentStoreConfig):
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.gateways = [g.rstrip("/") for g in config.gateways]

    def upload(self, source: ContentSource, display_name: str | None = None) -> str:
        """Pin content to IPFS and return its CID.

        Args:
            source: Bytes, a filesystem path, or a binary stream
            display_name: Name recorded in Pinata metadata

        Raises:
            ContentStoreAuthError: JWT missing, invalid or expired (401)
            ContentStoreAuthzError: JWT lacks pinFileToIPFS permission (403)
            ContentStoreUploadError: Any other failure
        """
        if not self.config.jwt:
            raise ContentStoreAuthError("PINATA_JWT not configured")

        if display_name is None:
            display_name = Path(source).name if isinstance(source, (str, Path)) else "evidence"

        metadata = json.dumps({
            "name": display_name,
            "keyvalues": {
                "project": "VERITY",
                "timestamp": str(int(time.time() * 1000)),
            },
        })

        logger.info(f"Uploading {display_name} to IPFS via Pinata")
        start = time.monotonic()
        try:
            if isinstance(source, (str, Path)):
                with open(source, "rb") as f:
                    response = self._post_file(f, display_name, metadata)
            else:
                response = self._post_file(source, display_name, metadata)
        except OSError as e:
            # requests.RequestException is an OSError too
            raise ContentStoreUploadError(f"IPFS upload failed: {e}") from e

        self._raise_for_auth(response)
        if not response.ok:
            raise ContentStoreUploadError(
                f"IPFS upload failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            cid = response.json()["IpfsHash"]
        except (ValueError, KeyError, TypeError) as e:
            raise ContentStoreUploadError(f"IPFS upload failed: unexpected response body: {e}") from e

        logger.info(f"Upload successful in {time.monotonic() - start:.2f}s, CID: {cid}")
        return cid

    def resolve(self, content_id: str) -> str:
        """Canonical retrieval URL for a CID (no network call)."""
        return f"{self.gateways[0]}/ipfs/{_strip_scheme(content_id)}"

    def retrieve(self, content_id: str) -> bytes:
        """Download content by CID, falling back across gateways."""
        return self.retrieve_with_source(content_id).data

    def retrieve_with_source(self, content_id: str) -> RetrievedContent:
        """Download content by CID and report which gateway served it.

        Raises:
            RetrievalExhaustedError: If every gateway attempt failed
        """
        cid = _strip_scheme(content_id)
        attempts: list[tuple[str, str]] = []

        for gateway in self.gateways[: self.config.max_gateway_attempts]:
            url = f"{gateway}/ipfs/{cid}"
            try:
                response = requests.get(
                    url,
                    headers={"Accept": "video/mp4,video/*,*/*"},
                    timeout=self.config.timeout_seconds,
                )
            except requests.RequestException as e:
                logger.warning(f"Failed to fetch from {url}: {e}")
                attempts.append((url, str(e)))
                continue

            if not response.ok:
                logger.warning(f"Failed to fetch from {url}: HTTP {response.status_code}")
                attempts.append((url, f"HTTP {response.status_code}"))
                continue

            return RetrievedContent(data=response.content, gateway=url)

        last = attempts[-1][1] if attempts else "no gateways configured"
        raise RetrievalExhaustedError(
            f"Could not download {cid} from IPFS after {len(attempts)} gateway(s): {last}",
            attempts=attempts,
        )

    def list_pinned(self) -> list[dict[str, Any]]:
        """List files currently pinned under this account."""
        response = self._request("GET", "/data/pinList", params={"status": "pinned"})
        data = response.json()
        logger.info(f"Total pinned files: {data.get('count')}")
        return data.get("rows", [])

    def unpin(self, content_id: str) -> bool:
        """Remove a pin. Returns False if Pinata did not know the CID."""
        cid = _strip_scheme(content_id)
        try:
            self._request("DELETE", f"/pinning/unpin/{cid}")
        except ContentStoreError as e:
            if e.status_code == 404:
                return False
            raise
        logger.info(f"Unpinned: {cid}")
        return True

    def _post_file(self, fileobj, display_name: str, metadata: str) -> requests.Response:
        return requests.post(
            f"{self.api_url}/pinning/pinFileToIPFS",
            headers=self._auth_headers(),
            files={"file": (display_name, fileobj)},
            data={"pinataMetadata": metadata},
            timeout=self.config.timeout_seconds,
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        if not self.config.jwt:
            raise ContentStoreAuthError("PINATA_JWT not configured")
        try:
            response = requests.request(
                method,
                f"{self.api_url}{path}",
                headers=self._auth_headers(),
                timeout=self.config.timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as e:
            raise ContentStoreError(f"Pinata request failed: {e}") from e

        self._raise_for_auth(response)
        if not response.ok:
            raise ContentStoreError(
                f"Pinata request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.jwt}"}

    @staticmethod
    def _raise_for_auth(response: requests.Response) -> None:
        if response.status_code == 401:
            raise ContentStoreAuthError(
                "Pinata authentication failed. JWT token is invalid or expired. "
                "Get a new one at https://app.pinata.cloud/developers/api-keys",
                status_code=401,
            )
        if response.status_code == 403:
            raise ContentStoreAuthzError(
                "Pinata access forbidden. JWT needs pinFileToIPFS permission.",
                status_code=403,
            )
