"""
Content store capability -- where treasure images are kept.

IpfsContentStore talks to a local IPFS daemon through its HTTP API.
Only the content identifier comes back; the ledger never sees the
image itself.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..errors import ExternalServiceError
from ..models import IpfsConfig

logger = logging.getLogger("geonft.sync.content")


class ContentStore(ABC):
    """Abstract content-addressed blob store."""

    @abstractmethod
    def connect(self) -> None:
        """Open a connection for this round.

        Raises:
            ExternalServiceError: If the store cannot be reached.
        """

    @abstractmethod
    def upload(self, blob: bytes) -> str:
        """Store a blob and return its content identifier."""


class IpfsContentStore(ContentStore):
    """IPFS HTTP API client (``/api/v0/version``, ``/api/v0/add``)."""

    def __init__(self, config: IpfsConfig):
        self.config = config
        self._session: Optional[requests.Session] = None

    def _url(self, endpoint: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/api/v0/{endpoint}"

    def connect(self) -> None:
        logger.info("Connecting to IPFS API %s", self.config.api_url)
        session = requests.Session()
        try:
            resp = session.post(self._url("version"), timeout=self.config.timeout_seconds)
            resp.raise_for_status()
            version = resp.json().get("Version", "unknown")
        except (requests.RequestException, ValueError) as exc:
            session.close()
            raise ExternalServiceError(f"IPFS API unreachable at {self.config.api_url}: {exc}") from exc
        logger.info("Connected to IPFS %s", version)
        self.close()
        self._session = session

    def close(self) -> None:
        """Close the session opened by the last ``connect``."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def upload(self, blob: bytes) -> str:
        if self._session is None:
            raise ExternalServiceError("content store is not connected")
        try:
            resp = self._session.post(
                self._url("add"),
                params={"pin": "true"},
                files={"file": ("treasure", blob)},
            )
            resp.raise_for_status()
            cid = resp.json()["Hash"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            raise ExternalServiceError(f"IPFS upload failed: {exc}") from exc
        logger.info("Uploaded %d bytes to IPFS: %s", len(blob), cid)
        return cid


def create_content_store(config: IpfsConfig) -> ContentStore:
    """Build the configured content store."""
    return IpfsContentStore(config)
