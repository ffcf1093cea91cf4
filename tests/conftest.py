"""Shared test fixtures for geonft."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from geonft.errors import ExternalServiceError
from geonft.sync.content import ContentStore
from geonft.sync.ledger import Ledger

IMAGE = b"\xff\xd8\xff\xe0 not really a jpeg"


class FakeLedger(Ledger):
    """Ledger that records submissions in memory."""

    def __init__(self, fail_connect=False, fail_on=()):
        self.fail_connect = fail_connect
        self.fail_on = set(fail_on)
        self.connects = 0
        self.plants = []
        self.claims = []

    def connect(self):
        self.connects += 1
        if self.fail_connect:
            raise ExternalServiceError("connection refused")

    def submit_plant(self, payload):
        if payload.treasure_public_key in self.fail_on:
            raise ExternalServiceError("transaction rejected")
        self.plants.append(payload)
        return f"plant-tx-{len(self.plants)}"

    def submit_claim(self, payload):
        if payload.treasure_public_key in self.fail_on:
            raise ExternalServiceError("transaction rejected")
        self.claims.append(payload)
        return f"claim-tx-{len(self.claims)}"


class FakeContentStore(ContentStore):
    """Content store that keeps blobs in memory."""

    def __init__(self, fail_connect=False):
        self.fail_connect = fail_connect
        self.blobs = []

    def connect(self):
        if self.fail_connect:
            raise ExternalServiceError("ipfs down")

    def upload(self, blob):
        self.blobs.append(blob)
        return f"Qm{len(self.blobs):044d}"


def set_record_time(path: Path, ns: int) -> None:
    """Pin a record's modification time so event order is deterministic."""
    os.utime(path, ns=(ns, ns))


@pytest.fixture
def geonft_home(tmp_path: Path) -> Path:
    """Provide a temporary GeoNFT home directory."""
    home = tmp_path / ".geonft"
    home.mkdir()
    return home


@pytest.fixture
def data_dir(geonft_home: Path) -> Path:
    return geonft_home / "data"


@pytest.fixture
def account_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def claimer_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def treasure_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def content() -> FakeContentStore:
    return FakeContentStore()
