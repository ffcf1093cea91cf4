"""
Ledger capability -- where plant and claim records become permanent.

The executor only sees ``connect``, ``submit_plant`` and ``submit_claim``.
SolanaLedger implements them by sending one instruction to the GeoNFT
program, whose data is the Borsh encoding of:

    enum GeonftRequest {
        PlantTreasure { account_public_key: Vec<u8>,
                        treasure_public_key: Vec<u8>,
                        treasure_hash: Vec<u8> },       // tag 0
        ClaimTreasure { account_public_key: Vec<u8>,
                        treasure_public_key: Vec<u8> }, // tag 1
    }
"""

from __future__ import annotations

import json
import logging
import struct
from abc import ABC, abstractmethod
from typing import Optional

from solana.rpc.api import Client as SolanaClient
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from ..errors import ExternalServiceError
from ..models import ClaimTreasurePayload, LedgerConfig, PlantTreasurePayload

logger = logging.getLogger("geonft.sync.ledger")

PLANT_TREASURE_TAG = 0
CLAIM_TREASURE_TAG = 1


def _borsh_bytes(value: bytes) -> bytes:
    return struct.pack("<I", len(value)) + value


def encode_plant(payload: PlantTreasurePayload) -> bytes:
    """Borsh-encode a PlantTreasure instruction."""
    return (
        struct.pack("<B", PLANT_TREASURE_TAG)
        + _borsh_bytes(payload.account_public_key)
        + _borsh_bytes(payload.treasure_public_key)
        + _borsh_bytes(payload.treasure_hash)
    )


def encode_claim(payload: ClaimTreasurePayload) -> bytes:
    """Borsh-encode a ClaimTreasure instruction."""
    return (
        struct.pack("<B", CLAIM_TREASURE_TAG)
        + _borsh_bytes(payload.account_public_key)
        + _borsh_bytes(payload.treasure_public_key)
    )


class Ledger(ABC):
    """Abstract ledger the executor publishes to."""

    @abstractmethod
    def connect(self) -> None:
        """Open a connection for this round.

        Raises:
            ExternalServiceError: If the ledger cannot be reached.
        """

    @abstractmethod
    def submit_plant(self, payload: PlantTreasurePayload) -> str:
        """Submit a plant record. Returns a transaction reference."""

    @abstractmethod
    def submit_claim(self, payload: ClaimTreasurePayload) -> str:
        """Submit a claim record. Returns a transaction reference."""


def load_keypair(path) -> Keypair:
    """Load a Solana CLI keypair file (a JSON list of 64 byte values).

    Raises:
        ExternalServiceError: If the file is missing or malformed.
    """
    try:
        data = json.loads(path.expanduser().read_text(encoding="utf-8"))
        return Keypair.from_bytes(bytes(data))
    except (OSError, ValueError, TypeError) as exc:
        raise ExternalServiceError(f"cannot load payer keypair {path}: {exc}") from exc


class SolanaLedger(Ledger):
    """Publishes records as transactions to the GeoNFT Solana program."""

    def __init__(self, config: LedgerConfig):
        self.config = config
        self._client: Optional[SolanaClient] = None
        self._payer: Optional[Keypair] = None
        self._program_id: Optional[Pubkey] = None

    def connect(self) -> None:
        if not self.config.program_id or not self.config.payer_keypair_path:
            raise ExternalServiceError("ledger program_id and payer_keypair_path must be configured")

        logger.info(
            "Connecting to Solana node %s (timeout %.1fs)",
            self.config.rpc_url,
            self.config.timeout_seconds,
        )
        try:
            self._program_id = Pubkey.from_string(self.config.program_id)
        except ValueError as exc:
            raise ExternalServiceError(f"invalid program id {self.config.program_id!r}") from exc
        self._payer = load_keypair(self.config.payer_keypair_path)

        client = SolanaClient(self.config.rpc_url, timeout=self.config.timeout_seconds)
        try:
            epoch = client.get_epoch_info()
        except Exception as exc:
            raise ExternalServiceError(f"Solana node unreachable at {self.config.rpc_url}: {exc}") from exc
        logger.info("Connected to Solana: %s", epoch.value)
        self._client = client

    def submit_plant(self, payload: PlantTreasurePayload) -> str:
        return self._submit(encode_plant(payload))

    def submit_claim(self, payload: ClaimTreasurePayload) -> str:
        return self._submit(encode_claim(payload))

    def _submit(self, data: bytes) -> str:
        if self._client is None:
            raise ExternalServiceError("ledger is not connected")

        payer_pk = self._payer.pubkey()
        ix = Instruction(self._program_id, data, [AccountMeta(payer_pk, True, True)])
        try:
            blockhash = self._client.get_latest_blockhash().value.blockhash
            message = MessageV0.try_compile(payer_pk, [ix], [], blockhash)
            tx = VersionedTransaction(message, [self._payer])
            resp = self._client.send_transaction(tx)
        except Exception as exc:
            raise ExternalServiceError(f"Solana transaction failed: {exc}") from exc
        signature = str(resp.value)
        logger.info("Solana transaction sent: %s", signature)
        return signature


def create_ledger(config: LedgerConfig) -> Ledger:
    """Build the configured ledger."""
    return SolanaLedger(config)
