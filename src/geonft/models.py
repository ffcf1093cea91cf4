"""
Pydantic models for treasure records, sync state, and configuration.

Requests are stored exactly as the producer accepted them. Everything
the sync engine derives from them (statuses, plans, round reports)
lives here too, so the planner and executor share one vocabulary.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PlantRequest(BaseModel):
    """A signed request to plant a treasure.

    Attributes:
        account_public_key: bech32 key of the planting account.
        treasure_public_key: bech32 key that identifies the treasure.
        image: The treasure image, base64 encoded.
        account_signature: base64 signature by the account of
            ``"plant"`` followed by the encoded treasure key.
        treasure_signature: base64 signature by the treasure key of
            ``"plant"`` followed by the encoded account key and the
            binary SHA-256 digest of the image.
    """

    model_config = ConfigDict(frozen=True)

    account_public_key: str
    treasure_public_key: str
    image: str
    account_signature: str
    treasure_signature: str


class ClaimRequest(BaseModel):
    """A signed request to claim a planted treasure.

    Attributes:
        account_public_key: bech32 key of the claiming account.
        treasure_public_key: bech32 key of the treasure being claimed.
        account_signature: base64 signature by the account of
            ``"claim"`` followed by the encoded treasure key.
        treasure_signature: base64 signature by the treasure key of
            ``"claim"`` followed by the encoded account key.
    """

    model_config = ConfigDict(frozen=True)

    account_public_key: str
    treasure_public_key: str
    account_signature: str
    treasure_signature: str


class SyncStatus(str, Enum):
    """How far a treasure has been published.

    Members are declared in sync order and compare by that order,
    not alphabetically. UNSYNCED is never written to the status store.
    """

    UNSYNCED = "unsynced"
    BLOB_SYNCED = "blob_synced"
    PLANT_SYNCED = "plant_synced"
    CLAIM_SYNCED = "claim_synced"

    @property
    def rank(self) -> int:
        return list(SyncStatus).index(self)

    def __lt__(self, other):
        if not isinstance(other, SyncStatus):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, SyncStatus):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, SyncStatus):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, SyncStatus):
            return NotImplemented
        return self.rank >= other.rank


class EventKind(str, Enum):
    """Kind of a recorded treasure event."""

    PLANT = "plant"
    CLAIM = "claim"


class TreasureEvent(BaseModel):
    """A plant or claim record together with the time it was recorded."""

    kind: EventKind
    treasure_public_key: str
    recorded_at: int
    request: Union[PlantRequest, ClaimRequest]


class StepKind(str, Enum):
    """A single publishing action the executor knows how to perform."""

    UPLOAD_BLOB_TO_IPFS = "upload_blob_to_ipfs"
    UPLOAD_PLANT_TO_SOLANA = "upload_plant_to_solana"
    UPLOAD_CLAIM_TO_SOLANA = "upload_claim_to_solana"


class PlanStep(BaseModel):
    """One planned action for one treasure."""

    model_config = ConfigDict(frozen=True)

    treasure_public_key: str
    kind: StepKind


class Plan(BaseModel):
    """An ordered list of steps plus the status snapshot it was built from."""

    statuses: dict[str, SyncStatus] = Field(default_factory=dict)
    steps: list[PlanStep] = Field(default_factory=list)


class PreconditionMismatch(BaseModel):
    """A planned step found its treasure at an unexpected status."""

    expected: SyncStatus
    actual: SyncStatus


class StepResult(str, Enum):
    """What happened to a planned step."""

    APPLIED = "applied"
    STALE = "stale"
    FAILED = "failed"


class StepOutcome(BaseModel):
    """The result of executing (or skipping) one planned step."""

    treasure_public_key: str
    step: StepKind
    result: StepResult
    status_before: SyncStatus
    status_after: SyncStatus
    detail: Optional[str] = None


class RoundReport(BaseModel):
    """Everything one executor round did."""

    outcomes: list[StepOutcome] = Field(default_factory=list)
    statuses: dict[str, SyncStatus] = Field(default_factory=dict)

    def count(self, result: StepResult) -> int:
        return sum(1 for o in self.outcomes if o.result == result)

    @property
    def applied(self) -> int:
        return self.count(StepResult.APPLIED)

    @property
    def stale(self) -> int:
        return self.count(StepResult.STALE)

    @property
    def failed(self) -> int:
        return self.count(StepResult.FAILED)


class PlantTreasurePayload(BaseModel):
    """On-chain plant record. Carries the image digest, never the image."""

    account_public_key: bytes
    treasure_public_key: bytes
    treasure_hash: bytes


class ClaimTreasurePayload(BaseModel):
    """On-chain claim record."""

    account_public_key: bytes
    treasure_public_key: bytes


class LedgerConfig(BaseModel):
    """Solana connection settings."""

    rpc_url: str = "http://127.0.0.1:8899"
    program_id: Optional[str] = None
    payer_keypair_path: Optional[Path] = None
    timeout_seconds: float = 1.0


class IpfsConfig(BaseModel):
    """IPFS HTTP API settings."""

    api_url: str = "http://127.0.0.1:5001"
    timeout_seconds: float = 10.0


class GeonftConfig(BaseModel):
    """Complete configuration for a GeoNFT home."""

    data_dir: Optional[Path] = None
    round_interval_seconds: float = 1.0
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    ipfs: IpfsConfig = Field(default_factory=IpfsConfig)
