"""
Sync executor -- carries out a plan one step at a time.

Each round connects to the ledger and content store once. A connection
failure ends the round before any step runs. After that, every step is
checked against the live status map, seeded from both the plan and the
status store: a step whose treasure has already
moved on is stale and skipped; a step whose action fails is logged and
left for a later round. Status writes are never swallowed.
"""

from __future__ import annotations

import logging
from typing import Optional

from .. import crypto
from ..errors import DecodeError, ExternalServiceError, RecordError
from ..models import (
    ClaimTreasurePayload,
    Plan,
    PlantTreasurePayload,
    PreconditionMismatch,
    RoundReport,
    StepKind,
    StepOutcome,
    StepResult,
    SyncStatus,
)
from ..store import EventStore, StatusStore
from .content import ContentStore
from .ledger import Ledger

logger = logging.getLogger("geonft.sync.executor")

REQUIRED_STATUS = {
    StepKind.UPLOAD_BLOB_TO_IPFS: SyncStatus.UNSYNCED,
    StepKind.UPLOAD_PLANT_TO_SOLANA: SyncStatus.BLOB_SYNCED,
    StepKind.UPLOAD_CLAIM_TO_SOLANA: SyncStatus.PLANT_SYNCED,
}

RESULTING_STATUS = {
    StepKind.UPLOAD_BLOB_TO_IPFS: SyncStatus.BLOB_SYNCED,
    StepKind.UPLOAD_PLANT_TO_SOLANA: SyncStatus.PLANT_SYNCED,
    StepKind.UPLOAD_CLAIM_TO_SOLANA: SyncStatus.CLAIM_SYNCED,
}


def check_precondition(step: StepKind, status: SyncStatus) -> Optional[PreconditionMismatch]:
    """Return a mismatch if ``step`` cannot run at ``status``, else None."""
    expected = REQUIRED_STATUS[step]
    if status != expected:
        return PreconditionMismatch(expected=expected, actual=status)
    return None


class Executor:
    """Runs plans against the ledger, the content store and the status store."""

    def __init__(
        self,
        events: EventStore,
        statuses: StatusStore,
        ledger: Ledger,
        content: ContentStore,
    ):
        self.events = events
        self.statuses = statuses
        self.ledger = ledger
        self.content = content

    def execute(self, plan: Plan) -> RoundReport:
        """Execute every step of ``plan`` in order.

        Raises:
            ExternalServiceError: If the ledger or content store cannot
                be reached at the start of the round.
            PersistenceError: If a status write fails.
        """
        logger.info("Executing plan with %d step(s)", len(plan.steps))

        self.ledger.connect()
        self.content.connect()

        live = self._live_statuses(plan)
        report = RoundReport()

        for step in plan.steps:
            pubkey = step.treasure_public_key
            before = live.get(pubkey, SyncStatus.UNSYNCED)

            mismatch = check_precondition(step.kind, before)
            if mismatch is not None:
                logger.warning(
                    "Skipping stale step %s for %s: expected %s, found %s",
                    step.kind.value, pubkey, mismatch.expected.value, mismatch.actual.value,
                )
                report.outcomes.append(StepOutcome(
                    treasure_public_key=pubkey,
                    step=step.kind,
                    result=StepResult.STALE,
                    status_before=before,
                    status_after=before,
                    detail=f"expected {mismatch.expected.value}",
                ))
                continue

            logger.info("Executing step %s for %s", step.kind.value, pubkey)
            try:
                detail = self._perform(pubkey, step.kind)
            except (ExternalServiceError, DecodeError, RecordError) as exc:
                logger.error("Step %s for %s failed: %s", step.kind.value, pubkey, exc)
                report.outcomes.append(StepOutcome(
                    treasure_public_key=pubkey,
                    step=step.kind,
                    result=StepResult.FAILED,
                    status_before=before,
                    status_after=before,
                    detail=str(exc),
                ))
                continue

            after = RESULTING_STATUS[step.kind]
            self.statuses.record_status(pubkey, after)
            live[pubkey] = after
            report.outcomes.append(StepOutcome(
                treasure_public_key=pubkey,
                step=step.kind,
                result=StepResult.APPLIED,
                status_before=before,
                status_after=after,
                detail=detail,
            ))

        report.statuses = live
        logger.info(
            "Round finished: %d applied, %d stale, %d failed",
            report.applied, report.stale, report.failed,
        )
        return report

    def _live_statuses(self, plan: Plan) -> dict[str, SyncStatus]:
        """Merge the plan's snapshot with the persisted statuses.

        A plan can be older than the status store (a replayed plan, or
        one made before another round committed). The persisted stage
        wins whenever it is further along.
        """
        live = dict(plan.statuses)
        for pubkey, status in self.statuses.all_statuses().items():
            live[pubkey] = max(live.get(pubkey, SyncStatus.UNSYNCED), status)
        return live

    def _perform(self, pubkey: str, step: StepKind) -> str:
        if step == StepKind.UPLOAD_BLOB_TO_IPFS:
            plant = self.events.get_plant(pubkey)
            return self.content.upload(crypto.decode_image(plant.image))

        if step == StepKind.UPLOAD_PLANT_TO_SOLANA:
            plant = self.events.get_plant(pubkey)
            payload = PlantTreasurePayload(
                account_public_key=_raw_key(plant.account_public_key),
                treasure_public_key=_raw_key(plant.treasure_public_key),
                treasure_hash=crypto.digest(crypto.decode_image(plant.image)),
            )
            return self.ledger.submit_plant(payload)

        claim = self.events.get_claim(pubkey)
        payload = ClaimTreasurePayload(
            account_public_key=_raw_key(claim.account_public_key),
            treasure_public_key=_raw_key(claim.treasure_public_key),
        )
        return self.ledger.submit_claim(payload)


def _raw_key(encoded: str) -> bytes:
    return crypto.public_key_bytes(crypto.decode_key(encoded))
