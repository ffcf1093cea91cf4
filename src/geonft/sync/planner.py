"""
Sync planner -- turns recorded events into an ordered list of steps.

Planning is pure: it looks only at the status snapshot and the
time-sorted events it is given. The snapshot is a lower bound. A claim
step may be planned for a treasure whose plant is not yet on chain,
because the plant steps for that treasure come earlier in the same plan
and the executor advances its status before reaching the claim.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..models import EventKind, Plan, PlanStep, StepKind, SyncStatus, TreasureEvent

logger = logging.getLogger("geonft.sync.planner")


def steps_for_event(kind: EventKind, status: SyncStatus) -> list[StepKind]:
    """Steps needed to publish one event given its treasure's status."""
    if kind == EventKind.PLANT:
        if status == SyncStatus.UNSYNCED:
            return [StepKind.UPLOAD_BLOB_TO_IPFS, StepKind.UPLOAD_PLANT_TO_SOLANA]
        if status == SyncStatus.BLOB_SYNCED:
            return [StepKind.UPLOAD_PLANT_TO_SOLANA]
        return []
    if status < SyncStatus.CLAIM_SYNCED:
        return [StepKind.UPLOAD_CLAIM_TO_SOLANA]
    return []


def make_plan(
    statuses: Mapping[str, SyncStatus],
    events: Iterable[TreasureEvent],
) -> Plan:
    """Build the plan for one round.

    Args:
        statuses: Status snapshot; missing keys are UNSYNCED.
        events: Plant and claim events, oldest first.

    Returns:
        Plan holding a copy of the snapshot and the ordered steps.
    """
    events = list(events)
    planted = {e.treasure_public_key for e in events if e.kind == EventKind.PLANT}

    steps: list[PlanStep] = []
    for event in events:
        pubkey = event.treasure_public_key
        status = statuses.get(pubkey, SyncStatus.UNSYNCED)

        if (
            event.kind == EventKind.CLAIM
            and pubkey not in planted
            and status < SyncStatus.PLANT_SYNCED
        ):
            logger.warning("Claim for %s has no plant record, not planning it", pubkey)
            continue

        for kind in steps_for_event(event.kind, status):
            steps.append(PlanStep(treasure_public_key=pubkey, kind=kind))

    logger.info("Planned %d step(s) from %d event(s)", len(steps), len(events))
    return Plan(statuses=dict(statuses), steps=steps)
