"""Tests for the sync planner."""

from __future__ import annotations

import pytest

from geonft.models import (
    ClaimRequest,
    EventKind,
    PlantRequest,
    StepKind,
    SyncStatus,
    TreasureEvent,
)
from geonft.sync.planner import make_plan, steps_for_event

BLOB = StepKind.UPLOAD_BLOB_TO_IPFS
PLANT = StepKind.UPLOAD_PLANT_TO_SOLANA
CLAIM = StepKind.UPLOAD_CLAIM_TO_SOLANA


def plant_event(pk: str, at: int) -> TreasureEvent:
    return TreasureEvent(
        kind=EventKind.PLANT,
        treasure_public_key=pk,
        recorded_at=at,
        request=PlantRequest(
            account_public_key="acct",
            treasure_public_key=pk,
            image="aW1n",
            account_signature="sig",
            treasure_signature="sig",
        ),
    )


def claim_event(pk: str, at: int) -> TreasureEvent:
    return TreasureEvent(
        kind=EventKind.CLAIM,
        treasure_public_key=pk,
        recorded_at=at,
        request=ClaimRequest(
            account_public_key="acct",
            treasure_public_key=pk,
            account_signature="sig",
            treasure_signature="sig",
        ),
    )


def kinds(plan):
    return [(s.treasure_public_key, s.kind) for s in plan.steps]


class TestStepsForEvent:
    """The per-event decision table."""

    @pytest.mark.parametrize("status,expected", [
        (SyncStatus.UNSYNCED, [BLOB, PLANT]),
        (SyncStatus.BLOB_SYNCED, [PLANT]),
        (SyncStatus.PLANT_SYNCED, []),
        (SyncStatus.CLAIM_SYNCED, []),
    ])
    def test_plant(self, status, expected):
        assert steps_for_event(EventKind.PLANT, status) == expected

    @pytest.mark.parametrize("status,expected", [
        (SyncStatus.UNSYNCED, [CLAIM]),
        (SyncStatus.BLOB_SYNCED, [CLAIM]),
        (SyncStatus.PLANT_SYNCED, [CLAIM]),
        (SyncStatus.CLAIM_SYNCED, []),
    ])
    def test_claim(self, status, expected):
        assert steps_for_event(EventKind.CLAIM, status) == expected


class TestMakePlan:
    """Tests for whole-plan construction."""

    def test_single_unsynced_plant(self):
        plan = make_plan({}, [plant_event("t1", 1)])
        assert kinds(plan) == [("t1", BLOB), ("t1", PLANT)]

    def test_plant_then_claim(self):
        plan = make_plan({}, [plant_event("t1", 1), claim_event("t1", 2)])
        assert kinds(plan) == [("t1", BLOB), ("t1", PLANT), ("t1", CLAIM)]

    def test_fully_synced_is_empty(self):
        plan = make_plan(
            {"t1": SyncStatus.CLAIM_SYNCED},
            [plant_event("t1", 1), claim_event("t1", 2)],
        )
        assert plan.steps == []

    def test_resumes_from_blob_synced(self):
        plan = make_plan(
            {"t1": SyncStatus.BLOB_SYNCED},
            [plant_event("t1", 1), claim_event("t1", 2)],
        )
        assert kinds(plan) == [("t1", PLANT), ("t1", CLAIM)]

    def test_order_follows_events(self):
        events = [plant_event("t2", 1), plant_event("t1", 2), claim_event("t2", 3)]
        plan = make_plan({}, events)
        assert kinds(plan) == [
            ("t2", BLOB), ("t2", PLANT),
            ("t1", BLOB), ("t1", PLANT),
            ("t2", CLAIM),
        ]

    def test_claim_without_plant_not_planned(self):
        plan = make_plan({}, [claim_event("ghost", 1)])
        assert plan.steps == []

    def test_claim_planned_when_plant_already_synced(self):
        plan = make_plan({"t1": SyncStatus.PLANT_SYNCED}, [claim_event("t1", 1)])
        assert kinds(plan) == [("t1", CLAIM)]

    def test_snapshot_copied_into_plan(self):
        statuses = {"t1": SyncStatus.BLOB_SYNCED}
        plan = make_plan(statuses, [plant_event("t1", 1)])
        assert plan.statuses == statuses
        statuses["t1"] = SyncStatus.CLAIM_SYNCED
        assert plan.statuses["t1"] == SyncStatus.BLOB_SYNCED

    def test_deterministic(self):
        events = [plant_event(f"t{i}", i) for i in range(5)] + [claim_event("t3", 9)]
        statuses = {"t0": SyncStatus.BLOB_SYNCED, "t4": SyncStatus.PLANT_SYNCED}
        first = make_plan(statuses, events)
        second = make_plan(dict(statuses), list(events))
        assert first == second
