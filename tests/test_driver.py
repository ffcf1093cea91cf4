"""Tests for the sync driver loop."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from geonft import crypto
from geonft.errors import ExternalServiceError
from geonft.intake import accept_claim, accept_plant
from geonft.models import GeonftConfig, SyncStatus
from geonft.store import FileEventStore, FileStatusStore
from geonft.sync.content import IpfsContentStore
from geonft.sync.driver import (
    PID_FILE,
    SyncDriver,
    is_running,
    read_pid,
    remove_pid,
    write_pid,
)
from geonft.sync.ledger import SolanaLedger

from conftest import IMAGE, FakeLedger, set_record_time


@pytest.fixture
def events(data_dir):
    return FileEventStore(data_dir)


@pytest.fixture
def statuses(data_dir):
    return FileStatusStore(data_dir)


class TestSyncDriver:
    """Tests for plan/execute/sleep rounds."""

    def test_rounds_sleep_between(self, events, statuses, ledger, content):
        sleeps = []
        driver = SyncDriver(events, statuses, ledger, content, interval=2.5, sleep=sleeps.append)
        assert driver.run_forever(max_rounds=3) == 3
        assert sleeps == [2.5, 2.5]
        assert ledger.connects == 3

    def test_statuses_never_regress_across_rounds(
        self, events, statuses, ledger, content, account_key, claimer_key
    ):
        treasure_keys = [Ed25519PrivateKey.generate() for _ in range(3)]
        driver = SyncDriver(events, statuses, ledger, content, sleep=lambda _: None)
        history: dict[str, list[SyncStatus]] = {}

        for i, tk in enumerate(treasure_keys):
            stored = accept_plant(events, crypto.sign_plant_request(account_key, tk, IMAGE))
            set_record_time(events.plant_dir / stored.treasure_public_key, (i + 1) * 1_000)
            if i == 1:
                claimed = accept_claim(events, crypto.sign_claim_request(claimer_key, treasure_keys[0]))
                set_record_time(events.claim_dir / claimed.treasure_public_key, 1_500)

            driver.run_round()
            for pk, status in statuses.all_statuses().items():
                history.setdefault(pk, []).append(status)

        for seen in history.values():
            assert seen == sorted(seen)
        assert set(statuses.all_statuses().values()) <= {SyncStatus.PLANT_SYNCED, SyncStatus.CLAIM_SYNCED}

    def test_connection_failure_escapes_loop(self, events, statuses, content, account_key, treasure_key):
        accept_plant(events, crypto.sign_plant_request(account_key, treasure_key, IMAGE))
        driver = SyncDriver(
            events, statuses, FakeLedger(fail_connect=True), content, sleep=lambda _: None
        )
        with pytest.raises(ExternalServiceError):
            driver.run_forever()
        assert statuses.all_statuses() == {}

    def test_restart_resumes_from_persisted_status(
        self, events, statuses, content, account_key, treasure_key
    ):
        stored = accept_plant(events, crypto.sign_plant_request(account_key, treasure_key, IMAGE))
        raw = crypto.public_key_bytes(treasure_key.public_key())

        first = SyncDriver(events, statuses, FakeLedger(fail_on={raw}), content)
        first.run_round()
        assert statuses.get_status(stored.treasure_public_key) == SyncStatus.BLOB_SYNCED

        ledger = FakeLedger()
        second = SyncDriver(FileEventStore(events.data_dir), FileStatusStore(statuses.data_dir), ledger, content)
        plan = second.plan()
        assert [s.kind.value for s in plan.steps] == ["upload_plant_to_solana"]
        second.run_round()

        assert statuses.get_status(stored.treasure_public_key) == SyncStatus.PLANT_SYNCED
        assert len(content.blobs) == 1
        assert len(ledger.plants) == 1

    def test_from_config(self, geonft_home):
        config = GeonftConfig(round_interval_seconds=5)
        driver = SyncDriver.from_config(geonft_home, config)

        assert driver.interval == 5
        assert driver.events.data_dir == geonft_home / "data"
        assert isinstance(driver.executor.ledger, SolanaLedger)
        assert isinstance(driver.executor.content, IpfsContentStore)


class TestPidFile:
    """Tests for engine PID tracking."""

    def test_not_running(self, geonft_home):
        assert read_pid(geonft_home) is None
        assert not is_running(geonft_home)

    def test_write_and_remove(self, geonft_home):
        write_pid(geonft_home)
        assert read_pid(geonft_home) == os.getpid()
        remove_pid(geonft_home)
        assert not (geonft_home / PID_FILE).exists()

    def test_garbage_pid_cleared(self, geonft_home):
        (geonft_home / PID_FILE).write_text("not-a-pid")
        assert read_pid(geonft_home) is None
        assert not (geonft_home / PID_FILE).exists()

    def test_dead_pid_cleared(self, geonft_home):
        (geonft_home / PID_FILE).write_text("4242")
        with patch("geonft.sync.driver.os.kill", side_effect=ProcessLookupError):
            assert read_pid(geonft_home) is None
        assert not (geonft_home / PID_FILE).exists()

    def test_foreign_owned_pid_kept(self, geonft_home):
        (geonft_home / PID_FILE).write_text("4242")
        with patch("geonft.sync.driver.os.kill", side_effect=PermissionError):
            assert read_pid(geonft_home) == 4242
            assert is_running(geonft_home)
        assert (geonft_home / PID_FILE).exists()
