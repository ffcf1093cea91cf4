"""
Event and status stores -- where plant/claim records and sync progress live.

On disk, under the data directory:

    plant/<treasure_pk>   PlantRequest as JSON, written once
    claim/<treasure_pk>   ClaimRequest as JSON, written once
    sync/<treasure_pk>    blob_synced | plant_synced | claim_synced

A treasure with no sync file is UNSYNCED. Event records are ordered by
file modification time; ties go plant before claim, then by key.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Type, Union

from pydantic import ValidationError

from .errors import PersistenceError, RecordError
from .models import ClaimRequest, EventKind, PlantRequest, SyncStatus, TreasureEvent

logger = logging.getLogger("geonft.store")

_KIND_ORDER = {EventKind.PLANT: 0, EventKind.CLAIM: 1}


def event_sort_key(event: TreasureEvent) -> tuple[int, int, str]:
    """Record time, then plant before claim, then treasure key."""
    return (event.recorded_at, _KIND_ORDER[event.kind], event.treasure_public_key)


def recent_plants(store: EventStore, limit: int = 10) -> list[TreasureEvent]:
    """The ``limit`` most recently recorded plants, newest first."""
    plants = [e for e in store.events_time_sorted() if e.kind == EventKind.PLANT]
    return plants[::-1][:limit]


def _write_atomic(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.parent / f".{target.name}.tmp"
    tmp.write_bytes(data)
    tmp.replace(target)


def _record_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return [
        p for p in directory.iterdir()
        if p.is_file() and not p.name.startswith(".")
    ]


class EventStore(ABC):
    """Append-only plant and claim records keyed by treasure key."""

    @abstractmethod
    def add_plant(self, request: PlantRequest) -> None:
        """Record a plant request. Never overwrites."""

    @abstractmethod
    def add_claim(self, request: ClaimRequest) -> None:
        """Record a claim request. Never overwrites."""

    @abstractmethod
    def has_plant(self, treasure_pk: str) -> bool:
        """Whether a plant record exists for the treasure."""

    @abstractmethod
    def has_claim(self, treasure_pk: str) -> bool:
        """Whether a claim record exists for the treasure."""

    @abstractmethod
    def get_plant(self, treasure_pk: str) -> PlantRequest:
        """Load a plant record.

        Raises:
            RecordError: If the record is missing or unreadable.
        """

    @abstractmethod
    def get_claim(self, treasure_pk: str) -> ClaimRequest:
        """Load a claim record.

        Raises:
            RecordError: If the record is missing or unreadable.
        """

    @abstractmethod
    def events_time_sorted(self) -> list[TreasureEvent]:
        """All plant and claim events, oldest first."""


class StatusStore(ABC):
    """Durable treasure key -> sync status mapping."""

    @abstractmethod
    def all_statuses(self) -> dict[str, SyncStatus]:
        """Snapshot of every recorded status. Absent keys are UNSYNCED."""

    @abstractmethod
    def get_status(self, treasure_pk: str) -> SyncStatus:
        """Status of one treasure."""

    @abstractmethod
    def record_status(self, treasure_pk: str, status: SyncStatus) -> None:
        """Durably record a status.

        Raises:
            PersistenceError: If the write fails or would move backwards.
        """


class FileEventStore(EventStore):
    """Event store backed by one JSON file per record."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.plant_dir = data_dir / "plant"
        self.claim_dir = data_dir / "claim"

    def add_plant(self, request: PlantRequest) -> None:
        self._add(self.plant_dir, request.treasure_public_key, request)

    def add_claim(self, request: ClaimRequest) -> None:
        self._add(self.claim_dir, request.treasure_public_key, request)

    def has_plant(self, treasure_pk: str) -> bool:
        return (self.plant_dir / treasure_pk).is_file()

    def has_claim(self, treasure_pk: str) -> bool:
        return (self.claim_dir / treasure_pk).is_file()

    def get_plant(self, treasure_pk: str) -> PlantRequest:
        return self._read(self.plant_dir / treasure_pk, PlantRequest)

    def get_claim(self, treasure_pk: str) -> ClaimRequest:
        return self._read(self.claim_dir / treasure_pk, ClaimRequest)

    def events_time_sorted(self) -> list[TreasureEvent]:
        events = []
        sources = (
            (EventKind.PLANT, self.plant_dir, PlantRequest),
            (EventKind.CLAIM, self.claim_dir, ClaimRequest),
        )
        for kind, directory, model in sources:
            for path in _record_files(directory):
                try:
                    request = self._read(path, model)
                    recorded_at = path.stat().st_mtime_ns
                except (RecordError, OSError) as exc:
                    logger.error("Skipping unreadable %s record %s: %s", kind.value, path.name, exc)
                    continue
                events.append(TreasureEvent(
                    kind=kind,
                    treasure_public_key=path.name,
                    recorded_at=recorded_at,
                    request=request,
                ))
        events.sort(key=event_sort_key)
        return events

    def _add(self, directory: Path, treasure_pk: str, request: Union[PlantRequest, ClaimRequest]) -> None:
        target = directory / treasure_pk
        if target.exists():
            raise PersistenceError(f"record already exists: {target}")
        try:
            _write_atomic(target, request.model_dump_json().encode("utf-8"))
        except OSError as exc:
            raise PersistenceError(f"failed to write {target}: {exc}") from exc
        logger.info("Recorded %s for %s", directory.name, treasure_pk)

    @staticmethod
    def _read(path: Path, model: Type[Union[PlantRequest, ClaimRequest]]):
        try:
            return model.model_validate_json(path.read_bytes())
        except (OSError, ValidationError) as exc:
            raise RecordError(f"cannot read {path}: {exc}") from exc


class FileStatusStore(StatusStore):
    """Status store backed by one small text file per treasure."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        self.sync_dir = data_dir / "sync"

    def all_statuses(self) -> dict[str, SyncStatus]:
        return {
            path.name: self._read(path)
            for path in _record_files(self.sync_dir)
        }

    def get_status(self, treasure_pk: str) -> SyncStatus:
        path = self.sync_dir / treasure_pk
        if not path.is_file():
            return SyncStatus.UNSYNCED
        return self._read(path)

    def record_status(self, treasure_pk: str, status: SyncStatus) -> None:
        if status == SyncStatus.UNSYNCED:
            raise PersistenceError("unsynced is the absence of a status and is never recorded")
        current = self.get_status(treasure_pk)
        if status < current:
            raise PersistenceError(
                f"refusing to move {treasure_pk} back from {current.value} to {status.value}"
            )
        target = self.sync_dir / treasure_pk
        try:
            _write_atomic(target, status.value.encode("utf-8"))
        except OSError as exc:
            raise PersistenceError(f"failed to write {target}: {exc}") from exc

    @staticmethod
    def _read(path: Path) -> SyncStatus:
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise PersistenceError(f"cannot read {path}: {exc}") from exc
        try:
            status = SyncStatus(value)
        except ValueError as exc:
            raise PersistenceError(f"corrupt status in {path}: {value!r}") from exc
        if status == SyncStatus.UNSYNCED:
            raise PersistenceError(f"corrupt status in {path}: {value!r}")
        return status
