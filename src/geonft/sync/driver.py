"""
Sync driver -- the engine's main loop.

    plan -> execute -> sleep -> plan -> ...

Nothing is retried here. An error that escapes a round (an unreachable
ledger, a failed status write) ends the loop and the process. Every
round plans from the persisted status store, so a restart picks up
exactly where the last committed step left off.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

from ..config import data_dir, resolve_home
from ..models import GeonftConfig, Plan, RoundReport
from ..store import EventStore, FileEventStore, FileStatusStore, StatusStore
from .content import ContentStore, create_content_store
from .executor import Executor
from .ledger import Ledger, create_ledger
from .planner import make_plan

logger = logging.getLogger("geonft.sync.driver")

PID_FILE = "geonft-sync.pid"
LOG_DIR = "logs"


class SyncDriver:
    """Plans and executes sync rounds until something fatal happens.

    Args:
        events: Source of plant and claim records.
        statuses: Durable sync status per treasure.
        ledger: Ledger the records are published to.
        content: Store the treasure images are uploaded to.
        interval: Seconds to wait between rounds.
        sleep: Sleep function, swappable in tests.
    """

    def __init__(
        self,
        events: EventStore,
        statuses: StatusStore,
        ledger: Ledger,
        content: ContentStore,
        interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.events = events
        self.statuses = statuses
        self.interval = interval
        self._sleep = sleep
        self.executor = Executor(events, statuses, ledger, content)

    @classmethod
    def from_config(cls, home: Path, config: GeonftConfig) -> "SyncDriver":
        """Wire a driver from a home directory and its configuration."""
        root = data_dir(home, config)
        return cls(
            FileEventStore(root),
            FileStatusStore(root),
            create_ledger(config.ledger),
            create_content_store(config.ipfs),
            interval=config.round_interval_seconds,
        )

    def plan(self) -> Plan:
        logger.info("Making new plan")
        return make_plan(self.statuses.all_statuses(), self.events.events_time_sorted())

    def run_round(self) -> RoundReport:
        """Plan from the current stores and execute the result."""
        return self.executor.execute(self.plan())

    def run_forever(self, max_rounds: Optional[int] = None) -> int:
        """Run rounds back to back, sleeping in between.

        Args:
            max_rounds: Stop after this many rounds. None runs forever.

        Returns:
            Number of rounds completed.
        """
        rounds = 0
        while max_rounds is None or rounds < max_rounds:
            self.run_round()
            rounds += 1
            if max_rounds is not None and rounds >= max_rounds:
                break
            logger.info("Sleeping for %.1f s", self.interval)
            self._sleep(self.interval)
        return rounds


def setup_logging(home: Path) -> Path:
    """Send engine logs to ``<home>/logs/sync.log`` and the console."""
    log_dir = home / LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "sync.log"

    formatter = logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s")
    root = logging.getLogger()
    for handler in (logging.FileHandler(log_file), logging.StreamHandler()):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.INFO)
    return log_file


def write_pid(home: Path) -> None:
    pid_path = home / PID_FILE
    pid_path.parent.mkdir(parents=True, exist_ok=True)
    pid_path.write_text(str(os.getpid()), encoding="utf-8")


def remove_pid(home: Path) -> None:
    pid_path = home / PID_FILE
    if pid_path.exists():
        pid_path.unlink()


def read_pid(home: Optional[Path] = None) -> Optional[int]:
    """Read the engine PID, clearing a stale PID file.

    Returns:
        PID as int, or None if the engine is not running.
    """
    pid_path = resolve_home(home) / PID_FILE
    if not pid_path.exists():
        return None
    try:
        pid = int(pid_path.read_text(encoding="utf-8").strip())
        os.kill(pid, 0)
    except PermissionError:
        # Alive, owned by another user.
        return pid
    except (ValueError, ProcessLookupError):
        pid_path.unlink(missing_ok=True)
        return None
    return pid


def is_running(home: Optional[Path] = None) -> bool:
    return read_pid(home) is not None
