"""Sync commands: plan, status, run."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from ._common import GEONFT_HOME, console, logger, result_label, status_label
from ..config import data_dir, load_config
from ..errors import GeonftError
from ..models import SyncStatus
from ..store import FileEventStore, FileStatusStore
from ..sync.planner import make_plan


def _stores(home_path: Path) -> tuple[FileEventStore, FileStatusStore]:
    root = data_dir(home_path, load_config(home_path))
    return FileEventStore(root), FileStatusStore(root)


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Publish recorded treasures to IPFS and Solana."""

    @sync.command("plan")
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    def sync_plan(home):
        """Show the steps the next round would run."""
        events, statuses = _stores(Path(home).expanduser())
        plan = make_plan(statuses.all_statuses(), events.events_time_sorted())

        if not plan.steps:
            console.print("\n  [green]Everything is synced.[/]\n")
            return

        table = Table(title=f"Next round: {len(plan.steps)} step(s)")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Treasure", style="cyan")
        table.add_column("Step")
        table.add_column("Status now")
        for i, step in enumerate(plan.steps, 1):
            status = plan.statuses.get(step.treasure_public_key, SyncStatus.UNSYNCED)
            table.add_row(str(i), step.treasure_public_key, step.kind.value, status_label(status))
        console.print(table)

    @sync.command("status")
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    def sync_status(home):
        """Show the sync status of every recorded treasure."""
        from ..sync.driver import read_pid

        home_path = Path(home).expanduser()
        events, statuses = _stores(home_path)
        snapshot = statuses.all_statuses()
        treasures = sorted({e.treasure_public_key for e in events.events_time_sorted()} | set(snapshot))

        pid = read_pid(home_path)
        if pid:
            console.print(f"\n  Sync engine [green]running[/] (PID {pid})")
        else:
            console.print("\n  Sync engine [dim]not running[/]")

        table = Table(title=f"{len(treasures)} treasure(s)")
        table.add_column("Treasure", style="cyan")
        table.add_column("Status")
        for pubkey in treasures:
            table.add_row(pubkey, status_label(snapshot.get(pubkey, SyncStatus.UNSYNCED)))
        console.print(table)

    @sync.command("run")
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    @click.option("--once", is_flag=True, help="Run a single round and exit.")
    def sync_run(home, once):
        """Run the sync engine (plan, execute, sleep, repeat)."""
        from ..sync.driver import SyncDriver, is_running, remove_pid, setup_logging, write_pid

        home_path = Path(home).expanduser()
        if is_running(home_path):
            console.print("[yellow]Sync engine is already running.[/]")
            sys.exit(0)

        setup_logging(home_path)
        driver = SyncDriver.from_config(home_path, load_config(home_path))
        write_pid(home_path)
        try:
            if once:
                report = driver.run_round()
                table = Table(title="Round report")
                table.add_column("Treasure", style="cyan")
                table.add_column("Step")
                table.add_column("Result")
                table.add_column("Status")
                for o in report.outcomes:
                    table.add_row(
                        o.treasure_public_key, o.step.value,
                        result_label(o.result), status_label(o.status_after),
                    )
                console.print(table)
            else:
                driver.run_forever()
        except GeonftError as exc:
            logger.error("Sync engine stopped: %s", exc)
            console.print(f"[bold red]Sync engine stopped:[/] {escape(str(exc))}")
            sys.exit(1)
        finally:
            remove_pid(home_path)
