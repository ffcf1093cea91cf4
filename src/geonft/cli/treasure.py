"""Treasure commands: init, plant, claim, recent."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from ._common import GEONFT_HOME, console
from ..config import data_dir, load_config, save_config
from ..errors import GeonftError
from ..intake import accept_claim, accept_plant
from ..models import ClaimRequest, GeonftConfig, PlantRequest
from ..store import FileEventStore, recent_plants


def _event_store(home: str) -> FileEventStore:
    home_path = Path(home).expanduser()
    return FileEventStore(data_dir(home_path, load_config(home_path)))


def _load_request(path: str, model):
    try:
        return model.model_validate_json(Path(path).read_bytes())
    except ValidationError as exc:
        console.print(f"[bold red]Rejected:[/] malformed request: {escape(str(exc))}")
        sys.exit(1)


def register_treasure_commands(main: click.Group) -> None:
    """Register init, plant, claim and recent."""

    @main.command("init")
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    def init(home):
        """Create a GeoNFT home with a default config."""
        home_path = Path(home).expanduser()
        config = load_config(home_path)
        config_file = home_path / "config.yaml"
        if not config_file.exists():
            config = GeonftConfig()
            save_config(config, home_path)

        root = data_dir(home_path, config)
        for sub in ("plant", "claim", "sync"):
            (root / sub).mkdir(parents=True, exist_ok=True)

        console.print(f"\n  [green]GeoNFT home ready:[/] {home_path}")
        console.print(f"  [dim]Config: {config_file}[/]\n")

    @main.command("plant")
    @click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    def plant(request_file, home):
        """Verify and record a plant request (JSON)."""
        request = _load_request(request_file, PlantRequest)
        try:
            stored = accept_plant(_event_store(home), request)
        except GeonftError as exc:
            console.print(f"[bold red]Rejected:[/] {escape(str(exc))}")
            sys.exit(1)
        console.print(f"[green]Planted[/] treasure [cyan]{stored.treasure_public_key}[/]")

    @main.command("claim")
    @click.argument("request_file", type=click.Path(exists=True, dir_okay=False))
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    def claim(request_file, home):
        """Verify and record a claim request (JSON)."""
        request = _load_request(request_file, ClaimRequest)
        try:
            stored = accept_claim(_event_store(home), request)
        except GeonftError as exc:
            console.print(f"[bold red]Rejected:[/] {escape(str(exc))}")
            sys.exit(1)
        console.print("[green]Congrats! Treasure received![/]")
        console.print(f"  [dim]{stored.treasure_public_key}[/]")

    @main.command("recent")
    @click.option("--home", default=GEONFT_HOME, type=click.Path())
    @click.option("--limit", default=10, show_default=True, help="Number of treasures to list.")
    def recent(home, limit):
        """List the most recently planted treasures, newest first."""
        newest = recent_plants(_event_store(home), limit)

        if not newest:
            console.print("\n  [dim]No treasures planted yet.[/]\n")
            return

        table = Table(title=f"{len(newest)} recent treasure(s)")
        table.add_column("Planted", style="dim")
        table.add_column("Treasure", style="cyan")
        table.add_column("Planted by")
        for event in newest:
            planted = datetime.fromtimestamp(event.recorded_at / 1e9).strftime("%Y-%m-%d %H:%M:%S")
            table.add_row(planted, event.treasure_public_key, event.request.account_public_key)
        console.print(table)
