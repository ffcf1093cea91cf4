"""Shared helpers for the CLI command modules."""

from __future__ import annotations

import logging

from rich.console import Console

from .. import GEONFT_HOME
from ..models import StepResult, SyncStatus

console = Console()
logger = logging.getLogger("geonft.cli")

__all__ = ["GEONFT_HOME", "console", "logger", "status_label", "result_label"]


def status_label(status: SyncStatus) -> str:
    """Rich markup for a sync status."""
    return {
        SyncStatus.UNSYNCED: "[dim]unsynced[/]",
        SyncStatus.BLOB_SYNCED: "[yellow]blob synced[/]",
        SyncStatus.PLANT_SYNCED: "[cyan]plant synced[/]",
        SyncStatus.CLAIM_SYNCED: "[bold green]claim synced[/]",
    }[status]


def result_label(result: StepResult) -> str:
    """Rich markup for a step outcome."""
    return {
        StepResult.APPLIED: "[green]applied[/]",
        StepResult.STALE: "[yellow]stale[/]",
        StepResult.FAILED: "[bold red]failed[/]",
    }[result]
