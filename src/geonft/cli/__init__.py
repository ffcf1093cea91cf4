"""
GeoNFT CLI.

Each command group lives in its own module and is attached to the main
Click group through a register function.

Entry point: geonft.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="geonft")
def main():
    """GeoNFT — plant treasures, claim them, sync them to the chain."""


from .treasure import register_treasure_commands
from .sync_cmd import register_sync_commands

register_treasure_commands(main)
register_sync_commands(main)
