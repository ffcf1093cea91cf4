"""
Configuration loading for a GeoNFT home directory.

    ~/.geonft/
        config.yaml     ledger, IPFS and round settings
        data/           plant, claim and sync records
        logs/           sync engine log
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from . import GEONFT_HOME
from .models import GeonftConfig

logger = logging.getLogger("geonft.config")

CONFIG_FILE = "config.yaml"


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand the home directory, falling back to ``GEONFT_HOME``."""
    return Path(home or GEONFT_HOME).expanduser()


def data_dir(home: Path, config: GeonftConfig) -> Path:
    """Directory holding plant, claim and sync records."""
    if config.data_dir:
        return config.data_dir.expanduser()
    return home / "data"


def load_config(home: Optional[Path] = None) -> GeonftConfig:
    """Load configuration from ``<home>/config.yaml``.

    A missing or invalid file yields the defaults, with a warning for
    the invalid case.
    """
    config_file = resolve_home(home) / CONFIG_FILE
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return GeonftConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s", config_file, exc)
    return GeonftConfig()


def save_config(config: GeonftConfig, home: Optional[Path] = None) -> Path:
    """Write configuration to ``<home>/config.yaml``."""
    home_path = resolve_home(home)
    home_path.mkdir(parents=True, exist_ok=True)
    config_file = home_path / CONFIG_FILE
    data = config.model_dump(mode="json")
    config_file.write_text(
        yaml.dump(data, default_flow_style=False), encoding="utf-8"
    )
    return config_file
