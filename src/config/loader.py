"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Field defaults on Settings
#   2. config/ingestion.yaml  - static deployment defaults checked into the repo
#   3. Environment variables - set at deploy time (a .env file only
#      fills fields the YAML leaves unset)
#
# The YAML file is grouped into sections for readability, e.g.
#
#   chunking:
#     chunk_size_tokens: 1000
#
# Section names are ignored when merging; keys map 1:1 onto Settings fields.
# Unknown keys are skipped with a warning so a stale YAML file never blocks
# startup.
# ──────────────────────────────────────────────────────────────────────
"""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml

from src.config.settings import Settings

logger = structlog.get_logger(logger_name=__name__)


def load_config(path: str = "config/ingestion.yaml") -> Settings:
    """Load YAML defaults and merge them under environment-based Settings.

    Args:
        path: Path to the YAML configuration file. A missing file is not an
            error; Settings defaults and the environment are used alone.

    Returns:
        Fully resolved Settings instance.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    flat: dict[str, Any] = {}
    _flatten_sections(yaml_config, flat)

    overrides: dict[str, Any] = {}
    for key, value in flat.items():
        if key not in Settings.model_fields:
            logger.warning("unknown_config_key", key=key, path=str(config_path))
            continue
        # Environment always wins over the checked-in YAML.
        if key.upper() in os.environ:
            continue
        overrides[key] = value

    return Settings(**overrides)


def _flatten_sections(config: dict, out: dict[str, Any]) -> None:
    """Collapse nested YAML sections into a flat key -> value mapping."""
    for key, value in config.items():
        if isinstance(value, dict):
            _flatten_sections(value, out)
        else:
            out[key] = value
