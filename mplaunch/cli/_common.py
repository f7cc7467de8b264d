from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import LauncherConfig, config_path, load_or_default

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None,
        help='Path to config TOML (default: $MPLAUNCH_CONFIG or the user config dir).',
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )


def _cfg_path(p: str | None) -> Path:
    return config_path(p)


def _load_cfg(config: str | None) -> LauncherConfig:
    path = _cfg_path(config)
    cfg = load_or_default(path)
    log.debug('Loaded launcher config from {} (exists={})', path, path.exists())
    return cfg


__all__ = [name for name in globals() if not name.startswith('__')]
