from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import DevbootConfig, load_config, resolve_config_path

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None,
        help='Path to config TOML (default: ./.devboot.toml, then the user config).',
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )


def _cfg_path(p: str | None) -> Path | None:
    return resolve_config_path(p)


def _load_cfg(config_path: str | None) -> DevbootConfig:
    cfg = load_config(config_path)
    path = _cfg_path(config_path)
    log.debug('Loaded config from {}', path or '(built-in defaults)')
    return cfg


__all__ = [name for name in globals() if not name.startswith('__')]
