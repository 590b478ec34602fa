from __future__ import annotations

import sys
from pathlib import Path

import scriptconfig as scfg
import ubelt as ub

from ..config import LOCAL_CONFIG_NAME, DevbootConfig, dump_toml, save, user_config_path
from ._common import _BaseCommand, _cfg_path, _load_cfg


class InitCLI(_BaseCommand):
    """Write a config file populated with the built-in defaults."""

    user = scfg.Value(
        False,
        isflag=True,
        help='Write the per-user config instead of ./.devboot.toml.',
    )
    force = scfg.Value(
        False,
        isflag=True,
        help='Overwrite an existing config file.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        if args.config:
            path = Path(args.config).expanduser().resolve()
        elif args.user:
            path = user_config_path()
        else:
            path = Path(LOCAL_CONFIG_NAME).resolve()
        if path.exists() and not args.force:
            print(f'Config already exists: {path}', file=sys.stderr)
            print('Use --force to overwrite it.', file=sys.stderr)
            return 2
        path.parent.mkdir(parents=True, exist_ok=True)
        save(path, DevbootConfig())
        print(f'Wrote config: {path}')
        return 0


class ConfigShowCLI(_BaseCommand):
    """Show the resolved config as TOML."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        cfg = _load_cfg(args.config)
        print(f'# Config: {path or "(built-in defaults)"}')
        text = dump_toml(cfg)
        if sys.stdout.isatty():
            text = ub.highlight_code(text, lexer_name='toml')
        print(text, end='' if text.endswith('\n') else '\n')
        return 0


class ConfigModalCLI(scfg.ModalCLI):
    """Config file management commands."""

    init = InitCLI
    show = ConfigShowCLI
