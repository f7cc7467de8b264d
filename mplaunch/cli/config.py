from __future__ import annotations

import sys
from pathlib import Path

import scriptconfig as scfg

from ..config import LauncherConfig, dump_toml, save
from ..status import render_available
from ._common import _BaseCommand, _cfg_path, _load_cfg


class InitCLI(_BaseCommand):
    """Write a launcher config file populated with the built-in defaults."""

    force = scfg.Value(
        False, isflag=True, help='Overwrite an existing config file.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        if path.exists() and not args.force:
            print(f'Config already exists: {path}', file=sys.stderr)
            print('Use --force to overwrite it.', file=sys.stderr)
            return 2
        save(path, LauncherConfig())
        print(f'Wrote config: {path}')
        return 0


class ConfigShowCLI(_BaseCommand):
    """Show the effective launcher config (defaults when no file exists)."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _cfg_path(args.config)
        cfg = _load_cfg(args.config)
        print(f'# Config: {path}{"" if path.exists() else " (not created)"}')
        print(dump_toml(cfg), end='')
        return 0


class ConfigPathCLI(_BaseCommand):
    """Print the launcher config file location."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        print(_cfg_path(args.config))
        return 0


class ConfigListCLI(_BaseCommand):
    """List cloud-init files the launcher can find by name."""

    directory = scfg.Value(
        '', help='Directory to scan (default: paths.cloud_init_dir or cwd).'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        search_dir = Path(args.directory) if args.directory else cfg.cloud_init_dir()
        print(f'Cloud-init files in {search_dir}:')
        print(render_available(search_dir))
        return 0


class ConfigModalCLI(scfg.ModalCLI):
    """Launcher configuration commands."""

    init = InitCLI
    show = ConfigShowCLI
    path = ConfigPathCLI
    list = ConfigListCLI
