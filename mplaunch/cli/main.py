"""Top-level CLI wiring, argv routing, error reporting, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger

from ..config import LauncherConfig
from ..errors import ConfigNotFound, LauncherError
from ..provision import run_provisioning
from ..status import render_summary, usage_text
from ._common import _load_cfg, log
from .config import ConfigModalCLI

PROG = 'mplaunch'


class LauncherModalCLI(scfg.ModalCLI):
    """Auxiliary mplaunch commands (the launcher itself takes bare arguments)."""

    config = ConfigModalCLI


def main(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    if _is_modal(argv):
        _setup_logging(_count_verbose(argv), 1)
        try:
            rc = LauncherModalCLI.main(argv=argv, _noexit=True)
        except Exception as ex:
            print(f'ERROR: {ex}', file=sys.stderr)
            log.error('Unhandled mplaunch error: {}', ex)
            sys.exit(2)
        sys.exit(rc if isinstance(rc, int) else 0)

    explicit_verbose = _count_verbose(argv)
    argv = [a for a in argv if not _is_verbose_flag(a)]
    _setup_logging(explicit_verbose, 1)
    try:
        cfg = _load_cfg(None)
    except Exception as ex:
        print(f'ERROR: could not load config: {ex}', file=sys.stderr)
        sys.exit(1)
    _setup_logging(explicit_verbose, cfg.verbosity)

    if '-h' in argv or '--help' in argv:
        print(usage_text(PROG, cfg), end='')
        sys.exit(0)

    try:
        summary = run_provisioning(argv, cfg)
    except LauncherError as ex:
        _report_error(ex, cfg)
        sys.exit(ex.exit_code)
    except KeyboardInterrupt:
        print(
            'Interrupted; the VM may be left partially provisioned.',
            file=sys.stderr,
        )
        sys.exit(130)
    except Exception as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        log.error('Unhandled mplaunch error: {}', ex)
        sys.exit(2)

    print(render_summary(summary))
    sys.exit(0)


def _report_error(ex: LauncherError, cfg: LauncherConfig) -> None:
    print(f'Error: {ex}', file=sys.stderr)
    log.debug('Launcher error kind={}', ex.kind.value)
    if isinstance(ex, ConfigNotFound):
        print(f'Available in {cfg.cloud_init_dir()}:', file=sys.stderr)
        if ex.available:
            for name in ex.available:
                print(f'  {name}', file=sys.stderr)
        else:
            print('  (none)', file=sys.stderr)
    if ex.show_usage:
        print(usage_text(PROG, cfg), end='', file=sys.stderr)


def _is_modal(argv: list[str]) -> bool:
    """True when argv names an auxiliary subcommand rather than a VM."""
    if len(argv) < 2 or argv[0] != 'config':
        return False
    return argv[1] in {'init', 'show', 'path', 'list', '-h', '--help'}


def _setup_logging(args_verbose: int, cfg_verbosity: int) -> None:
    logger.remove()
    effective_verbosity = args_verbose if args_verbose > 0 else cfg_verbosity
    level = 'WARNING'
    if effective_verbosity == 1:
        level = 'INFO'
    elif effective_verbosity >= 2:
        level = 'DEBUG'
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    logger.add(
        sys.stderr,
        level=level,
        colorize=colorize,
        format='<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>',
    )
    log.debug(
        'Logging configured at {} (effective_verbosity={}, colorize={})',
        level,
        effective_verbosity,
        colorize,
    )


def _is_verbose_flag(item: str) -> bool:
    if item == '--verbose':
        return True
    if item.startswith('-') and not item.startswith('--'):
        short = item[1:]
        return bool(short) and set(short) <= {'v'}
    return False


def _count_verbose(argv: list[str]) -> int:
    count = 0
    for item in argv:
        if item == '--verbose':
            count += 1
        elif _is_verbose_flag(item):
            count += len(item) - 1
    return count
