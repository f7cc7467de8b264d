"""Shared utility helpers for subprocess execution, paths, and command formatting."""

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from loguru import logger

log = logger

# Exit code reported for a command killed by its timeout (matches coreutils).
TIMEOUT_CODE = 124
# Exit code reported when the executable cannot be started (matches shells).
NOT_FOUND_CODE = 127


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str
    timed_out: bool = False


class CmdError(RuntimeError):
    def __init__(self, cmd: Sequence[str] | str, result: CmdResult):
        self.cmd = cmd
        self.result = result
        if result.timed_out:
            head = f'Command timed out: {cmd}'
        else:
            head = f'Command failed (code={result.code}): {cmd}'
        super().__init__(f'{head}\n{result.stderr}'.strip())


def shell_join(cmd: Sequence[str]) -> str:
    return ' '.join(shlex.quote(c) for c in cmd)


def run_cmd(
    cmd: Sequence[str],
    *,
    check: bool = True,
    capture: bool = True,
    text: bool = True,
    timeout: Optional[float] = None,
    env: Optional[dict[str, str]] = None,
) -> CmdResult:
    log.opt(depth=1).debug('RUN: {}', shell_join(cmd))
    try:
        p = subprocess.run(
            list(cmd),
            capture_output=capture,
            text=text,
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired as ex:
        res = CmdResult(
            TIMEOUT_CODE,
            _as_text(ex.stdout),
            _as_text(ex.stderr) or f'timed out after {timeout}s',
            timed_out=True,
        )
        log.opt(depth=1).error(
            'Command timed out after {}s cmd={}', timeout, shell_join(cmd)
        )
        if check:
            raise CmdError(list(cmd), res) from ex
        return res
    except OSError as ex:
        res = CmdResult(NOT_FOUND_CODE, '', f'cannot execute {cmd[0]}: {ex}')
        log.opt(depth=1).error(
            'Command could not start cmd={} err={}', shell_join(cmd), ex
        )
        if check:
            raise CmdError(list(cmd), res) from ex
        return res
    res = CmdResult(p.returncode, p.stdout or '', p.stderr or '')
    if check and p.returncode != 0:
        log.opt(depth=1).error(
            'Command failed code={} cmd={} stderr={} stdout={}',
            p.returncode,
            shell_join(cmd),
            res.stderr.strip(),
            res.stdout.strip(),
        )
        raise CmdError(list(cmd), res)
    if p.returncode == 0:
        log.opt(depth=1).debug('Command ok code=0 cmd={}', shell_join(cmd))
    return res


def _as_text(data: bytes | str | None) -> str:
    if data is None:
        return ''
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    return data


def which(cmd: str) -> Optional[str]:
    from shutil import which as _which

    return _which(cmd)


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))
