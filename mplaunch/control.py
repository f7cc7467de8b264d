"""Multipass control-plane adapter: launch, wait-for-init, mount, and info."""

from __future__ import annotations

import json
import re
from pathlib import Path

from loguru import logger

from .config import LauncherConfig
from .errors import ControlPlaneError
from .runtime import DEFAULT_MULTIPASS_BIN, multipass_cmd
from .util import CmdError, run_cmd, which

log = logger

# Extra time granted to the multipass client on top of its own --timeout.
LAUNCH_GRACE_S = 60

_IPV4_LINE_RE = re.compile(r'^\s*IPv4:\s*(\S+)', re.MULTILINE)
_NOT_FOUND_MARKERS = ('does not exist', 'not found', 'no such instance')


def _mp(cfg: LauncherConfig, *args: str) -> list[str]:
    return multipass_cmd(*args, binary=cfg.paths.multipass_bin)


def require_multipass(cfg: LauncherConfig) -> str:
    """Return the multipass executable path, or fail if it is not installed."""
    binary = cfg.paths.multipass_bin or DEFAULT_MULTIPASS_BIN
    found = which(binary)
    if found is None:
        raise ControlPlaneError(
            'multipass',
            f'executable not found: {binary} (is multipass installed and on PATH?)',
        )
    log.debug('Using multipass executable {}', found)
    return found


def launch_vm(
    cfg: LauncherConfig,
    *,
    name: str,
    image_version: str,
    cpus: int,
    memory: str,
    disk: str,
    cloud_init: Path,
) -> None:
    timeout_s = int(cfg.timeouts.launch_s)
    cmd = _mp(
        cfg,
        'launch',
        image_version,
        '--name',
        name,
        '--cpus',
        str(cpus),
        '--memory',
        memory,
        '--disk',
        disk,
        '--cloud-init',
        str(cloud_init),
        '--timeout',
        str(timeout_s),
    )
    try:
        # Output is streamed so slow image downloads show progress.
        run_cmd(cmd, check=True, capture=False, timeout=timeout_s + LAUNCH_GRACE_S)
    except CmdError as ex:
        raise ControlPlaneError.from_cmd_error('launch', ex) from ex


def wait_for_cloud_init(cfg: LauncherConfig, name: str) -> None:
    """Block until cloud-init in the guest reports a terminal status."""
    cmd = _mp(cfg, 'exec', name, '--', 'cloud-init', 'status', '--wait')
    try:
        run_cmd(cmd, check=True, capture=True, timeout=cfg.timeouts.init_wait_s)
    except CmdError as ex:
        raise ControlPlaneError.from_cmd_error('wait-for-init', ex) from ex


def mount_dir(
    cfg: LauncherConfig, *, host_path: Path, name: str, guest_path: str
) -> None:
    cmd = _mp(cfg, 'mount', str(host_path), f'{name}:{guest_path}')
    try:
        run_cmd(cmd, check=True, capture=True, timeout=cfg.timeouts.query_s)
    except CmdError as ex:
        raise ControlPlaneError.from_cmd_error('mount', ex) from ex


def vm_info(cfg: LauncherConfig, name: str) -> str:
    """Return the raw ``multipass info`` output for one instance."""
    cmd = _mp(cfg, 'info', name, '--format', 'json')
    try:
        res = run_cmd(cmd, check=True, capture=True, timeout=cfg.timeouts.query_s)
    except CmdError as ex:
        raise ControlPlaneError.from_cmd_error('info', ex) from ex
    return res.stdout


def vm_exists(cfg: LauncherConfig, name: str) -> bool:
    cmd = _mp(cfg, 'info', name, '--format', 'json')
    res = run_cmd(cmd, check=False, capture=True, timeout=cfg.timeouts.query_s)
    if res.code == 0:
        return True
    text = f'{res.stderr}\n{res.stdout}'.lower()
    if res.timed_out or not any(m in text for m in _NOT_FOUND_MARKERS):
        raise ControlPlaneError(
            'info',
            (res.stderr or res.stdout).strip() or f'exit code {res.code}',
        )
    return False


def parse_info_ipv4(text: str, name: str | None = None) -> str:
    """Extract the first IPv4 address from ``multipass info`` output.

    Accepts either the JSON format (``{"info": {name: {"ipv4": [...]}}}``) or
    the human-readable table (``IPv4:  10.0.0.5``). Returns an empty string
    when no address has been assigned yet.
    """
    text = text or ''
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if isinstance(data, dict):
        info = data.get('info') or {}
        entry = info.get(name) if name else None
        if entry is None and info:
            entry = next(iter(info.values()))
        addrs = (entry or {}).get('ipv4') or []
        return str(addrs[0]) if addrs else ''
    match = _IPV4_LINE_RE.search(text)
    if match is None:
        return ''
    addr = match.group(1)
    return '' if addr in {'--', 'N/A'} else addr
