"""Rendering for the final summary block and the launcher usage text."""

from __future__ import annotations

import textwrap
from pathlib import Path

from .config import LauncherConfig
from .request import available_cloud_init_files
from .results import Summary

RULE = '=' * 50


def render_summary(summary: Summary) -> str:
    lines = [
        RULE,
        f'VM READY: {summary.name}',
        f'  Ubuntu: {summary.image_version}',
        f'  IP: {summary.ipv4 or "(not assigned yet)"}',
        f'  SSH: {summary.ssh or "(unavailable until an IP is assigned)"}',
    ]
    if summary.mount is not None:
        lines.append(f'  Mounted: {summary.mount}')
    lines.append(f'  Cloud-init: {summary.config_path}')
    lines.append(RULE)
    return '\n'.join(lines)


def render_available(search_dir: Path) -> str:
    names = available_cloud_init_files(search_dir)
    if not names:
        return '  (none)'
    return '\n'.join(f'  {n}' for n in names)


def usage_text(prog: str, cfg: LauncherConfig) -> str:
    d = cfg.defaults
    search_dir = cfg.cloud_init_dir()
    head = textwrap.dedent(
        f"""\
        Usage: {prog} [vm-name] <cloud-init-file> [--mount <host>:<vm>] [ubuntu] [cpus] [mem] [disk]
               {prog} config {{init,show,path,list}} [--config PATH]

        Required:
          <cloud-init-file>      File path, or a name inside {search_dir}

        Optional:
          [vm-name]              If omitted, auto-generated (e.g. web-abc123)
          --mount <host>:<vm>    Mount host dir into VM after cloud-init finishes
          [ubuntu]               Default: {d.image_version}
          [cpus] [mem] [disk]    Default: {d.cpus}, {d.memory}, {d.disk}
          -v, -vv                More log output

        Examples:
          {prog} cloud-init-web.yaml
          {prog} web-prod cloud-init-web.yaml --mount ./code:/home/ubuntu/app
          {prog} api cloud-init-api.yaml 22.04 4 8G 30G

        Available cloud-init files:
        """
    )
    return head + render_available(search_dir) + '\n'
