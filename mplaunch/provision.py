"""Provisioning workflow: launch, wait for cloud-init, mount, and report.

Stages run strictly in order and each one blocks until its control-plane call
returns. A failure in any stage aborts the rest; a VM that was already
launched is left running for the user to inspect or delete.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from .config import LauncherConfig
from .control import (
    launch_vm,
    mount_dir,
    parse_info_ipv4,
    require_multipass,
    vm_exists,
    vm_info,
    wait_for_cloud_init,
)
from .errors import HostPathNotFound, LauncherError, NameCollision
from .request import MountSpec, ProvisioningRequest, resolve_request
from .results import Summary

log = logger


class VMState(enum.Enum):
    REQUESTED = 'requested'
    LAUNCHING = 'launching'
    LAUNCHED = 'launched'
    WAITING_FOR_INIT = 'waiting-for-init'
    READY = 'ready'
    FAILED = 'failed'


_NEXT = {
    VMState.REQUESTED: VMState.LAUNCHING,
    VMState.LAUNCHING: VMState.LAUNCHED,
    VMState.LAUNCHED: VMState.WAITING_FOR_INIT,
    VMState.WAITING_FOR_INIT: VMState.READY,
}


@dataclass
class VMHandle:
    name: str
    state: VMState = VMState.REQUESTED
    ipv4: str = ''
    mount: Optional[MountSpec] = None

    def advance(self, new: VMState) -> None:
        if new is VMState.FAILED:
            if self.state is VMState.READY:
                raise RuntimeError(f'VM {self.name} is already ready')
        elif _NEXT.get(self.state) is not new:
            raise RuntimeError(
                f'Invalid VM state transition {self.state.value} -> {new.value}'
            )
        log.debug('VM {} state {} -> {}', self.name, self.state.value, new.value)
        self.state = new


def launch_and_wait(
    request: ProvisioningRequest, cfg: LauncherConfig
) -> VMHandle:
    """Launch the VM and block until cloud-init finishes."""
    handle = VMHandle(request.name)
    if cfg.policy.check_existing and vm_exists(cfg, request.name):
        handle.advance(VMState.FAILED)
        raise NameCollision(request.name)
    log.info('Launching VM: {}', request.name)
    log.info('  Ubuntu: {}', request.image_version)
    log.info('  Config: {}', request.config_path)
    log.info(
        '  Resources: {} CPU, {} RAM, {} disk',
        request.cpus,
        request.memory,
        request.disk,
    )
    if request.mount is not None:
        log.info('  Mount: {}', request.mount)
    try:
        handle.advance(VMState.LAUNCHING)
        launch_vm(
            cfg,
            name=request.name,
            image_version=request.image_version,
            cpus=request.cpus,
            memory=request.memory,
            disk=request.disk,
            cloud_init=request.config_path,
        )
        handle.advance(VMState.LAUNCHED)
        handle.advance(VMState.WAITING_FOR_INIT)
        log.info('Waiting for cloud-init to finish on {}', request.name)
        wait_for_cloud_init(cfg, request.name)
    except LauncherError:
        handle.advance(VMState.FAILED)
        raise
    handle.advance(VMState.READY)
    return handle


def attach_mount(
    handle: VMHandle, mount: Optional[MountSpec], cfg: LauncherConfig
) -> None:
    if mount is None:
        return
    if handle.state is not VMState.READY:
        raise RuntimeError(
            f'Cannot mount into VM {handle.name} in state {handle.state.value}'
        )
    host = Path(mount.host_path).expanduser()
    if not host.is_dir():
        raise HostPathNotFound(mount.host_path)
    log.info('Mounting {} -> {}:{}', host, handle.name, mount.guest_path)
    mount_dir(
        cfg,
        host_path=host.resolve(),
        name=handle.name,
        guest_path=mount.guest_path,
    )
    handle.mount = mount


def report_status(
    handle: VMHandle, request: ProvisioningRequest, cfg: LauncherConfig
) -> Summary:
    ipv4 = parse_info_ipv4(vm_info(cfg, handle.name), handle.name)
    if not ipv4:
        log.warning('VM {} has no IPv4 address yet', handle.name)
    handle.ipv4 = ipv4
    return Summary(
        name=handle.name,
        image_version=request.image_version,
        ipv4=ipv4,
        config_path=str(request.config_path),
        mount=handle.mount,
    )


def provision(request: ProvisioningRequest, cfg: LauncherConfig) -> Summary:
    require_multipass(cfg)
    handle = launch_and_wait(request, cfg)
    attach_mount(handle, request.mount, cfg)
    return report_status(handle, request, cfg)


def run_provisioning(
    argv: Sequence[str], cfg: Optional[LauncherConfig] = None
) -> Summary:
    cfg = cfg or LauncherConfig()
    request = resolve_request(argv, cfg)
    return provision(request, cfg)
