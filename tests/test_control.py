from __future__ import annotations

import json
from pathlib import Path

import pytest

from mplaunch.config import LauncherConfig
from mplaunch.control import (
    LAUNCH_GRACE_S,
    launch_vm,
    mount_dir,
    parse_info_ipv4,
    require_multipass,
    vm_exists,
    vm_info,
    wait_for_cloud_init,
)
from mplaunch.errors import ControlPlaneError
from mplaunch.util import CmdResult


def test_launch_command_line(fake_mp) -> None:
    cfg = LauncherConfig()
    launch_vm(
        cfg,
        name='web-abc123',
        image_version='22.04',
        cpus=4,
        memory='8G',
        disk='30G',
        cloud_init=Path('/tmp/cloud-init-web.yaml'),
    )
    assert fake_mp.calls == [
        [
            'multipass',
            'launch',
            '22.04',
            '--name',
            'web-abc123',
            '--cpus',
            '4',
            '--memory',
            '8G',
            '--disk',
            '30G',
            '--cloud-init',
            '/tmp/cloud-init-web.yaml',
            '--timeout',
            '3600',
        ]
    ]
    assert fake_mp.kwargs[0]['timeout'] == 3600 + LAUNCH_GRACE_S
    assert fake_mp.kwargs[0]['capture'] is False


def test_custom_binary_and_timeouts(fake_mp) -> None:
    cfg = LauncherConfig()
    cfg.paths.multipass_bin = '/snap/bin/multipass'
    cfg.timeouts.init_wait_s = 42
    wait_for_cloud_init(cfg, 'vm1')
    assert fake_mp.calls[0] == [
        '/snap/bin/multipass',
        'exec',
        'vm1',
        '--',
        'cloud-init',
        'status',
        '--wait',
    ]
    assert fake_mp.kwargs[0]['timeout'] == 42


def test_mount_command_line(fake_mp) -> None:
    mount_dir(
        LauncherConfig(),
        host_path=Path('/home/me/code'),
        name='vm1',
        guest_path='/home/ubuntu/app',
    )
    assert fake_mp.calls[0] == [
        'multipass',
        'mount',
        '/home/me/code',
        'vm1:/home/ubuntu/app',
    ]


def _mount_vm1(cfg, name):
    mount_dir(cfg, host_path=Path('/srv/code'), name=name, guest_path='/app')


@pytest.mark.parametrize(
    'func, args, op',
    [
        (wait_for_cloud_init, ('vm1',), 'exec'),
        (vm_info, ('vm1',), 'info'),
        (_mount_vm1, ('vm1',), 'mount'),
    ],
)
def test_failures_become_control_plane_errors(fake_mp, func, args, op) -> None:
    fake_mp.fail = op
    fake_mp.known.add('vm1')
    with pytest.raises(ControlPlaneError, match='boom'):
        func(LauncherConfig(), *args)


def test_launch_failure_names_operation(fake_mp) -> None:
    fake_mp.fail = 'launch'
    with pytest.raises(ControlPlaneError) as info:
        launch_vm(
            LauncherConfig(),
            name='x',
            image_version='24.04',
            cpus=2,
            memory='4G',
            disk='20G',
            cloud_init=Path('/tmp/c.yaml'),
        )
    assert info.value.operation == 'launch'
    assert str(info.value).startswith('launch failed:')


def test_timeout_maps_to_control_plane_error(monkeypatch) -> None:
    from mplaunch.util import CmdError

    def timed_out(cmd, **kwargs):
        raise CmdError(cmd, CmdResult(124, '', '', timed_out=True))

    monkeypatch.setattr('mplaunch.control.run_cmd', timed_out)
    with pytest.raises(ControlPlaneError, match='wait-for-init failed: timed out'):
        wait_for_cloud_init(LauncherConfig(), 'vm1')


def test_vm_exists(fake_mp) -> None:
    cfg = LauncherConfig()
    assert vm_exists(cfg, 'ghost') is False
    fake_mp.known.add('real')
    assert vm_exists(cfg, 'real') is True


def test_vm_exists_unexpected_error(monkeypatch) -> None:
    monkeypatch.setattr(
        'mplaunch.control.run_cmd',
        lambda cmd, **kw: CmdResult(1, '', 'cannot connect to the multipass socket'),
    )
    with pytest.raises(ControlPlaneError, match='socket'):
        vm_exists(LauncherConfig(), 'vm1')


def test_parse_info_ipv4_json() -> None:
    text = json.dumps(
        {'errors': [], 'info': {'vm1': {'ipv4': ['10.9.8.7', '172.17.0.1']}}}
    )
    assert parse_info_ipv4(text, 'vm1') == '10.9.8.7'
    # Falls back to the only entry when the name does not match.
    assert parse_info_ipv4(text, 'other') == '10.9.8.7'


def test_parse_info_ipv4_no_address_yet() -> None:
    text = json.dumps({'info': {'vm1': {'ipv4': [], 'state': 'Starting'}}})
    assert parse_info_ipv4(text, 'vm1') == ''
    assert parse_info_ipv4('', 'vm1') == ''


def test_parse_info_ipv4_text_format() -> None:
    text = (
        'Name:           vm1\n'
        'State:          Running\n'
        'IPv4:           192.168.64.5\n'
        '                10.0.0.1\n'
        'Release:        Ubuntu 24.04 LTS\n'
    )
    assert parse_info_ipv4(text) == '192.168.64.5'
    assert parse_info_ipv4('Name: vm1\nIPv4:           --\n') == ''
    assert parse_info_ipv4('Name: vm1\nState: Stopped\n') == ''


def test_vm_exists_timeout_is_an_error(monkeypatch) -> None:
    # The timeout text would otherwise look like "not found" noise.
    monkeypatch.setattr(
        'mplaunch.control.run_cmd',
        lambda cmd, **kw: CmdResult(124, '', 'instance not found', timed_out=True),
    )
    with pytest.raises(ControlPlaneError, match='info failed'):
        vm_exists(LauncherConfig(), 'vm1')


def test_require_multipass(monkeypatch) -> None:
    cfg = LauncherConfig()
    cfg.paths.multipass_bin = 'mp-custom'
    seen = []
    monkeypatch.setattr(
        'mplaunch.control.which', lambda cmd: seen.append(cmd) or None
    )
    with pytest.raises(ControlPlaneError, match='executable not found: mp-custom'):
        require_multipass(cfg)
    assert seen == ['mp-custom']
    monkeypatch.setattr('mplaunch.control.which', lambda cmd: f'/opt/bin/{cmd}')
    assert require_multipass(cfg) == '/opt/bin/mp-custom'
