from __future__ import annotations

import json

import pytest

from mplaunch.util import CmdError, CmdResult


class FakeMultipass:
    """Stand-in for ``run_cmd`` that records multipass calls.

    ``fail`` names a subcommand (``launch``, ``exec``, ``mount``, ``info``)
    that should exit non-zero. ``info`` on an instance that was neither
    launched nor listed in ``existing`` reports "does not exist".
    """

    def __init__(self, *, ipv4: str = '10.1.2.3', fail: str = '', existing=()):
        self.ipv4 = ipv4
        self.fail = fail
        self.known = set(existing)
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []

    @property
    def ops(self) -> list[str]:
        return [c[1] for c in self.calls]

    def __call__(self, cmd, **kwargs) -> CmdResult:
        cmd = list(cmd)
        self.calls.append(cmd)
        self.kwargs.append(kwargs)
        op = cmd[1]
        if op == self.fail:
            res = CmdResult(1, '', f'{op} failed: boom')
        elif op == 'launch':
            self.known.add(cmd[cmd.index('--name') + 1])
            res = CmdResult(0, '', '')
        elif op == 'info':
            name = cmd[2]
            if name in self.known:
                payload = {
                    'errors': [],
                    'info': {
                        name: {
                            'ipv4': [self.ipv4] if self.ipv4 else [],
                            'state': 'Running',
                        }
                    },
                }
                res = CmdResult(0, json.dumps(payload), '')
            else:
                res = CmdResult(
                    2, '', f'info failed: The following errors occurred:\ninstance "{name}" does not exist'
                )
        else:
            res = CmdResult(0, '', '')
        if kwargs.get('check', True) and res.code != 0:
            raise CmdError(cmd, res)
        return res


@pytest.fixture
def fake_mp(monkeypatch):
    fake = FakeMultipass()
    monkeypatch.setattr('mplaunch.control.run_cmd', fake)
    monkeypatch.setattr('mplaunch.control.which', lambda cmd: f'/usr/bin/{cmd}')
    return fake
