from __future__ import annotations

import subprocess

import pytest

from mplaunch.util import (
    NOT_FOUND_CODE,
    TIMEOUT_CODE,
    CmdError,
    expand,
    shell_join,
)
from mplaunch.util import run_cmd as _run_cmd


def test_shell_join_quotes() -> None:
    cmd = ['echo', 'a b', "c'd"]
    s = shell_join(cmd)
    assert "'a b'" in s
    assert s.startswith('echo ')


def test_run_cmd_success_and_failure() -> None:
    ok = _run_cmd(['bash', '-c', 'printf ok'], check=True, capture=True)
    assert ok.code == 0
    assert ok.stdout == 'ok'
    bad = _run_cmd(['bash', '-c', 'exit 7'], check=False, capture=True)
    assert bad.code == 7
    with pytest.raises(CmdError) as info:
        _run_cmd(['bash', '-c', 'echo nope >&2; exit 9'], check=True)
    assert info.value.result.code == 9
    assert 'nope' in str(info.value)


def test_run_cmd_timeout(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs['timeout'], output=b'partial')

    monkeypatch.setattr('mplaunch.util.subprocess.run', fake_run)
    res = _run_cmd(['sleep', '10'], check=False, timeout=0.5)
    assert res.timed_out is True
    assert res.code == TIMEOUT_CODE
    assert res.stdout == 'partial'
    with pytest.raises(CmdError, match='timed out'):
        _run_cmd(['sleep', '10'], check=True, timeout=0.5)


def test_run_cmd_passes_timeout(monkeypatch) -> None:
    seen = {}

    class P:
        returncode = 0
        stdout = ''
        stderr = ''

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return P()

    monkeypatch.setattr('mplaunch.util.subprocess.run', fake_run)
    _run_cmd(['true'], timeout=12)
    assert seen['timeout'] == 12


def test_expand(monkeypatch) -> None:
    monkeypatch.setenv('MPLAUNCH_TEST_DIR', '/tmp/mpl')
    assert expand('$MPLAUNCH_TEST_DIR/x') == '/tmp/mpl/x'


def test_run_cmd_missing_executable(tmp_path) -> None:
    missing = str(tmp_path / 'no-such-binary')
    res = _run_cmd([missing, 'info'], check=False)
    assert res.code == NOT_FOUND_CODE
    assert 'cannot execute' in res.stderr
    with pytest.raises(CmdError, match='code=127'):
        _run_cmd([missing, 'info'], check=True)
