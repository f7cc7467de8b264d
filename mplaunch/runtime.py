"""Runtime helpers for constructing multipass command arguments."""

from __future__ import annotations

DEFAULT_MULTIPASS_BIN = 'multipass'
DEFAULT_GUEST_USER = 'ubuntu'


def multipass_cmd(*args: str, binary: str = DEFAULT_MULTIPASS_BIN) -> list[str]:
    return [binary or DEFAULT_MULTIPASS_BIN, *args]


def ssh_hint(ip: str, *, user: str = DEFAULT_GUEST_USER) -> str:
    return f'ssh {user}@{ip}'
