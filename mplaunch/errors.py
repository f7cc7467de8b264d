"""Project-specific exception types.

Every failure the launcher knows about is a :class:`LauncherError` carrying an
:class:`ErrorKind`. The CLI entry point is the only place these are turned
into a message and an exit status; nothing below it retries or rolls back.
"""

from __future__ import annotations

import enum

from .util import CmdError


class ErrorKind(enum.Enum):
    USAGE = 'usage'
    CONFIG_NOT_FOUND = 'config-not-found'
    HOST_PATH_NOT_FOUND = 'host-path-not-found'
    CONTROL_PLANE = 'control-plane'


class LauncherError(RuntimeError):
    """Base error for domain-level mplaunch failures."""

    kind: ErrorKind = ErrorKind.USAGE
    exit_code: int = 1
    show_usage: bool = False


class UsageError(LauncherError):
    """Bad or missing command-line arguments."""

    kind = ErrorKind.USAGE
    show_usage = True


class MissingArgument(UsageError):
    """Raised when no positional argument was given at all."""


class UnknownFlag(UsageError):
    """Raised for any ``--`` token other than ``--mount``."""


class BadMountSpec(UsageError):
    """Raised when ``--mount`` lacks a value or the value is not ``host:guest``."""


class ConfigNotFound(LauncherError):
    kind = ErrorKind.CONFIG_NOT_FOUND

    def __init__(self, path, available=()):
        self.path = path
        self.available = list(available)
        super().__init__(f'Cloud-init file not found: {path}')


class HostPathNotFound(LauncherError):
    kind = ErrorKind.HOST_PATH_NOT_FOUND

    def __init__(self, path):
        self.path = path
        super().__init__(f'Host path not found: {path}')


class ControlPlaneError(LauncherError):
    """A launch/exec/mount/info call did not complete successfully."""

    kind = ErrorKind.CONTROL_PLANE

    def __init__(self, operation: str, message: str, cause: CmdError | None = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f'{operation} failed: {message}')

    @classmethod
    def from_cmd_error(cls, operation: str, ex: CmdError) -> 'ControlPlaneError':
        res = ex.result
        if res.timed_out:
            detail = 'timed out'
        else:
            detail = (res.stderr or res.stdout or '').strip() or f'exit code {res.code}'
        return cls(operation, detail, cause=ex)


class NameCollision(ControlPlaneError):
    """Raised before launch when the control plane already knows the VM name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__('launch', f"VM '{name}' already exists")
