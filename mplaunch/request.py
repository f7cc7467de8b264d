"""Request resolution: argv parsing, defaulting, name generation, validation.

The command line accepts two surface forms, ``<file>`` and ``<name> <file>``,
followed by up to four resource arguments. Because both the name and the file
are bare tokens, classification is done in two passes:

1. :func:`split_argv` pulls out ``--mount`` and rejects other ``--`` flags,
   leaving the bare tokens in order.
2. :func:`classify_positionals` picks the **last** token that resolves to an
   existing file as the cloud-init document. Anything before it is the VM
   name and anything after it fills ``image cpus memory disk`` by position.

Nothing here talks to the control plane, so a bad request fails without side
effects.
"""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from .config import LauncherConfig
from .errors import (
    BadMountSpec,
    ConfigNotFound,
    MissingArgument,
    UnknownFlag,
    UsageError,
)

log = logger

MOUNT_FLAG = '--mount'
CLOUD_INIT_MARKER = 'cloud-init'
CLOUD_INIT_GLOB = 'cloud-init-*.yaml'
CONFIG_SUFFIXES = ('.yaml', '.yml')
FALLBACK_PREFIX = 'vm'
SUFFIX_LEN = 6
SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
RESOURCE_FIELDS = ('image_version', 'cpus', 'memory', 'disk')

_SIZE_RE = re.compile(r'^\d+(\.\d+)?([KkMmGg]i?[Bb]?|[Bb])?$')
_NAME_UNSAFE_RE = re.compile(r'[^a-z0-9-]+')


@dataclass(frozen=True)
class MountSpec:
    host_path: str
    guest_path: str

    def __str__(self) -> str:
        return f'{self.host_path}:{self.guest_path}'


@dataclass(frozen=True)
class ParsedArgs:
    positionals: tuple[str, ...]
    mount: Optional[MountSpec] = None


@dataclass(frozen=True)
class ProvisioningRequest:
    name: str
    config_path: Path
    image_version: str = '24.04'
    cpus: int = 2
    memory: str = '4G'
    disk: str = '20G'
    mount: Optional[MountSpec] = None
    name_generated: bool = False


def parse_mount_spec(value: str) -> MountSpec:
    host, sep, guest = (value or '').partition(':')
    if not sep or not host or not guest:
        raise BadMountSpec(
            f'--mount requires <host>:<vm>, got {value!r}'
        )
    return MountSpec(host, guest)


def split_argv(argv: Sequence[str]) -> ParsedArgs:
    """First pass: separate ``--mount`` from the bare positional tokens."""
    positionals: list[str] = []
    mount: Optional[MountSpec] = None
    idx = 0
    while idx < len(argv):
        tok = argv[idx]
        if tok == MOUNT_FLAG or tok.startswith(MOUNT_FLAG + '='):
            if mount is not None:
                raise BadMountSpec('--mount may only be given once')
            if tok == MOUNT_FLAG:
                if idx + 1 >= len(argv) or argv[idx + 1].startswith('--'):
                    raise BadMountSpec('--mount requires <host>:<vm>')
                value = argv[idx + 1]
                idx += 2
            else:
                value = tok.split('=', 1)[1]
                idx += 1
            mount = parse_mount_spec(value)
            continue
        if tok.startswith('--'):
            raise UnknownFlag(f'Unknown flag: {tok}')
        positionals.append(tok)
        idx += 1
    return ParsedArgs(tuple(positionals), mount)


def resolve_config_token(token: str, search_dir: Path) -> Optional[Path]:
    """Return the file a token refers to, looking at cwd then ``search_dir``."""
    direct = Path(token).expanduser()
    if direct.is_file():
        return direct.resolve()
    candidate = search_dir / token
    if candidate.is_file():
        return candidate.resolve()
    return None


def available_cloud_init_files(search_dir: Path) -> list[str]:
    try:
        return sorted(p.name for p in search_dir.glob(CLOUD_INIT_GLOB))
    except OSError:
        return []


def _fallback_config_index(positionals: Sequence[str]) -> int:
    for idx in range(len(positionals) - 1, -1, -1):
        if positionals[idx].lower().endswith(CONFIG_SUFFIXES):
            return idx
    return 0 if len(positionals) == 1 else 1


def classify_positionals(
    positionals: Sequence[str], search_dir: Path
) -> tuple[Optional[str], Path, tuple[str, ...]]:
    """Second pass: split positionals into (name, config path, resources)."""
    if not positionals:
        raise MissingArgument('A cloud-init file is required')
    config_idx = None
    config_path = None
    for idx in range(len(positionals) - 1, -1, -1):
        found = resolve_config_token(positionals[idx], search_dir)
        if found is not None:
            config_idx, config_path = idx, found
            break
    if config_path is None:
        token = positionals[_fallback_config_index(positionals)]
        raise ConfigNotFound(
            search_dir / token, available_cloud_init_files(search_dir)
        )
    before = positionals[:config_idx]
    after = tuple(positionals[config_idx + 1:])
    if len(before) > 1 or len(after) > len(RESOURCE_FIELDS):
        raise UsageError('Too many positional args')
    name = before[0] if before else None
    log.debug(
        'Classified positionals name={} config={} resources={}',
        name,
        config_path,
        after,
    )
    return name, config_path, after


def derive_prefix(config_path: Path | str) -> str:
    """Name prefix from a cloud-init file, e.g. ``cloud-init-web.yaml -> web``."""
    stem = Path(config_path).name
    for suffix in CONFIG_SUFFIXES:
        if stem.lower().endswith(suffix):
            stem = stem[: -len(suffix)]
            break
    if stem.startswith(CLOUD_INIT_MARKER + '-'):
        stem = stem[len(CLOUD_INIT_MARKER) + 1:]
    # Multipass names are letters, digits and hyphens, starting with a letter.
    stem = _NAME_UNSAFE_RE.sub('-', stem.lower()).strip('-')
    stem = stem.lstrip(string.digits + '-')
    if not stem or stem == CLOUD_INIT_MARKER:
        return FALLBACK_PREFIX
    return stem


def random_suffix(length: int = SUFFIX_LEN) -> str:
    return ''.join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def generate_name(config_path: Path | str) -> str:
    return f'{derive_prefix(config_path)}-{random_suffix()}'


def _parse_cpus(value: str) -> int:
    try:
        cpus = int(value)
    except ValueError:
        raise UsageError(f'cpus must be a positive integer, got {value!r}')
    if cpus < 1:
        raise UsageError(f'cpus must be a positive integer, got {value!r}')
    return cpus


def _check_size(field_name: str, value: str) -> str:
    if not _SIZE_RE.match(value):
        raise UsageError(
            f'{field_name} must be a size like 4G or 512M, got {value!r}'
        )
    return value


def resolve_request(
    argv: Sequence[str], cfg: Optional[LauncherConfig] = None
) -> ProvisioningRequest:
    """Turn raw argv tokens into a validated :class:`ProvisioningRequest`."""
    cfg = cfg or LauncherConfig()
    if not argv:
        raise MissingArgument('No arguments given')
    parsed = split_argv(argv)
    name, config_path, resources = classify_positionals(
        parsed.positionals, cfg.cloud_init_dir()
    )
    values = dict(zip(RESOURCE_FIELDS, resources))
    defaults = cfg.defaults
    image_version = values.get('image_version', defaults.image_version)
    cpus = _parse_cpus(str(values.get('cpus', defaults.cpus)))
    memory = _check_size('memory', values.get('memory', defaults.memory))
    disk = _check_size('disk', values.get('disk', defaults.disk))

    generated = name is None
    if generated:
        name = generate_name(config_path)
        log.info('No VM name provided; using auto-generated: {}', name)
    return ProvisioningRequest(
        name=name,
        config_path=config_path,
        image_version=image_version,
        cpus=cpus,
        memory=memory,
        disk=disk,
        mount=parsed.mount,
        name_generated=generated,
    )
