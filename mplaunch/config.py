"""Launcher configuration: request defaults, timeouts, paths, and policy."""

from __future__ import annotations

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

import ubelt as ub

from .runtime import DEFAULT_MULTIPASS_BIN
from .util import expand

CONFIG_ENV_VAR = 'MPLAUNCH_CONFIG'


@dataclass
class DefaultsConfig:
    image_version: str = '24.04'
    cpus: int = 2
    memory: str = '4G'
    disk: str = '20G'


@dataclass
class TimeoutsConfig:
    # First boot may include an image download.
    launch_s: int = 3600
    init_wait_s: int = 1800
    query_s: int = 60


@dataclass
class PathsConfig:
    cloud_init_dir: str = ''
    multipass_bin: str = DEFAULT_MULTIPASS_BIN


@dataclass
class PolicyConfig:
    check_existing: bool = True


@dataclass
class LauncherConfig:
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    verbosity: int = 1

    def expanded_paths(self) -> 'LauncherConfig':
        self.paths.cloud_init_dir = (
            expand(self.paths.cloud_init_dir) if self.paths.cloud_init_dir else ''
        )
        return self

    def cloud_init_dir(self) -> Path:
        """Directory searched for cloud-init files; the cwd when unset."""
        if self.paths.cloud_init_dir:
            return Path(expand(self.paths.cloud_init_dir))
        return Path.cwd()


_SECTIONS = ('defaults', 'timeouts', 'paths', 'policy')


def config_path(p: str | None = None) -> Path:
    if p:
        return Path(p).expanduser().resolve()
    env = os.environ.get(CONFIG_ENV_VAR, '').strip()
    if env:
        return Path(expand(env)).resolve()
    return Path(ub.Path.appdir('mplaunch', type='config')) / 'config.toml'


_TOML_ESCAPES = {
    '\\': '\\\\',
    '"': '\\"',
    '\b': '\\b',
    '\t': '\\t',
    '\n': '\\n',
    '\f': '\\f',
    '\r': '\\r',
}


def _toml_escape(s: str) -> str:
    out = []
    for ch in s:
        if ch in _TOML_ESCAPES:
            out.append(_TOML_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f'\\u{ord(ch):04X}')
        else:
            out.append(ch)
    return ''.join(out)


def dump_toml(cfg: LauncherConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    for section, body in d.items():
        if isinstance(body, dict):
            lines.append(f'[{section}]')
            for k, v in body.items():
                if isinstance(v, bool):
                    lines.append(f'{k} = {"true" if v else "false"}')
                elif isinstance(v, int):
                    lines.append(f'{k} = {v}')
                else:
                    lines.append(f'{k} = "{_toml_escape(str(v))}"')
            lines.append('')
        elif section == 'verbosity' and body != 1:
            lines.append(f'{section} = {body}')
            lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def _coerce(section: str, key: str, value, default):
    """Convert a TOML value to the type of the field's default."""
    where = f'{section}.{key}' if section else key
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {'true', 'false'}:
            return value.strip().lower() == 'true'
        raise ValueError(f'{where} must be true or false, got {value!r}')
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ValueError(f'{where} must be an integer, got {value!r}')
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f'{where} must be an integer, got {value!r}')
    if isinstance(value, (dict, list)):
        raise ValueError(f'{where} must be a string, got {value!r}')
    return str(value)


def loads(text: str) -> LauncherConfig:
    raw = tomllib.loads(text)
    cfg = LauncherConfig()
    for section in _SECTIONS:
        if section in raw and isinstance(raw[section], dict):
            obj = getattr(cfg, section)
            for k, v in raw[section].items():
                if hasattr(obj, k):
                    setattr(obj, k, _coerce(section, k, v, getattr(obj, k)))
    if 'verbosity' in raw:
        cfg.verbosity = _coerce('', 'verbosity', raw['verbosity'], 1)
    return cfg


def load(path: Path) -> LauncherConfig:
    return loads(path.read_text(encoding='utf-8'))


def load_or_default(path: Path) -> LauncherConfig:
    if path.exists():
        return load(path).expanded_paths()
    return LauncherConfig()


def save(path: Path, cfg: LauncherConfig) -> None:
    ub.Path(path).parent.ensuredir()
    path.write_text(dump_toml(cfg), encoding='utf-8')
