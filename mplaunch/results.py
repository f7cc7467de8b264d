"""Result dataclasses produced by the provisioning workflow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .request import MountSpec
from .runtime import ssh_hint


@dataclass(frozen=True)
class Summary:
    name: str
    image_version: str
    ipv4: str
    config_path: str
    mount: Optional[MountSpec] = None

    @property
    def ssh(self) -> str:
        return ssh_hint(self.ipv4) if self.ipv4 else ''

    def as_dict(self) -> dict[str, str]:
        return {
            'name': self.name,
            'image_version': self.image_version,
            'ipv4': self.ipv4,
            'ssh': self.ssh,
            'mount': str(self.mount) if self.mount else '',
            'config_path': self.config_path,
        }
