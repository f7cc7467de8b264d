"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import LauncherModalCLI, main

__all__ = ['LauncherModalCLI', 'main']
