"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import DevbootModalCLI, main

__all__ = ['DevbootModalCLI', 'main']
