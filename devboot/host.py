"""Harness host checks and self-bootstrap of the host-side tools (Homebrew, tart, sshpass)."""

from __future__ import annotations

import json
import platform
import tempfile
from pathlib import Path
from typing import Callable

from loguru import logger

from . import console
from .config import HOMEBREW_INSTALL_URL, TART_RELEASES_API
from .errors import HostPreconditionError
from .util import run_cmd, which

log = logger

HOMEBREW_BIN = Path('/opt/homebrew/bin')
TART_APP_DIR = Path('/Applications')
TART_LINK = Path('/usr/local/bin/tart')
SSHPASS_FORMULA = 'hudochenkov/sshpass/sshpass'


def check_commands(cmds: list[str]) -> list[str]:
    return [c for c in cmds if which(c) is None]


def check_harness_host(
    *,
    require_tart: bool = True,
    system: Callable[[], str] = platform.system,
    machine: Callable[[], str] = platform.machine,
) -> None:
    """Raise :class:`HostPreconditionError` unless this host can run tart VMs."""
    if system() != 'Darwin':
        raise HostPreconditionError('The VM test harness requires macOS.')
    if machine() != 'arm64':
        raise HostPreconditionError(
            'Tart requires Apple Silicon (M1/M2/M3). Intel Macs are not supported.'
        )
    if require_tart and check_commands(['tart']):
        raise HostPreconditionError(
            'Tart not installed. Run `devboot test manual` first to install it.'
        )


def ensure_sshpass() -> None:
    if which('sshpass') is not None:
        return
    console.warning('sshpass not found, installing...')
    run_cmd(['brew', 'install', SSHPASS_FORMULA], check=True, capture=False)


def ensure_homebrew() -> str:
    brew = which('brew')
    if brew is None and (HOMEBREW_BIN / 'brew').exists():
        brew = str(HOMEBREW_BIN / 'brew')
    if brew is not None:
        console.success('Homebrew is installed.')
        return brew
    console.warning('Homebrew not found.')
    console.step('Installing Homebrew (required for Tart)...')
    script = run_cmd(['curl', '-fsSL', HOMEBREW_INSTALL_URL]).stdout
    run_cmd(['/bin/bash', '-c', script], check=True, capture=False)
    if not (HOMEBREW_BIN / 'brew').exists() and which('brew') is None:
        raise HostPreconditionError('Homebrew installation failed.')
    console.success('Homebrew installed successfully!')
    return which('brew') or str(HOMEBREW_BIN / 'brew')


def latest_tart_version() -> str:
    res = run_cmd(['curl', '-fsSL', TART_RELEASES_API], check=True)
    try:
        tag = json.loads(res.stdout).get('tag_name', '')
    except ValueError:
        tag = ''
    if not tag:
        raise HostPreconditionError(
            'Could not fetch latest Tart version from GitHub.'
        )
    return tag


def install_tart() -> None:
    """Install tart.app from the latest GitHub release and link the CLI onto PATH.

    Tart is no longer distributed through Homebrew, so the release tarball is
    unpacked into ``/Applications``.
    """
    if which('tart') is not None:
        version = run_cmd(['tart', '--version'], check=False).stdout.strip()
        console.success(f'Tart is installed: {version or "version unknown"}')
        return
    console.warning('Tart not found.')
    console.step('Fetching latest Tart version...')
    version = latest_tart_version()
    url = (
        f'https://github.com/cirruslabs/tart/releases/download/{version}/tart.tar.gz'
    )
    # Prime sudo credentials once so the following `sudo -n` calls succeed.
    run_cmd(['sudo', '-v'], check=True, capture=False)
    with tempfile.TemporaryDirectory(prefix='devboot-tart-') as tmp:
        tarball = Path(tmp) / 'tart.tar.gz'
        console.step(f'Downloading Tart {version}...')
        run_cmd(['curl', '-fsSL', '-o', str(tarball), url], check=True)
        run_cmd(['tar', '-xzf', str(tarball), '-C', tmp], check=True)
        app = TART_APP_DIR / 'tart.app'
        console.step(f'Installing Tart.app to {TART_APP_DIR}...')
        run_cmd(['rm', '-rf', str(app)], sudo=True, check=True)
        run_cmd(['mv', str(Path(tmp) / 'tart.app'), str(TART_APP_DIR)], sudo=True)
        run_cmd(['mkdir', '-p', str(TART_LINK.parent)], sudo=True)
        run_cmd(
            ['ln', '-sf', str(app / 'Contents' / 'MacOS' / 'tart'), str(TART_LINK)],
            sudo=True,
        )
    if which('tart') is None:
        console.warning(
            'Try downloading manually from: https://github.com/cirruslabs/tart/releases'
        )
        raise HostPreconditionError('Tart installation failed.')
    console.success('Tart installed successfully!')


def default_route_interface(fallback: str = 'en0') -> str:
    res = run_cmd(['route', 'get', 'default'], check=False)
    for line in res.stdout.splitlines():
        key, _, value = line.strip().partition(':')
        if key.strip() == 'interface' and value.strip():
            return value.strip()
    return fallback
