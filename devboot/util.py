"""Shared utility helpers for subprocess execution, paths, and command formatting."""

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from loguru import logger

log = logger


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.code == 0


class CmdError(RuntimeError):
    def __init__(self, cmd: Sequence[str] | str, result: CmdResult):
        self.cmd = cmd
        self.result = result
        shown = cmd if isinstance(cmd, str) else shell_join(cmd)
        super().__init__(
            f'Command failed (code={result.code}): {shown}\n{result.stderr}'.strip()
        )


def shell_join(cmd: Sequence[str]) -> str:
    return ' '.join(shlex.quote(c) for c in cmd)


def run_cmd(
    cmd: Sequence[str],
    *,
    sudo: bool = False,
    check: bool = True,
    capture: bool = True,
    input_text: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CmdResult:
    original_cmd = cmd
    if sudo and os.geteuid() != 0:
        # Non-interactive sudo: fail fast if password/TTY is required.
        cmd = ['sudo', '-n', *cmd]
        log.opt(depth=1).debug(
            'Running with sudo: {}', shell_join(original_cmd)
        )
    log.opt(depth=1).debug('RUN: {}', shell_join(cmd))
    p = subprocess.run(
        list(cmd),
        input=input_text if input_text is not None else None,
        capture_output=capture,
        text=True,
        env=dict(env) if env is not None else None,
    )
    res = CmdResult(p.returncode, p.stdout or '', p.stderr or '')
    if check and p.returncode != 0:
        log.opt(depth=1).error(
            'Command failed code={} cmd={} stderr={} stdout={}',
            p.returncode,
            shell_join(cmd),
            res.stderr.strip(),
            res.stdout.strip(),
        )
        raise CmdError(list(cmd), res)
    if p.returncode == 0:
        log.opt(depth=1).debug('Command ok code=0 cmd={}', shell_join(cmd))
    return res


def which(cmd: str, path: Optional[str] = None) -> Optional[str]:
    from shutil import which as _which

    return _which(cmd, path=path)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


def guest_path(path: str) -> str:
    """Rewrite a leading ``~`` as ``$HOME`` so a remote shell expands it inside quotes."""
    if path == '~' or path.startswith('~/'):
        return '$HOME' + path[1:]
    return path


def append_line_once(path: Path, line: str) -> bool:
    """Append ``line`` to ``path`` unless an identical line is already there.

    Returns True when the file was modified.
    """
    existing = ''
    if path.exists():
        existing = path.read_text(encoding='utf-8')
    if line in existing.splitlines():
        log.debug('Line already present in {}: {}', path, line)
        return False
    ensure_dir(path.parent)
    prefix = '' if not existing or existing.endswith('\n') else '\n'
    with path.open('a', encoding='utf-8') as fh:
        fh.write(f'{prefix}{line}\n')
    log.debug('Appended to {}: {}', path, line)
    return True
