"""Per-run state threaded through every Provisioner step."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from loguru import logger

from ..answers import InteractivePrompter, ScriptedPrompter
from ..config import ProvisionConfig
from ..results import ProvisionReport
from ..util import CmdResult, run_cmd, which

log = logger


@dataclass
class ProvisionContext:
    """Explicit environment for child commands plus the answer source.

    The Provisioner never mutates ``os.environ``. Search-path changes made
    during a run (for example after Homebrew lands in ``/opt/homebrew``) and
    the NVM location live here and are handed to each command.
    """

    cfg: ProvisionConfig
    prompter: InteractivePrompter | ScriptedPrompter
    env: dict[str, str]
    report: ProvisionReport = field(default_factory=ProvisionReport)

    @classmethod
    def create(
        cls,
        cfg: ProvisionConfig,
        prompter: InteractivePrompter | ScriptedPrompter,
        *,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> 'ProvisionContext':
        env = dict(os.environ if base_env is None else base_env)
        ctx = cls(cfg=cfg, prompter=prompter, env=env)
        brew_bin = ctx.homebrew_bin
        if (brew_bin / 'brew').exists():
            ctx.prepend_path(brew_bin)
        return ctx

    @property
    def homebrew_bin(self) -> Path:
        return Path(self.cfg.homebrew_prefix) / 'bin'

    @property
    def nvm_dir(self) -> Path:
        return Path(self.cfg.nvm_dir)

    @property
    def search_path(self) -> str:
        return self.env.get('PATH', os.defpath)

    def prepend_path(self, directory: Path | str) -> None:
        entry = str(directory)
        parts = [p for p in self.search_path.split(os.pathsep) if p]
        if entry in parts:
            return
        self.env['PATH'] = os.pathsep.join([entry, *parts])
        log.debug('Prepended {} to command search path', entry)

    def which(self, cmd: str) -> Optional[str]:
        return which(cmd, path=self.search_path)

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        capture: bool = True,
        extra_env: Optional[Mapping[str, str]] = None,
    ) -> CmdResult:
        env = dict(self.env)
        if extra_env:
            env.update(extra_env)
        return run_cmd(cmd, check=check, capture=capture, env=env)

    def nvm_run(
        self, script: str, *, check: bool = True, capture: bool = True
    ) -> CmdResult:
        """Run ``script`` in bash after loading NVM from the configured directory."""
        return self.run(
            ['bash', '-c', f'. "$NVM_DIR/nvm.sh" && {script}'],
            check=check,
            capture=capture,
            extra_env={'NVM_DIR': str(self.nvm_dir)},
        )

    def nvm_has(self, binary: str) -> bool:
        if not (self.nvm_dir / 'nvm.sh').is_file():
            return False
        return self.nvm_run(f'command -v {binary}', check=False).ok

    def pause(self) -> None:
        if self.cfg.pause_between_steps:
            self.prompter.pause()
