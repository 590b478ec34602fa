"""Catalog of optional AI coding assistants offered by the Provisioner."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .. import console
from ..util import expand, guest_path
from .context import ProvisionContext
from .steps import InstallStep, apply_step


@dataclass(frozen=True)
class AITool:
    name: str
    label: str
    vendor: str
    blurb: str
    prompt: str
    binary: str
    hint: str
    npm_package: str = ''
    script_url_attr: str = ''
    extra_paths: tuple[str, ...] = field(default_factory=tuple)

    @property
    def via_npm(self) -> bool:
        return bool(self.npm_package)

    def is_present(self, ctx: ProvisionContext) -> bool:
        if ctx.which(self.binary) is not None:
            return True
        for d in self.extra_paths:
            if (Path(expand(d)) / self.binary).exists():
                return True
        return self.via_npm and ctx.nvm_has(self.binary)

    def install(self, ctx: ProvisionContext) -> None:
        if self.via_npm:
            ctx.nvm_run(f'npm install -g {self.npm_package}', capture=False)
            return
        url = getattr(ctx.cfg, self.script_url_attr)
        ctx.run(
            ['bash', '-c', f'set -o pipefail; curl -fsSL {url} | bash'],
            capture=False,
        )

    def probe_command(self, nvm_dir: str = '~/.nvm') -> str:
        """Shell snippet that succeeds inside a provisioned guest iff the tool exists.

        ``nvm_dir`` is the guest-side NVM_DIR; npm-installed tools are only on
        PATH once its nvm.sh is sourced.
        """
        checks = [f'command -v {self.binary}']
        for d in self.extra_paths:
            checks.append(f'test -x "{guest_path(d)}/{self.binary}"')
        probe = ' || '.join(checks)
        if self.via_npm:
            return f'. "{guest_path(nvm_dir)}/nvm.sh" && ({probe})'
        return probe

    def as_step(self) -> InstallStep:
        return InstallStep(
            name=self.name,
            label=self.label,
            is_present=self.is_present,
            install=self.install,
            confirm=self.prompt,
            hint=self.hint,
        )


AI_TOOLS: tuple[AITool, ...] = (
    AITool(
        name='amp',
        label='Amp',
        vendor='Sourcegraph',
        blurb='AI coding agent with $10/day free tier',
        prompt='Install Amp (Sourcegraph)? Free $10/day ad-supported tier available',
        binary='amp',
        hint="Run 'amp' to start using it. New users get $10/day free (ad-supported).",
        script_url_attr='amp_install_url',
        extra_paths=('~/.amp/bin', '~/.local/bin'),
    ),
    AITool(
        name='codex',
        label='Codex CLI',
        vendor='OpenAI',
        blurb='Command-line AI assistant from the creators of ChatGPT',
        prompt='Install Codex CLI (OpenAI)?',
        binary='codex',
        hint="Run 'codex' to start using it.",
        npm_package='@openai/codex',
    ),
    AITool(
        name='opencode',
        label='OpenCode',
        vendor='Inference Labs',
        blurb='Open-source AI coding assistant with free model support',
        prompt='Install OpenCode? Supports many free models (Gemini, Copilot, etc.)',
        binary='opencode',
        hint=(
            "Run 'opencode' to start. Supports free models like Gemini, "
            'GitHub Copilot, and more.'
        ),
        npm_package='opencode-ai',
    ),
    AITool(
        name='claude',
        label='Claude Code',
        vendor='Anthropic',
        blurb='AI coding assistant from the creators of Claude',
        prompt='Install Claude Code (Anthropic)?',
        binary='claude',
        hint="Run 'claude' to start using it.",
        npm_package='@anthropic-ai/claude-code',
    ),
    AITool(
        name='kilocode',
        label='Kilo Code',
        vendor='Open Source',
        blurb='Supports 500+ AI models',
        prompt='Install Kilo Code? Open source, supports 500+ models',
        binary='kilocode',
        hint="Run 'kilocode' to start. Supports 500+ AI models.",
        npm_package='@kilocode/cli',
    ),
)


def install_ai_tools(ctx: ProvisionContext, tools=AI_TOOLS) -> None:
    print('Now for the fun part! Choose which AI coding assistants to install.')
    print('')
    print('Available tools:')
    print('')
    for idx, tool in enumerate(tools, start=1):
        print(f'  {idx}. {tool.label} (by {tool.vendor})')
        print(f'     {tool.blurb}')
        print('')
    for tool in tools:
        print('')
        apply_step(ctx, tool.as_step())


__all__ = ['AITool', 'AI_TOOLS', 'install_ai_tools']
