"""The ordered Provisioner sequence, from platform check to final checklist."""

from __future__ import annotations

import platform
from typing import Callable, Mapping, Optional

from loguru import logger

from .. import console
from ..answers import InteractivePrompter, ScriptedPrompter
from ..config import ProvisionConfig
from ..console import status_line
from ..results import ProvisionReport
from .ai_tools import AI_TOOLS, install_ai_tools
from .context import ProvisionContext
from .steps import (
    GHOSTTY,
    GIT,
    GITHUB_CLI,
    HOMEBREW,
    NODE,
    NVM,
    apply_step,
    check_platform,
    configure_git_identity,
    ghostty_present,
    report_node_versions,
    setup_github_auth,
)

log = logger

BANNER_ITEMS = (
    'Homebrew (package manager)',
    'Git (version control)',
    'NVM + Node.js LTS',
    'GitHub CLI + Authentication',
    'AI Coding Tools (Amp, Codex, OpenCode, Claude Code, Kilo Code)',
)


def show_welcome(ctx: ProvisionContext) -> bool:
    console.header('AI Development Environment Bootstrap')
    print('This will help you set up:')
    print('')
    for item in BANNER_ITEMS:
        print(f'  • {item}')
    print('')
    console.info("Don't worry - we'll explain each step along the way!")
    print('')
    if ctx.prompter.ask_yes_no('start', 'Ready to get started?'):
        return True
    print('')
    console.info('No problem! Run this again when you are ready.')
    return False


def _first_line(text: str) -> str:
    lines = text.strip().splitlines()
    return lines[0] if lines else ''


def show_completion(ctx: ProvisionContext) -> None:
    """Re-probe every tool and print the installed checklist."""
    console.header("Setup Complete! What's Installed")

    print('Core Tools:')
    for label, binary in (('Homebrew', 'brew'), ('Git', 'git')):
        ok = ctx.which(binary) is not None
        detail = 'not installed'
        if ok:
            detail = _first_line(ctx.run([binary, '--version'], check=False).stdout)
        print(status_line(ok, label, detail))
    for label, binary in (('Node.js', 'node'), ('NPM', 'npm')):
        ok = ctx.nvm_has(binary)
        detail = 'not installed'
        if ok:
            res = ctx.nvm_run(f'{binary} --version', check=False)
            detail = _first_line(res.stdout)
        print(status_line(ok, label, detail))
    ok = ctx.which('gh') is not None
    detail = 'not installed'
    if ok:
        detail = _first_line(ctx.run(['gh', '--version'], check=False).stdout)
    print(status_line(ok, 'GitHub CLI', detail))
    print(status_line(ghostty_present(ctx) or None, 'Ghostty Terminal'))
    print('')
    print('AI Coding Tools:')
    for tool in AI_TOOLS:
        print(status_line(tool.is_present(ctx) or None, tool.label))

    console.header('Next Steps')
    print('1. Open a new terminal to ensure all changes take effect')
    print('   (If you installed Ghostty, try using it instead of Terminal!)')
    print('')
    print('2. Get API keys for the AI tools you installed:')
    print('   • OpenAI (for Codex): https://platform.openai.com/api-keys')
    print('   • Anthropic (for Claude): https://console.anthropic.com/')
    print('')
    print('3. Start coding! Try running one of the AI tools in a project directory.')
    print('')
    console.info('Happy coding!')


def run_provisioner(
    cfg: ProvisionConfig,
    prompter: InteractivePrompter | ScriptedPrompter,
    *,
    base_env: Optional[Mapping[str, str]] = None,
    system: Callable[[], str] = platform.system,
) -> ProvisionReport:
    """Apply every install step in its fixed order.

    Ordering matters: Homebrew comes first because Git, the GitHub CLI and
    Ghostty are installed through it, and the AI tools that ship as npm
    packages need the Node.js installed by the NVM step.

    Raises:
        UnsupportedPlatformError: when not running on macOS.
        CmdError: from the first external command that fails; no later step
            runs.
    """
    check_platform(system)
    ctx = ProvisionContext.create(cfg, prompter, base_env=base_env)
    report = ctx.report
    if not show_welcome(ctx):
        return report

    console.header('Step 1: Installing Homebrew')
    console.para(
        'Homebrew is a package manager for macOS. Think of it like an app store',
        'for developer tools - it makes installing and updating software easy.',
    )
    apply_step(ctx, HOMEBREW)
    ctx.pause()

    console.header('Step 2: Installing Git')
    console.para(
        'Git is version control software. It helps you track changes to your code',
        'and collaborate with others. Almost every developer uses Git!',
    )
    apply_step(ctx, GIT)
    print('')
    configure_git_identity(ctx)
    ctx.pause()

    console.header('Step 3: Installing NVM and Node.js')
    console.para(
        'NVM (Node Version Manager) lets you install and switch between different',
        'versions of Node.js. Node.js is required for many AI coding tools.',
    )
    apply_step(ctx, NVM)
    apply_step(ctx, NODE)
    report_node_versions(ctx)
    ctx.pause()

    console.header('Step 4: Installing GitHub CLI')
    console.para(
        'GitHub CLI (gh) lets you interact with GitHub from your terminal.',
        'It makes authentication and many GitHub tasks much easier!',
    )
    apply_step(ctx, GITHUB_CLI)
    ctx.pause()

    console.header('Step 5: GitHub Authentication')
    console.para("Now we'll connect your terminal to your GitHub account.")
    setup_github_auth(ctx)
    ctx.pause()

    console.header('Step 6: Ghostty Terminal (Optional)')
    console.para(
        'Ghostty is a modern, GPU-accelerated terminal emulator.',
        'Some AI coding tools (like OpenCode) work better in Ghostty',
        'than in the default macOS Terminal.',
    )
    apply_step(ctx, GHOSTTY)
    ctx.pause()

    console.header('Step 7: AI Coding Tools')
    install_ai_tools(ctx)
    ctx.pause()

    show_completion(ctx)
    report.completed = True
    log.debug('Provisioning finished: {}', report.as_dict())
    return report
