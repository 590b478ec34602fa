"""Install steps: presence check, optional confirmation, then the install action."""

from __future__ import annotations

import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .. import console
from ..errors import UnsupportedPlatformError
from ..results import StepOutcome
from ..util import append_line_once
from .context import ProvisionContext

log = logger

StepFn = Callable[[ProvisionContext], None]


@dataclass(frozen=True)
class InstallStep:
    name: str
    label: str
    is_present: Callable[[ProvisionContext], bool]
    install: StepFn
    confirm: str = ''
    on_present: Optional[StepFn] = None
    hint: str = ''
    skip_hint: str = ''


def apply_step(ctx: ProvisionContext, step: InstallStep) -> StepOutcome:
    """Evaluate one step once and record its outcome on the run report.

    Command failures propagate as :class:`~devboot.util.CmdError`; a "no"
    answer to the confirmation is recorded as declined and is not an error.
    """
    if step.is_present(ctx):
        console.success(f'{step.label} is already installed!')
        if step.on_present is not None:
            step.on_present(ctx)
        return ctx.report.record(step.name, StepOutcome.ALREADY)
    if step.confirm and not ctx.prompter.ask_yes_no(step.name, step.confirm):
        console.warning(f'Skipping {step.label} installation.')
        if step.skip_hint:
            console.info(step.skip_hint)
        return ctx.report.record(step.name, StepOutcome.DECLINED)
    console.step(f'Installing {step.label}...')
    log.debug('Installing step {}', step.name)
    step.install(ctx)
    console.success(f'{step.label} installed successfully!')
    if step.hint:
        console.info(step.hint)
    return ctx.report.record(step.name, StepOutcome.INSTALLED)


def check_platform(system: Callable[[], str] = platform.system) -> None:
    name = system()
    if name != 'Darwin':
        raise UnsupportedPlatformError(
            'This provisioner is designed for macOS. '
            f'You appear to be running a different OS ({name or "unknown"}).'
        )


def _print_version(ctx: ProvisionContext, cmd: list[str]) -> None:
    res = ctx.run(cmd, check=False)
    text = (res.stdout or res.stderr).strip()
    if text:
        print(text.splitlines()[0])


# Homebrew


def _brew_present(ctx: ProvisionContext) -> bool:
    return ctx.which('brew') is not None


def _brew_update(ctx: ProvisionContext) -> None:
    console.step('Updating Homebrew to latest version...')
    ctx.run(['brew', 'update'], capture=False)
    console.success('Homebrew updated!')


def _brew_install(ctx: ProvisionContext) -> None:
    console.info('You may be asked for your password. This is your Mac login password.')
    console.info("When you type it, you won't see any characters - that's normal!")
    script = ctx.run(['curl', '-fsSL', ctx.cfg.homebrew_install_url]).stdout
    ctx.run(
        ['/bin/bash', '-c', script],
        capture=False,
        extra_env={'NONINTERACTIVE': '1'},
    )
    brew = ctx.homebrew_bin / 'brew'
    if brew.exists():
        profile = Path(ctx.cfg.shell_profile)
        append_line_once(profile, f'eval "$({brew} shellenv)"')
        ctx.prepend_path(ctx.homebrew_bin)


HOMEBREW = InstallStep(
    name='homebrew',
    label='Homebrew',
    is_present=_brew_present,
    install=_brew_install,
    on_present=_brew_update,
)


# Git


def _git_version(ctx: ProvisionContext) -> None:
    _print_version(ctx, ['git', '--version'])


GIT = InstallStep(
    name='git',
    label='Git',
    is_present=lambda ctx: ctx.which('git') is not None,
    install=lambda ctx: ctx.run(['brew', 'install', 'git'], capture=False),
    on_present=_git_version,
)

GIT_IDENTITY = (
    ('user.name', 'git_name', 'Enter your name (e.g., John Smith)', 'Name'),
    (
        'user.email',
        'git_email',
        'Enter your email (use your GitHub email if you have one)',
        'Email',
    ),
)


def configure_git_identity(ctx: ProvisionContext) -> StepOutcome:
    console.step('Configuring Git...')
    changed = False
    for key, answer_key, question, label in GIT_IDENTITY:
        current = ctx.run(['git', 'config', '--global', key], check=False)
        value = current.stdout.strip()
        if value:
            console.success(f'Git {label.lower()} already configured: {value}')
            continue
        if answer_key == 'git_name':
            console.info('Git needs to know who you are for commit messages.')
        value = ctx.prompter.ask_text(answer_key, question)
        ctx.run(['git', 'config', '--global', key, value])
        console.success(f'{label} set!')
        changed = True
    outcome = StepOutcome.INSTALLED if changed else StepOutcome.ALREADY
    return ctx.report.record('git_identity', outcome)


# NVM and Node.js


def _nvm_install(ctx: ProvisionContext) -> None:
    # The NVM installer refuses a non-default NVM_DIR that does not exist yet.
    ctx.nvm_dir.mkdir(parents=True, exist_ok=True)
    ctx.run(
        [
            'bash',
            '-c',
            f'set -o pipefail; curl -fsSL -o- {ctx.cfg.nvm_install_url} | bash',
        ],
        capture=False,
        extra_env={'NVM_DIR': str(ctx.nvm_dir)},
    )


NVM = InstallStep(
    name='nvm',
    label='NVM',
    is_present=lambda ctx: (ctx.nvm_dir / 'nvm.sh').is_file(),
    install=_nvm_install,
)


def _node_present(ctx: ProvisionContext) -> bool:
    # A system node on PATH satisfies `command -v`; only an NVM-managed LTS
    # with the default alias set counts.
    if not (ctx.nvm_dir / 'nvm.sh').is_file():
        return False
    res = ctx.nvm_run(
        "nvm which 'lts/*' >/dev/null 2>&1 && nvm which default >/dev/null 2>&1",
        check=False,
    )
    return res.ok


def _node_install(ctx: ProvisionContext) -> None:
    console.info('LTS versions are stable and recommended for most users.')
    ctx.nvm_run(
        "nvm install --lts && nvm use --lts && nvm alias default 'lts/*'",
        capture=False,
    )


NODE = InstallStep(
    name='node',
    label='Node.js LTS',
    is_present=_node_present,
    install=_node_install,
)


def report_node_versions(ctx: ProvisionContext) -> None:
    node = ctx.nvm_run('node --version', check=False).stdout.strip()
    npm = ctx.nvm_run('npm --version', check=False).stdout.strip()
    console.info(f'Node version: {node or "unknown"}')
    console.info(f'NPM version: {npm or "unknown"}')


# GitHub CLI


GITHUB_CLI = InstallStep(
    name='gh',
    label='GitHub CLI',
    is_present=lambda ctx: ctx.which('gh') is not None,
    install=lambda ctx: ctx.run(['brew', 'install', 'gh'], capture=False),
    on_present=lambda ctx: _print_version(ctx, ['gh', '--version']),
)


def setup_github_auth(ctx: ProvisionContext) -> StepOutcome:
    if ctx.run(['gh', 'auth', 'status'], check=False).ok:
        console.success("You're already authenticated with GitHub!")
        if not ctx.prompter.ask_yes_no(
            'github_reauth', 'Would you like to re-authenticate anyway?'
        ):
            return ctx.report.record('github_auth', StepOutcome.ALREADY)
    console.info('This will open a web browser for you to log in to GitHub.')
    console.info(
        "If you don't have a GitHub account, create one at https://github.com"
    )
    if not ctx.prompter.ask_yes_no(
        'github_auth', 'Ready to authenticate with GitHub?'
    ):
        console.warning('Skipping GitHub authentication.')
        console.info("You can run 'gh auth login' later to authenticate.")
        return ctx.report.record('github_auth', StepOutcome.DECLINED)
    console.step('Starting GitHub authentication...')
    console.info('A browser window will open. Follow the prompts there.')
    ctx.run(['gh', 'auth', 'login', '--web', '-h', 'github.com'], capture=False)
    console.success('GitHub authentication complete!')
    return ctx.report.record('github_auth', StepOutcome.INSTALLED)


# Ghostty


def ghostty_present(ctx: ProvisionContext) -> bool:
    return Path(ctx.cfg.ghostty_app).exists() or ctx.which('ghostty') is not None


GHOSTTY = InstallStep(
    name='ghostty',
    label='Ghostty',
    is_present=ghostty_present,
    install=lambda ctx: ctx.run(
        ['brew', 'install', '--cask', 'ghostty'], capture=False
    ),
    confirm='Install Ghostty? (Recommended for best AI tool experience)',
    hint='Tip: Use Ghostty instead of Terminal for AI coding tools.',
    skip_hint='You can install it later with: brew install --cask ghostty',
)
