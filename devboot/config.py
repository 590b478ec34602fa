"""Dataclass configuration for the Provisioner and VM harness, with TOML IO."""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path

import ubelt as ub

from .util import expand

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

LOCAL_CONFIG_NAME = '.devboot.toml'

HOMEBREW_INSTALL_URL = (
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh'
)
NVM_INSTALL_URL = (
    'https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.3/install.sh'
)
AMP_INSTALL_URL = 'https://ampcode.com/install.sh'
TART_RELEASES_API = 'https://api.github.com/repos/cirruslabs/tart/releases/latest'
DEFAULT_BASE_IMAGE = 'ghcr.io/cirruslabs/macos-sequoia-base:latest'
TART_SHARED_DIR = '/Volumes/My Shared Files'

DEFAULT_REMOTE_COMMAND = (
    'set -e; '
    'python3 -m venv /tmp/devboot-venv; '
    '/tmp/devboot-venv/bin/pip install --quiet --upgrade pip; '
    '/tmp/devboot-venv/bin/pip install --quiet "{share_dir}"; '
    '/tmp/devboot-venv/bin/devboot provision --answers -'
)


@dataclass
class ProvisionConfig:
    homebrew_install_url: str = HOMEBREW_INSTALL_URL
    homebrew_prefix: str = '/opt/homebrew'
    nvm_install_url: str = NVM_INSTALL_URL
    nvm_dir: str = '~/.nvm'
    amp_install_url: str = AMP_INSTALL_URL
    shell_profile: str = '~/.zprofile'
    ghostty_app: str = '/Applications/Ghostty.app'
    pause_between_steps: bool = True


@dataclass
class VMConfig:
    name: str = 'devboot-test-auto'
    manual_name: str = 'devboot-test'
    base_image: str = DEFAULT_BASE_IMAGE
    user: str = 'admin'
    password: str = 'admin'
    ssh_port: int = 22
    guest_share_dir: str = TART_SHARED_DIR
    guest_nvm_dir: str = '~/.nvm'


@dataclass
class HarnessConfig:
    max_wait_s: int = 300
    poll_interval_s: int = 5
    settle_s: int = 5
    stop_timeout_s: int = 30
    remote_command: str = DEFAULT_REMOTE_COMMAND


def default_answers() -> dict[str, bool | str]:
    return {
        'start': True,
        'git_name': 'Test User',
        'git_email': 'test@example.com',
        'github_reauth': False,
        'github_auth': False,
        'ghostty': True,
        'amp': True,
        'codex': False,
        'opencode': True,
        'claude': False,
        'kilocode': False,
    }


@dataclass
class DevbootConfig:
    provision: ProvisionConfig = field(default_factory=ProvisionConfig)
    vm: VMConfig = field(default_factory=VMConfig)
    harness: HarnessConfig = field(default_factory=HarnessConfig)
    answers: dict[str, bool | str] = field(default_factory=default_answers)
    verbosity: int = 1

    def expanded_paths(self) -> 'DevbootConfig':
        self.provision.nvm_dir = expand(self.provision.nvm_dir)
        self.provision.shell_profile = expand(self.provision.shell_profile)
        return self


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def _toml_value(v) -> str:
    if isinstance(v, bool):
        return 'true' if v else 'false'
    if isinstance(v, int):
        return str(v)
    if isinstance(v, list):
        parts = [_toml_value(item) for item in v]
        return f'[{", ".join(parts)}]'
    return f'"{_toml_escape(str(v))}"'


def dump_answers(answers: dict[str, bool | str]) -> str:
    lines = [f'{k} = {_toml_value(v)}' for k, v in answers.items()]
    return '\n'.join(lines) + '\n'


def load_answers(text: str) -> dict[str, bool | str]:
    raw = tomllib.loads(text)
    # Accept both a flat table and an [answers] section.
    if isinstance(raw.get('answers'), dict):
        raw = raw['answers']
    return _coerce_answers(raw)


def _coerce_answers(raw: dict) -> dict[str, bool | str]:
    out: dict[str, bool | str] = {}
    for k, v in raw.items():
        if not isinstance(v, (bool, str)):
            raise ValueError(
                f'Answer {k!r} must be a boolean or a string, got {type(v).__name__}'
            )
        out[k] = v
    return out


def dump_toml(cfg: DevbootConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    for section, body in d.items():
        if isinstance(body, dict):
            lines.append(f'[{section}]')
            for k, v in body.items():
                lines.append(f'{k} = {_toml_value(v)}')
            lines.append('')
        elif section == 'verbosity' and body != 1:
            lines.insert(0, f'{section} = {body}\n')
    return '\n'.join(lines).rstrip() + '\n'


def load(path: Path) -> DevbootConfig:
    raw = tomllib.loads(path.read_text(encoding='utf-8'))
    cfg = DevbootConfig()
    for section in ('provision', 'vm', 'harness'):
        if section in raw and isinstance(raw[section], dict):
            sec = raw[section]
            obj = getattr(cfg, section)
            for k, v in sec.items():
                if hasattr(obj, k):
                    setattr(obj, k, v)
    if isinstance(raw.get('answers'), dict):
        cfg.answers.update(_coerce_answers(raw['answers']))
    if 'verbosity' in raw:
        cfg.verbosity = raw['verbosity']
    return cfg


def save(path: Path, cfg: DevbootConfig) -> None:
    path.write_text(dump_toml(cfg), encoding='utf-8')


def user_config_path() -> Path:
    return Path(ub.Path.appdir('devboot', type='config')) / 'config.toml'


def resolve_config_path(p: str | None) -> Path | None:
    """Pick the config file to use: explicit, local, then per-user."""
    if p:
        return Path(p).expanduser().resolve()
    local = Path(LOCAL_CONFIG_NAME).resolve()
    if local.exists():
        return local
    user = user_config_path()
    if user.exists():
        return user
    return None


def load_config(p: str | None) -> DevbootConfig:
    path = resolve_config_path(p)
    if path is None:
        return DevbootConfig().expanded_paths()
    if not path.exists():
        raise FileNotFoundError(
            f'Config not found: {path}. Run: devboot config init --config {path}'
        )
    return load(path).expanded_paths()
