"""Tests for the Provisioner sequence against a simulated Mac."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from devboot.answers import ScriptedPrompter
from devboot.config import ProvisionConfig
from devboot.errors import MissingAnswerError, UnsupportedPlatformError
from devboot.provision import run_provisioner
from devboot.results import StepOutcome
from devboot.util import CmdError, CmdResult

NPM_BINARIES = {
    '@openai/codex': 'codex',
    'opencode-ai': 'opencode',
    '@anthropic-ai/claude-code': 'claude',
    '@kilocode/cli': 'kilocode',
}


class FakeMac:
    """Just enough of a macOS host to drive every install step."""

    def __init__(self, root: Path):
        self.root = root
        self.binaries: set[str] = set()
        self.nvm_binaries: set[str] = set()
        self.nvm_lts = False
        self.git_config: dict[str, str] = {}
        self.gh_authed = False
        self.fail_when: str | None = None
        self.calls: list[list[str]] = []

    def cfg(self) -> ProvisionConfig:
        return ProvisionConfig(
            homebrew_prefix=str(self.root / 'homebrew'),
            nvm_dir=str(self.root / 'nvm'),
            shell_profile=str(self.root / 'zprofile'),
            ghostty_app=str(self.root / 'Applications' / 'Ghostty.app'),
            pause_between_steps=False,
        )

    def install(self, monkeypatch) -> None:
        monkeypatch.setenv('HOME', str(self.root / 'home'))
        monkeypatch.setattr(
            'devboot.provision.context.which',
            lambda cmd, path=None: (
                f'/fake/bin/{cmd}' if cmd in self.binaries else None
            ),
        )
        monkeypatch.setattr('devboot.provision.context.run_cmd', self.run_cmd)

    def preinstall_brew(self) -> None:
        brew = self.root / 'homebrew' / 'bin' / 'brew'
        brew.parent.mkdir(parents=True, exist_ok=True)
        brew.write_text('#!/bin/sh\n')
        self.binaries.add('brew')

    def preinstall_nvm(self) -> None:
        nvm_sh = self.root / 'nvm' / 'nvm.sh'
        nvm_sh.parent.mkdir(parents=True, exist_ok=True)
        nvm_sh.write_text('# nvm\n')

    def install_commands(self) -> list[str]:
        out = []
        for cmd in self.calls:
            text = ' '.join(cmd)
            if (
                'brew install' in text
                or 'npm install -g' in text
                or 'nvm install' in text
                or '| bash' in text
                or cmd[:2] == ['/bin/bash', '-c']
            ):
                out.append(text)
        return out

    def run_cmd(self, cmd, *, check=True, capture=True, env=None, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        text = ' '.join(cmd)
        if self.fail_when is not None and self.fail_when in text:
            res = CmdResult(1, '', 'simulated failure')
        else:
            res = self._dispatch(cmd, env or {})
        if check and res.code != 0:
            raise CmdError(cmd, res)
        return res

    def _dispatch(self, cmd: list[str], env: dict) -> CmdResult:
        ok = CmdResult(0, '', '')
        if cmd[:2] == ['curl', '-fsSL']:
            return CmdResult(0, 'echo install homebrew', '')
        if cmd[:2] == ['/bin/bash', '-c']:
            self.preinstall_brew()
            return ok
        if cmd[0] == 'brew':
            if cmd[1:3] == ['install', '--cask']:
                self.binaries.add(cmd[3])
            elif cmd[1] == 'install':
                self.binaries.add(cmd[2])
            return ok
        if cmd[0] == 'git' and cmd[1:3] == ['config', '--global']:
            if len(cmd) == 4:
                value = self.git_config.get(cmd[3], '')
                return CmdResult(0 if value else 1, value + '\n' if value else '', '')
            self.git_config[cmd[3]] = cmd[4]
            return ok
        if cmd[0] == 'gh' and cmd[1:3] == ['auth', 'status']:
            return CmdResult(0 if self.gh_authed else 1, '', '')
        if cmd[0] == 'gh' and cmd[1:3] == ['auth', 'login']:
            self.gh_authed = True
            return ok
        if cmd[0] in {'git', 'gh', 'brew'}:
            return CmdResult(0, f'{cmd[0]} version 1.0\n', '')
        if cmd[:2] == ['bash', '-c']:
            return self._bash(cmd[2], env)
        raise AssertionError(f'unexpected command: {cmd}')

    def _bash(self, script: str, env: dict) -> CmdResult:
        ok = CmdResult(0, '', '')
        if 'nvm-sh/nvm' in script:
            assert env['NVM_DIR'] == str(self.root / 'nvm')
            self.preinstall_nvm()
            return ok
        if 'curl' in script:
            self.binaries.add('amp')
            return ok
        assert script.startswith('. "$NVM_DIR/nvm.sh" && ')
        assert env['NVM_DIR'] == str(self.root / 'nvm')
        body = script.split('&& ', 1)[1]
        if body.startswith('nvm install --lts'):
            assert body.endswith("nvm alias default 'lts/*'")
            self.nvm_binaries.update({'node', 'npm'})
            self.nvm_lts = True
            return ok
        if body.startswith("nvm which 'lts/*'"):
            return CmdResult(0 if self.nvm_lts else 1, '', '')
        match = re.match(r'npm install -g (\S+)', body)
        if match:
            self.nvm_binaries.add(NPM_BINARIES[match.group(1)])
            return ok
        match = re.match(r'command -v (\S+)', body)
        if match:
            found = match.group(1) in self.nvm_binaries
            return CmdResult(0 if found else 1, '', '')
        match = re.match(r'(node|npm) --version', body)
        if match:
            return CmdResult(0, 'v22.11.0\n', '')
        raise AssertionError(f'unexpected nvm script: {script}')


def _answers(**overrides):
    answers = {
        'start': True,
        'git_name': 'Test User',
        'git_email': 'test@example.com',
        'github_reauth': False,
        'github_auth': False,
        'ghostty': False,
        'amp': False,
        'codex': False,
        'opencode': False,
        'claude': False,
        'kilocode': False,
    }
    answers.update(overrides)
    return answers


def _run(fake: FakeMac, answers, cfg=None):
    prompter = ScriptedPrompter(answers)
    report = run_provisioner(
        cfg or fake.cfg(), prompter, base_env={'PATH': '/usr/bin:/bin'},
        system=lambda: 'Darwin',
    )
    return report, prompter


@pytest.fixture
def fake(tmp_path, monkeypatch) -> FakeMac:
    mac = FakeMac(tmp_path)
    mac.install(monkeypatch)
    return mac


def test_fresh_host_scenario(fake: FakeMac) -> None:
    answers = _answers(
        github_auth=True, ghostty=True, codex=False, opencode=True
    )
    report, prompter = _run(fake, answers)
    assert report.completed is True
    assert {'brew', 'git', 'gh', 'ghostty'} <= fake.binaries
    assert {'node', 'npm', 'opencode'} <= fake.nvm_binaries
    assert 'codex' not in fake.nvm_binaries
    assert report.outcomes['codex'] == StepOutcome.DECLINED
    assert report.outcomes['opencode'] == StepOutcome.INSTALLED
    assert fake.git_config == {
        'user.name': 'Test User',
        'user.email': 'test@example.com',
    }
    assert fake.gh_authed is True
    assert not any('@openai/codex' in c for c in fake.install_commands())
    profile = Path(fake.cfg().shell_profile).read_text()
    assert 'shellenv' in profile


def test_steps_run_in_order(fake: FakeMac) -> None:
    report, prompter = _run(fake, _answers())
    assert list(report.outcomes) == [
        'homebrew', 'git', 'git_identity', 'nvm', 'node', 'gh', 'github_auth',
        'ghostty', 'amp', 'codex', 'opencode', 'claude', 'kilocode',
    ]
    assert prompter.asked[0] == 'start'


def test_second_run_is_idempotent(fake: FakeMac) -> None:
    answers = _answers(github_auth=True, ghostty=True, amp=True, claude=True)
    _run(fake, answers)
    fake.calls.clear()
    report, _ = _run(fake, answers)
    assert report.completed is True
    assert fake.install_commands() == []
    assert report.names_with(StepOutcome.INSTALLED) == []
    for name in ('homebrew', 'git', 'nvm', 'node', 'gh', 'ghostty', 'amp', 'claude'):
        assert report.outcomes[name] == StepOutcome.ALREADY
    # Profile line is not duplicated by a second run.
    profile = Path(fake.cfg().shell_profile).read_text()
    assert profile.count('shellenv') == 1


def test_system_node_does_not_satisfy_node_step(fake: FakeMac) -> None:
    # Homebrew node resolves through `command -v` even after sourcing nvm.sh.
    fake.preinstall_nvm()
    fake.nvm_binaries.update({'node', 'npm'})
    report, _ = _run(fake, _answers())
    assert report.outcomes['nvm'] == StepOutcome.ALREADY
    assert report.outcomes['node'] == StepOutcome.INSTALLED
    assert fake.nvm_lts is True
    assert any('nvm install --lts' in c for c in fake.install_commands())


def test_existing_brew_and_git_are_not_reinstalled(fake: FakeMac, capsys) -> None:
    fake.preinstall_brew()
    fake.binaries.add('git')
    report, _ = _run(fake, _answers())
    assert report.outcomes['homebrew'] == StepOutcome.ALREADY
    assert report.outcomes['git'] == StepOutcome.ALREADY
    assert report.outcomes['nvm'] == StepOutcome.INSTALLED
    assert not any(c[:1] == ['curl'] for c in fake.calls)
    assert not any(c[:2] == ['/bin/bash', '-c'] for c in fake.calls)
    assert ['brew', 'install', 'git'] not in fake.calls
    assert ['brew', 'update'] in fake.calls
    out = capsys.readouterr().out
    assert 'Homebrew is already installed!' in out
    assert 'Git is already installed!' in out


def test_declined_tool_runs_no_install(fake: FakeMac) -> None:
    report, _ = _run(fake, _answers(kilocode=False))
    assert report.outcomes['kilocode'] == StepOutcome.DECLINED
    assert not any('@kilocode/cli' in c for c in fake.install_commands())


def test_install_failure_stops_the_run(fake: FakeMac) -> None:
    fake.fail_when = 'brew install git'
    with pytest.raises(CmdError):
        _run(fake, _answers())
    ran = [' '.join(c) for c in fake.calls]
    assert ran[-1] == 'brew install git'
    assert not any('nvm-sh/nvm' in c for c in ran)
    assert 'git' not in fake.binaries


def test_declining_start_does_nothing(fake: FakeMac) -> None:
    report, prompter = _run(fake, _answers(start=False))
    assert report.completed is False
    assert report.outcomes == {}
    assert fake.calls == []
    assert prompter.asked == ['start']


def test_missing_answer_is_fatal(fake: FakeMac) -> None:
    answers = _answers()
    del answers['opencode']
    with pytest.raises(MissingAnswerError):
        _run(fake, answers)


def test_existing_identity_and_auth_are_kept(fake: FakeMac) -> None:
    fake.git_config = {'user.name': 'Ada', 'user.email': 'ada@example.com'}
    fake.gh_authed = True
    answers = _answers()
    del answers['git_name']
    del answers['git_email']
    report, prompter = _run(fake, answers)
    assert report.outcomes['git_identity'] == StepOutcome.ALREADY
    assert report.outcomes['github_auth'] == StepOutcome.ALREADY
    assert 'github_reauth' in prompter.asked
    assert 'github_auth' not in prompter.asked
    assert fake.git_config['user.name'] == 'Ada'


def test_unsupported_platform(tmp_path) -> None:
    with pytest.raises(UnsupportedPlatformError):
        run_provisioner(
            ProvisionConfig(),
            ScriptedPrompter(_answers()),
            system=lambda: 'Linux',
        )
