"""Tests for test host."""

from __future__ import annotations

import json

import pytest

from devboot.errors import HostPreconditionError
from devboot.host import (
    check_commands,
    check_harness_host,
    default_route_interface,
    ensure_sshpass,
    install_tart,
    latest_tart_version,
)
from devboot.util import CmdResult


def test_check_commands(monkeypatch) -> None:
    present = {'tart', 'ssh'}
    monkeypatch.setattr(
        'devboot.host.which',
        lambda cmd: f'/usr/bin/{cmd}' if cmd in present else None,
    )
    assert check_commands(['tart', 'sshpass', 'ssh']) == ['sshpass']


def test_check_harness_host(monkeypatch) -> None:
    monkeypatch.setattr('devboot.host.which', lambda cmd: None)
    with pytest.raises(HostPreconditionError, match='macOS'):
        check_harness_host(system=lambda: 'Linux', machine=lambda: 'arm64')
    with pytest.raises(HostPreconditionError, match='Apple Silicon'):
        check_harness_host(system=lambda: 'Darwin', machine=lambda: 'x86_64')
    with pytest.raises(HostPreconditionError, match='Tart not installed'):
        check_harness_host(system=lambda: 'Darwin', machine=lambda: 'arm64')
    check_harness_host(
        require_tart=False, system=lambda: 'Darwin', machine=lambda: 'arm64'
    )


def test_ensure_sshpass_installs_when_missing(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr('devboot.host.which', lambda cmd: None)
    monkeypatch.setattr(
        'devboot.host.run_cmd',
        lambda cmd, **kwargs: (calls.append(cmd) or CmdResult(0, '', '')),
    )
    ensure_sshpass()
    assert calls == [['brew', 'install', 'hudochenkov/sshpass/sshpass']]


def test_latest_tart_version(monkeypatch) -> None:
    monkeypatch.setattr(
        'devboot.host.run_cmd',
        lambda cmd, **kwargs: CmdResult(0, json.dumps({'tag_name': '2.28.1'}), ''),
    )
    assert latest_tart_version() == '2.28.1'
    monkeypatch.setattr(
        'devboot.host.run_cmd',
        lambda cmd, **kwargs: CmdResult(0, 'rate limited', ''),
    )
    with pytest.raises(HostPreconditionError):
        latest_tart_version()


def test_install_tart_from_release(monkeypatch) -> None:
    calls = []
    installed = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs.get('sudo', False)))
        if 'api.github.com' in ' '.join(cmd):
            return CmdResult(0, '{"tag_name": "2.28.1"}', '')
        if cmd[0] == 'ln':
            installed.append(cmd[-1])
        return CmdResult(0, '', '')

    monkeypatch.setattr('devboot.host.run_cmd', fake_run)
    monkeypatch.setattr(
        'devboot.host.which',
        lambda cmd: '/usr/local/bin/tart' if installed else None,
    )
    install_tart()
    downloads = [c for c, _ in calls if c[:3] == ['curl', '-fsSL', '-o']]
    assert downloads[0][-1].endswith('/2.28.1/tart.tar.gz')
    assert (['sudo', '-v'], False) in calls
    sudo_cmds = [c[0] for c, sudo in calls if sudo]
    assert sudo_cmds == ['rm', 'mv', 'mkdir', 'ln']
    assert installed == ['/usr/local/bin/tart']


def test_default_route_interface(monkeypatch) -> None:
    out = '   route to: default\ndestination: default\n  interface: en7\n'
    monkeypatch.setattr(
        'devboot.host.run_cmd', lambda cmd, **kwargs: CmdResult(0, out, '')
    )
    assert default_route_interface() == 'en7'
    monkeypatch.setattr(
        'devboot.host.run_cmd', lambda cmd, **kwargs: CmdResult(1, '', 'no route')
    )
    assert default_route_interface() == 'en0'
