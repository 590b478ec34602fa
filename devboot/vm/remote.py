"""Password-authenticated SSH command channel into a reachable VM."""

from __future__ import annotations

import os
from typing import Optional

from loguru import logger

from ..errors import RemoteCommandError
from ..util import CmdResult, run_cmd
from .lifecycle import VMInstance

log = logger


def ssh_base_args(
    *,
    strict_host_key_checking: str = 'no',
    user_known_hosts_file: str | None = '/dev/null',
    log_level: str = 'ERROR',
    connect_timeout: int | None = None,
) -> list[str]:
    args: list[str] = []
    if connect_timeout is not None:
        args.extend(['-o', f'ConnectTimeout={connect_timeout}'])
    args.extend(['-o', f'StrictHostKeyChecking={strict_host_key_checking}'])
    if user_known_hosts_file:
        args.extend(['-o', f'UserKnownHostsFile={user_known_hosts_file}'])
    args.extend(['-o', f'LogLevel={log_level}'])
    return args


class RemoteShell:
    """Run shell commands inside ``vm`` via ``sshpass -e ssh``.

    The password travels in the ``SSHPASS`` environment variable rather than
    on the command line. Every call checks that the VM is reachable first.
    """

    def __init__(self, vm: VMInstance, *, user: str, password: str):
        self.vm = vm
        self.user = user
        self.password = password

    def command(self, remote: str) -> list[str]:
        ip = self.vm.require_reachable()
        return [
            'sshpass',
            '-e',
            'ssh',
            *ssh_base_args(connect_timeout=10),
            f'{self.user}@{ip}',
            remote,
        ]

    def run(
        self,
        remote: str,
        *,
        input_text: Optional[str] = None,
        capture: bool = True,
    ) -> CmdResult:
        cmd = self.command(remote)
        env = dict(os.environ)
        env['SSHPASS'] = self.password
        return run_cmd(
            cmd,
            check=False,
            capture=capture,
            input_text=input_text,
            env=env,
        )

    def check(
        self,
        remote: str,
        *,
        input_text: Optional[str] = None,
        capture: bool = True,
        what: str = '',
    ) -> CmdResult:
        res = self.run(remote, input_text=input_text, capture=capture)
        if res.code != 0:
            label = what or remote
            detail = res.stderr.strip()
            log.error(
                'Remote command failed code={} on {}: {}',
                res.code,
                self.vm.name,
                label,
            )
            raise RemoteCommandError(
                f'Remote command failed (code={res.code}) on {self.vm.name}: '
                f'{label}' + (f'\n{detail}' if detail else ''),
                code=res.code,
            )
        return res
