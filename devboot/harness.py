"""End-to-end Provisioner tests inside disposable tart VMs.

Two flavors are provided:

* :func:`run_automated` clones a fresh VM, boots it headless, waits for SSH,
  runs ``devboot provision`` inside it with keyed answers fed on stdin, probes
  which tools ended up installed, and always stops and deletes the VM.
* :func:`run_manual` prepares a VM (optionally reusing an existing one), boots
  it with a display for a human tester, and asks whether to delete it after.
"""

from __future__ import annotations

import shlex
import signal
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from loguru import logger

from . import console
from .answers import InteractivePrompter, ScriptedPrompter
from .config import DevbootConfig, dump_answers
from .host import (
    check_harness_host,
    default_route_interface,
    ensure_homebrew,
    ensure_sshpass,
    install_tart,
)
from .results import VerificationSummary
from .retry import RetryPolicy
from .util import run_cmd
from .verify import build_probes, run_probes
from .vm import tart
from .vm.lifecycle import (
    VMInstance,
    VMState,
    delete_instance,
    port_open,
    prepare_instance,
    vm_session,
    wait_until_reachable,
)
from .vm.remote import RemoteShell

log = logger


def repo_root() -> Path:
    """Directory shared into the guest: the checkout containing ``pyproject.toml``."""
    return Path(__file__).resolve().parent.parent


@contextmanager
def sigterm_as_interrupt() -> Iterator[None]:
    """Turn SIGTERM into KeyboardInterrupt so ``finally`` cleanup still runs."""

    def _handler(signum, frame):
        raise KeyboardInterrupt(f'received signal {signum}')

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def run_automated(
    cfg: DevbootConfig,
    *,
    share_dir: Optional[str] = None,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    probe_port: Callable[[str, int], bool] = port_open,
) -> VerificationSummary:
    """Provision a throwaway VM non-interactively and verify the result.

    Raises:
        HostPreconditionError: host is not Apple Silicon macOS with tart.
        ReadinessTimeoutError: no IP or SSH within ``harness.max_wait_s``.
        RemoteCommandError: shared folder missing or the guest run failed.

    In every case the VM process is stopped and the VM deleted before the
    exception leaves this function.
    """
    console.header('Automated Provisioner Test')
    check_harness_host()
    ensure_sshpass()

    share = share_dir or str(repo_root())
    vm = VMInstance(cfg.vm.name, cfg.vm.base_image)
    policy = RetryPolicy(
        interval_s=cfg.harness.poll_interval_s,
        max_wait_s=cfg.harness.max_wait_s,
    )
    guest_dir = cfg.vm.guest_share_dir.rstrip('/')
    with sigterm_as_interrupt(), vm_session(
        vm,
        share_dir=share,
        delete_on_exit=True,
        stop_timeout_s=cfg.harness.stop_timeout_s,
        popen=popen,
    ):
        wait_until_reachable(
            vm,
            port=cfg.vm.ssh_port,
            policy=policy,
            settle_s=cfg.harness.settle_s,
            clock=clock,
            sleep=sleep,
            probe_port=probe_port,
        )
        shell = RemoteShell(vm, user=cfg.vm.user, password=cfg.vm.password)

        console.header('Running Provisioner Tests')
        console.step('Test 1: Checking shared directory...')
        shell.check(
            f'test -f {shlex.quote(guest_dir + "/pyproject.toml")}',
            what='shared directory is mounted',
        )
        console.success('Shared directory mounted and devboot sources accessible')

        console.step('Test 2: Running provisioner (automated)...')
        print('')
        shell.check(
            cfg.harness.remote_command.format(share_dir=guest_dir),
            input_text=dump_answers(cfg.answers),
            capture=False,
            what='devboot provision',
        )
        print('')

        console.step('Test 3: Verifying installations...')
        probes = build_probes(cfg.answers, nvm_dir=cfg.vm.guest_nvm_dir)
        summary = run_probes(shell, probes)

    console.header(f'Test Results: {summary.passed}/{summary.total} passed')
    if summary.all_passed:
        console.success('All tests passed!')
    else:
        console.error(
            'Some tests failed: ' + ', '.join(summary.failed_names())
        )
    return summary


def _print_manual_instructions(cfg: DevbootConfig) -> None:
    guest_dir = cfg.vm.guest_share_dir.rstrip('/')
    console.header('Testing Instructions')
    print(f"  VM Credentials: user '{cfg.vm.user}', password '{cfg.vm.password}'")
    print('')
    print('  Once the VM desktop appears:')
    print('')
    print("  1. Open Terminal: Press Cmd+Space, type 'Terminal', press Enter")
    print('')
    print('  2. Install and run the provisioner from the shared folder:')
    print('')
    print('     python3 -m venv ~/devboot-venv')
    print('     ~/devboot-venv/bin/pip install --upgrade pip')
    print(f"     ~/devboot-venv/bin/pip install '{guest_dir}'")
    print('     ~/devboot-venv/bin/devboot provision')
    print('')
    print('  3. Walk through each step:')
    for item in (
        'Homebrew installation',
        'Git setup (enter name/email)',
        'NVM + Node.js LTS',
        'GitHub CLI + authentication',
        'Choose AI tools to install',
    ):
        print(f'     • {item}')
    print('')
    print('  4. Verify everything worked:')
    print('')
    print('     brew --version && git --version && node --version && gh --version')
    print('')
    print('  5. Close VM window when done (or Ctrl+C here)')
    print('')
    print(console.RULE)
    print('')


def run_manual(
    cfg: DevbootConfig,
    prompter: InteractivePrompter | ScriptedPrompter,
    *,
    share_dir: Optional[str] = None,
) -> int:
    """Prepare a VM for a human tester and offer cleanup when the VM exits."""
    console.header('Provisioner Test Environment')
    check_harness_host(require_tart=False)
    ensure_homebrew()
    install_tart()
    print('')

    vm = VMInstance(cfg.vm.manual_name, cfg.vm.base_image)
    reuse = False
    if tart.vm_exists(vm.name):
        console.warning('Existing test VM found.')
        if prompter.ask_yes_no('recreate_vm', 'Delete and recreate fresh VM?'):
            console.step('Deleting existing test VM...')
            tart.delete_vm(vm.name)
        else:
            console.step('Reusing existing VM...')
            vm.state = VMState.CLONED
            reuse = True
    if not reuse:
        prepare_instance(vm)

    _print_manual_instructions(cfg)
    share = share_dir or str(repo_root())
    iface = default_route_interface()
    console.step('Starting VM with shared directory and bridged networking...')
    console.info(f'Using network interface: {iface}')
    print('')
    try:
        run_cmd(
            tart.run_args(
                vm.name, share_dir=share, headless=False, bridged_iface=iface
            ),
            check=False,
            capture=False,
        )
    except KeyboardInterrupt:
        print('')
        log.info('VM run interrupted by operator')

    print('')
    if prompter.ask_yes_no('delete_vm', 'Delete test VM to free disk space?'):
        delete_instance(vm)
        console.success('Test VM deleted.')
    else:
        console.info(f'VM kept. Start it again with: tart run {vm.name}')
    return 0
