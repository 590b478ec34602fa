"""VM lifecycle: clone from a base image, boot headless, wait for SSH, tear down."""

from __future__ import annotations

import enum
import socket
import subprocess
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from loguru import logger

from .. import console
from ..errors import DevbootError, VMNotReachableError
from ..retry import RetryPolicy, poll_until
from . import tart

log = logger


class VMState(str, enum.Enum):
    ABSENT = 'absent'
    CLONED = 'cloned'
    RUNNING = 'running'
    REACHABLE = 'reachable'
    TORN_DOWN = 'torn_down'


@dataclass
class VMInstance:
    name: str
    base_image: str
    state: VMState = VMState.ABSENT
    ip: str = ''
    process: Optional[subprocess.Popen] = None
    stop_count: int = 0
    delete_count: int = 0

    def require_reachable(self) -> str:
        if self.state is not VMState.REACHABLE or not self.ip:
            raise VMNotReachableError(
                f'VM {self.name} is not reachable (state={self.state.value}); '
                'refusing to issue remote commands.'
            )
        return self.ip


def prepare_instance(vm: VMInstance) -> VMInstance:
    """Delete any same-named VM, make sure the base image is local, and clone it."""
    if tart.vm_exists(vm.name):
        console.step('Deleting existing test VM...')
        tart.delete_vm(vm.name)
    if not tart.image_cached(vm.base_image):
        console.step(
            'Pulling base macOS image (this downloads ~20GB on first run)...'
        )
        tart.pull_image(vm.base_image)
    console.step('Cloning VM from base image...')
    tart.clone_vm(vm.base_image, vm.name)
    vm.state = VMState.CLONED
    console.success('VM created!')
    return vm


def start_headless(
    vm: VMInstance,
    *,
    share_dir: str = '',
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> subprocess.Popen:
    console.step('Starting VM in headless mode...')
    cmd = tart.run_args(vm.name, share_dir=share_dir, headless=True)
    log.debug('SPAWN: {}', ' '.join(cmd))
    vm.process = popen(cmd)
    vm.state = VMState.RUNNING
    console.info(f'VM PID: {vm.process.pid}')
    return vm.process


def stop_instance(vm: VMInstance, *, timeout_s: float = 30) -> bool:
    """Terminate the background ``tart run`` process and wait for it.

    Safe to call more than once; only the first call signals the process.
    Returns True when this call stopped it.
    """
    proc = vm.process
    if proc is None:
        return False
    vm.process = None
    vm.stop_count += 1
    console.step('Stopping VM...')
    if proc.poll() is None:
        proc.terminate()
        try:
            proc.wait(timeout=timeout_s)
        except subprocess.TimeoutExpired:
            log.warning(
                'VM {} did not exit within {}s of SIGTERM; killing',
                vm.name,
                timeout_s,
            )
            proc.kill()
            proc.wait()
    if vm.state in (VMState.RUNNING, VMState.REACHABLE):
        vm.state = VMState.CLONED
    log.info('VM stopped: {}', vm.name)
    return True


def delete_instance(vm: VMInstance) -> bool:
    """Delete the cloned VM; cleanup-path friendly (warns instead of raising)."""
    if vm.state in (VMState.ABSENT, VMState.TORN_DOWN):
        return False
    console.step('Deleting test VM...')
    vm.delete_count += 1
    ok = tart.delete_vm(vm.name, check=False)
    if not ok:
        log.warning(
            'Failed to delete VM {}; remove it with: tart delete {}',
            vm.name,
            vm.name,
        )
    vm.state = VMState.TORN_DOWN
    return ok


def port_open(host: str, port: int, *, timeout_s: float = 5.0) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except OSError:
        return False


def wait_until_reachable(
    vm: VMInstance,
    *,
    port: int = 22,
    policy: RetryPolicy = RetryPolicy(),
    settle_s: float = 5.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    probe_port: Callable[[str, int], bool] = port_open,
) -> str:
    """Wait for an IP address, then for ``port`` to accept connections.

    Both phases draw from a single ``policy.max_wait_s`` budget. After the
    port opens, sleep ``settle_s`` so the SSH daemon is ready for a session.
    Raises :class:`ReadinessTimeoutError` when the budget runs out.
    """
    console.step('Waiting for VM to boot and SSH to become available...')
    deadline = policy.deadline(clock=clock)

    def _ensure_alive() -> None:
        proc = vm.process
        if proc is not None and proc.poll() is not None:
            raise DevbootError(
                f'VM process for {vm.name} exited early (code={proc.returncode})'
            )

    def _ip() -> Optional[str]:
        _ensure_alive()
        return tart.get_ip(vm.name)

    dots = []

    def _progress(elapsed: float) -> None:
        dots.append(elapsed)
        print('.', end='', flush=True)

    def _end_dots() -> None:
        if dots:
            print('')
            dots.clear()

    ip = poll_until(
        _ip,
        interval_s=policy.interval_s,
        deadline=deadline,
        what=f'IP address of VM {vm.name}',
        sleep=sleep,
        on_wait=_progress,
    )
    vm.ip = ip
    _end_dots()
    console.info(f'VM IP: {ip} (after {deadline.elapsed():.0f}s)')

    def _port() -> bool:
        _ensure_alive()
        return probe_port(ip, port)

    poll_until(
        _port,
        interval_s=policy.interval_s,
        deadline=deadline,
        what=f'SSH on {ip}:{port}',
        sleep=sleep,
        on_wait=_progress,
    )
    _end_dots()
    console.success(f'SSH is ready! (after {deadline.elapsed():.0f}s)')
    if settle_s > 0:
        sleep(settle_s)
    vm.state = VMState.REACHABLE
    return ip


@contextmanager
def vm_session(
    vm: VMInstance,
    *,
    share_dir: str = '',
    delete_on_exit: bool = True,
    stop_timeout_s: float = 30,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> Iterator[VMInstance]:
    """Clone and boot ``vm``; stop it (and optionally delete it) on every exit path."""
    try:
        prepare_instance(vm)
        start_headless(vm, share_dir=share_dir, popen=popen)
        yield vm
    finally:
        try:
            stop_instance(vm, timeout_s=stop_timeout_s)
        finally:
            if delete_on_exit:
                delete_instance(vm)
