"""VM operation exports for tart lifecycle and the SSH command channel."""

from __future__ import annotations

from .lifecycle import (
    VMInstance,
    VMState,
    delete_instance,
    port_open,
    prepare_instance,
    start_headless,
    stop_instance,
    vm_session,
    wait_until_reachable,
)
from .remote import RemoteShell, ssh_base_args

__all__ = [
    'RemoteShell',
    'VMInstance',
    'VMState',
    'delete_instance',
    'port_open',
    'prepare_instance',
    'ssh_base_args',
    'start_headless',
    'stop_instance',
    'vm_session',
    'wait_until_reachable',
]
