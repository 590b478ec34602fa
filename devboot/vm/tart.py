"""Thin wrappers around the ``tart`` CLI (list/pull/clone/run/delete/ip)."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..util import run_cmd

log = logger


def tart_cmd(*args: str) -> list[str]:
    return ['tart', *args]


def list_names() -> list[str]:
    """Return the ``Name`` column of ``tart list`` (local VMs and cached images)."""
    out = run_cmd(tart_cmd('list'), check=True, capture=True).stdout
    names: list[str] = []
    for line in out.splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0].lower() == 'source':
            continue
        names.append(parts[1])
    return names


def vm_exists(name: str) -> bool:
    return name in list_names()


def _repository(ref: str) -> str:
    head, _, tail = ref.rpartition(':')
    # Keep registry ports like host:5000/img; strip only a trailing tag.
    if head and '/' not in tail:
        return head
    return ref


def image_cached(ref: str) -> bool:
    repo = _repository(ref)
    return any(n == ref or n.startswith(repo) for n in list_names())


def pull_image(ref: str) -> None:
    log.info('Pulling base image {} (can take a long time on first run)', ref)
    run_cmd(tart_cmd('pull', ref), check=True, capture=False)


def clone_vm(ref: str, name: str) -> None:
    run_cmd(tart_cmd('clone', ref, name), check=True, capture=True)
    log.info('VM cloned: {} from {}', name, ref)


def delete_vm(name: str, *, check: bool = True) -> bool:
    res = run_cmd(tart_cmd('delete', name), check=check, capture=True)
    if res.ok:
        log.info('VM deleted: {}', name)
    return res.ok


def get_ip(name: str) -> Optional[str]:
    res = run_cmd(tart_cmd('ip', name), check=False, capture=True)
    ip = res.stdout.strip()
    if res.code != 0 or not ip:
        return None
    return ip.splitlines()[0].strip()


def run_args(
    name: str,
    *,
    share_dir: str = '',
    headless: bool = True,
    bridged_iface: str = '',
) -> list[str]:
    args = ['run']
    if headless:
        args.append('--no-graphics')
    if share_dir:
        args.append(f'--dir={share_dir}')
    if bridged_iface:
        args.append(f'--net-bridged={bridged_iface}')
    args.append(name)
    return tart_cmd(*args)
