"""Operator-facing narration: step headers and one-line status markers."""

from __future__ import annotations

RULE = '━' * 60


def status_line(ok: bool | None, label: str, detail: str = '') -> str:
    icon = '✅' if ok is True else ('➖' if ok is None else '❌')
    suffix = f' - {detail}' if detail else ''
    return f'{icon} {label}{suffix}'


def header(title: str) -> None:
    print('')
    print(RULE)
    print(f'  {title}')
    print(RULE)
    print('')


def step(msg: str) -> None:
    print(f'▶ {msg}')


def success(msg: str) -> None:
    print(f'✓ {msg}')


def warning(msg: str) -> None:
    print(f'⚠ {msg}')


def error(msg: str) -> None:
    print(f'✗ {msg}')


def info(msg: str) -> None:
    print(f'ℹ {msg}')


def para(*lines: str) -> None:
    for line in lines:
        print(line)
    print('')
