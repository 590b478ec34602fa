"""Answer sources for Provisioner questions: a live operator or a keyed script."""

from __future__ import annotations

import sys
from typing import Mapping

from loguru import logger

from .errors import MissingAnswerError

log = logger


class InteractivePrompter:
    """Ask the operator on stdin; re-ask until the answer is usable."""

    interactive = True

    def ask_yes_no(self, key: str, question: str) -> bool:
        while True:
            raw = input(f'? {question} [y/n]: ').strip().lower()
            if raw.startswith('y'):
                return True
            if raw.startswith('n'):
                return False
            print('  Please answer y (yes) or n (no).')

    def ask_text(self, key: str, question: str) -> str:
        while True:
            raw = input(f'? {question}: ').strip()
            if raw:
                return raw
            print('  A value is required.')

    def pause(self) -> None:
        print('')
        input('Press Enter to continue...')


class ScriptedPrompter:
    """Answer questions from a mapping keyed by question name.

    Lookup is by name rather than by position so the set of questions the
    Provisioner asks may change without shifting answers onto the wrong
    question. A missing or mistyped answer is an error, never a default.
    """

    interactive = False

    def __init__(self, answers: Mapping[str, bool | str]):
        self.answers = dict(answers)
        self.asked: list[str] = []

    def _lookup(self, key: str, question: str, kind: type):
        self.asked.append(key)
        if key not in self.answers:
            raise MissingAnswerError(
                f'No scripted answer for {key!r} ({question!r}). '
                f'Known answers: {", ".join(sorted(self.answers)) or "(none)"}'
            )
        value = self.answers[key]
        if not isinstance(value, kind):
            raise MissingAnswerError(
                f'Scripted answer for {key!r} must be {kind.__name__}, '
                f'got {type(value).__name__}'
            )
        return value

    def ask_yes_no(self, key: str, question: str) -> bool:
        value = self._lookup(key, question, bool)
        print(f'? {question} [y/n]: {"y" if value else "n"}')
        log.debug('Scripted answer {}={}', key, value)
        return value

    def ask_text(self, key: str, question: str) -> str:
        value = self._lookup(key, question, str).strip()
        if not value:
            raise MissingAnswerError(f'Scripted answer for {key!r} is empty')
        print(f'? {question}: {value}')
        log.debug('Scripted answer {}={!r}', key, value)
        return value

    def pause(self) -> None:
        pass


def stdin_is_interactive() -> bool:
    return sys.stdin.isatty()
