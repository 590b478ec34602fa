"""CLI command that runs the workstation Provisioner."""

from __future__ import annotations

import sys
from pathlib import Path

import scriptconfig as scfg

from ..answers import InteractivePrompter, ScriptedPrompter, stdin_is_interactive
from ..config import load_answers
from ..errors import MissingAnswerError
from ..provision import run_provisioner
from ._common import _BaseCommand, _load_cfg, log


class ProvisionCLI(_BaseCommand):
    """Install and configure the developer toolchain on this Mac."""

    answers = scfg.Value(
        '',
        help=(
            'TOML file of pre-decided answers keyed by question name '
            '(use "-" to read it from stdin). Runs non-interactively.'
        ),
    )
    no_pause = scfg.Value(
        False,
        isflag=True,
        help='Do not wait for Enter between steps.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        if args.answers:
            if args.answers == '-':
                text = sys.stdin.read()
            else:
                text = Path(args.answers).expanduser().read_text(encoding='utf-8')
            prompter = ScriptedPrompter(load_answers(text))
            log.debug('Scripted answers: {}', sorted(prompter.answers))
        else:
            if not stdin_is_interactive():
                raise MissingAnswerError(
                    'The provisioner asks questions, but stdin is not interactive. '
                    'Re-run with --answers FILE (or --answers - to read from stdin).'
                )
            prompter = InteractivePrompter()
        if args.no_pause or not prompter.interactive:
            cfg.provision.pause_between_steps = False
        report = run_provisioner(cfg.provision, prompter)
        log.info('Provision outcomes: {}', report.as_dict())
        return 0
