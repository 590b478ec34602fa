"""CLI commands that exercise the Provisioner inside tart VMs."""

from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg

from .. import console
from ..answers import InteractivePrompter
from ..config import load_answers
from ..errors import DevbootError
from ..harness import run_automated, run_manual
from ..util import CmdError
from ._common import _BaseCommand, _load_cfg, log


class AutoCLI(_BaseCommand):
    """Run the Provisioner in a fresh headless VM and verify what it installed."""

    answers = scfg.Value(
        '',
        help='TOML file of answers overriding entries of the config [answers] table.',
    )
    share_dir = scfg.Value(
        '',
        help='Host directory to share into the guest (default: this checkout).',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        if args.answers:
            text = Path(args.answers).expanduser().read_text(encoding='utf-8')
            cfg.answers.update(load_answers(text))
        try:
            summary = run_automated(cfg, share_dir=args.share_dir or None)
        except (DevbootError, CmdError) as ex:
            log.error('Automated test aborted: {}', ex)
            console.error(str(ex))
            return 1
        return 0 if summary.all_passed else 1


class ManualCLI(_BaseCommand):
    """Boot a test VM with a display so a person can walk through the Provisioner."""

    share_dir = scfg.Value(
        '',
        help='Host directory to share into the guest (default: this checkout).',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg = _load_cfg(args.config)
        return run_manual(
            cfg, InteractivePrompter(), share_dir=args.share_dir or None
        )


class HarnessModalCLI(scfg.ModalCLI):
    """End-to-end Provisioner tests in disposable VMs."""

    auto = AutoCLI
    manual = ManualCLI
