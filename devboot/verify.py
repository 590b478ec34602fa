"""Post-provision presence probes run inside the guest over SSH."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from loguru import logger

from .console import status_line
from .provision.ai_tools import AI_TOOLS
from .results import VerificationResult, VerificationSummary
from .util import guest_path
from .vm.remote import RemoteShell

log = logger


@dataclass(frozen=True)
class Probe:
    name: str
    command: str
    expect_present: bool = True


def core_probes(nvm_dir: str = '~/.nvm') -> list[Probe]:
    nvm = f'. "{guest_path(nvm_dir)}/nvm.sh" && '
    return [
        Probe('Homebrew', 'command -v /opt/homebrew/bin/brew'),
        Probe('Git', 'command -v git'),
        Probe('Node.js', nvm + 'command -v node'),
        Probe('NPM', nvm + 'command -v npm'),
        Probe('GitHub CLI', 'command -v /opt/homebrew/bin/gh || command -v gh'),
    ]


def build_probes(
    answers: Mapping[str, bool | str], *, nvm_dir: str = '~/.nvm'
) -> list[Probe]:
    """Derive the probe battery from the answers the guest run was given.

    Tools answered "yes" must be present afterwards; AI tools answered "no"
    must still be absent on a fresh guest. ``nvm_dir`` is where the guest
    run installed NVM, written as the guest would see it.
    """
    probes = core_probes(nvm_dir)
    if answers.get('ghostty') is True:
        probes.append(Probe('Ghostty', 'test -d /Applications/Ghostty.app'))
    for tool in AI_TOOLS:
        if tool.name not in answers:
            continue
        probes.append(
            Probe(
                tool.label,
                tool.probe_command(nvm_dir),
                expect_present=answers[tool.name] is True,
            )
        )
    return probes


def run_probes(shell: RemoteShell, probes: list[Probe]) -> VerificationSummary:
    """Run every probe; a failing probe never stops the remaining ones."""
    summary = VerificationSummary()
    for probe in probes:
        res = shell.run(probe.command)
        present = res.code == 0
        passed = present == probe.expect_present
        if probe.expect_present:
            detail = 'installed' if present else 'NOT installed'
        else:
            detail = 'absent as expected' if not present else 'unexpectedly installed'
        log.debug(
            'Probe {} code={} expect_present={}',
            probe.name,
            res.code,
            probe.expect_present,
        )
        print(status_line(passed, probe.name, detail))
        summary.results.append(VerificationResult(probe.name, passed, detail))
    return summary
