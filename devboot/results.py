"""Result dataclasses produced by provisioning runs and harness verification."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class StepOutcome(str, enum.Enum):
    ALREADY = 'already'
    INSTALLED = 'installed'
    DECLINED = 'declined'


@dataclass
class ProvisionReport:
    outcomes: dict[str, StepOutcome] = field(default_factory=dict)
    completed: bool = False

    def record(self, name: str, outcome: StepOutcome) -> StepOutcome:
        self.outcomes[name] = outcome
        return outcome

    def names_with(self, outcome: StepOutcome) -> list[str]:
        return [k for k, v in self.outcomes.items() if v == outcome]

    def as_dict(self) -> dict[str, str]:
        return {k: v.value for k, v in self.outcomes.items()}


@dataclass(frozen=True)
class VerificationResult:
    name: str
    passed: bool
    detail: str = ''


@dataclass
class VerificationSummary:
    results: list[VerificationResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def all_passed(self) -> bool:
        return self.passed == self.total

    def failed_names(self) -> list[str]:
        return [r.name for r in self.results if not r.passed]
