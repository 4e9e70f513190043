"""Per-step outcome types shared by the scanner and the key-lifecycle sagas.

A step either succeeded (``Ok``), was not attempted (``Skipped``) or
failed (``Failed``). Each variant carries the step name plus a short
human-readable message, so reports can be rendered and tests can assert
which branch was taken.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Ok:
    step: str
    detail: str = ""

    status = "ok"

    @property
    def message(self) -> str:
        return self.detail


@dataclass(frozen=True)
class Skipped:
    step: str
    reason: str = ""

    status = "skipped"

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class Failed:
    step: str
    reason: str = ""

    status = "failed"

    @property
    def message(self) -> str:
        return self.reason


StepOutcome = Union[Ok, Skipped, Failed]


# Rotation step names, in execution order.
GENERATE = "generate"
UPLOAD = "upload"
ROUTE = "route"
VALIDATE = "validate"
REVOKE_OLD = "revoke_old"
ARCHIVE = "archive"
COMMIT = "commit"

ROTATION_STEPS = (GENERATE, UPLOAD, ROUTE, VALIDATE, REVOKE_OLD, ARCHIVE, COMMIT)

# A failure at any of these aborts the pair and rolls back the new key.
FATAL_STEPS = frozenset({GENERATE, UPLOAD, ROUTE})


@dataclass
class PairOutcome:
    """Result of processing one (persona, platform) pair.

    Attributes:
        persona: Persona name.
        platform: Platform type value (``github``/``gitlab``).
        account: Platform account name.
        steps: Outcomes in execution order.
        fatal_step: Name of the step that aborted the pair, if any.
    """

    persona: str
    platform: str
    account: str
    steps: list[StepOutcome] = field(default_factory=list)
    fatal_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.fatal_step is None

    @property
    def label(self) -> str:
        return f"{self.persona}/{self.platform}/{self.account}"

    def record(self, outcome: StepOutcome) -> StepOutcome:
        self.steps.append(outcome)
        return outcome

    def step(self, name: str) -> StepOutcome | None:
        for outcome in self.steps:
            if outcome.step == name:
                return outcome
        return None

    def warnings(self) -> list[Failed]:
        return [s for s in self.steps if isinstance(s, Failed) and s.step != self.fatal_step]


@dataclass
class RotationReport:
    """Aggregate result of one rotation run."""

    outcomes: list[PairOutcome] = field(default_factory=list)
    persisted: bool = False

    @property
    def succeeded(self) -> list[PairOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[PairOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def command_failed(self) -> bool:
        """True if every pair failed or any pair hard-failed at steps 1-3."""
        if not self.outcomes:
            return False
        if not self.succeeded:
            return True
        return any(o.fatal_step in FATAL_STEPS for o in self.failed)
