"""Key-lifecycle operations: import, apply, rotate, revoke and rebuild cleanup.

The saga modules are imported by their full path
(``gitkeys.lifecycle.rotate``...). This package only re-exports the
outcome types, which the lower-level collaborators also report with.

Public API::

    from gitkeys.lifecycle.rotate import Rotator, select_rotation_targets

    report = Rotator(session).rotate(config, select_rotation_targets(config, all_=True))
    if report.command_failed:
        ...
"""

from __future__ import annotations

from gitkeys.lifecycle.results import (
    Failed,
    Ok,
    PairOutcome,
    RotationReport,
    Skipped,
    StepOutcome,
)

__all__ = [
    "Failed",
    "Ok",
    "PairOutcome",
    "RotationReport",
    "Skipped",
    "StepOutcome",
]
