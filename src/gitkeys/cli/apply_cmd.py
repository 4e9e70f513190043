"""``git-keys apply`` — Make the machine match the declared model.

Generates missing keys, writes the managed routing blocks, uploads keys
that were never uploaded, and refreshes directory-based git identities
for platforms that declare a ``git_dir``.

Exit Codes:
    0 — Every pair was applied (upload failures are warnings).
    1 — Key generation or routing failed for at least one pair.
    2 — No usable configuration, or the user declined.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import (
    EXIT_FAILURE,
    EXIT_USAGE,
    console,
    print_config,
    print_pair,
    print_summary,
    require_config,
)
from gitkeys.exceptions import GitKeysError
from gitkeys.gitident import GitIdentitySwitcher
from gitkeys.lifecycle.apply import Applier
from gitkeys.session import Session


@click.command("apply")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def apply_command(session: Session, yes: bool) -> None:
    """Generate, route and upload keys for every declared platform."""
    config = require_config(session)
    print_config(config, now=session.now())
    if not yes and not click.confirm("\nApply this configuration?", default=True):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    report = Applier(session).apply(config)
    if report.routing_backup:
        console.print(f"[dim]Routing file backed up to {report.routing_backup}[/dim]")
    for outcome in report.outcomes:
        print_pair(outcome)

    if any(platform.git_dir for persona in config.personas for platform in persona.platforms):
        try:
            written = GitIdentitySwitcher(session.home).apply(config)
        except GitKeysError as exc:
            console.print(f"[yellow]warning:[/yellow] git identity not updated: {exc}")
        else:
            console.print(f"\nGit identity: {len(written)} conditional include(s) written.")

    warned = sum(1 for o in report.outcomes if o.ok and o.warnings())
    print_summary(len(report.outcomes) - len(report.failed), 0, len(report.failed))
    if warned:
        console.print(
            f"[yellow]{warned} pair(s) with warnings;[/yellow] "
            "keys that could not be uploaded are retried on the next apply."
        )
    sys.exit(EXIT_FAILURE if report.command_failed else 0)
