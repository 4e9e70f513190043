"""``git-keys revoke`` — Revoke keys remotely and mark them revoked.

Selection is by TARGET (``persona`` or ``persona/platform``), by
``--persona``/``--platform``, by ``--fingerprint``, or ``--all``.
``--local`` also deletes the key files.

Exit Codes:
    0 — Every selected key was revoked (or nothing matched a selection).
    1 — At least one remote deletion failed, or no key has the fingerprint.
    2 — Nothing selected, no usable configuration, or the user declined.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import (
    EXIT_FAILURE,
    EXIT_USAGE,
    console,
    fail,
    print_step,
    print_summary,
    require_config,
)
from gitkeys.cli.rotate_cmd import parse_target
from gitkeys.config.models import PlatformType
from gitkeys.exceptions import ConfigError, KeyNotFoundError
from gitkeys.lifecycle.revoke import Revoker, select_revocation_targets
from gitkeys.session import Session

_PLATFORM_CHOICES = [t.value for t in PlatformType]


@click.command("revoke")
@click.argument("target", required=False)
@click.option("--persona", default=None, help="Revoke keys of this persona.")
@click.option(
    "--platform", "platform_type",
    type=click.Choice(_PLATFORM_CHOICES),
    default=None,
    help="Revoke keys on this platform type.",
)
@click.option("--fingerprint", default=None, help="Revoke the key with this fingerprint.")
@click.option("--all", "all_", is_flag=True, default=False, help="Revoke every key.")
@click.option("--local", "delete_local", is_flag=True, default=False, help="Also delete the key files.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def revoke_command(
    session: Session,
    target: str | None,
    persona: str | None,
    platform_type: str | None,
    fingerprint: str | None,
    all_: bool,
    delete_local: bool,
    yes: bool,
) -> None:
    """Delete keys from their platforms and mark them revoked."""
    platform = PlatformType(platform_type) if platform_type else None
    if target:
        persona, target_platform = parse_target(target)
        platform = target_platform or platform
    if persona is None and platform is None and not fingerprint and not all_:
        fail("choose what to revoke: TARGET, --persona, --platform, --fingerprint or --all", EXIT_USAGE)

    config = require_config(session)
    try:
        targets = select_revocation_targets(
            config, persona=persona, platform=platform, fingerprint=fingerprint, all_=all_,
        )
    except KeyNotFoundError as exc:
        fail(str(exc), EXIT_FAILURE)

    if not targets:
        console.print("No unrevoked keys match the selection.")
        sys.exit(0)

    console.print(f"[bold]Keys to revoke ({len(targets)}):[/bold]")
    for t in targets:
        console.print(f"  {t.label}  [dim]{t.key.fingerprint} {t.key.local_path}[/dim]")
    if delete_local:
        console.print("[yellow]Local key files will be deleted.[/yellow]")
    if not yes and not click.confirm("\nRevoke these keys?", default=False):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    try:
        report = Revoker(session).revoke(config, targets, delete_local=delete_local)
    except ConfigError as exc:
        fail(f"revocation finished but the configuration could not be saved: {exc}")

    for outcome in report.outcomes:
        console.print(f"\n  [bold]{outcome.label}[/bold] [dim]{outcome.fingerprint}[/dim]")
        print_step(outcome.remote)
        for step in outcome.local:
            print_step(step)
    print_summary(len(report.succeeded), 0, len(report.failed), title="Revocation")
    sys.exit(EXIT_FAILURE if report.command_failed else 0)
