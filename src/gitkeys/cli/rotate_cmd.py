"""``git-keys rotate [persona[/platform]]`` — Replace active keys.

Each selected pair goes through the rotation saga: generate, upload,
route, validate, revoke old, archive old, commit. See
``gitkeys.lifecycle.rotate`` for the failure policy.

Exit Codes:
    0 — Every pair rotated, or some failed only after their new key was live.
    1 — Every pair failed, or a pair failed while generating, uploading
        or routing its new key.
    2 — Nothing selected, unknown persona, no usable configuration, or
        the user declined.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import (
    EXIT_FAILURE,
    EXIT_USAGE,
    console,
    fail,
    print_pair,
    print_summary,
    require_config,
)
from gitkeys.config.models import PlatformType
from gitkeys.exceptions import ConfigError
from gitkeys.lifecycle.rotate import Rotator, select_rotation_targets
from gitkeys.session import Session

_PLATFORM_CHOICES = [t.value for t in PlatformType]


def parse_target(target: str) -> tuple[str, PlatformType | None]:
    """Split ``persona`` or ``persona/platform`` into its parts.

    Raises:
        click.BadParameter: If the platform part is not a known type.
    """
    persona, _, platform = target.partition("/")
    if not platform:
        return persona, None
    try:
        return persona, PlatformType(platform.lower())
    except ValueError:
        raise click.BadParameter(
            f"unknown platform {platform!r} (expected one of {', '.join(_PLATFORM_CHOICES)})",
            param_hint="TARGET",
        ) from None


@click.command("rotate")
@click.argument("target", required=False)
@click.option("--persona", default=None, help="Rotate every platform of this persona.")
@click.option(
    "--platform", "platform_type",
    type=click.Choice(_PLATFORM_CHOICES),
    default=None,
    help="Restrict to one platform type.",
)
@click.option("--all", "all_", is_flag=True, default=False, help="Rotate every active key.")
@click.option("--dry-run", is_flag=True, default=False, help="List what would be rotated.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def rotate_command(
    session: Session,
    target: str | None,
    persona: str | None,
    platform_type: str | None,
    all_: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Rotate the active key of each selected persona/platform pair.

    TARGET is ``persona`` or ``persona/platform``; --persona and --all
    are the option forms.
    """
    platform = PlatformType(platform_type) if platform_type else None
    if target:
        persona, target_platform = parse_target(target)
        platform = target_platform or platform
    if persona is None and not all_:
        fail("choose what to rotate: TARGET, --persona or --all", EXIT_USAGE)

    config = require_config(session)
    if persona is not None and config.find_persona(persona) is None:
        fail(f"persona {persona!r} not found in configuration", EXIT_USAGE)

    targets = select_rotation_targets(config, persona=persona, platform=platform, all_=all_)
    if not targets:
        console.print("No active keys match the selection.")
        sys.exit(0)

    console.print(f"[bold]Keys to rotate ({len(targets)}):[/bold]")
    for t in targets:
        expires = f"expires {t.key.expires_at:%Y-%m-%d}" if t.key.expires_at else "no expiry"
        console.print(f"  {t.label}  [dim]{t.key.local_path} ({expires})[/dim]")

    if dry_run:
        console.print("\n[dim]Dry run: nothing changed.[/dim]")
        sys.exit(0)
    if not yes and not click.confirm("\nProceed with rotation?", default=False):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    try:
        report = Rotator(session).rotate(config, targets)
    except ConfigError as exc:
        fail(f"rotation finished but the configuration could not be saved: {exc}")

    for outcome in report.outcomes:
        print_pair(outcome)
    print_summary(len(report.succeeded), 0, len(report.failed), title="Rotation")
    sys.exit(EXIT_FAILURE if report.command_failed else 0)
