"""``git-keys import`` — Bring existing SSH keys under git-keys management.

Scans the key directory and asks, for each key not yet managed, whether
to import it and for which persona, platform and account. Keys are left
in place; ``git-keys apply`` then routes and uploads them.

Exit Codes:
    0 — Imported, nothing to import, or dry run.
    2 — The configuration is unreadable or invalid, the machine could
        not be identified, or the user declined.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from gitkeys.cli.output import EXIT_USAGE, console, fail, print_step, report_config_error
from gitkeys.config.models import DeclaredConfig, Defaults, PlatformType
from gitkeys.discovery.models import DiscoveredKey, ScanResult
from gitkeys.discovery.scanner import Scanner
from gitkeys.exceptions import ConfigError, GitKeysError
from gitkeys.lifecycle.importer import (
    ImportChoice,
    guess_platform,
    import_keys,
    managed_fingerprints,
)
from gitkeys.session import Session

_SKIP = "skip"
_PLATFORM_CHOICES = [t.value for t in PlatformType] + [_SKIP]


def _load_or_create(session: Session) -> DeclaredConfig:
    try:
        declared = session.try_load_config()
    except ConfigError as exc:
        report_config_error(exc)
    if declared is not None:
        return declared
    try:
        machine = session.machine_detector()
    except GitKeysError as exc:
        fail(str(exc), EXIT_USAGE)
    if session.machine_name:
        machine.name = session.machine_name
    config = session.config_store.create_default(machine)
    config.defaults = Defaults(ssh_config_path=str(session.ssh_dir / "config"))
    return config


def ask_choice(
    key: DiscoveredKey,
    scan: ScanResult,
    config: DeclaredConfig,
    default_email: str,
) -> ImportChoice | None:
    """Prompt for one key; None when the user skips it."""
    console.print(f"\n[bold]{Path(key.path).name}[/bold] [dim]{key.fingerprint}[/dim]")
    if key.used_by:
        console.print(f"  used for: {', '.join(key.used_by)}")
    if not click.confirm("  Import this key?", default=True):
        return None

    guessed = guess_platform(key, scan.ssh_hosts)
    platform = click.prompt(
        "  Platform",
        type=click.Choice(_PLATFORM_CHOICES),
        default=guessed.value if guessed else PlatformType.GITHUB.value,
    )
    if platform == _SKIP:
        return None
    persona_name = click.prompt("  Persona name", default="personal")
    existing = config.find_persona(persona_name)
    if existing is not None:
        email = existing.email
    else:
        email = click.prompt("  Email for commits", default=default_email or None)
    account = click.prompt("  Account")
    base_url = ""
    if platform == PlatformType.GITLAB.value:
        base_url = click.prompt(
            "  Self-hosted GitLab URL (empty for gitlab.com)", default="", show_default=False,
        )
    return ImportChoice(
        key=key,
        persona=persona_name,
        email=email,
        platform_type=PlatformType(platform),
        account=account,
        base_url=base_url,
    )


@click.command("import")
@click.option("--dry-run", is_flag=True, default=False, help="Ask the questions but save nothing.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for final confirmation.")
@click.pass_obj
def import_command(session: Session, dry_run: bool, yes: bool) -> None:
    """Import existing SSH keys into the declared configuration."""
    config = _load_or_create(session)
    console.print("[bold]Scanning current setup...[/bold]")
    scan = Scanner(session, config if config.personas else None).scan()

    managed = managed_fingerprints(config)
    candidates = [k for k in scan.keys if k.fingerprint not in managed]
    if not candidates:
        console.print("No unmanaged SSH keys found. Nothing to import.")
        sys.exit(0)
    console.print(f"Found {len(candidates)} unmanaged key(s).")

    default_email = session.git_global("user.email")
    choices: list[ImportChoice] = []
    for key in candidates:
        choice = ask_choice(key, scan, config, default_email)
        if choice is None:
            console.print("  [dim]skipped[/dim]")
            continue
        choices.append(choice)
        console.print(f"  will import as [bold]{choice.label}[/bold]")

    if not choices:
        console.print("\nNo keys selected for import.")
        sys.exit(0)
    if dry_run:
        console.print("\n[dim]Dry run: nothing changed.[/dim]")
        sys.exit(0)
    if not yes and not click.confirm(f"\nImport {len(choices)} key(s)?", default=True):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    report = import_keys(config, choices, session.ssh_dir, session.now())
    console.print()
    for outcome in report.outcomes:
        print_step(outcome, indent=2)
    if not report.imported:
        console.print("\nNo keys imported.")
        sys.exit(0)

    try:
        session.config_store.save(config)
    except ConfigError as exc:
        report_config_error(exc)
    console.print(
        f"\n[green]Imported {len(report.imported)} key(s) into {session.config_store.path}.[/green] "
        "Run 'git-keys apply' to route and upload them."
    )
    sys.exit(0)
