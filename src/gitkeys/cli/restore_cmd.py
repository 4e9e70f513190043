"""``git-keys restore [BACKUP]`` — Restore the configuration from a backup.

Without BACKUP the newest snapshot is used. ``--list`` shows the
available snapshots instead. Only the declared configuration is
restored; run ``git-keys apply`` afterwards to recreate keys and routing.

Exit Codes:
    0 — Restored (or listed).
    1 — The backup is missing, unreadable, empty or invalid.
    2 — The user declined.
"""

from __future__ import annotations

import sys

import click

from gitkeys.backup.store import BackupStore
from gitkeys.cli.output import EXIT_FAILURE, EXIT_USAGE, console, err_console, fail, print_backups
from gitkeys.exceptions import BackupError, ConfigError, ConfigValidationError
from gitkeys.session import Session


@click.command("restore")
@click.argument("backup", required=False)
@click.option("--list", "list_only", is_flag=True, default=False, help="List available backups.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def restore_command(session: Session, backup: str | None, list_only: bool, yes: bool) -> None:
    """Restore the declared configuration from BACKUP (default: newest)."""
    store = BackupStore(session.state_dir / "backups")
    if list_only:
        print_backups(store.list())
        sys.exit(0)

    try:
        path = store.resolve(backup)
        snapshot = store.read(path)
    except BackupError as exc:
        fail(str(exc))

    if snapshot.old_config is None:
        fail(f"backup {path.name} does not contain a configuration")
    personas = ", ".join(p.name for p in snapshot.old_config.personas) or "none"
    console.print(f"Backup: [bold]{path.name}[/bold]  personas: {personas}")
    if session.config_store.exists():
        console.print(f"[yellow]{session.config_store.path} will be overwritten.[/yellow]")
    if not yes and not click.confirm("Restore this configuration?", default=False):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    try:
        store.restore(path, session.config_store)
    except ConfigValidationError as exc:
        err_console.print("[bold red]Error:[/bold red] the backed-up configuration is invalid:")
        for error in exc.errors:
            err_console.print(f"  - {error}")
        sys.exit(EXIT_FAILURE)
    except (BackupError, ConfigError) as exc:
        fail(str(exc))

    console.print(f"[green]Restored configuration to {session.config_store.path}.[/green]")
    console.print("Run 'git-keys apply' to recreate keys and routing.")
    sys.exit(0)
