"""``git-keys status`` — Counts and health checks for declared keys.

Exit Codes:
    0 — Status printed (health warnings do not change the exit code).
    2 — No usable configuration.
"""

from __future__ import annotations

import sys
from collections import Counter
from datetime import timedelta

import click
from rich.table import Table

from gitkeys.cli.output import console, require_config
from gitkeys.config.models import KeyStatus
from gitkeys.session import Session

# Keys older than this are flagged even before they expire.
STALE_AFTER_DAYS = 90


@click.command("status")
@click.pass_obj
def status_command(session: Session) -> None:
    """Summarize declared keys and flag missing, expired or stale ones."""
    config = require_config(session)
    now = session.now()
    stale_before = now - timedelta(days=STALE_AFTER_DAYS)

    statuses: Counter[str] = Counter()
    platforms = 0
    issues: list[str] = []
    for persona in config.personas:
        for platform in persona.platforms:
            platforms += 1
            label = f"{persona.name}/{platform.type.value}/{platform.account}"
            if platform.active_key() is None:
                issues.append(f"{label}: no active key")
            for key in platform.keys:
                statuses[key.status.value] += 1
                if key.status != KeyStatus.ACTIVE:
                    continue
                if key.local_path and not session.key_material.exists(key.local_path):
                    issues.append(f"{label}: key file missing ({key.local_path})")
                if key.expires_at and key.expires_at < now:
                    issues.append(f"{label}: key expired on {key.expires_at:%Y-%m-%d}")
                elif key.created_at and key.created_at < stale_before:
                    age = (now - key.created_at).days
                    issues.append(f"{label}: key is {age} days old, consider 'git-keys rotate'")

    table = Table(title="git-keys status", show_header=False)
    table.add_column("Item", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Personas", str(len(config.personas)))
    table.add_row("Platforms", str(platforms))
    for status in KeyStatus:
        table.add_row(f"{status.value.capitalize()} keys", str(statuses[status.value]))
    console.print(table)

    if issues:
        console.print(f"\n[yellow]{len(issues)} issue(s):[/yellow]")
        for issue in issues:
            console.print(f"  [yellow]![/yellow] {issue}")
    else:
        console.print("\n[green]All keys healthy.[/green]")
    sys.exit(0)
