"""``git-keys keychain`` — Load or unload managed keys in the SSH agent.

On macOS keys are added with ``--apple-use-keychain`` so the agent
reloads them after a restart.

Exit Codes:
    0 — Every key was added or removed.
    1 — At least one key could not be added or removed.
    2 — No usable configuration or unknown persona.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import EXIT_FAILURE, EXIT_USAGE, console, fail, print_summary, require_config
from gitkeys.config.models import DeclaredConfig, KeyConfig
from gitkeys.exceptions import GitKeysError
from gitkeys.session import Session


def managed_keys(config: DeclaredConfig, persona: str | None) -> list[tuple[str, KeyConfig]]:
    """``(label, key)`` for each active key, optionally for one persona."""
    keys = []
    for p in config.personas:
        if persona is not None and p.name != persona:
            continue
        for platform in p.platforms:
            key = platform.active_key()
            if key is not None and key.local_path:
                keys.append((f"{p.name}/{platform.type.value}/{platform.account}", key))
    return keys


def _run(session: Session, persona: str | None, adding: bool) -> None:
    config = require_config(session)
    if persona is not None and config.find_persona(persona) is None:
        fail(f"persona {persona!r} not found in configuration", EXIT_USAGE)

    done = failed = 0
    for label, key in managed_keys(config, persona):
        path = session.key_material.resolve(key.local_path)
        try:
            if adding:
                session.agent.add(path)
            else:
                session.agent.remove(path)
        except GitKeysError as exc:
            failed += 1
            console.print(f"  [red]✗[/red] {label}: {exc}")
            continue
        done += 1
        console.print(f"  [green]✓[/green] {label} [dim]{path}[/dim]")

    print_summary(done, 0, failed, title="Added" if adding else "Removed")
    sys.exit(EXIT_FAILURE if failed else 0)


@click.group("keychain")
def keychain_group() -> None:
    """Manage which keys the SSH agent holds."""


@keychain_group.command("add")
@click.argument("persona", required=False)
@click.pass_obj
def keychain_add_command(session: Session, persona: str | None) -> None:
    """Add the active keys (of PERSONA, or all) to the agent."""
    _run(session, persona, adding=True)


@keychain_group.command("remove")
@click.argument("persona", required=False)
@click.pass_obj
def keychain_remove_command(session: Session, persona: str | None) -> None:
    """Remove the active keys (of PERSONA, or all) from the agent."""
    _run(session, persona, adding=False)
