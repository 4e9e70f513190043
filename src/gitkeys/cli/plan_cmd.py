"""``git-keys plan`` — Show the declared model.

Exit Codes:
    0 — Plan printed.
    2 — No usable configuration.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import console, print_config, require_config
from gitkeys.session import Session


@click.command("plan")
@click.pass_obj
def plan_command(session: Session) -> None:
    """Show personas, platforms and the key each one uses.

    Platforms without an active key are marked; 'git-keys apply'
    generates them.
    """
    config = require_config(session)
    print_config(config, now=session.now())

    pending = sum(
        1
        for persona in config.personas
        for platform in persona.platforms
        if platform.active_key() is None or not platform.active_key().remote_id
    )
    if pending:
        console.print(f"\n{pending} platform(s) need 'git-keys apply'.")
    else:
        console.print("\n[green]Everything declared is in place.[/green]")
    sys.exit(0)
