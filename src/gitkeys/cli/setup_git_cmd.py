"""``git-keys setup-git`` — Directory-based git identity switching.

Asks for a directory per platform (where one is not declared yet),
records it as ``git_dir`` and writes the conditional includes.
``--remove`` takes the managed includes and their files out again.

Exit Codes:
    0 — Includes written or removed.
    1 — ``~/.gitconfig`` could not be updated.
    2 — No usable configuration.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import EXIT_FAILURE, console, fail, report_config_error, require_config
from gitkeys.exceptions import ConfigError, GitKeysError
from gitkeys.gitident import GitIdentitySwitcher, normalize_git_dir
from gitkeys.session import Session


@click.command("setup-git")
@click.option("--remove", is_flag=True, default=False, help="Remove the managed includes.")
@click.pass_obj
def setup_git_command(session: Session, remove: bool) -> None:
    """Use the right name, email and key per directory of repositories."""
    switcher = GitIdentitySwitcher(session.home)
    if remove:
        try:
            removed = switcher.remove()
        except GitKeysError as exc:
            fail(str(exc))
        console.print(f"Removed managed includes and {len(removed)} identity file(s).")
        sys.exit(0)

    config = require_config(session)
    changed = False
    for persona in config.personas:
        for platform in persona.platforms:
            if platform.git_dir:
                continue
            answer = click.prompt(
                f"Directory for {persona.name} on {platform.type.value}/{platform.account} "
                "(empty to skip)",
                default="",
                show_default=False,
            )
            if answer.strip():
                platform.git_dir = normalize_git_dir(answer, session.home)
                changed = True

    if changed:
        try:
            session.config_store.save(config)
        except ConfigError as exc:
            report_config_error(exc)

    try:
        written = switcher.apply(config)
    except GitKeysError as exc:
        fail(str(exc), EXIT_FAILURE)

    if not written:
        console.print("No platform declares a git directory; nothing to do.")
        sys.exit(0)
    for path in written:
        console.print(f"  [green]✓[/green] {path}")
    console.print(f"Updated {switcher.gitconfig}.")
    sys.exit(0)
