"""``git-keys token`` — Store and delete platform API tokens.

Tokens live in the OS credential store, one service per platform
(``git-keys-github``, ``git-keys-gitlab``). The account ``default`` is
used for every account that has no token of its own.

Exit Codes:
    0 — Token stored or deleted.
    1 — No such token, or the credential store failed.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import console, fail
from gitkeys.config.models import PlatformType
from gitkeys.exceptions import GitKeysError, TokenNotFoundError
from gitkeys.platforms.tokens import DEFAULT_ACCOUNT
from gitkeys.session import Session

_PLATFORM = click.Choice([t.value for t in PlatformType])


@click.group("token")
def token_group() -> None:
    """Manage API tokens in the OS credential store."""


@token_group.command("set")
@click.argument("platform", type=_PLATFORM)
@click.argument("account", default=DEFAULT_ACCOUNT)
@click.option("--token", default=None, help="Token value (prompted for when omitted).")
@click.pass_obj
def token_set_command(session: Session, platform: str, account: str, token: str | None) -> None:
    """Store the API token for PLATFORM ACCOUNT (default: 'default')."""
    if token is None:
        token = click.prompt(f"{platform} token for {account}", hide_input=True)
    try:
        session.tokens(PlatformType(platform)).set_token(account, token.strip())
    except GitKeysError as exc:
        fail(str(exc))
    console.print(f"[green]Stored {platform} token for {account}.[/green]")
    sys.exit(0)


@token_group.command("delete")
@click.argument("platform", type=_PLATFORM)
@click.argument("account", default=DEFAULT_ACCOUNT)
@click.pass_obj
def token_delete_command(session: Session, platform: str, account: str) -> None:
    """Delete the API token for PLATFORM ACCOUNT."""
    try:
        session.tokens(PlatformType(platform)).delete_token(account)
    except TokenNotFoundError:
        fail(f"no {platform} token stored for {account}")
    except GitKeysError as exc:
        fail(str(exc))
    console.print(f"Deleted {platform} token for {account}.")
    sys.exit(0)
