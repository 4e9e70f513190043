"""git-keys CLI: per-identity SSH keys for GitHub and GitLab.

Entry point for the ``git-keys`` command-line tool. Registers all
subcommands under a single Click group. The group builds one ``Session``
per invocation and hands it to the subcommands through ``ctx.obj``.

Commands:
    init       Detect this machine and write a starter configuration.
    import     Adopt existing SSH keys into the configuration.
    scan       Inventory keys, routing hosts, agent and git identities.
    plan       Show the declared personas, platforms and active keys.
    status     Counts and health checks for the declared keys.
    validate   Structural and filesystem checks, with ``--fix``.
    apply      Generate, route and upload keys for the declared model.
    rotate     Replace active keys through the rotation saga.
    revoke     Revoke keys remotely and mark them revoked.
    setup-git  Directory-based git identity switching.
    token      Store or delete platform API tokens.
    keychain   Load or unload managed keys in the SSH agent.
    rebuild    Scan, back up, tear down and re-create the setup.
    restore    Restore the configuration from a backup.

Usage::

    git-keys scan --remote
    git-keys rotate personal/github
    git-keys revoke --fingerprint SHA256:abc... --local
    git-keys --config ./team.yaml plan
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from gitkeys import __version__
from gitkeys.cli.apply_cmd import apply_command
from gitkeys.cli.import_cmd import import_command
from gitkeys.cli.init_cmd import init_command
from gitkeys.cli.keychain_cmd import keychain_group
from gitkeys.cli.output import err_console
from gitkeys.cli.plan_cmd import plan_command
from gitkeys.cli.rebuild_cmd import rebuild_command
from gitkeys.cli.restore_cmd import restore_command
from gitkeys.cli.revoke_cmd import revoke_command
from gitkeys.cli.rotate_cmd import rotate_command
from gitkeys.cli.scan import scan_command
from gitkeys.cli.setup_git_cmd import setup_git_command
from gitkeys.cli.status_cmd import status_command
from gitkeys.cli.token_cmd import token_group
from gitkeys.cli.validate_cmd import validate_command
from gitkeys.session import Session

_LOG_LEVELS = ("error", "warning", "info", "debug")


def configure_logging(level: str) -> None:
    """Route the root logger through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="git-keys")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    envvar="GIT_KEYS_CONFIG",
    default=None,
    help="Declared config file (default: ~/.git-keys.yaml).",
)
@click.option(
    "--ssh-dir",
    type=click.Path(file_okay=False),
    envvar="GIT_KEYS_SSH_DIR",
    default=None,
    help="Key directory (default: ~/.ssh).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="warning",
    show_default=True,
    help="Diagnostic log verbosity.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, ssh_dir: str | None, log_level: str) -> None:
    """git-keys: one SSH key per identity, kept in sync everywhere.

    Keeps local key files, the SSH routing config and the keys registered
    on GitHub and GitLab consistent across personas and accounts.
    """
    configure_logging(log_level)
    if ctx.obj is None:
        ctx.obj = Session.create(config_path=config_path, ssh_dir=ssh_dir)


# Register all subcommands
cli.add_command(init_command)
cli.add_command(import_command)
cli.add_command(scan_command)
cli.add_command(plan_command)
cli.add_command(status_command)
cli.add_command(validate_command)
cli.add_command(apply_command)
cli.add_command(rotate_command)
cli.add_command(revoke_command)
cli.add_command(setup_git_command)
cli.add_command(token_group)
cli.add_command(keychain_group)
cli.add_command(rebuild_command)
cli.add_command(restore_command)
