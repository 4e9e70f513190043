"""``git-keys init`` — Detect this machine and write a starter configuration.

The first persona can be given with options or is prompted for. Keys are
not generated here; ``git-keys apply`` does that.

Exit Codes:
    0 — Configuration written.
    2 — A configuration already exists (without ``--force``) or the
        machine could not be identified.
"""

from __future__ import annotations

import sys

import click

from gitkeys.cli.output import EXIT_USAGE, console, fail, report_config_error
from gitkeys.config.models import Defaults, Persona, Platform, PlatformType
from gitkeys.exceptions import ConfigError, GitKeysError
from gitkeys.gitident import normalize_git_dir
from gitkeys.session import Session

_PLATFORM_CHOICES = [t.value for t in PlatformType]


@click.command("init")
@click.option("--persona", "persona_name", default=None, help="Name of the first persona.")
@click.option("--email", default=None, help="Email of the first persona.")
@click.option(
    "--platform", "platform_type",
    type=click.Choice(_PLATFORM_CHOICES),
    default=None,
    help="Platform of the first account.",
)
@click.option("--account", default=None, help="Account (username) on the platform.")
@click.option("--base-url", default="", help="Self-hosted GitLab URL.")
@click.option("--git-dir", default="", help="Directory whose repos use this identity.")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing configuration.")
@click.pass_obj
def init_command(
    session: Session,
    persona_name: str | None,
    email: str | None,
    platform_type: str | None,
    account: str | None,
    base_url: str,
    git_dir: str,
    force: bool,
) -> None:
    """Create the declared configuration for this machine.

    Detects the machine identity and records the first persona with one
    platform account. Refuses to overwrite an existing file unless
    --force is given.
    """
    store = session.config_store
    if store.exists() and not force:
        fail(f"configuration already exists at {store.path} (use --force to overwrite)", EXIT_USAGE)

    try:
        machine = session.machine_detector()
    except GitKeysError as exc:
        fail(str(exc), EXIT_USAGE)
    if session.machine_name:
        machine.name = session.machine_name
    console.print(f"Machine: [bold]{machine.name}[/bold] ({machine.os} {machine.os_version})")

    if persona_name is None:
        persona_name = click.prompt("Persona name", default="personal")
    if email is None:
        email = click.prompt("Email", default=session.git_global("user.email") or None)
    if platform_type is None:
        platform_type = click.prompt(
            "Platform", type=click.Choice(_PLATFORM_CHOICES), default=PlatformType.GITHUB.value,
        )
    if account is None:
        account = click.prompt("Account")

    config = store.create_default(machine)
    config.defaults = Defaults(ssh_config_path=str(session.ssh_dir / "config"))
    config.personas.append(Persona(
        name=persona_name,
        email=email,
        platforms=[Platform(
            type=PlatformType(platform_type),
            account=account,
            base_url=base_url.rstrip("/"),
            git_dir=normalize_git_dir(git_dir, session.home) if git_dir else "",
        )],
    ))

    try:
        store.save(config)
    except ConfigError as exc:
        report_config_error(exc)

    console.print(f"[green]Configuration written to {store.path}[/green]")
    console.print("Next: store a token with 'git-keys token set', then run 'git-keys apply'.")
    sys.exit(0)
