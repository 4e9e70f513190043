"""``git-keys rebuild`` — Start over from what is on the machine.

Steps:
    1. scan the current setup and derive the recommended mapping
    2. write a backup snapshot (unless ``--skip-backup``)
    3. tear down git-keys state (remote keys unless ``--keep-remote``,
       managed routing blocks, tracked key files, config, tokens)
    4. rebuild the configuration from the mapping, asking questions
       with ``--interactive`` and taking every default otherwise

Keys are not generated here; run ``git-keys apply`` afterwards.

Exit Codes:
    0 — Rebuilt (or dry run).
    1 — A cleanup step failed or the new configuration could not be saved.
    2 — The backup failed, the machine could not be identified, or the
        user declined.
"""

from __future__ import annotations

import sys
from typing import Any

import click

from gitkeys.backup.store import BackupStore
from gitkeys.cli.output import (
    EXIT_FAILURE,
    EXIT_USAGE,
    console,
    fail,
    print_step,
    report_config_error,
)
from gitkeys.cli.scan import print_mapping
from gitkeys.config.models import DeclaredConfig, Defaults, Machine
from gitkeys.discovery.scanner import Scanner
from gitkeys.exceptions import BackupError, ConfigError, GitKeysError
from gitkeys.lifecycle.cleanup import Cleanup
from gitkeys.recommend.engine import RecommendedMapping, recommend
from gitkeys.recommend.wizard import CONFIRM, build_config, next_question
from gitkeys.session import Session


def collect_answers(mapping: RecommendedMapping, interactive: bool) -> dict[str, Any]:
    """Run the wizard; without *interactive* every default is accepted."""
    answers: dict[str, Any] = {}
    while True:
        question = next_question(mapping, answers)
        if question is None:
            return answers
        if not interactive:
            answers[question.id] = question.default
        elif question.kind == CONFIRM:
            answers[question.id] = click.confirm(question.prompt, default=question.default)
        else:
            answers[question.id] = click.prompt(
                question.prompt, default=question.default or "", show_default=bool(question.default),
            )


def _machine(session: Session, declared: DeclaredConfig | None) -> Machine:
    if declared is not None:
        return declared.machine
    try:
        return session.machine_detector()
    except GitKeysError as exc:
        fail(str(exc), EXIT_USAGE)


@click.command("rebuild")
@click.option("--interactive", "-i", is_flag=True, default=False, help="Confirm each persona and account.")
@click.option("--keep-remote", is_flag=True, default=False, help="Leave keys registered on the platforms.")
@click.option("--skip-backup", is_flag=True, default=False, help="Do not write a backup snapshot.")
@click.option("--dry-run", is_flag=True, default=False, help="Scan and show the plan only.")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def rebuild_command(
    session: Session,
    interactive: bool,
    keep_remote: bool,
    skip_backup: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Back up, tear down and re-create the git-keys setup."""
    try:
        declared = session.try_load_config()
    except ConfigError as exc:
        console.print(f"[yellow]warning:[/yellow] ignoring unreadable configuration: {exc}")
        declared = None

    console.print("[bold]Scanning current setup...[/bold]")
    scan = Scanner(session, declared).scan()
    mapping = recommend(scan, declared)
    console.print(f"Found {len(scan.keys)} key(s) and {len(scan.ssh_hosts)} routing host(s).")
    print_mapping(mapping)

    console.print("\n[bold]Rebuild will:[/bold]")
    if not skip_backup:
        console.print(f"  - back up to {session.state_dir / 'backups'}")
    if declared is not None:
        console.print("  - " + ("keep" if keep_remote else "revoke") + " remote keys")
        console.print("  - delete tracked key files and the configuration")
    console.print("  - remove managed routing blocks and stored tokens")

    if dry_run:
        console.print("\n[dim]Dry run: nothing changed.[/dim]")
        sys.exit(0)
    if not yes and not click.confirm("\nProceed with rebuild?", default=False):
        console.print("Aborted.")
        sys.exit(EXIT_USAGE)

    routing = session.routing(declared)
    if not skip_backup:
        try:
            path = BackupStore(session.state_dir / "backups").create(
                scan,
                declared,
                mapping,
                routing.path,
                config_path=session.config_store.path,
                now=session.now().astimezone(),
            )
        except BackupError as exc:
            fail(f"{exc}; nothing was changed", EXIT_USAGE)
        console.print(f"Backup written to {path}")

    machine = _machine(session, declared)
    cleanup = Cleanup(session).run(declared, keep_remote=keep_remote)
    console.print("\n[bold]Cleanup[/bold]")
    for step in cleanup.steps:
        print_step(step, indent=2)

    answers = collect_answers(mapping, interactive)
    defaults = declared.defaults if declared is not None else Defaults(ssh_config_path=str(routing.path))
    config = build_config(mapping, answers, machine, defaults)
    if not config.personas:
        console.print("\nNo personas left to configure; run 'git-keys init' to start fresh.")
        sys.exit(EXIT_FAILURE if cleanup.failed else 0)

    try:
        session.config_store.save(config)
    except ConfigError as exc:
        report_config_error(exc)
    console.print(
        f"\n[green]Configuration rebuilt with {len(config.personas)} persona(s).[/green] "
        "Run 'git-keys apply' to generate and upload keys."
    )
    sys.exit(EXIT_FAILURE if cleanup.failed else 0)
