"""``git-keys validate`` — Structural and filesystem checks.

Errors:
    - the model fails structural validation
    - a platform has more than one active key
    - an active key's private or public file is missing

Warnings (repairable with ``--fix``):
    - private key, config file or routing file not mode 0600
    - key directory not mode 0700

Exit Codes:
    0 — No errors (warnings may remain).
    1 — One or more errors.
    2 — The configuration file is missing or cannot be parsed.
"""

from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path

import click

from gitkeys.cli.output import EXIT_FAILURE, EXIT_USAGE, console, fail
from gitkeys.config.models import DeclaredConfig, KeyStatus
from gitkeys.exceptions import ConfigError, ConfigValidationError
from gitkeys.session import Session
from gitkeys.ssh.keys import public_path

PRIVATE_MODE = 0o600
DIR_MODE = 0o700


@dataclass
class PermissionProblem:
    path: Path
    actual: int
    wanted: int

    def describe(self) -> str:
        return f"{self.path} has mode {self.actual:o}, expected {self.wanted:o}"


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    permissions: list[PermissionProblem] = field(default_factory=list)


def _mode(path: Path) -> int | None:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return None


def _check_mode(path: Path, wanted: int, result: ValidationResult) -> None:
    actual = _mode(path)
    # Group or other access is the problem; tighter modes are fine.
    if actual is not None and actual & 0o077:
        result.permissions.append(PermissionProblem(path, actual, wanted))


def check_config(session: Session, config: DeclaredConfig) -> ValidationResult:
    """Run every check against *config* and the files it references."""
    result = ValidationResult(errors=config.validate())

    for persona in config.personas:
        for platform in persona.platforms:
            label = f"{persona.name}/{platform.type.value}/{platform.account}"
            active = [k for k in platform.keys if k.status == KeyStatus.ACTIVE]
            if len(active) > 1:
                result.errors.append(f"{label}: {len(active)} active keys, expected at most one")
            for key in active:
                if not key.local_path:
                    continue
                private = session.key_material.resolve(key.local_path)
                if not private.is_file():
                    result.errors.append(f"{label}: private key missing at {private}")
                    continue
                if not public_path(private).is_file():
                    result.errors.append(f"{label}: public key missing at {public_path(private)}")
                _check_mode(private, PRIVATE_MODE, result)

    _check_mode(session.config_store.path, PRIVATE_MODE, result)
    _check_mode(session.routing(config).path, PRIVATE_MODE, result)
    _check_mode(session.ssh_dir, DIR_MODE, result)
    return result


def fix_permissions(problems: list[PermissionProblem]) -> list[str]:
    """chmod each path to its wanted mode. Returns the failures."""
    failures: list[str] = []
    for problem in problems:
        try:
            os.chmod(problem.path, problem.wanted)
        except OSError as exc:
            failures.append(f"{problem.path}: {exc}")
    return failures


@click.command("validate")
@click.option("--fix", is_flag=True, default=False, help="Repair file permissions.")
@click.pass_obj
def validate_command(session: Session, fix: bool) -> None:
    """Check the declared configuration and the files it references.

    Exit code 0 when there are no errors, 1 otherwise.
    """
    if not session.config_store.exists():
        fail(f"no configuration at {session.config_store.path}", EXIT_USAGE)
    try:
        config = session.load_config()
    except ConfigValidationError as exc:
        config = None
        errors = exc.errors
    except ConfigError as exc:
        fail(str(exc), EXIT_USAGE)

    if config is not None:
        result = check_config(session, config)
        errors = result.errors
        if result.permissions:
            if fix:
                failures = fix_permissions(result.permissions)
                fixed = len(result.permissions) - len(failures)
                console.print(f"[green]Fixed permissions on {fixed} file(s).[/green]")
                errors = errors + [f"could not fix {f}" for f in failures]
            else:
                for problem in result.permissions:
                    console.print(f"  [yellow]warning:[/yellow] {problem.describe()}")
                console.print("  [dim]run with --fix to repair permissions[/dim]")

    if errors:
        console.print(f"\n[bold red]{len(errors)} error(s):[/bold red]")
        for error in errors:
            console.print(f"  [red]✗[/red] {error}")
        sys.exit(EXIT_FAILURE)

    console.print("[green]Configuration is valid.[/green]")
    sys.exit(0)
