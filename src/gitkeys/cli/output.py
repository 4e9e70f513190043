"""Rich output formatting helpers for the git-keys CLI.

Provides consistent terminal output for scan results, step outcomes,
saga reports, the declared model and backup listings.

Status Color Mapping:
    ok = green, skipped = dim, failed = bold red
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from typing import NoReturn

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gitkeys.backup.store import BackupEntry
from gitkeys.config.models import DeclaredConfig
from gitkeys.discovery.models import ScanResult
from gitkeys.exceptions import ConfigError, ConfigValidationError
from gitkeys.lifecycle.results import PairOutcome, StepOutcome
from gitkeys.session import Session

# Exit codes shared by all commands.
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_STATUS_STYLES: dict[str, str] = {
    "ok": "green",
    "skipped": "dim",
    "failed": "bold red",
}

_STATUS_MARKS: dict[str, str] = {
    "ok": "✓",
    "skipped": "○",
    "failed": "✗",
}

console = Console()
err_console = Console(stderr=True)


def status_style(status: str) -> str:
    """Return the Rich style string for a step status."""
    return _STATUS_STYLES.get(status, "white")


def fail(message: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Print an error and exit with *code*."""
    err_console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(code)


def report_config_error(exc: ConfigError) -> NoReturn:
    """Print a config load/save problem and exit with the usage code."""
    if isinstance(exc, ConfigValidationError):
        err_console.print("[bold red]Error:[/bold red] configuration is invalid:")
        for error in exc.errors:
            err_console.print(f"  - {error}")
        sys.exit(EXIT_USAGE)
    fail(str(exc), EXIT_USAGE)


def require_config(session: Session) -> DeclaredConfig:
    """Load the declared config or exit with the usage code."""
    if not session.config_store.exists():
        fail(
            f"no configuration at {session.config_store.path}; run 'git-keys init' first",
            EXIT_USAGE,
        )
    try:
        return session.load_config()
    except ConfigError as exc:
        report_config_error(exc)


def print_step(outcome: StepOutcome, indent: int = 4) -> None:
    mark = _STATUS_MARKS.get(outcome.status, "-")
    style = status_style(outcome.status)
    text = Text(" " * indent)
    text.append(f"{mark} {outcome.step}", style=style)
    if outcome.message:
        text.append(f": {outcome.message}", style="dim" if outcome.status == "ok" else style)
    console.print(text)


def print_pair(outcome: PairOutcome) -> None:
    console.print(f"\n  [bold]{outcome.label}[/bold]")
    for step in outcome.steps:
        print_step(step)
    if outcome.ok:
        console.print("    [green]complete[/green]")
    else:
        console.print(f"    [bold red]failed at {outcome.fatal_step}[/bold red]")


def print_summary(succeeded: int, skipped: int, failed: int, title: str = "Summary") -> None:
    """Print the final aggregate counts."""
    parts = [f"[bold]{title}:[/bold]", f"[green]{succeeded} succeeded[/green]"]
    if skipped:
        parts.append(f"[dim]{skipped} skipped[/dim]")
    parts.append(f"[red]{failed} failed[/red]" if failed else "0 failed")
    console.print("\n" + " | ".join(parts))


def print_scan_result(result: ScanResult, home: str = "") -> None:
    """Print the keys, routing hosts and git identity found by a scan."""
    def short(path: str) -> str:
        return path.replace(home, "~", 1) if home and path.startswith(home) else path

    table = Table(title="SSH Keys", show_header=True, header_style="bold")
    table.add_column("Key", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Bits", justify="right")
    table.add_column("Used by")
    table.add_column("Agent", justify="center")
    table.add_column("Remote")
    for key in result.keys:
        table.add_row(
            short(key.path),
            key.type,
            str(key.bits) if key.bits else "-",
            ", ".join(key.used_by) or "-",
            Text("✓", style="green") if key.in_agent else Text("-", style="dim"),
            ", ".join(p.value for p in key.remote_platforms) or "-",
        )
    if result.keys:
        console.print(table)
    else:
        console.print("[dim]No SSH key pairs found.[/dim]")

    if result.ssh_hosts:
        hosts = Table(title="SSH Config Hosts", show_header=True, header_style="bold")
        hosts.add_column("Host", style="bold")
        hosts.add_column("HostName")
        hosts.add_column("IdentityFile")
        for host in result.ssh_hosts:
            hosts.add_row(host.host, host.hostname or "-", short(host.identity_file))
        console.print(hosts)

    git = result.git
    if git.global_email or git.includes:
        console.print("\n[bold]Git identity[/bold]")
        if git.global_email:
            console.print(f"  global: {git.global_name} <{git.global_email}>")
        for include in git.includes:
            console.print(f"  gitdir:{include.condition} -> {include.name} <{include.email}>")
            for platform in include.platforms:
                where = platform.base_url or platform.type.value
                console.print(f"    {where}: {platform.repo_count} repos")

    console.print("")
    for outcome in result.steps.values():
        print_step(outcome, indent=2)


def print_config(config: DeclaredConfig, now: datetime | None = None) -> None:
    """Print the declared model with each platform's active key."""
    now = now or datetime.now(timezone.utc)
    machine = config.machine
    console.print(Panel(
        f"{machine.name or machine.id} ({machine.os} {machine.os_version})".strip(),
        title="Machine",
    ))
    for persona in config.personas:
        table = Table(
            title=f"{persona.name} <{persona.email}>", show_header=True, header_style="bold",
        )
        table.add_column("Platform", style="bold")
        table.add_column("Account")
        table.add_column("Active key")
        table.add_column("Expires")
        table.add_column("Uploaded", justify="center")
        for platform in persona.platforms:
            key = platform.active_key()
            where = platform.type.value + (f" ({platform.base_url})" if platform.base_url else "")
            if key is None:
                table.add_row(where, platform.account, Text("will generate", style="yellow"), "-", "-")
                continue
            expires = key.expires_at.strftime("%Y-%m-%d") if key.expires_at else "-"
            expires_text = Text(expires, style="red" if key.expires_at and key.expires_at < now else "")
            table.add_row(
                where,
                platform.account,
                key.local_path,
                expires_text,
                Text("✓", style="green") if key.remote_id else Text("no", style="yellow"),
            )
        console.print(table)


def _format_bytes(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def print_backups(entries: list[BackupEntry]) -> None:
    if not entries:
        console.print("[dim]No backups found.[/dim]")
        return
    table = Table(title="Backups", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("File", style="bold")
    table.add_column("Created")
    table.add_column("Size", justify="right")
    table.add_column("Personas", justify="right")
    for i, entry in enumerate(entries, start=1):
        created = entry.timestamp.strftime("%Y-%m-%d %H:%M:%S") if entry.timestamp else "-"
        table.add_row(
            str(i), entry.path.name, created, _format_bytes(entry.size), str(entry.persona_count),
        )
    console.print(table)
