"""``git-keys scan`` — Inventory the existing SSH and git setup.

Walks the key directory, the SSH routing file, the agent and the git
identity configuration, correlates them, and optionally checks which keys
are registered on GitHub and GitLab. Also prints the persona mapping the
recommendation engine derives from what was found.

Exit Codes:
    0 — Scan completed (individual sources may be skipped or failed).
    2 — The declared configuration exists but cannot be loaded.
"""

from __future__ import annotations

import json
import sys

import click

from gitkeys.cli.output import console, print_scan_result, report_config_error
from gitkeys.discovery.scanner import Scanner
from gitkeys.exceptions import ConfigError
from gitkeys.recommend.engine import RecommendedMapping, recommend
from gitkeys.session import Session


def print_mapping(mapping: RecommendedMapping) -> None:
    """Print the recommended personas and their platforms."""
    source = "declared configuration" if mapping.from_declared else "scan"
    console.print(f"\n[bold]Recommended mapping[/bold] [dim](from {source})[/dim]")
    if not mapping.personas:
        console.print("  [dim]nothing to recommend[/dim]")
        return
    for persona in mapping.personas:
        console.print(f"  [bold]{persona.name}[/bold] <{persona.email}>")
        for platform in persona.platforms:
            where = platform.base_url or platform.type.value
            account = platform.account or "[yellow]?[/yellow]"
            key = f" [dim]{platform.key_path}[/dim]" if platform.key_path else ""
            console.print(f"    {where}: {account}{key}")


@click.command("scan")
@click.option("--remote", is_flag=True, default=False, help="Also query GitHub/GitLab for registered keys.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the scan result as JSON.")
@click.pass_obj
def scan_command(session: Session, remote: bool, as_json: bool) -> None:
    """Scan SSH keys, routing hosts, the agent and git identities.

    Never modifies anything. Sources that cannot be read are reported as
    skipped or failed and the scan carries on.
    """
    try:
        declared = session.try_load_config()
    except ConfigError as exc:
        report_config_error(exc)

    result = Scanner(session, declared).scan(check_remote=remote)
    mapping = recommend(result, declared)

    if as_json:
        payload = result.to_dict()
        payload["recommended_mapping"] = mapping.to_dict()
        click.echo(json.dumps(payload, indent=2))
        sys.exit(0)

    print_scan_result(result, home=str(session.home))
    print_mapping(mapping)
    sys.exit(0)
