"""Discovery of an existing SSH and git setup.

Public API::

    from gitkeys.discovery import Scanner

    result = Scanner(session).scan(check_remote=True)
    for key in result.keys:
        print(key.path, key.in_agent, key.remote_platforms)
"""

from __future__ import annotations

from gitkeys.discovery.correlate import link_hosts, mark_agent, mark_remote
from gitkeys.discovery.models import (
    DiscoveredKey,
    DiscoveredPlatform,
    GitIdentity,
    GitInclude,
    ScanResult,
)
from gitkeys.discovery.remotes import discover_platforms, parse_remote_url
from gitkeys.discovery.scanner import Scanner
from gitkeys.ssh.routing import SSHConfigHost

__all__ = [
    "DiscoveredKey",
    "DiscoveredPlatform",
    "GitIdentity",
    "GitInclude",
    "SSHConfigHost",
    "ScanResult",
    "Scanner",
    "discover_platforms",
    "link_hosts",
    "mark_agent",
    "mark_remote",
    "parse_remote_url",
]
