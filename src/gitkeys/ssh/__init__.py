"""Local SSH collaborators: key material, routing file and agent.

Public API::

    from gitkeys.ssh import KeyMaterial, RoutingConfig, RoutingEntry

    keys = KeyMaterial(Path.home() / ".ssh")
    routing = RoutingConfig(Path.home() / ".ssh" / "config")
    routing.upsert("work-github", [RoutingEntry("github.com.work", "github.com", "~/.ssh/id")])
"""

from __future__ import annotations

from gitkeys.ssh.agent import SSHAgent
from gitkeys.ssh.keys import (
    KeyMaterial,
    build_key_comment,
    build_key_file_name,
    public_path,
)
from gitkeys.ssh.routing import RoutingConfig, RoutingEntry, SSHConfigHost

__all__ = [
    "KeyMaterial",
    "RoutingConfig",
    "RoutingEntry",
    "SSHAgent",
    "SSHConfigHost",
    "build_key_comment",
    "build_key_file_name",
    "public_path",
]
