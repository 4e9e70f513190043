"""Data models for the discovery module.

Contains the scan-scoped types produced by ``Scanner``: discovered key
pairs, routing-file hosts, git identities with their conditional
includes, platforms inferred from repository remotes, and the aggregate
``ScanResult``. None of these are persisted except inside a backup
snapshot, via ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from gitkeys.config.models import PlatformType
from gitkeys.lifecycle.results import StepOutcome
from gitkeys.ssh.routing import SSHConfigHost


@dataclass
class DiscoveredKey:
    """A key pair found in the key directory.

    Attributes:
        path: Absolute path to the private key file.
        type: Algorithm from the public key's first field (``ssh-ed25519``...).
        bits: Key size; 256 for ed25519, 0 if it could not be determined.
        fingerprint: ``SHA256:...`` fingerprint.
        comment: Public key comment, possibly empty.
        modified: File modification time, used as a recency proxy.
        used_by: Routing-file hosts whose ``IdentityFile`` is this key.
        in_agent: Whether the running agent holds this key.
        remote_platforms: Platforms on which this key is registered.
    """

    path: str
    type: str
    bits: int
    fingerprint: str
    comment: str = ""
    modified: datetime | None = None
    used_by: list[str] = field(default_factory=list)
    in_agent: bool = False
    remote_platforms: list[PlatformType] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "type": self.type,
            "bits": self.bits,
            "fingerprint": self.fingerprint,
            "comment": self.comment,
            "modified": self.modified.isoformat() if self.modified else None,
            "used_by": list(self.used_by),
            "in_agent": self.in_agent,
            "remote_platforms": [p.value for p in self.remote_platforms],
        }


@dataclass
class DiscoveredPlatform:
    """A hosting platform inferred from repository remote URLs.

    Deduplicated by ``(type, base_url)``; ``repo_count`` counts the
    remotes that mapped to it and ``groups`` the distinct first path
    segments seen.
    """

    type: PlatformType
    base_url: str = ""
    repo_count: int = 0
    groups: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.type.value}:{self.base_url}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "repo_count": self.repo_count}
        if self.base_url:
            data["base_url"] = self.base_url
        if self.groups:
            data["groups"] = list(self.groups)
        return data


@dataclass
class GitInclude:
    """A ``[includeIf "gitdir:..."]`` stanza from the global git config."""

    condition: str
    path: str
    name: str = ""
    email: str = ""
    platforms: list[DiscoveredPlatform] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "condition": self.condition,
            "path": self.path,
            "name": self.name,
            "email": self.email,
            "discovered_platforms": [p.to_dict() for p in self.platforms],
        }


@dataclass
class GitIdentity:
    """Global git identity plus its conditional includes."""

    global_name: str = ""
    global_email: str = ""
    includes: list[GitInclude] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "global_name": self.global_name,
            "global_email": self.global_email,
            "includes": [i.to_dict() for i in self.includes],
        }


@dataclass
class ScanResult:
    """Snapshot of one discovery scan.

    Attributes:
        keys: Key pairs, most recently modified first.
        ssh_hosts: Routing-file hosts that name an identity file.
        git: Global and conditional git identity.
        steps: Outcome of each sub-scan, keyed by step name.
    """

    keys: list[DiscoveredKey] = field(default_factory=list)
    ssh_hosts: list[SSHConfigHost] = field(default_factory=list)
    git: GitIdentity = field(default_factory=GitIdentity)
    steps: dict[str, StepOutcome] = field(default_factory=dict)

    def find_key(self, path: str) -> DiscoveredKey | None:
        for key in self.keys:
            if key.path == path:
                return key
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "keys": [k.to_dict() for k in self.keys],
            "ssh_config_hosts": [h.to_dict() for h in self.ssh_hosts],
            "git_config": self.git.to_dict(),
            "steps": {
                name: {"status": outcome.status, "message": outcome.message}
                for name, outcome in self.steps.items()
            },
        }
