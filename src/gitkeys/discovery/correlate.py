"""Cross-link scanned keys with routing hosts, the agent and remote registrations.

All functions annotate the ``ScanResult`` in place.
"""

from __future__ import annotations

from collections.abc import Iterable

from gitkeys.config.models import PlatformType
from gitkeys.discovery.models import ScanResult
from gitkeys.platforms.base import RemoteKey, normalize_fingerprint


def link_hosts(result: ScanResult) -> None:
    """Record on each key which routing hosts point at it."""
    for key in result.keys:
        for host in result.ssh_hosts:
            if host.identity_file in (key.path, key.path + ".pub"):
                if host.host not in key.used_by:
                    key.used_by.append(host.host)


def mark_agent(result: ScanResult, fingerprints: Iterable[str]) -> None:
    """Set ``in_agent`` exactly for keys whose fingerprint the agent reported."""
    loaded = set(fingerprints)
    for key in result.keys:
        key.in_agent = key.fingerprint in loaded


def mark_remote(
    result: ScanResult,
    remote_keys: Iterable[RemoteKey],
    platform_type: PlatformType,
) -> int:
    """Flag keys registered on *platform_type*. Returns the number matched."""
    remote = {
        normalize_fingerprint(k.fingerprint) for k in remote_keys if k.fingerprint
    }
    matched = 0
    for key in result.keys:
        if normalize_fingerprint(key.fingerprint) in remote:
            if platform_type not in key.remote_platforms:
                key.remote_platforms.append(platform_type)
            matched += 1
    return matched
