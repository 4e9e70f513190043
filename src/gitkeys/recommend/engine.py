"""Recommendation engine: derive a persona/platform mapping.

When a declared config exists it is projected verbatim; declared state
always wins over anything the scan suggests. Otherwise personas are
inferred from git identity emails, platforms from repository remotes
under each conditional include, and from routing-file hosts.

Inference Rules:
    1. The global ``user.email`` seeds a persona named ``personal``.
    2. Each conditional include with a new, non-empty email becomes a
       persona. Its name is the include's ``user.name``, else ``work`` or
       ``personal`` if the condition mentions one, else the last path
       segment of the condition. Platforms discovered under the include
       are attached with a blank account.
    3. A routing host whose ``HostName`` is ``github.com`` or contains
       ``gitlab`` adds a placeholder-account platform to the persona of
       the global email, or else to the first persona.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from gitkeys.config.models import DeclaredConfig, PlatformType
from gitkeys.discovery.models import GitInclude, ScanResult

logger = logging.getLogger(__name__)

PLACEHOLDER_ACCOUNT = "username"
DEFAULT_PERSONA = "personal"


@dataclass
class RecommendedPlatform:
    type: PlatformType
    account: str = ""
    base_url: str = ""
    key_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "account": self.account,
            "base_url": self.base_url,
            "key_path": self.key_path,
        }


@dataclass
class RecommendedPersona:
    name: str
    email: str
    platforms: list[RecommendedPlatform] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "platforms": [p.to_dict() for p in self.platforms],
        }


@dataclass
class RecommendedMapping:
    """The proposed identity model, in insertion order."""

    personas: list[RecommendedPersona] = field(default_factory=list)
    from_declared: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"personas": [p.to_dict() for p in self.personas]}


def infer_persona_name(include: GitInclude) -> str:
    if include.name:
        return include.name
    if "work" in include.condition:
        return "work"
    if "personal" in include.condition:
        return "personal"
    segments = include.condition.strip("~/").split("/")
    return segments[-1] or include.condition


def project_declared(declared: DeclaredConfig) -> RecommendedMapping:
    """Project a declared config onto the recommendation shape, verbatim."""
    mapping = RecommendedMapping(from_declared=True)
    for persona in declared.personas:
        rec = RecommendedPersona(name=persona.name, email=persona.email)
        for platform in persona.platforms:
            active = platform.active_key()
            rec.platforms.append(RecommendedPlatform(
                type=platform.type,
                account=platform.account,
                base_url=platform.base_url,
                key_path=active.local_path if active else "",
            ))
        mapping.personas.append(rec)
    return mapping


def recommend(scan: ScanResult, declared: DeclaredConfig | None = None) -> RecommendedMapping:
    """Recommend a persona/platform mapping.

    Args:
        scan: The discovery snapshot.
        declared: The declared config, if one exists. When given, the
            scan is not consulted at all.

    Returns:
        The recommended mapping.
    """
    if declared is not None:
        return project_declared(declared)

    by_email: dict[str, RecommendedPersona] = {}

    global_email = scan.git.global_email
    if global_email:
        by_email[global_email] = RecommendedPersona(name=DEFAULT_PERSONA, email=global_email)

    for include in scan.git.includes:
        if not include.email or include.email in by_email:
            continue
        persona = RecommendedPersona(name=infer_persona_name(include), email=include.email)
        for discovered in include.platforms:
            persona.platforms.append(RecommendedPlatform(
                type=discovered.type, account="", base_url=discovered.base_url,
            ))
        by_email[include.email] = persona

    for host in scan.ssh_hosts:
        if host.hostname == "github.com":
            platform_type = PlatformType.GITHUB
        elif "gitlab" in host.hostname:
            platform_type = PlatformType.GITLAB
        else:
            continue
        target = by_email.get(global_email) if global_email else None
        if target is None and by_email:
            target = next(iter(by_email.values()))
        if target is None:
            logger.debug("No persona to attach routing host %s to", host.host)
            continue
        target.platforms.append(RecommendedPlatform(
            type=platform_type, account=PLACEHOLDER_ACCOUNT, key_path=host.identity_file,
        ))

    return RecommendedMapping(personas=list(by_email.values()))
