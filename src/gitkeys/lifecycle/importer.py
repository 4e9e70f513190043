"""Adopt existing key pairs into the declared configuration.

Imported keys stay where they are. The config records their path and
fingerprint with no remote id, so the next ``git-keys apply`` writes their
routing block and uploads them like any other pending key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from gitkeys.config.models import (
    DeclaredConfig,
    KeyConfig,
    KeyStatus,
    KeyType,
    Persona,
    Platform,
    PlatformType,
)
from gitkeys.discovery.models import DiscoveredKey
from gitkeys.lifecycle.results import Ok, Skipped, StepOutcome
from gitkeys.platforms.registry import PLATFORMS
from gitkeys.ssh.routing import SSHConfigHost

logger = logging.getLogger(__name__)

_KEY_TYPES = {
    "ssh-ed25519": KeyType.ED25519,
    "ssh-rsa": KeyType.RSA,
}


@dataclass
class ImportChoice:
    """Where one discovered key should go."""

    key: DiscoveredKey
    persona: str
    email: str
    platform_type: PlatformType
    account: str
    base_url: str = ""

    @property
    def label(self) -> str:
        return f"{self.persona}/{self.platform_type.value}/{self.account}"


@dataclass
class ImportReport:
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def imported(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if isinstance(o, Ok)]


def key_type_of(key: DiscoveredKey) -> KeyType | None:
    return _KEY_TYPES.get(key.type)


def guess_platform(key: DiscoveredKey, hosts: list[SSHConfigHost]) -> PlatformType | None:
    """Platform the key is already used for, judged by remote registration
    first and then by the routing hosts that point at it."""
    if key.remote_platforms:
        return key.remote_platforms[0]
    for host in hosts:
        if host.host not in key.used_by:
            continue
        hostname = host.hostname or host.host
        for platform_type, spec in PLATFORMS.items():
            if hostname == spec.canonical_host or platform_type.value in hostname:
                return platform_type
    return None


def managed_fingerprints(config: DeclaredConfig) -> set[str]:
    return {
        key.fingerprint
        for persona in config.personas
        for platform in persona.platforms
        for key in platform.keys
        if key.fingerprint
    }


def relative_key_path(path: str, ssh_dir: Path) -> str:
    """*path* relative to the key directory when it lies inside it."""
    try:
        return str(Path(path).relative_to(ssh_dir))
    except ValueError:
        return path


def import_keys(
    config: DeclaredConfig,
    choices: list[ImportChoice],
    ssh_dir: Path,
    now: datetime,
) -> ImportReport:
    """Record each chosen key as the active key of its platform.

    Personas and platforms are created as needed. A key that is already
    managed, has an unsupported algorithm, or targets a platform that
    already has an active key is skipped.
    """
    report = ImportReport()
    tracked = managed_fingerprints(config)
    for choice in choices:
        if choice.key.fingerprint in tracked:
            report.outcomes.append(Skipped(choice.label, "key is already managed"))
            continue
        key_type = key_type_of(choice.key)
        if key_type is None:
            report.outcomes.append(Skipped(choice.label, f"unsupported key type {choice.key.type}"))
            continue

        persona = config.find_persona(choice.persona)
        if persona is None:
            persona = Persona(name=choice.persona, email=choice.email)
            config.personas.append(persona)
        platform = persona.find_platform(choice.platform_type, choice.account)
        if platform is None:
            platform = Platform(
                type=choice.platform_type,
                account=choice.account,
                base_url=choice.base_url.rstrip("/"),
            )
            persona.platforms.append(platform)
        elif platform.active_key() is not None:
            report.outcomes.append(Skipped(choice.label, "platform already has an active key"))
            continue

        created = choice.key.modified or now
        platform.keys.append(KeyConfig(
            type=key_type,
            created_at=created,
            expires_at=created + timedelta(days=config.defaults.key_expiration_days),
            fingerprint=choice.key.fingerprint,
            local_path=relative_key_path(choice.key.path, ssh_dir),
            status=KeyStatus.ACTIVE,
        ))
        tracked.add(choice.key.fingerprint)
        logger.info("Imported %s as %s", choice.key.path, choice.label)
        report.outcomes.append(Ok(choice.label, Path(choice.key.path).name))
    return report
