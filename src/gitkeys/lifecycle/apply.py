"""Apply the declared model to the machine.

For every persona/platform: generate a key if none is active, write the
platform's managed routing block, and upload keys that were never
uploaded. Uploading is best-effort; the key stays without a remote id
and can be uploaded by a later ``apply``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from gitkeys.config.models import DeclaredConfig, KeyConfig, KeyStatus, Persona, Platform
from gitkeys.exceptions import GitKeysError
from gitkeys.lifecycle.results import (
    GENERATE,
    ROUTE,
    UPLOAD,
    Failed,
    Ok,
    PairOutcome,
    Skipped,
)
from gitkeys.platforms.registry import platform_host
from gitkeys.session import Session
from gitkeys.ssh.keys import build_key_comment, build_key_file_name
from gitkeys.ssh.routing import RoutingConfig, RoutingEntry

logger = logging.getLogger(__name__)

_HOSTNAME_UNSAFE = (" ", "@", "#", "$")


def sanitize_hostname(name: str) -> str:
    """Strip characters that are not valid in an SSH host alias."""
    for ch in _HOSTNAME_UNSAFE:
        name = name.replace(ch, "")
    return name


def managed_block_id(persona: Persona, platform: Platform) -> str:
    return f"{persona.name}-{platform.type.value}-{platform.account}"


def host_alias(persona: Persona, platform: Platform) -> str:
    """``<host>.<persona>``, the alias git remotes use to pick this identity."""
    return f"{platform_host(platform)}.{sanitize_hostname(persona.name)}"


@dataclass
class ApplyReport:
    outcomes: list[PairOutcome] = field(default_factory=list)
    changed: bool = False
    routing_backup: str = ""

    @property
    def failed(self) -> list[PairOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def command_failed(self) -> bool:
        return bool(self.failed)


class Applier:
    """Generates, routes and uploads keys for a declared config.

    Usage::

        report = Applier(session).apply(config)
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._backed_up = False

    def identity_file(self, key: KeyConfig) -> str:
        """IdentityFile value for *key*; ``~/.ssh/<file>`` in the default key dir."""
        if not key.local_path.startswith(("/", "~")) and self.session.ssh_dir == self.session.home / ".ssh":
            return f"~/.ssh/{key.local_path}"
        return str(self.session.key_material.resolve(key.local_path))

    def _backup_once(self, routing: RoutingConfig, report: ApplyReport) -> None:
        if self._backed_up:
            return
        self._backed_up = True
        try:
            backup = routing.backup()
        except GitKeysError as exc:
            logger.warning("Could not back up %s: %s", routing.path, exc)
            return
        if backup is not None:
            report.routing_backup = str(backup)

    def apply(self, config: DeclaredConfig) -> ApplyReport:
        report = ApplyReport()
        routing = self.session.routing(config)

        for persona in config.personas:
            for platform in persona.platforms:
                outcome = PairOutcome(persona.name, platform.type.value, platform.account)
                report.outcomes.append(outcome)
                key = self._ensure_key(config, platform, outcome, report)
                if key is None:
                    continue

                self._backup_once(routing, report)
                block_id = managed_block_id(persona, platform)
                entry = RoutingEntry(
                    alias=host_alias(persona, platform),
                    hostname=platform_host(platform),
                    identity_file=self.identity_file(key),
                    user="git",
                    extra={"IdentitiesOnly": "yes"},
                )
                try:
                    routing.upsert(block_id, [entry])
                except GitKeysError as exc:
                    outcome.record(Failed(ROUTE, str(exc)))
                    outcome.fatal_step = ROUTE
                    continue
                outcome.record(Ok(ROUTE, block_id))

                outcome.record(self._upload(config, platform, key, report))

        if report.changed:
            self.session.config_store.save(config)
        return report

    def _ensure_key(
        self,
        config: DeclaredConfig,
        platform: Platform,
        outcome: PairOutcome,
        report: ApplyReport,
    ) -> KeyConfig | None:
        active = platform.active_key()
        if active is not None:
            outcome.record(Skipped(GENERATE, f"active key {active.local_path}"))
            return active

        km = self.session.key_material
        key_type = config.defaults.key_type
        name = build_key_file_name(platform.type, platform.account, key_type)
        comment = build_key_comment(platform.type, platform.account, self.session.machine_label(config))
        try:
            km.generate(key_type, comment, name)
            fingerprint = km.fingerprint(name)
        except GitKeysError as exc:
            outcome.record(Failed(GENERATE, str(exc)))
            outcome.fatal_step = GENERATE
            return None

        now = self.session.now()
        key = KeyConfig(
            type=key_type,
            created_at=now,
            expires_at=now + timedelta(days=config.defaults.key_expiration_days),
            fingerprint=fingerprint,
            local_path=name,
            status=KeyStatus.ACTIVE,
        )
        platform.keys.append(key)
        report.changed = True
        outcome.record(Ok(GENERATE, name))
        return key

    def _upload(
        self,
        config: DeclaredConfig,
        platform: Platform,
        key: KeyConfig,
        report: ApplyReport,
    ):
        if key.remote_id:
            return Skipped(UPLOAD, f"already uploaded ({key.remote_id})")
        machine = self.session.machine_label(config)
        title = f"{platform.account}@{machine} (git-keys {self.session.now():%Y-%m-%d})"
        try:
            public_key = self.session.key_material.public_key(key.local_path)
            with self.session.client_for(platform) as client:
                key.remote_id = client.add_key(title, public_key)
        except GitKeysError as exc:
            logger.warning(
                "Could not upload key for %s@%s: %s", platform.account, platform.type.value, exc,
            )
            return Failed(UPLOAD, str(exc))
        report.changed = True
        return Ok(UPLOAD, f"remote id {key.remote_id}")
