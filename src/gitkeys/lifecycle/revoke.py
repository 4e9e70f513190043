"""Key revocation saga.

Selected keys are deleted from their platform (when they were ever
uploaded) and marked ``revoked`` in the declared model. A failure on one
entry is reported and the remaining entries still run. The model is
saved once at the end and reflects only the entries that succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gitkeys.config.models import DeclaredConfig, KeyConfig, KeyStatus, Persona, Platform, PlatformType
from gitkeys.exceptions import GitKeysError, KeyNotFoundError
from gitkeys.lifecycle.results import Failed, Ok, Skipped, StepOutcome
from gitkeys.platforms.base import normalize_fingerprint
from gitkeys.session import Session

logger = logging.getLogger(__name__)

STEP_REMOTE = "remote"


@dataclass
class RevokeTarget:
    persona: Persona
    platform: Platform
    key: KeyConfig

    @property
    def label(self) -> str:
        return f"{self.persona.name}/{self.platform.type.value}/{self.platform.account}"


@dataclass
class RevokeOutcome:
    """Result for one revoked key.

    Attributes:
        label: ``persona/platform/account``.
        fingerprint: The key's fingerprint.
        remote: Outcome of the remote deletion.
        local: One outcome per local file, when ``--local`` was given.
    """

    label: str
    fingerprint: str
    remote: StepOutcome
    local: list[StepOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not isinstance(self.remote, Failed)


@dataclass
class RevocationReport:
    outcomes: list[RevokeOutcome] = field(default_factory=list)
    persisted: bool = False

    @property
    def succeeded(self) -> list[RevokeOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[RevokeOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def command_failed(self) -> bool:
        return bool(self.failed)


def select_revocation_targets(
    config: DeclaredConfig,
    persona: str | None = None,
    platform: PlatformType | None = None,
    fingerprint: str | None = None,
    all_: bool = False,
) -> list[RevokeTarget]:
    """Pick the keys to revoke. Already-revoked keys are never selected.

    Selection is by *fingerprint* if given, else by *persona* (optionally
    narrowed by *platform*), else by *platform*, else everything when
    *all_* is set.

    Raises:
        KeyNotFoundError: If *fingerprint* matches no key in the model.
    """
    if fingerprint:
        wanted = normalize_fingerprint(fingerprint)
        matches = [
            RevokeTarget(p, plat, key)
            for p in config.personas
            for plat in p.platforms
            for key in plat.keys
            if normalize_fingerprint(key.fingerprint) == wanted
        ]
        if not matches:
            raise KeyNotFoundError(f"no key found with fingerprint {fingerprint}")
        return [t for t in matches if t.key.status != KeyStatus.REVOKED]

    if persona is None and platform is None and not all_:
        return []

    targets: list[RevokeTarget] = []
    for p in config.personas:
        if persona is not None and p.name != persona:
            continue
        for plat in p.platforms:
            if platform is not None and plat.type != platform:
                continue
            for key in plat.keys:
                if key.status == KeyStatus.REVOKED:
                    logger.debug("Key already revoked: %s", key.fingerprint)
                    continue
                targets.append(RevokeTarget(p, plat, key))
    return targets


class Revoker:
    """Revokes keys remotely and marks them revoked in the model.

    Usage::

        report = Revoker(session).revoke(config, targets, delete_local=False)
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def revoke_one(self, target: RevokeTarget) -> StepOutcome:
        """Delete one key remotely and mark it revoked on success."""
        key = target.key
        if not key.remote_id:
            key.status = KeyStatus.REVOKED
            return Skipped(STEP_REMOTE, "never uploaded")
        try:
            with self.session.client_for(target.platform) as client:
                client.delete_key(key.remote_id)
        except GitKeysError as exc:
            logger.error("Failed to revoke %s: %s", target.label, exc)
            return Failed(STEP_REMOTE, str(exc))
        key.status = KeyStatus.REVOKED
        return Ok(STEP_REMOTE, f"deleted remote key {key.remote_id}")

    def revoke(
        self,
        config: DeclaredConfig,
        targets: list[RevokeTarget],
        delete_local: bool = False,
    ) -> RevocationReport:
        report = RevocationReport()
        for target in targets:
            outcome = RevokeOutcome(
                label=target.label,
                fingerprint=target.key.fingerprint,
                remote=self.revoke_one(target),
            )
            if delete_local and target.key.local_path:
                outcome.local = self.session.key_material.delete(target.key.local_path)
            report.outcomes.append(outcome)

        if report.succeeded:
            self.session.config_store.save(config)
            report.persisted = True
        return report
