"""Key rotation saga.

Each (persona, platform) pair is rotated through seven ordered steps:

    1. generate    new key pair at ``<permanent>-new``
    2. upload      new public key to the platform
    3. route       point the managed routing block at the new key
    4. validate    ``ssh -T`` probe (warning only)
    5. revoke_old  delete the old key remotely (warning only)
    6. archive     move the old key files to ``<keydir>/archive/`` (warning only)
    7. commit      rename to the permanent name and update the model

A failure in steps 1-3 aborts the pair: the new key files are deleted
and, if the key was already uploaded, it is deleted remotely
best-effort. Steps 4-7 never roll back step 3; a working new key beats a
clean abort. The declared config is saved once, after every pair, and
only if at least one pair succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from gitkeys.config.models import DeclaredConfig, KeyConfig, KeyStatus, Persona, Platform, PlatformType
from gitkeys.exceptions import GitKeysError, PlatformAPIError
from gitkeys.lifecycle.results import (
    ARCHIVE,
    COMMIT,
    GENERATE,
    REVOKE_OLD,
    ROUTE,
    UPLOAD,
    VALIDATE,
    Failed,
    Ok,
    PairOutcome,
    RotationReport,
    Skipped,
)
from gitkeys.platforms.base import PlatformClient
from gitkeys.platforms.registry import platform_host
from gitkeys.session import Session
from gitkeys.ssh.keys import build_key_comment, build_key_file_name
from gitkeys.ssh.routing import RoutingConfig, RoutingEntry

logger = logging.getLogger(__name__)

ARCHIVE_DIR = "archive"
TEMP_SUFFIX = "-new"


@dataclass
class RotationTarget:
    persona: Persona
    platform: Platform
    key: KeyConfig

    @property
    def label(self) -> str:
        return f"{self.persona.name}/{self.platform.type.value}/{self.platform.account}"


def select_rotation_targets(
    config: DeclaredConfig,
    persona: str | None = None,
    platform: PlatformType | None = None,
    all_: bool = False,
) -> list[RotationTarget]:
    """Pick the pairs to rotate: one per platform holding an active key.

    With neither *persona* nor *all_* nothing is selected.
    """
    if persona is None and not all_:
        return []
    targets: list[RotationTarget] = []
    for p in config.personas:
        if persona is not None and p.name != persona:
            continue
        for plat in p.platforms:
            if platform is not None and plat.type != platform:
                continue
            active = plat.active_key()
            if active is None:
                logger.debug("No active key for %s/%s", p.name, plat.type.value)
                continue
            targets.append(RotationTarget(p, plat, active))
    return targets


def routing_block_id(persona: Persona, platform: Platform) -> str:
    """Managed block owned by one platform account of a persona.

    Self-hosted instances also carry their host, so two accounts of the same
    type never share a block.
    """
    block_id = f"git-keys-{persona.name}-{platform.type.value}-{platform.account}"
    if platform.base_url:
        block_id += f"-{platform_host(platform)}"
    return block_id


def archive_name(local_path: str, date_stamp: str) -> str:
    return f"{Path(local_path).name}.old-{date_stamp}"


class Rotator:
    """Runs the rotation saga over a list of targets.

    Usage::

        rotator = Rotator(session)
        report = rotator.rotate(config, select_rotation_targets(config, all_=True))
        print(len(report.succeeded), len(report.failed))
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def rotate(self, config: DeclaredConfig, targets: list[RotationTarget]) -> RotationReport:
        report = RotationReport()
        routing = self.session.routing(config)
        for target in targets:
            logger.info("Rotating %s", target.label)
            outcome = self._rotate_pair(config, target, routing)
            report.outcomes.append(outcome)
            if outcome.ok:
                logger.info("Rotated %s", target.label)
            else:
                logger.error("Rotation of %s failed at %s", target.label, outcome.fatal_step)

        if report.succeeded:
            self.session.config_store.save(config)
            report.persisted = True
        return report

    # -- One pair -----------------------------------------------------------

    def _abort(
        self, outcome: PairOutcome, step: str, exc: Exception, temp_name: str,
    ) -> PairOutcome:
        outcome.record(Failed(step, str(exc)))
        outcome.fatal_step = step
        self.session.key_material.delete(temp_name)
        return outcome

    def _rotate_pair(
        self, config: DeclaredConfig, target: RotationTarget, routing: RoutingConfig,
    ) -> PairOutcome:
        persona, platform, old_key = target.persona, target.platform, target.key
        outcome = PairOutcome(persona.name, platform.type.value, platform.account)
        km = self.session.key_material
        now = self.session.now()
        date_stamp = now.strftime("%Y-%m-%d")
        machine = self.session.machine_label(config)
        key_type = config.defaults.key_type
        host = platform_host(platform)
        block_id = routing_block_id(persona, platform)

        permanent = build_key_file_name(platform.type, platform.account, key_type)
        temp = permanent + TEMP_SUFFIX
        if km.exists(temp):
            # Left behind by a rotation whose commit rename failed.
            temp = f"{temp}-{now:%Y%m%d%H%M%S}"

        # 1. Generate
        try:
            km.generate(key_type, build_key_comment(platform.type, platform.account, machine), temp)
            fingerprint = km.fingerprint(temp)
            public_key = km.public_key(temp)
        except GitKeysError as exc:
            return self._abort(outcome, GENERATE, exc, temp)
        outcome.record(Ok(GENERATE, fingerprint))

        # 2. Upload
        title = f"{platform.account}@{machine} (rotated {date_stamp})"
        try:
            client = self.session.client_for(platform)
        except GitKeysError as exc:
            return self._abort(outcome, UPLOAD, exc, temp)
        with client:
            try:
                remote_id = client.add_key(title, public_key)
            except GitKeysError as exc:
                return self._abort(outcome, UPLOAD, exc, temp)
            outcome.record(Ok(UPLOAD, f"remote id {remote_id}"))

            # 3. Reconfigure routing
            try:
                routing.upsert(block_id, [self._entry(host, km.resolve(temp))])
            except GitKeysError as exc:
                self._delete_remote(client, remote_id)
                return self._abort(outcome, ROUTE, exc, temp)
            outcome.record(Ok(ROUTE, block_id))

            # 4. Validate
            probe = self.session.probe(host)
            if probe.ok:
                outcome.record(Ok(VALIDATE, host))
            else:
                logger.warning("Could not validate new key against %s: %s", host, probe.output)
                outcome.record(Failed(VALIDATE, probe.output or "connection test failed"))

            # 5. Revoke old
            if old_key.remote_id:
                try:
                    client.delete_key(old_key.remote_id)
                except PlatformAPIError as exc:
                    logger.warning(
                        "Could not remove old key %s from %s; remove it manually: %s",
                        old_key.remote_id, host, exc,
                    )
                    outcome.record(Failed(REVOKE_OLD, str(exc)))
                else:
                    outcome.record(Ok(REVOKE_OLD, old_key.remote_id))
            else:
                outcome.record(Skipped(REVOKE_OLD, "old key was never uploaded"))

        # 6. Archive old
        outcome.record(self._archive(old_key, date_stamp))

        # 7. Commit
        final_name = temp
        try:
            km.move(temp, permanent)
        except GitKeysError as exc:
            logger.warning("Could not rename %s to %s: %s", temp, permanent, exc)
            outcome.record(Failed(COMMIT, str(exc)))
        else:
            final_name = permanent
            try:
                routing.upsert(block_id, [self._entry(host, km.resolve(permanent))])
            except GitKeysError as exc:
                logger.warning("Could not re-point %s at %s: %s", block_id, permanent, exc)
                outcome.record(Failed(COMMIT, str(exc)))
            else:
                outcome.record(Ok(COMMIT, permanent))

        new_key = KeyConfig(
            type=key_type,
            created_at=now,
            expires_at=now + timedelta(days=config.defaults.key_expiration_days),
            fingerprint=fingerprint,
            local_path=final_name,
            remote_id=remote_id,
            status=KeyStatus.ACTIVE,
        )
        index = next(i for i, k in enumerate(platform.keys) if k is old_key)
        platform.keys[index] = new_key
        return outcome

    # -- Helpers ------------------------------------------------------------

    @staticmethod
    def _entry(host: str, path: Path) -> RoutingEntry:
        return RoutingEntry(alias=host, hostname=host, identity_file=str(path), user="git")

    def _delete_remote(self, client: PlatformClient, remote_id: str) -> None:
        try:
            client.delete_key(remote_id)
        except PlatformAPIError as exc:
            logger.warning("Could not delete uploaded key %s during rollback: %s", remote_id, exc)

    def _archive(self, old_key: KeyConfig, date_stamp: str):
        if not old_key.local_path:
            return Skipped(ARCHIVE, "old key has no local path")
        km = self.session.key_material
        if not km.exists(old_key.local_path):
            return Skipped(ARCHIVE, f"{old_key.local_path} not found")
        dest = self.session.ssh_dir / ARCHIVE_DIR / archive_name(old_key.local_path, date_stamp)
        try:
            km.move(old_key.local_path, dest)
        except GitKeysError as exc:
            logger.warning("Could not archive old key %s: %s", old_key.local_path, exc)
            return Failed(ARCHIVE, str(exc))
        return Ok(ARCHIVE, str(dest))
