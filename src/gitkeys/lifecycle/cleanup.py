"""Rebuild cleanup: tear down everything git-keys manages.

Only git-keys state is removed: managed routing blocks, key files the
declared config tracks, the config file itself and stored tokens. Keys
and routing entries the user created by hand are left alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gitkeys.config.models import DeclaredConfig, KeyStatus, PlatformType
from gitkeys.exceptions import GitKeysError, TokenNotFoundError
from gitkeys.lifecycle.results import Failed, Ok, Skipped, StepOutcome
from gitkeys.lifecycle.revoke import Revoker, RevokeTarget
from gitkeys.platforms.tokens import DEFAULT_ACCOUNT
from gitkeys.session import Session

logger = logging.getLogger(__name__)

STEP_REVOKE = "revoke_remote"
STEP_ROUTING = "routing"
STEP_KEY_FILES = "key_files"
STEP_CONFIG = "config_file"
STEP_TOKENS = "tokens"

WELL_KNOWN_ACCOUNTS = (DEFAULT_ACCOUNT, "personal", "work")


@dataclass
class CleanupReport:
    steps: list[StepOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[StepOutcome]:
        return [s for s in self.steps if isinstance(s, Failed)]


def token_accounts(config: DeclaredConfig | None) -> list[str]:
    """Accounts whose tokens are cleared: the well-known ones plus configured ones."""
    accounts = list(WELL_KNOWN_ACCOUNTS)
    if config is not None:
        for persona in config.personas:
            for platform in persona.platforms:
                if platform.account and platform.account not in accounts:
                    accounts.append(platform.account)
    return accounts


class Cleanup:
    """Runs the five cleanup steps, each best-effort."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def run(self, config: DeclaredConfig | None, keep_remote: bool = False) -> CleanupReport:
        report = CleanupReport()
        report.steps.append(self._revoke_remote(config, keep_remote))
        report.steps.append(self._remove_routing(config))
        report.steps.append(self._delete_key_files(config))
        report.steps.append(self._delete_config())
        report.steps.append(self._clear_tokens(config))
        for step in report.failed:
            logger.warning("Cleanup step %s failed: %s", step.step, step.reason)
        return report

    def _revoke_remote(self, config: DeclaredConfig | None, keep_remote: bool) -> StepOutcome:
        if keep_remote:
            return Skipped(STEP_REVOKE, "--keep-remote")
        if config is None:
            return Skipped(STEP_REVOKE, "no existing config")

        revoker = Revoker(self.session)
        revoked = failed = 0
        for persona in config.personas:
            for platform in persona.platforms:
                for key in platform.keys:
                    if key.status != KeyStatus.ACTIVE or not key.remote_id:
                        continue
                    outcome = revoker.revoke_one(RevokeTarget(persona, platform, key))
                    if isinstance(outcome, Failed):
                        failed += 1
                    else:
                        revoked += 1
        if failed:
            return Failed(STEP_REVOKE, f"{revoked} revoked, {failed} failed")
        return Ok(STEP_REVOKE, f"{revoked} revoked")

    def _remove_routing(self, config: DeclaredConfig | None) -> StepOutcome:
        try:
            count = self.session.routing(config).remove_all_managed_blocks()
        except GitKeysError as exc:
            return Failed(STEP_ROUTING, str(exc))
        return Ok(STEP_ROUTING, f"{count} managed blocks removed")

    def _delete_key_files(self, config: DeclaredConfig | None) -> StepOutcome:
        if config is None:
            return Skipped(STEP_KEY_FILES, "no existing config")
        deleted = failed = 0
        for persona in config.personas:
            for platform in persona.platforms:
                for key in platform.keys:
                    if not key.local_path:
                        continue
                    for outcome in self.session.key_material.delete(key.local_path):
                        if isinstance(outcome, Ok):
                            deleted += 1
                        elif isinstance(outcome, Failed):
                            failed += 1
        if failed:
            return Failed(STEP_KEY_FILES, f"{deleted} deleted, {failed} failed")
        return Ok(STEP_KEY_FILES, f"{deleted} files deleted")

    def _delete_config(self) -> StepOutcome:
        try:
            removed = self.session.config_store.delete()
        except GitKeysError as exc:
            return Failed(STEP_CONFIG, str(exc))
        if not removed:
            return Skipped(STEP_CONFIG, "no config file")
        return Ok(STEP_CONFIG, str(self.session.config_store.path))

    def _clear_tokens(self, config: DeclaredConfig | None) -> StepOutcome:
        cleared = 0
        errors: list[str] = []
        for platform_type in PlatformType:
            store = self.session.tokens(platform_type)
            for account in token_accounts(config):
                try:
                    store.delete_token(account)
                except TokenNotFoundError:
                    continue
                except GitKeysError as exc:
                    errors.append(str(exc))
                    continue
                cleared += 1
        if errors:
            return Failed(STEP_TOKENS, "; ".join(errors))
        return Ok(STEP_TOKENS, f"{cleared} tokens cleared")
