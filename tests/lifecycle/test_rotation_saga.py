"""Tests for the key rotation saga.

Verifies:
    - Target selection by persona, platform and --all.
    - A successful rotation leaves one active key at the permanent path,
      the old pair archived and the routing block pointing at the new key.
    - A pair without a token aborts at upload while its sibling succeeds.
    - A routing failure after upload deletes the uploaded key again.
    - Validation and old-key revocation failures are warnings only.
    - Two platforms of one type under a persona keep separate blocks.
    - A key left at the temporary name after a failed commit still rotates.
    - Platform clients are closed after each pair.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from gitkeys.config.models import DeclaredConfig, KeyStatus, Platform, PlatformType
from gitkeys.lifecycle.results import (
    ARCHIVE,
    COMMIT,
    GENERATE,
    REVOKE_OLD,
    ROTATION_STEPS,
    ROUTE,
    UPLOAD,
    VALIDATE,
    Failed,
    Ok,
    Skipped,
)
from gitkeys.lifecycle.rotate import Rotator, routing_block_id, select_rotation_targets
from gitkeys.session import Session
from gitkeys.ssh.keys import public_path
from tests.fakes import FakeKeyring, FakePlatforms, FakeProbe, managed_key, store_token

PERMANENT = "git-keys-github-octocat-ed25519"


def _with_tokens(keyring_backend: FakeKeyring, *platform_types: PlatformType) -> None:
    for platform_type in platform_types:
        store_token(keyring_backend, platform_type, "default", f"token-{platform_type.value}")


class TestSelection:
    """Tests for select_rotation_targets()."""

    def test_nothing_without_selector(self, declared: DeclaredConfig) -> None:
        """Neither persona nor --all selects nothing."""
        assert select_rotation_targets(declared) == []

    def test_all(self, declared: DeclaredConfig) -> None:
        """--all selects every platform with an active key, in declared order."""
        labels = [t.label for t in select_rotation_targets(declared, all_=True)]
        assert labels == ["personal/github/octocat", "work/gitlab/jdoe"]

    def test_persona_and_platform(self, declared: DeclaredConfig) -> None:
        """A persona narrowed to a platform it lacks selects nothing."""
        assert select_rotation_targets(declared, "work", PlatformType.GITLAB)[0].label == "work/gitlab/jdoe"
        assert select_rotation_targets(declared, "work", PlatformType.GITHUB) == []

    def test_platform_without_active_key(self, declared: DeclaredConfig) -> None:
        """Platforms whose keys are all revoked are skipped."""
        declared.personas[0].platforms[0].keys[0].status = KeyStatus.REVOKED
        assert select_rotation_targets(declared, "personal") == []


class TestSuccessfulRotation:
    """Tests for the post-rotation state of a successful pair."""

    def _rotate(self, session: Session, declared: DeclaredConfig):
        targets = select_rotation_targets(declared, "personal")
        return Rotator(session).rotate(declared, targets)

    def test_all_steps_ok(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
    ) -> None:
        """Every step succeeds, in order, and the config is saved."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        report = self._rotate(session, declared)

        pair = report.outcomes[0]
        assert [s.step for s in pair.steps] == list(ROTATION_STEPS)
        assert all(isinstance(s, Ok) for s in pair.steps)
        assert report.persisted
        assert not report.command_failed

    def test_exactly_one_active_key(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
        platforms: FakePlatforms, ssh_dir: Path,
    ) -> None:
        """The platform holds one active key, at the permanent path, with the new remote id."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        old_fingerprint = declared.personas[0].platforms[0].keys[0].fingerprint
        self._rotate(session, declared)

        reloaded = session.load_config()
        keys = reloaded.personas[0].platforms[0].keys
        assert len([k for k in keys if k.status == KeyStatus.ACTIVE]) == 1
        key = keys[0]
        assert key.local_path == PERMANENT
        assert key.fingerprint != old_fingerprint
        assert key.remote_id == "100"
        assert key.created_at == session.now()
        assert (ssh_dir / PERMANENT).is_file()
        assert not (ssh_dir / (PERMANENT + "-new")).exists()

    def test_old_key_archived(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """Both old files move to archive/<name>.old-<date>."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        old_public = (ssh_dir / (PERMANENT + ".pub")).read_text()
        self._rotate(session, declared)

        archived = ssh_dir / "archive" / f"{PERMANENT}.old-2026-03-01"
        assert archived.is_file()
        assert public_path(archived).read_text() == old_public

    def test_routing_points_at_permanent_path(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """The managed block names the permanent file, not the temporary one."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        self._rotate(session, declared)

        persona = declared.personas[0]
        block = session.routing(declared).get_block(routing_block_id(persona, persona.platforms[0]))
        assert f"IdentityFile {ssh_dir / PERMANENT}\n" in block
        assert "-new" not in block

    def test_remote_state(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
        platforms: FakePlatforms,
    ) -> None:
        """The old remote key is deleted and the new one is titled with the date."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        self._rotate(session, declared)

        assert platforms.github.deleted == ["11"]
        assert platforms.github.keys["100"].title == "octocat@laptop (rotated 2026-03-01)"

    def test_client_closed(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
        platforms: FakePlatforms,
    ) -> None:
        """The platform client opened for the pair is closed again."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        self._rotate(session, declared)
        assert platforms.github.opened == platforms.github.closed == 1


class TestSharedPersona:
    """Tests for several platforms of one type under a single persona."""

    def test_two_gitlab_accounts_keep_separate_blocks(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """Each GitLab account gets its own managed block naming its own key."""
        _with_tokens(keyring_backend, PlatformType.GITLAB)
        work = declared.personas[1]
        created = session.now() - timedelta(days=30)
        work.platforms.append(Platform(
            type=PlatformType.GITLAB,
            account="jdoe-oss",
            keys=[managed_key(ssh_dir, PlatformType.GITLAB, "jdoe-oss", created, remote_id="33")],
        ))

        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "work"))

        assert [o.ok for o in report.outcomes] == [True, True]
        corp, oss = work.platforms
        corp_id, oss_id = routing_block_id(work, corp), routing_block_id(work, oss)
        assert corp_id == "git-keys-work-gitlab-jdoe-gitlab.corp.example"
        assert oss_id == "git-keys-work-gitlab-jdoe-oss"
        routing = session.routing(declared)
        assert {corp_id, oss_id} <= set(routing.managed_block_ids())
        assert f"IdentityFile {ssh_dir / 'git-keys-gitlab-jdoe-ed25519'}\n" in routing.get_block(corp_id)
        assert f"IdentityFile {ssh_dir / 'git-keys-gitlab-jdoe-oss-ed25519'}\n" in routing.get_block(oss_id)

    def test_block_ids_differ_per_host(self, declared: DeclaredConfig) -> None:
        """The same account on two GitLab hosts still yields two block ids."""
        work = declared.personas[1]
        hosted = Platform(type=PlatformType.GITLAB, account="jdoe")
        assert routing_block_id(work, hosted) != routing_block_id(work, work.platforms[0])


class TestPartialFailure:
    """Tests for failures on one pair among several."""

    def test_missing_token_aborts_only_that_pair(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """GitLab has no token: it fails at upload; GitHub still rotates."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        work_key = declared.personas[1].platforms[0].keys[0]
        report = Rotator(session).rotate(declared, select_rotation_targets(declared, all_=True))

        github, gitlab = report.outcomes
        assert github.ok
        assert gitlab.fatal_step == UPLOAD
        assert report.command_failed
        assert report.persisted

        assert not (ssh_dir / "git-keys-gitlab-jdoe-ed25519-new").exists()
        reloaded = session.load_config()
        assert reloaded.personas[1].platforms[0].keys[0].fingerprint == work_key.fingerprint
        assert reloaded.personas[0].platforms[0].keys[0].remote_id == "100"

    def test_generate_failure(self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring) -> None:
        """A keygen failure aborts before anything is uploaded and nothing is saved."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        session.key_material.fail_generate = True
        before = session.config_store.path.read_bytes()

        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))
        assert report.outcomes[0].fatal_step == GENERATE
        assert not report.persisted
        assert session.config_store.path.read_bytes() == before

    def test_route_failure_compensates_upload(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
        platforms: FakePlatforms, tmp_path: Path, ssh_dir: Path,
    ) -> None:
        """When routing cannot be written the uploaded key is deleted remotely."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        unwritable = tmp_path / "routing-is-a-directory"
        unwritable.mkdir()
        declared.defaults.ssh_config_path = str(unwritable)

        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))
        pair = report.outcomes[0]
        assert pair.fatal_step == ROUTE
        assert isinstance(pair.step(UPLOAD), Ok)
        assert platforms.github.deleted == ["100"]
        assert "11" not in platforms.github.deleted
        assert not (ssh_dir / (PERMANENT + "-new")).exists()
        assert (ssh_dir / PERMANENT).is_file()
        assert platforms.github.opened == platforms.github.closed == 1


class TestWarnings:
    """Tests for failures after routing has been switched."""

    def test_validation_failure_is_warning(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
    ) -> None:
        """A failed ssh probe is recorded but the pair still succeeds."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        session.probe = FakeProbe(ok=False)
        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))

        pair = report.outcomes[0]
        assert pair.ok
        assert isinstance(pair.step(VALIDATE), Failed)
        assert [w.step for w in pair.warnings()] == [VALIDATE]
        assert session.probe.hosts == ["github.com"]

    def test_revoke_old_failure_is_warning(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
        platforms: FakePlatforms,
    ) -> None:
        """The old remote key surviving does not fail the rotation."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        platforms.github.fail_delete = True
        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))

        pair = report.outcomes[0]
        assert pair.ok
        assert isinstance(pair.step(REVOKE_OLD), Failed)
        assert isinstance(pair.step(COMMIT), Ok)
        assert not report.command_failed

    def test_never_uploaded_old_key(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring,
    ) -> None:
        """An old key without a remote id skips remote revocation."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        declared.personas[0].platforms[0].keys[0].remote_id = ""
        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))
        assert isinstance(report.outcomes[0].step(REVOKE_OLD), Skipped)

    def test_missing_old_file_skips_archive(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """A vanished old key file is not an error."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        (ssh_dir / PERMANENT).unlink()
        (ssh_dir / (PERMANENT + ".pub")).unlink()
        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))
        assert isinstance(report.outcomes[0].step(ARCHIVE), Skipped)
        assert report.outcomes[0].ok

    def test_leftover_temp_key_from_failed_commit(
        self, session: Session, declared: DeclaredConfig, keyring_backend: FakeKeyring, ssh_dir: Path,
    ) -> None:
        """An active key still at the temporary name rotates to the permanent name."""
        _with_tokens(keyring_backend, PlatformType.GITHUB)
        old_key = declared.personas[0].platforms[0].keys[0]
        leftover = PERMANENT + "-new"
        session.key_material.move(PERMANENT, leftover)
        old_key.local_path = leftover

        report = Rotator(session).rotate(declared, select_rotation_targets(declared, "personal"))

        pair = report.outcomes[0]
        assert pair.ok
        assert isinstance(pair.step(COMMIT), Ok)
        assert declared.personas[0].platforms[0].keys[0].local_path == PERMANENT
        assert (ssh_dir / PERMANENT).is_file()
        assert not (ssh_dir / leftover).exists()
        assert (ssh_dir / "archive" / f"{leftover}.old-2026-03-01").is_file()
