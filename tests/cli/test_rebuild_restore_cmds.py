"""Tests for ``git-keys rebuild`` and ``git-keys restore``.

Verifies:
    - A dry run scans and changes nothing.
    - rebuild backs up, cleans up and re-creates the config from the
      recommended mapping; with -i the answers come from prompts.
    - A failed cleanup step exits 1 but the rebuild still completes.
    - restore lists snapshots, restores the newest and rejects empty ones.
"""

from __future__ import annotations

from click.testing import CliRunner

from gitkeys.backup.store import BackupStore
from gitkeys.cli.main import cli
from gitkeys.config.models import DeclaredConfig, PlatformType
from gitkeys.discovery.models import ScanResult
from gitkeys.recommend import recommend
from gitkeys.session import Session
from tests.fakes import FIXED_NOW, FakeKeyring, FakePlatforms, store_token


def _backups(session: Session) -> BackupStore:
    return BackupStore(session.state_dir / "backups")


class TestRebuild:
    """Tests for ``git-keys rebuild``."""

    def test_dry_run(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """Only the plan is printed."""
        before = session.config_store.path.read_bytes()
        result = runner.invoke(cli, ["rebuild", "--dry-run"], obj=session)

        assert result.exit_code == 0, result.output
        assert "Recommended mapping (from declared configuration)" in result.output
        assert "revoke remote keys" in result.output
        assert session.config_store.path.read_bytes() == before
        assert _backups(session).list() == []

    def test_rebuild(
        self, runner: CliRunner, session: Session, declared: DeclaredConfig,
        keyring_backend: FakeKeyring, platforms: FakePlatforms,
    ) -> None:
        """Backup, cleanup and a fresh config with the same personas and no keys."""
        store_token(keyring_backend, PlatformType.GITHUB, "default", "ghp")
        store_token(keyring_backend, PlatformType.GITLAB, "default", "glpat")
        key_file = session.ssh_dir / declared.personas[0].platforms[0].keys[0].local_path

        result = runner.invoke(cli, ["rebuild", "--yes"], obj=session)

        assert result.exit_code == 0, result.output
        assert "Configuration rebuilt with 2 persona(s)." in result.output
        entries = _backups(session).list()
        assert len(entries) == 1
        assert entries[0].persona_count == 2
        assert platforms.github.deleted == ["11"]
        assert not key_file.exists()
        assert keyring_backend.passwords == {}

        config = session.load_config()
        assert [(p.name, p.platforms[0].account) for p in config.personas] == [
            ("personal", "octocat"), ("work", "jdoe"),
        ]
        assert all(not plat.keys for p in config.personas for plat in p.platforms)
        assert config.personas[1].platforms[0].base_url == "https://gitlab.corp.example"
        assert config.machine.id == "machine-1234"

    def test_cleanup_failure_exits_1(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """Without tokens remote revocation fails; the rest still runs."""
        result = runner.invoke(cli, ["rebuild", "--yes", "--skip-backup"], obj=session)

        assert result.exit_code == 1
        assert "revoke_remote" in result.output
        assert len(session.load_config().personas) == 2
        assert _backups(session).list() == []

    def test_keep_remote(
        self, runner: CliRunner, session: Session, declared: DeclaredConfig, platforms: FakePlatforms,
    ) -> None:
        """--keep-remote skips revocation, so no token is needed."""
        result = runner.invoke(cli, ["rebuild", "--yes", "--keep-remote"], obj=session)
        assert result.exit_code == 0, result.output
        assert platforms.github.deleted == []

    def test_interactive(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """-i asks per persona; declining one drops it."""
        result = runner.invoke(
            cli, ["rebuild", "-i", "--yes", "--keep-remote"], obj=session,
            input="y\nhome\nocto-home\nn\n",
        )

        assert result.exit_code == 0, result.output
        config = session.load_config()
        assert [p.name for p in config.personas] == ["home"]
        assert config.personas[0].platforms[0].account == "octo-home"

    def test_from_scratch(self, runner: CliRunner, session: Session) -> None:
        """With nothing discovered there is nothing to configure."""
        result = runner.invoke(cli, ["rebuild", "--yes"], obj=session)
        assert result.exit_code == 0, result.output
        assert "No personas left to configure" in result.output
        assert not session.config_store.exists()

    def test_declined(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """The rebuild prompt defaults to no."""
        result = runner.invoke(cli, ["rebuild"], obj=session, input="\n")
        assert result.exit_code == 2
        assert session.config_store.exists()


class TestRestore:
    """Tests for ``git-keys restore``."""

    def _snapshot(self, session: Session, declared: DeclaredConfig | None):
        scan = ScanResult()
        return _backups(session).create(
            scan, declared, recommend(scan, declared), session.ssh_dir / "config", now=FIXED_NOW,
        )

    def test_restore_newest(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """Without an argument the newest snapshot is restored."""
        self._snapshot(session, declared)
        session.config_store.delete()

        result = runner.invoke(cli, ["restore", "--yes"], obj=session)

        assert result.exit_code == 0, result.output
        assert "personas: personal, work" in result.output
        assert [p.name for p in session.load_config().personas] == ["personal", "work"]

    def test_list(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """--list shows each snapshot file."""
        path = self._snapshot(session, declared)
        result = runner.invoke(cli, ["restore", "--list"], obj=session)
        assert result.exit_code == 0
        assert path.name in result.output

    def test_no_backups(self, runner: CliRunner, session: Session) -> None:
        """Nothing to restore exits 1."""
        result = runner.invoke(cli, ["restore", "--yes"], obj=session)
        assert result.exit_code == 1
        assert "no backups found" in result.output

    def test_empty_snapshot(self, runner: CliRunner, session: Session) -> None:
        """A snapshot taken without a config cannot be restored."""
        path = self._snapshot(session, None)
        result = runner.invoke(cli, ["restore", path.name, "--yes"], obj=session)
        assert result.exit_code == 1
        assert "does not contain a configuration" in result.output

    def test_declined(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """Declining keeps the current config."""
        self._snapshot(session, declared)
        before = session.config_store.path.read_bytes()
        result = runner.invoke(cli, ["restore"], obj=session, input="n\n")
        assert result.exit_code == 2
        assert session.config_store.path.read_bytes() == before
