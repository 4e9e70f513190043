"""Tests for the ``git-keys`` group and ``git-keys init``.

Verifies:
    - --version and --help.
    - init writes a config from options or prompts.
    - init refuses to overwrite without --force.
    - A machine that cannot be identified exits 2.
"""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from gitkeys import __version__
from gitkeys.cli.main import cli
from gitkeys.config.models import DeclaredConfig, PlatformType
from gitkeys.exceptions import GitKeysError
from gitkeys.session import Session


class TestGroup:
    """Tests for the top-level command group."""

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the program name and version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"git-keys, version {__version__}" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """--help names every subcommand."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("init", "import", "scan", "plan", "status", "validate", "apply", "rotate",
                     "revoke", "setup-git", "token", "keychain", "rebuild", "restore"):
            assert name in result.output


class TestInit:
    """Tests for ``git-keys init``."""

    def test_from_options(self, runner: CliRunner, session: Session) -> None:
        """All values given as options: nothing is prompted."""
        result = runner.invoke(cli, [
            "init", "--persona", "work", "--email", "me@corp.example",
            "--platform", "gitlab", "--account", "jdoe",
            "--base-url", "https://gitlab.corp.example/", "--git-dir", "~/work",
        ], obj=session)

        assert result.exit_code == 0, result.output
        assert "Configuration written to" in result.output
        config = session.load_config()
        assert config.machine.id == "machine-1234"
        assert config.defaults.ssh_config_path == str(session.ssh_dir / "config")
        platform = config.personas[0].platforms[0]
        assert (config.personas[0].name, platform.type, platform.account) == ("work", PlatformType.GITLAB, "jdoe")
        assert platform.base_url == "https://gitlab.corp.example"
        assert platform.git_dir == f"{session.home}/work/"
        assert platform.keys == []

    def test_prompts(self, runner: CliRunner, session: Session) -> None:
        """Missing values are prompted for, with defaults."""
        result = runner.invoke(cli, ["init"], obj=session, input="\nme@example.com\n\noctocat\n")

        assert result.exit_code == 0, result.output
        persona = session.load_config().personas[0]
        assert (persona.name, persona.email) == ("personal", "me@example.com")
        assert persona.platforms[0].type == PlatformType.GITHUB
        assert persona.platforms[0].account == "octocat"

    def test_refuses_overwrite(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """An existing config is kept unless --force is given."""
        before = session.config_store.path.read_bytes()
        result = runner.invoke(cli, [
            "init", "--persona", "x", "--email", "x@example.com", "--platform", "github", "--account", "x",
        ], obj=session)
        assert result.exit_code == 2
        assert "already exists" in result.output
        assert session.config_store.path.read_bytes() == before

    def test_force(self, runner: CliRunner, session: Session, declared: DeclaredConfig) -> None:
        """--force replaces the existing config."""
        result = runner.invoke(cli, [
            "init", "--force", "--persona", "x", "--email", "x@example.com",
            "--platform", "github", "--account", "x",
        ], obj=session)
        assert result.exit_code == 0
        assert [p.name for p in session.load_config().personas] == ["x"]

    def test_machine_detection_failure(self, runner: CliRunner, session: Session) -> None:
        """No machine id means exit 2 and no file."""
        def broken():
            raise GitKeysError("could not determine a machine id")

        session.machine_detector = broken
        result = runner.invoke(cli, ["init"], obj=session)
        assert result.exit_code == 2
        assert "could not determine a machine id" in result.output
        assert not Path(session.config_store.path).exists()
