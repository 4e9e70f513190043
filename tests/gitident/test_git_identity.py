"""Tests for directory-based git identity switching.

Verifies:
    - One identity file per platform with a git directory.
    - The managed includeIf region is appended once and replaced in place.
    - Hand-written ~/.gitconfig content is preserved.
    - remove() deletes the region and the files it referenced.
"""

from __future__ import annotations

from pathlib import Path

from gitkeys.config.models import DeclaredConfig
from gitkeys.gitident import (
    BACKUP_SUFFIX,
    BEGIN_MARKER,
    END_MARKER,
    GitIdentitySwitcher,
    normalize_git_dir,
)
from tests.fakes import FIXED_NOW, sample_config

USER_GITCONFIG = "[user]\n\tname = Jane\n\temail = jane@example.com\n"


def _config(home: Path) -> DeclaredConfig:
    config = sample_config(home / ".ssh", FIXED_NOW)
    config.personas[0].platforms[0].git_dir = normalize_git_dir("~/personal", home)
    config.personas[1].platforms[0].git_dir = normalize_git_dir("~/work/", home)
    return config


class TestNormalize:
    """Tests for normalize_git_dir()."""

    def test_tilde_and_slash(self, tmp_path: Path) -> None:
        """~/ expands to home and a trailing slash is added."""
        assert normalize_git_dir("~/work", tmp_path) == f"{tmp_path}/work/"
        assert normalize_git_dir("/srv/code/", tmp_path) == "/srv/code/"


class TestApply:
    """Tests for GitIdentitySwitcher.apply()."""

    def test_identity_files(self, home: Path) -> None:
        """Each file sets the persona identity and rewrites URLs to the alias."""
        written = GitIdentitySwitcher(home).apply(_config(home))

        assert written == [
            home / ".gitconfig-personal-github-octocat",
            home / ".gitconfig-work-gitlab-jdoe",
        ]
        work = written[1].read_text()
        assert "\temail = me@corp.example\n" in work
        assert '[url "git@gitlab.corp.example.work:"]\n' in work
        assert "\tinsteadOf = git@gitlab.corp.example:\n" in work
        assert "\tinsteadOf = https://gitlab.corp.example/\n" in work

    def test_region_appended_after_user_content(self, home: Path) -> None:
        """User settings stay first; the managed region follows them."""
        (home / ".gitconfig").write_text(USER_GITCONFIG)
        switcher = GitIdentitySwitcher(home)
        switcher.apply(_config(home))

        content = switcher.gitconfig.read_text()
        assert content.startswith(USER_GITCONFIG + "\n" + BEGIN_MARKER)
        assert f'[includeIf "gitdir:{home}/work/"]\n\tpath = {home}/.gitconfig-work-gitlab-jdoe\n' in content
        assert content.endswith(END_MARKER + "\n")
        assert (home / (".gitconfig" + BACKUP_SUFFIX)).read_text() == USER_GITCONFIG

    def test_reapply_replaces_region(self, home: Path) -> None:
        """Applying twice leaves a single region with the latest entries."""
        switcher = GitIdentitySwitcher(home)
        config = _config(home)
        switcher.apply(config)
        config.personas[0].platforms[0].git_dir = ""
        switcher.apply(config)

        content = switcher.gitconfig.read_text()
        assert content.count(BEGIN_MARKER) == 1
        assert switcher.managed_paths() == [home / ".gitconfig-work-gitlab-jdoe"]

    def test_nothing_declared(self, home: Path) -> None:
        """Without git directories nothing is written."""
        config = sample_config(home / ".ssh", FIXED_NOW)
        assert GitIdentitySwitcher(home).apply(config) == []
        assert not (home / ".gitconfig").exists()


class TestRemove:
    """Tests for GitIdentitySwitcher.remove()."""

    def test_remove(self, home: Path) -> None:
        """The region and referenced identity files go; user content stays."""
        (home / ".gitconfig").write_text(USER_GITCONFIG)
        switcher = GitIdentitySwitcher(home)
        written = switcher.apply(_config(home))

        removed = switcher.remove()

        assert removed == written
        assert not any(p.exists() for p in written)
        assert switcher.gitconfig.read_text() == USER_GITCONFIG

    def test_remove_without_region(self, home: Path) -> None:
        """A gitconfig without a managed region is left untouched."""
        (home / ".gitconfig").write_text(USER_GITCONFIG)
        assert GitIdentitySwitcher(home).remove() == []
        assert (home / ".gitconfig").read_text() == USER_GITCONFIG
