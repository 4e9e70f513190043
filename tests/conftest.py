"""Shared fixtures for git-keys tests.

Every test gets its own fake home directory (``HOME`` is pointed at it)
and a ``Session`` wired to the in-memory collaborators in ``tests.fakes``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gitkeys.config.models import DeclaredConfig
from gitkeys.session import Session
from tests.fakes import FIXED_NOW, FakeKeyring, FakePlatforms, make_session, sample_config


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An empty home directory that ``Path.home()`` also resolves to."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def keyring_backend() -> FakeKeyring:
    return FakeKeyring()


@pytest.fixture
def platforms() -> FakePlatforms:
    return FakePlatforms()


@pytest.fixture
def session(home: Path, keyring_backend: FakeKeyring, platforms: FakePlatforms) -> Session:
    """A session whose collaborators are all fakes."""
    return make_session(home, keyring_backend, platforms)


@pytest.fixture
def ssh_dir(session: Session) -> Path:
    return session.ssh_dir


@pytest.fixture
def declared(session: Session) -> DeclaredConfig:
    """The two-persona sample config, saved to the session's store."""
    config = sample_config(session.ssh_dir, FIXED_NOW)
    session.config_store.save(config)
    return config
