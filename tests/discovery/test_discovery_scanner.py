"""Tests for the discovery scanner and correlator.

Verifies:
    - N key pairs among M non-key files are found, newest first (property).
    - The in-agent flag tracks the agent's fingerprints exactly (property).
    - Routing hosts, git includes and remote registrations are correlated.
    - Each sub-scan degrades to Skipped/Failed without aborting the scan.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from gitkeys.config.models import PlatformType
from gitkeys.discovery.scanner import (
    STEP_AGENT,
    STEP_GIT,
    STEP_KEYS,
    STEP_SSH_CONFIG,
    Scanner,
    remote_step,
)
from gitkeys.exceptions import PlatformAPIError
from gitkeys.lifecycle.results import Failed, Ok, Skipped
from gitkeys.session import Session
from gitkeys.ssh.routing import RoutingEntry
from tests.fakes import (
    FakeAgent,
    fingerprint_of,
    make_repo,
    make_session,
    store_token,
    write_key_pair,
)


def _write_non_key_files(ssh_dir: Path, count: int) -> None:
    names = ["config", "known_hosts", "authorized_keys", ".DS_Store", "orphan.pub", "notes.txt", "lonely"]
    for name in names[:count]:
        (ssh_dir / name).write_text("not a key\n")


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestKeyDirectoryProperty:
    """N valid pairs and M non-key files yield exactly N keys, newest first."""

    @settings(max_examples=25, deadline=None)
    @given(
        mtimes=st.lists(
            st.integers(min_value=1_000_000, max_value=2_000_000_000), max_size=6, unique=True,
        ),
        non_keys=st.integers(min_value=0, max_value=7),
    )
    def test_counts_and_order(self, mtimes: list[int], non_keys: int) -> None:
        """Every pair is found once and ordered by descending mtime."""
        with tempfile.TemporaryDirectory() as tmp:
            session = make_session(Path(tmp))
            for i, mtime in enumerate(mtimes):
                private = write_key_pair(session.ssh_dir, f"id_key{i}")
                os.utime(private, (mtime, mtime))
            _write_non_key_files(session.ssh_dir, non_keys)

            result = Scanner(session).scan()

            assert len(result.keys) == len(mtimes)
            seen = [k.modified.timestamp() for k in result.keys]
            assert seen == sorted(mtimes, reverse=True)


class TestAgentFlagProperty:
    """A key is in-agent iff the agent reports its fingerprint."""

    @settings(max_examples=25, deadline=None)
    @given(loaded=st.lists(st.booleans(), min_size=1, max_size=5))
    def test_in_agent_matches(self, loaded: list[bool]) -> None:
        """in_agent equals membership of the fingerprint in ssh-add -l output."""
        with tempfile.TemporaryDirectory() as tmp:
            session = make_session(Path(tmp))
            expected = {}
            agent_fps = ["SHA256:unrelated"]
            for i, is_loaded in enumerate(loaded):
                private = write_key_pair(session.ssh_dir, f"id_{i}")
                expected[str(private)] = is_loaded
                if is_loaded:
                    agent_fps.append(fingerprint_of(private))
            session.agent = FakeAgent(agent_fps)

            result = Scanner(session).scan()

            assert {k.path: k.in_agent for k in result.keys} == expected


# ---------------------------------------------------------------------------
# Sources and correlation
# ---------------------------------------------------------------------------


class TestKeyInspection:
    """Tests for key directory details."""

    def test_key_details(self, session: Session) -> None:
        """Type, bits and comment are read from the public key."""
        write_key_pair(session.ssh_dir, "id_ed25519", comment="me@example.com")
        write_key_pair(session.ssh_dir, "id_rsa", algorithm="rsa")
        keys = {Path(k.path).name: k for k in Scanner(session).scan().keys}
        assert keys["id_ed25519"].type == "ssh-ed25519"
        assert keys["id_ed25519"].bits == 256
        assert keys["id_ed25519"].comment == "me@example.com"
        assert keys["id_rsa"].bits == 4096

    def test_unreadable_public_key_is_not_a_key(self, session: Session) -> None:
        """A pair whose public key cannot be fingerprinted is silently skipped."""
        (session.ssh_dir / "broken").write_text("x")
        (session.ssh_dir / "broken.pub").write_text("not-a-key\n")
        result = Scanner(session).scan()
        assert result.keys == []
        assert isinstance(result.steps[STEP_KEYS], Ok)

    def test_missing_key_directory(self, tmp_path: Path) -> None:
        """Without a key directory the step is skipped."""
        session = make_session(tmp_path)
        session.ssh_dir = tmp_path / "absent"
        result = Scanner(session).scan()
        assert isinstance(result.steps[STEP_KEYS], Skipped)


class TestRoutingCorrelation:
    """Tests for linking keys with routing hosts."""

    def test_used_by(self, session: Session) -> None:
        """A key lists the hosts whose IdentityFile names it."""
        private = write_key_pair(session.ssh_dir, "id_work")
        session.routing().upsert("w", [
            RoutingEntry(alias="github.com.work", hostname="github.com", identity_file=str(private)),
            RoutingEntry(alias="gitlab.work", hostname="gitlab.com", identity_file="~/.ssh/id_work"),
        ])
        result = Scanner(session).scan()
        assert result.find_key(str(private)).used_by == ["github.com.work", "gitlab.work"]

    def test_missing_routing_file(self, session: Session) -> None:
        """No routing file means the step is skipped."""
        assert isinstance(Scanner(session).scan().steps[STEP_SSH_CONFIG], Skipped)

    def test_undecodable_routing_file(self, session: Session) -> None:
        """A routing file that is not UTF-8 fails only its own step."""
        write_key_pair(session.ssh_dir, "id_ed25519")
        (session.ssh_dir / "config").write_bytes(b"Host caf\xe9\n  IdentityFile ~/.ssh/id_ed25519\n")

        result = Scanner(session).scan()

        assert isinstance(result.steps[STEP_SSH_CONFIG], Failed)
        assert "cannot read" in result.steps[STEP_SSH_CONFIG].message
        assert result.ssh_hosts == []
        assert isinstance(result.steps[STEP_KEYS], Ok)
        assert isinstance(result.steps[STEP_GIT], Ok)
        assert len(result.keys) == 1


class TestGitIdentity:
    """Tests for global and conditional git identity."""

    def test_includes_and_platforms(self, session: Session) -> None:
        """includeIf stanzas are read with their identity and platforms."""
        home = session.home
        (home / ".gitconfig-work").write_text("[user]\n\tname = Jane Doe\n\temail = jane@corp.example\n")
        (home / ".gitconfig").write_text(
            '[user]\n\tname = Jane\n\temail = jane@example.com\n'
            '[includeIf "gitdir:~/work/"]\n\tpath = ~/.gitconfig-work\n'
        )
        make_repo(home / "work" / "api", "git@gitlab.corp.example:backend/api.git")
        make_repo(home / "work" / "web", "git@gitlab.corp.example:frontend/web.git")
        session.git_global = {"user.name": "Jane", "user.email": "jane@example.com"}.get

        git = Scanner(session).scan().git
        assert git.global_email == "jane@example.com"
        include = git.includes[0]
        assert include.condition == "~/work/"
        assert include.email == "jane@corp.example"
        assert include.name == "Jane Doe"
        assert [(p.base_url, p.repo_count) for p in include.platforms] == [
            ("https://gitlab.corp.example", 2),
        ]

    def test_no_gitconfig(self, session: Session) -> None:
        """A missing ~/.gitconfig is not a failure."""
        assert isinstance(Scanner(session).scan().steps[STEP_GIT], Ok)


class TestAgentAndRemote:
    """Tests for the agent and remote sub-scans."""

    def test_no_agent_is_skipped(self, session: Session) -> None:
        """An unreachable agent skips the step and marks nothing."""
        write_key_pair(session.ssh_dir, "id_a")
        session.agent = FakeAgent(available=False)
        result = Scanner(session).scan()
        assert isinstance(result.steps[STEP_AGENT], Skipped)
        assert not result.keys[0].in_agent

    def test_remote_not_requested(self, session: Session) -> None:
        """Remote steps are skipped unless asked for."""
        result = Scanner(session).scan()
        assert isinstance(result.steps[remote_step(PlatformType.GITHUB)], Skipped)

    def test_remote_without_token(self, session: Session) -> None:
        """Without a default token the remote check is skipped."""
        result = Scanner(session).scan(check_remote=True)
        assert isinstance(result.steps[remote_step(PlatformType.GITLAB)], Skipped)

    def test_remote_registration(self, session: Session, keyring_backend, platforms) -> None:
        """A key registered on GitHub is flagged with that platform."""
        private = write_key_pair(session.ssh_dir, "id_gh")
        write_key_pair(session.ssh_dir, "id_other")
        platforms.github.add_key("laptop", (session.ssh_dir / "id_gh.pub").read_text().strip())
        store_token(keyring_backend, PlatformType.GITHUB, "default", "ghp")

        result = Scanner(session).scan(check_remote=True)
        assert result.find_key(str(private)).remote_platforms == [PlatformType.GITHUB]
        assert result.find_key(str(session.ssh_dir / "id_other")).remote_platforms == []
        assert isinstance(result.steps[remote_step(PlatformType.GITHUB)], Ok)

    def test_remote_failure_is_recorded(self, session: Session, keyring_backend, platforms) -> None:
        """An API failure becomes a Failed step; the rest of the scan stands."""
        write_key_pair(session.ssh_dir, "id_gh")
        store_token(keyring_backend, PlatformType.GITHUB, "default", "ghp")

        def broken(platform_type, token, base_url=""):
            raise PlatformAPIError("GET /user/keys returned 503", status_code=503)

        session.client_factory = broken
        result = Scanner(session).scan(check_remote=True)
        assert isinstance(result.steps[remote_step(PlatformType.GITHUB)], Failed)
        assert len(result.keys) == 1

    def test_remote_client_closed(self, session: Session, keyring_backend, platforms) -> None:
        """The listing client is closed whether or not the listing succeeds."""
        store_token(keyring_backend, PlatformType.GITHUB, "default", "ghp")
        store_token(keyring_backend, PlatformType.GITLAB, "default", "glpat")
        platforms.gitlab.fail_list = True

        result = Scanner(session).scan(check_remote=True)

        assert isinstance(result.steps[remote_step(PlatformType.GITHUB)], Ok)
        assert isinstance(result.steps[remote_step(PlatformType.GITLAB)], Failed)
        assert platforms.github.opened == platforms.github.closed == 1
        assert platforms.gitlab.opened == platforms.gitlab.closed == 1

    def test_to_dict_shape(self, session: Session) -> None:
        """The serialized scan carries keys, hosts, git identity and steps."""
        write_key_pair(session.ssh_dir, "id_a")
        data = Scanner(session).scan().to_dict()
        assert set(data) == {"keys", "ssh_config_hosts", "git_config", "steps"}
        assert data["steps"][STEP_KEYS]["status"] == "ok"
