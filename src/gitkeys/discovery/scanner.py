"""Discovery scanner for an existing SSH and git setup.

Walks four local sources and, on request, the remote platforms, and
returns an ephemeral ``ScanResult``. Nothing is modified.

Discovery Algorithm:
    1. Key directory: every ``<name>`` with a sibling ``<name>.pub`` that
       ``ssh-keygen`` can fingerprint. Unreadable files are silently
       treated as "not a key".
    2. Routing file: ``Host`` entries that name an ``IdentityFile``.
    3. Git identity: global ``user.name``/``user.email`` plus every
       ``[includeIf "gitdir:..."]`` stanza, with the platforms found in
       the repositories under each include's directory.
    4. Agent: fingerprints loaded in ``ssh-agent``.
    5. Remote (opt-in): the keys registered on GitHub and GitLab.

Each sub-scan is independently best-effort: a failure is logged at
WARNING, recorded as a ``Failed`` step, and leaves that part of the
result empty.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from gitkeys.config.models import DeclaredConfig, PlatformType
from gitkeys.discovery.correlate import link_hosts, mark_agent, mark_remote
from gitkeys.discovery.models import DiscoveredKey, GitIdentity, GitInclude, ScanResult
from gitkeys.discovery.remotes import discover_platforms
from gitkeys.exceptions import (
    AgentUnavailableError,
    GitKeysError,
    KeyMaterialError,
    TokenNotFoundError,
)
from gitkeys.lifecycle.results import Failed, Ok, Skipped, StepOutcome
from gitkeys.platforms.gitlab import GITLAB_DEFAULT_URL
from gitkeys.platforms.tokens import DEFAULT_ACCOUNT
from gitkeys.session import Session
from gitkeys.ssh.keys import public_path

logger = logging.getLogger(__name__)

# Files in the key directory that are never key pairs.
NON_KEY_FILES: frozenset[str] = frozenset({
    "config",
    "known_hosts",
    "known_hosts.old",
    "authorized_keys",
})

ED25519_BITS = 256

_INCLUDE_IF_RE = re.compile(r'\[includeIf "gitdir:([^"]+)"\]\s+path\s*=\s*(.+)')
_NAME_RE = re.compile(r"^\s*name\s*=\s*(.+)$", re.MULTILINE)
_EMAIL_RE = re.compile(r"^\s*email\s*=\s*(.+)$", re.MULTILINE)

STEP_KEYS = "keys"
STEP_SSH_CONFIG = "ssh_config"
STEP_GIT = "git"
STEP_AGENT = "agent"


def remote_step(platform_type: PlatformType) -> str:
    return f"remote:{platform_type.value}"


class Scanner:
    """Scans the local machine for SSH keys and git identities.

    Usage::

        scanner = Scanner(session)
        result = scanner.scan(check_remote=False)
        for key in result.keys:
            print(key.path, key.fingerprint, key.used_by)

    Args:
        session: Paths and collaborators for this invocation.
        config: Declared config, if one exists; used only to pick the
            GitLab base URL for the remote check and the routing file.
    """

    def __init__(self, session: Session, config: DeclaredConfig | None = None) -> None:
        self.session = session
        self.config = config

    def scan(self, check_remote: bool = False) -> ScanResult:
        result = ScanResult()

        self._run(result, STEP_KEYS, self._scan_keys)
        self._run(result, STEP_SSH_CONFIG, self._scan_ssh_config)
        link_hosts(result)
        self._run(result, STEP_GIT, self._scan_git)
        self._run(result, STEP_AGENT, self._scan_agent)

        for platform_type in PlatformType:
            if check_remote:
                self._run(
                    result, remote_step(platform_type),
                    lambda r, pt=platform_type: self._scan_remote(r, pt),
                )
            else:
                result.steps[remote_step(platform_type)] = Skipped(
                    remote_step(platform_type), "remote check not requested",
                )
        return result

    def _run(self, result: ScanResult, name: str, func) -> None:
        try:
            outcome = func(result)
        except (GitKeysError, OSError) as exc:
            logger.warning("Scan step %s failed: %s", name, exc)
            outcome = Failed(name, str(exc))
        result.steps[name] = outcome

    # -- Key directory ------------------------------------------------------

    def _is_candidate(self, entry: Path) -> bool:
        name = entry.name
        if name in NON_KEY_FILES or name.startswith(".") or name.endswith(".pub"):
            return False
        if not entry.is_file():
            return False
        return public_path(entry).is_file()

    def _scan_keys(self, result: ScanResult) -> StepOutcome:
        key_dir = self.session.ssh_dir
        if not key_dir.is_dir():
            return Skipped(STEP_KEYS, f"{key_dir} does not exist")

        km = self.session.key_material
        found: list[DiscoveredKey] = []
        for entry in sorted(key_dir.iterdir()):
            if not self._is_candidate(entry):
                continue
            try:
                fingerprint = km.fingerprint(entry)
                public_key = km.public_key(entry)
            except KeyMaterialError as exc:
                logger.debug("Skipping %s: %s", entry, exc)
                continue

            fields = public_key.split()
            key_type = fields[0] if fields else "unknown"
            if "ed25519" in key_type:
                bits = ED25519_BITS
            else:
                try:
                    bits = km.bits(entry)
                except KeyMaterialError:
                    bits = 0

            found.append(DiscoveredKey(
                path=str(entry),
                type=key_type,
                bits=bits,
                fingerprint=fingerprint,
                comment=" ".join(fields[2:]),
                modified=datetime.fromtimestamp(entry.stat().st_mtime, tz=timezone.utc),
            ))

        found.sort(key=lambda k: k.modified, reverse=True)
        result.keys = found
        logger.info("Found %d key pairs in %s", len(found), key_dir)
        return Ok(STEP_KEYS, f"{len(found)} keys")

    # -- Routing file -------------------------------------------------------

    def _scan_ssh_config(self, result: ScanResult) -> StepOutcome:
        routing = self.session.routing(self.config)
        if not routing.exists():
            return Skipped(STEP_SSH_CONFIG, f"{routing.path} does not exist")
        result.ssh_hosts = routing.parse_hosts()
        return Ok(STEP_SSH_CONFIG, f"{len(result.ssh_hosts)} hosts")

    # -- Git identity -------------------------------------------------------

    def _expand(self, path: str) -> str:
        if path.startswith("~"):
            return str(self.session.home) + path[1:]
        return path

    def _read_include(self, include: GitInclude) -> None:
        try:
            text = Path(include.path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.debug("Cannot read include %s: %s", include.path, exc)
            return
        name_match = _NAME_RE.search(text)
        if name_match:
            include.name = name_match.group(1).strip()
        email_match = _EMAIL_RE.search(text)
        if email_match:
            include.email = email_match.group(1).strip()

    def _scan_git(self, result: ScanResult) -> StepOutcome:
        identity = GitIdentity(
            global_name=self.session.git_global("user.name"),
            global_email=self.session.git_global("user.email"),
        )
        result.git = identity

        gitconfig = self.session.gitconfig_path
        try:
            text = gitconfig.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return Ok(STEP_GIT, "no ~/.gitconfig")

        for match in _INCLUDE_IF_RE.finditer(text):
            condition = match.group(1).strip()
            include = GitInclude(condition=condition, path=self._expand(match.group(2).strip()))
            self._read_include(include)
            try:
                include.platforms = discover_platforms(condition, self.session.home)
            except OSError as exc:
                logger.warning("Could not inspect repositories under %s: %s", condition, exc)
            identity.includes.append(include)

        return Ok(STEP_GIT, f"{len(identity.includes)} conditional includes")

    # -- Agent --------------------------------------------------------------

    def _scan_agent(self, result: ScanResult) -> StepOutcome:
        try:
            fingerprints = self.session.agent.fingerprints()
        except AgentUnavailableError as exc:
            logger.debug("No SSH agent: %s", exc)
            mark_agent(result, [])
            return Skipped(STEP_AGENT, "no SSH agent running")
        mark_agent(result, fingerprints)
        return Ok(STEP_AGENT, f"{len(fingerprints)} keys loaded")

    # -- Remote -------------------------------------------------------------

    def _gitlab_base_url(self) -> str:
        if self.config is not None:
            for persona in self.config.personas:
                for platform in persona.platforms:
                    if platform.type == PlatformType.GITLAB and platform.base_url:
                        return platform.base_url
        return GITLAB_DEFAULT_URL

    def _scan_remote(self, result: ScanResult, platform_type: PlatformType) -> StepOutcome:
        name = remote_step(platform_type)
        try:
            token = self.session.tokens(platform_type).get_token(DEFAULT_ACCOUNT)
        except TokenNotFoundError:
            return Skipped(name, f"no '{DEFAULT_ACCOUNT}' {platform_type.value} token")

        base_url = self._gitlab_base_url() if platform_type == PlatformType.GITLAB else ""
        with self.session.client(platform_type, token, base_url=base_url) as client:
            remote_keys = client.list_keys()
        matched = mark_remote(result, remote_keys, platform_type)
        return Ok(name, f"{len(remote_keys)} remote keys, {matched} matched")
