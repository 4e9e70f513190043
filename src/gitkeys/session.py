"""Per-invocation context: paths, defaults and collaborators.

A ``Session`` is built once by the CLI and passed explicitly to the
scanner, the recommendation engine and the lifecycle sagas. Tests build
one with in-memory collaborators instead of patching globals.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from gitkeys.config.machine import detect_machine
from gitkeys.config.models import DeclaredConfig, Machine, Platform, PlatformType
from gitkeys.config.store import ConfigStore
from gitkeys.lifecycle.probe import ProbeResult, probe_ssh
from gitkeys.platforms.base import PlatformClient
from gitkeys.platforms.registry import create_client
from gitkeys.platforms.tokens import TokenStore
from gitkeys.ssh.agent import SSHAgent
from gitkeys.ssh.keys import KeyMaterial
from gitkeys.ssh.routing import RoutingConfig

logger = logging.getLogger(__name__)


def git_config_global(key: str) -> str:
    """Return ``git config --global <key>``, or an empty string if unset."""
    try:
        proc = subprocess.run(
            ["git", "config", "--global", key],
            capture_output=True, text=True, check=False,
        )
    except OSError as exc:
        logger.debug("git not available: %s", exc)
        return ""
    return proc.stdout.strip() if proc.returncode == 0 else ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    """Everything one command invocation needs.

    Attributes:
        config_store: Declared-config persistence.
        ssh_dir: Key directory; relative key paths resolve here.
        home: Home directory holding ``.gitconfig`` and ``.git-keys/``.
        key_material: ``ssh-keygen`` collaborator.
        agent: ``ssh-add`` collaborator.
        token_backend: keyring-compatible backend; None means the OS store.
        client_factory: Builds a ``PlatformClient`` from
            ``(platform_type, token, base_url=...)``.
        probe: Connectivity probe taking a hostname.
        git_global: Reads one global git config value.
        clock: Returns the current aware datetime.
        machine_detector: Detects the local machine identity for ``init``.
        machine_name: Overrides the name recorded in the declared config.
    """

    config_store: ConfigStore
    ssh_dir: Path
    home: Path
    key_material: KeyMaterial
    agent: SSHAgent
    token_backend: Any = None
    client_factory: Callable[..., PlatformClient] = create_client
    probe: Callable[[str], ProbeResult] = probe_ssh
    git_global: Callable[[str], str] = git_config_global
    clock: Callable[[], datetime] = _utcnow
    machine_detector: Callable[[], Machine] = detect_machine
    machine_name: str | None = None
    _token_stores: dict[PlatformType, TokenStore] = field(default_factory=dict, repr=False)

    @classmethod
    def create(
        cls,
        config_path: str | Path | None = None,
        ssh_dir: str | Path | None = None,
        home: str | Path | None = None,
        **overrides: Any,
    ) -> Session:
        """Build a session backed by the real filesystem and tools."""
        home_dir = Path(home).expanduser() if home else Path.home()
        key_dir = Path(ssh_dir).expanduser() if ssh_dir else home_dir / ".ssh"
        key_material = overrides.pop("key_material", None) or KeyMaterial(key_dir)
        agent = overrides.pop("agent", None) or SSHAgent(key_material)
        return cls(
            config_store=ConfigStore(config_path),
            ssh_dir=key_dir,
            home=home_dir,
            key_material=key_material,
            agent=agent,
            **overrides,
        )

    # -- Collaborator accessors ----------------------------------------------

    def tokens(self, platform_type: PlatformType) -> TokenStore:
        if platform_type not in self._token_stores:
            self._token_stores[platform_type] = TokenStore(platform_type, self.token_backend)
        return self._token_stores[platform_type]

    def client(
        self, platform_type: PlatformType, token: str, base_url: str = "",
    ) -> PlatformClient:
        return self.client_factory(platform_type, token, base_url=base_url)

    def client_for(self, platform: Platform) -> PlatformClient:
        """API client for *platform*, using the account token or ``default``.

        Raises:
            TokenNotFoundError: If neither token is stored.
        """
        token = self.tokens(platform.type).resolve(platform.account)
        return self.client(platform.type, token, base_url=platform.base_url)

    def routing(self, config: DeclaredConfig | None = None) -> RoutingConfig:
        """Routing file from the declared defaults, else ``<ssh_dir>/config``."""
        if config is not None and config.defaults.ssh_config_path:
            return RoutingConfig(config.defaults.ssh_config_path)
        return RoutingConfig(self.ssh_dir / "config")

    @property
    def gitconfig_path(self) -> Path:
        return self.home / ".gitconfig"

    @property
    def state_dir(self) -> Path:
        return self.home / ".git-keys"

    def now(self) -> datetime:
        return self.clock()

    # -- Config helpers ------------------------------------------------------

    def load_config(self) -> DeclaredConfig:
        return self.config_store.load()

    def try_load_config(self) -> DeclaredConfig | None:
        """Load the declared config if the file exists, else None."""
        if not self.config_store.exists():
            return None
        return self.config_store.load()

    def machine_label(self, config: DeclaredConfig) -> str:
        return self.machine_name or config.machine.name or config.machine.id
