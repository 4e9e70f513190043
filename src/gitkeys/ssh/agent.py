"""SSH agent adapter over ``ssh-add``."""

from __future__ import annotations

import logging
import platform
import subprocess
from pathlib import Path

from gitkeys.exceptions import AgentUnavailableError, GitKeysError, KeyMaterialError
from gitkeys.ssh.keys import KeyMaterial, public_path

logger = logging.getLogger(__name__)

# ssh-add -l exit statuses.
_NO_IDENTITIES = 1
_NO_AGENT = 2


class SSHAgent:
    """Load, unload and list keys in the running SSH agent.

    On macOS keys are also stored in the login keychain
    (``--apple-use-keychain``) so they survive a reboot.
    """

    def __init__(
        self,
        key_material: KeyMaterial | None = None,
        use_keychain: bool | None = None,
    ) -> None:
        self.key_material = key_material or KeyMaterial(Path.home() / ".ssh")
        if use_keychain is None:
            use_keychain = platform.system() == "Darwin"
        self.use_keychain = use_keychain

    def _ssh_add(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                ["ssh-add", *args], capture_output=True, text=True, check=False,
            )
        except OSError as exc:
            raise AgentUnavailableError(f"could not run ssh-add: {exc}") from exc

    def fingerprints(self) -> list[str]:
        """Fingerprints of the keys loaded in the agent.

        Raises:
            AgentUnavailableError: If no agent is reachable.
        """
        proc = self._ssh_add(["-l"])
        if proc.returncode == _NO_IDENTITIES:
            return []
        if proc.returncode != 0:
            raise AgentUnavailableError(
                (proc.stderr or proc.stdout).strip() or "no SSH agent running"
            )
        result = []
        for line in proc.stdout.splitlines():
            fields = line.split()
            if len(fields) >= 2:
                result.append(fields[1])
        return result

    def add(self, path: str | Path) -> None:
        args = ["--apple-use-keychain"] if self.use_keychain else []
        proc = self._ssh_add([*args, str(self.key_material.resolve(path))])
        if proc.returncode != 0:
            raise GitKeysError(
                f"ssh-add {path} failed: {(proc.stderr or proc.stdout).strip()}"
            )
        logger.info("Added %s to the SSH agent", path)

    def remove(self, path: str | Path) -> None:
        proc = self._ssh_add(["-d", str(self.key_material.resolve(path))])
        if proc.returncode != 0:
            raise GitKeysError(
                f"ssh-add -d {path} failed: {(proc.stderr or proc.stdout).strip()}"
            )
        logger.info("Removed %s from the SSH agent", path)

    def contains(self, path: str | Path) -> bool:
        """True if the key at *path* is loaded; False without an agent."""
        try:
            fingerprint = self.key_material.fingerprint(
                public_path(self.key_material.resolve(path))
            )
        except KeyMaterialError:
            return False
        try:
            return fingerprint in self.fingerprints()
        except AgentUnavailableError:
            return False
