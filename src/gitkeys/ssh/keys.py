"""SSH key material: generation and inspection through ``ssh-keygen``.

git-keys never creates cryptographic material itself. ``KeyMaterial``
shells out to ``ssh-keygen`` for generation and fingerprinting, and does
the surrounding file bookkeeping (permissions, moves, deletion).

Relative paths resolve against the key directory (``~/.ssh`` by default).
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from gitkeys.config.models import KeyType, PlatformType
from gitkeys.exceptions import KeyMaterialError
from gitkeys.lifecycle.results import Failed, Ok, Skipped, StepOutcome

logger = logging.getLogger(__name__)

RSA_BITS = 4096


def build_key_file_name(
    platform_type: PlatformType, account: str, key_type: KeyType,
) -> str:
    """Permanent key file name: ``git-keys-<type>-<account>-<algorithm>``."""
    return f"git-keys-{platform_type.value}-{account}-{key_type.value}"


def build_key_comment(
    platform_type: PlatformType, account: str, machine_name: str,
) -> str:
    return f"git-keys:{platform_type.value}:{account}:{machine_name}"


def public_path(path: Path) -> Path:
    return path.with_name(path.name + ".pub")


class KeyMaterial:
    """``ssh-keygen``-backed key generation and inspection.

    Args:
        key_dir: Directory holding key pairs; relative paths resolve here.
    """

    def __init__(self, key_dir: Path) -> None:
        self.key_dir = Path(key_dir)

    def resolve(self, path: str | Path) -> Path:
        p = Path(path).expanduser()
        return p if p.is_absolute() else self.key_dir / p

    def _keygen(self, args: list[str]) -> str:
        try:
            proc = subprocess.run(
                ["ssh-keygen", *args], capture_output=True, text=True, check=False,
            )
        except OSError as exc:
            raise KeyMaterialError(f"could not run ssh-keygen: {exc}") from exc
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout).strip()
            raise KeyMaterialError(f"ssh-keygen {' '.join(args)} failed: {detail}")
        return proc.stdout

    # -- Generation ---------------------------------------------------------

    def generate(self, algorithm: KeyType, comment: str, path: str | Path) -> Path:
        """Generate a passphrase-less key pair at *path*.

        Returns:
            The resolved private key path.

        Raises:
            KeyMaterialError: If the file already exists or ssh-keygen fails.
        """
        target = self.resolve(path)
        if target.exists() or public_path(target).exists():
            raise KeyMaterialError(f"key file already exists: {target}")
        target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

        args = ["-t", algorithm.value, "-C", comment, "-f", str(target), "-N", "", "-q"]
        if algorithm == KeyType.RSA:
            args[2:2] = ["-b", str(RSA_BITS)]
        self._keygen(args)

        try:
            os.chmod(target, 0o600)
        except OSError as exc:
            raise KeyMaterialError(f"could not set permissions on {target}: {exc}") from exc
        logger.info("Generated %s key %s", algorithm.value, target)
        return target

    # -- Inspection ---------------------------------------------------------

    def fingerprint(self, path: str | Path) -> str:
        """``SHA256:...`` fingerprint of the key at *path*."""
        fields = self._keygen(["-lf", str(self.resolve(path))]).split()
        if len(fields) < 2:
            raise KeyMaterialError(f"unexpected ssh-keygen output for {path}")
        return fields[1]

    def bits(self, path: str | Path) -> int:
        fields = self._keygen(["-lf", str(self.resolve(path))]).split()
        try:
            return int(fields[0])
        except (IndexError, ValueError) as exc:
            raise KeyMaterialError(f"unexpected ssh-keygen output for {path}") from exc

    def public_key(self, path: str | Path) -> str:
        """Contents of the ``.pub`` file belonging to *path*."""
        target = self.resolve(path)
        pub = target if target.suffix == ".pub" else public_path(target)
        try:
            return pub.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise KeyMaterialError(f"cannot read public key {pub}: {exc}") from exc

    def exists(self, path: str | Path) -> bool:
        return self.resolve(path).is_file()

    # -- File bookkeeping ---------------------------------------------------

    def move(self, src: str | Path, dst: str | Path) -> Path:
        """Move a key pair (private and ``.pub``) to a new private path."""
        source = self.resolve(src)
        dest = self.resolve(dst)
        try:
            dest.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            source.rename(dest)
            if public_path(source).exists():
                public_path(source).rename(public_path(dest))
        except OSError as exc:
            raise KeyMaterialError(f"cannot move {source} to {dest}: {exc}") from exc
        logger.debug("Moved key %s -> %s", source, dest)
        return dest

    def delete(self, path: str | Path) -> list[StepOutcome]:
        """Delete both files of a key pair, best-effort.

        Returns:
            One outcome per file, named by the file path.
        """
        target = self.resolve(path)
        outcomes: list[StepOutcome] = []
        for candidate in (target, public_path(target)):
            name = str(candidate)
            if not candidate.exists():
                outcomes.append(Skipped(name, "not present"))
                continue
            try:
                candidate.unlink()
            except OSError as exc:
                logger.warning("Could not delete %s: %s", candidate, exc)
                outcomes.append(Failed(name, str(exc)))
            else:
                outcomes.append(Ok(name, "deleted"))
        return outcomes
