"""Immutable JSON snapshots taken before destructive operations.

Each snapshot lives in ``~/.git-keys/backups/backup-YYYY-MM-DD-HHMMSS.json``
and records the prior declared config (if any), the full scan result and
the recommendation computed from them. The timestamped name keeps files
unique and makes lexical order chronological.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from gitkeys.config.models import DeclaredConfig
from gitkeys.config.store import ConfigStore
from gitkeys.discovery.models import ScanResult
from gitkeys.exceptions import BackupError, ConfigValidationError
from gitkeys.recommend.engine import RecommendedMapping

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d-%H%M%S"
BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"


@dataclass
class BackupEntry:
    """Listing metadata for one snapshot file."""

    path: Path
    timestamp: datetime | None
    size: int
    persona_count: int


@dataclass
class BackupSnapshot:
    """A parsed snapshot document."""

    timestamp: datetime | None
    old_config: DeclaredConfig | None
    scan_result: dict[str, Any]
    ssh_config_path: str
    recommended_mapping: dict[str, Any]


def _copy_alongside(path: Path, stamp: str) -> Path | None:
    if not path.is_file():
        return None
    dest = path.with_name(f"{path.name}.pre-rebuild-{stamp}")
    try:
        shutil.copy2(path, dest)
        os.chmod(dest, 0o600)
    except OSError as exc:
        logger.warning("Could not copy %s to %s: %s", path, dest, exc)
        return None
    logger.info("Copied %s to %s", path, dest)
    return dest


class BackupStore:
    """Creates, lists, reads and restores snapshot files.

    Args:
        directory: Where snapshots are kept (``~/.git-keys/backups``).
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def create(
        self,
        scan: ScanResult,
        declared: DeclaredConfig | None,
        mapping: RecommendedMapping,
        ssh_config_path: Path,
        config_path: Path | None = None,
        now: datetime | None = None,
    ) -> Path:
        """Write a snapshot and copy the routing and config files alongside.

        Raises:
            BackupError: If the snapshot cannot be written.
        """
        now = now or datetime.now().astimezone()
        stamp = now.strftime(TIMESTAMP_FORMAT)
        path = self.directory / f"{BACKUP_PREFIX}{stamp}{BACKUP_SUFFIX}"
        if path.exists():
            raise BackupError(f"backup {path} already exists")

        document = {
            "timestamp": now.isoformat(),
            "old_config": declared.to_dict() if declared is not None else None,
            "scan_result": scan.to_dict(),
            "ssh_config_path": str(ssh_config_path),
            "recommended_mapping": mapping.to_dict(),
        }
        try:
            self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
            path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            os.chmod(path, 0o600)
        except OSError as exc:
            raise BackupError(f"failed to write backup {path}: {exc}") from exc

        _copy_alongside(Path(ssh_config_path), stamp)
        if config_path is not None:
            _copy_alongside(Path(config_path), stamp)
        logger.info("Wrote backup %s", path)
        return path

    def list(self) -> list[BackupEntry]:
        """All snapshots, newest first."""
        if not self.directory.is_dir():
            return []
        files = sorted(
            self.directory.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"),
            key=lambda p: p.name,
            reverse=True,
        )
        entries = []
        for path in files:
            try:
                snapshot = self.read(path)
            except BackupError as exc:
                logger.warning("Skipping unreadable backup %s: %s", path, exc)
                continue
            personas = len(snapshot.old_config.personas) if snapshot.old_config else 0
            entries.append(BackupEntry(
                path=path,
                timestamp=snapshot.timestamp,
                size=path.stat().st_size,
                persona_count=personas,
            ))
        return entries

    def resolve(self, name: str | None) -> Path:
        """Snapshot path for a file name or path; the newest one if None.

        Raises:
            BackupError: If no matching snapshot exists.
        """
        if name is None:
            entries = self.list()
            if not entries:
                raise BackupError(f"no backups found in {self.directory}")
            return entries[0].path
        candidate = Path(name).expanduser()
        if not candidate.is_file():
            candidate = self.directory / name
        if not candidate.is_file():
            raise BackupError(f"backup not found: {name}")
        return candidate

    def read(self, path: Path) -> BackupSnapshot:
        """Parse a snapshot file.

        Raises:
            BackupError: If the file cannot be read or parsed.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise BackupError(f"failed to read backup {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise BackupError(f"failed to read backup {path}: not a JSON object")

        try:
            timestamp = datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else None
            old = data.get("old_config")
            old_config = DeclaredConfig.from_dict(old) if old else None
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BackupError(f"failed to parse backup {path}: {exc}") from exc

        return BackupSnapshot(
            timestamp=timestamp,
            old_config=old_config,
            scan_result=data.get("scan_result") or {},
            ssh_config_path=str(data.get("ssh_config_path") or ""),
            recommended_mapping=data.get("recommended_mapping") or {},
        )

    def restore(self, path: Path, store: ConfigStore) -> DeclaredConfig:
        """Validate the snapshot's old config and save it through *store*.

        Raises:
            BackupError: If the snapshot holds no config.
            ConfigValidationError: If the old config is invalid.
        """
        snapshot = self.read(path)
        if snapshot.old_config is None:
            raise BackupError(f"backup {path} does not contain a configuration")
        errors = snapshot.old_config.validate()
        if errors:
            raise ConfigValidationError(errors)
        store.save(snapshot.old_config)
        logger.info("Restored configuration from %s", path)
        return snapshot.old_config
