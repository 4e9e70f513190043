"""Timestamped snapshots of the declared config and scan result.

Public API::

    from gitkeys.backup import BackupStore

    store = BackupStore(Path.home() / ".git-keys" / "backups")
    for entry in store.list():
        print(entry.path.name, entry.persona_count)
"""

from __future__ import annotations

from gitkeys.backup.store import BackupEntry, BackupSnapshot, BackupStore

__all__ = ["BackupEntry", "BackupSnapshot", "BackupStore"]
