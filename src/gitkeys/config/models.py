"""Declared configuration model: machine, personas, platforms and keys.

These are the types persisted in ``~/.git-keys.yaml``. They are plain
dataclasses with ``to_dict``/``from_dict`` helpers; the YAML mechanics
live in ``gitkeys.config.store``.

Timestamps are timezone-aware ``datetime`` values serialized as ISO-8601
strings so that a save/load round trip reproduces them exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

CONFIG_VERSION = "1.0"
DEFAULT_KEY_EXPIRATION_DAYS = 180


class PlatformType(str, Enum):
    """Supported git-hosting platforms."""

    GITHUB = "github"
    GITLAB = "gitlab"


class KeyType(str, Enum):
    """SSH key algorithms git-keys can generate."""

    ED25519 = "ed25519"
    RSA = "rsa"


class KeyStatus(str, Enum):
    """Lifecycle state of a managed key."""

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    PENDING = "pending"  # generated but not yet uploaded


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Machine:
    """The local machine identity, captured once at ``init``.

    Attributes:
        id: Hardware UUID (macOS) or machine-id (Linux).
        name: Human-readable machine name, used in key comments and titles.
        os: Operating system name.
        os_version: Operating system version, if known.
    """

    id: str
    name: str = ""
    os: str = ""
    os_version: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "os": self.os}
        if self.os_version:
            data["os_version"] = self.os_version
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Machine:
        data = data or {}
        return cls(
            id=str(data.get("id", "") or ""),
            name=str(data.get("name", "") or ""),
            os=str(data.get("os", "") or ""),
            os_version=str(data.get("os_version", "") or ""),
        )


@dataclass
class KeyConfig:
    """A single managed SSH key for one platform account.

    Attributes:
        type: Key algorithm.
        created_at: When the key pair was generated.
        expires_at: When the key is due for rotation.
        fingerprint: ``SHA256:...`` fingerprint as printed by ssh-keygen.
        local_path: Private key path, relative to the key directory or
            absolute.
        remote_id: The platform's id for the uploaded key, if uploaded.
        status: Lifecycle state.
    """

    type: KeyType
    created_at: datetime | None
    expires_at: datetime | None
    fingerprint: str
    local_path: str
    remote_id: str = ""
    status: KeyStatus = KeyStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "created_at": _dt_to_str(self.created_at),
            "expires_at": _dt_to_str(self.expires_at),
            "fingerprint": self.fingerprint,
            "local_path": self.local_path,
            "status": self.status.value,
        }
        if self.remote_id:
            data["remote_id"] = self.remote_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyConfig:
        return cls(
            type=KeyType(data.get("type", KeyType.ED25519.value)),
            created_at=_dt_from_str(data.get("created_at")),
            expires_at=_dt_from_str(data.get("expires_at")),
            fingerprint=str(data.get("fingerprint", "") or ""),
            local_path=str(data.get("local_path", "") or ""),
            remote_id=str(data.get("remote_id", "") or ""),
            status=KeyStatus(data.get("status", KeyStatus.ACTIVE.value)),
        )


@dataclass
class Platform:
    """A git-hosting account under a persona.

    Identity is ``(type, account, base_url)`` within the owning persona.
    ``git_dir`` is the directory pattern under which git switches to this
    persona's identity (see ``gitkeys.gitident``).
    """

    type: PlatformType
    account: str
    base_url: str = ""
    keys: list[KeyConfig] = field(default_factory=list)
    git_dir: str = ""

    def active_key(self) -> KeyConfig | None:
        """Return the first active key, or None.

        Nothing prevents a hand-edited config from holding two active
        keys; the first one in list order wins.
        """
        for key in self.keys:
            if key.status == KeyStatus.ACTIVE:
                return key
        return None

    def expired_keys(self, now: datetime | None = None) -> list[KeyConfig]:
        """Return active keys whose expiry is in the past."""
        now = now or datetime.now(timezone.utc)
        return [
            k for k in self.keys
            if k.status == KeyStatus.ACTIVE
            and k.expires_at is not None
            and k.expires_at < now
        ]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "account": self.account}
        if self.base_url:
            data["base_url"] = self.base_url
        if self.keys:
            data["keys"] = [k.to_dict() for k in self.keys]
        if self.git_dir:
            data["git_dir"] = self.git_dir
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Platform:
        return cls(
            type=PlatformType(data.get("type")),
            account=str(data.get("account", "") or ""),
            base_url=str(data.get("base_url", "") or ""),
            keys=[KeyConfig.from_dict(k) for k in data.get("keys") or []],
            git_dir=str(data.get("git_dir", "") or ""),
        )


@dataclass
class Persona:
    """A named git identity (``personal``, ``work``...) owning platform accounts."""

    name: str
    email: str
    platforms: list[Platform] = field(default_factory=list)

    def find_platform(
        self, platform_type: PlatformType, account: str,
    ) -> Platform | None:
        for platform in self.platforms:
            if platform.type == platform_type and platform.account == account:
                return platform
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "platforms": [p.to_dict() for p in self.platforms],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Persona:
        return cls(
            name=str(data.get("name", "") or ""),
            email=str(data.get("email", "") or ""),
            platforms=[Platform.from_dict(p) for p in data.get("platforms") or []],
        )


def default_ssh_config_path() -> str:
    return str(Path.home() / ".ssh" / "config")


@dataclass
class Defaults:
    """Default values applied when generating and rotating keys.

    Attributes:
        key_type: Algorithm for newly generated keys.
        key_expiration_days: Rotation period; new keys expire this many
            days after creation (about six months by default).
        auto_rotate: Reserved flag recorded for scheduled rotation.
        ssh_config_path: The SSH routing file holding managed blocks.
    """

    key_type: KeyType = KeyType.ED25519
    key_expiration_days: int = DEFAULT_KEY_EXPIRATION_DAYS
    auto_rotate: bool = False
    ssh_config_path: str = field(default_factory=default_ssh_config_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key_type": self.key_type.value,
            "key_expiration_days": self.key_expiration_days,
            "auto_rotate": self.auto_rotate,
            "ssh_config_path": self.ssh_config_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Defaults:
        data = data or {}
        return cls(
            key_type=KeyType(data.get("key_type") or KeyType.ED25519.value),
            key_expiration_days=int(
                data.get("key_expiration_days") or DEFAULT_KEY_EXPIRATION_DAYS
            ),
            auto_rotate=bool(data.get("auto_rotate", False)),
            ssh_config_path=str(
                data.get("ssh_config_path") or default_ssh_config_path()
            ),
        )


@dataclass
class DeclaredConfig:
    """The whole declared model: one machine, its personas, and defaults."""

    machine: Machine
    personas: list[Persona] = field(default_factory=list)
    defaults: Defaults = field(default_factory=Defaults)
    version: str = CONFIG_VERSION

    def find_persona(self, name: str) -> Persona | None:
        for persona in self.personas:
            if persona.name == name:
                return persona
        return None

    def validate(self) -> list[str]:
        """Check the structural requirements enforced on every load and save.

        Returns:
            List of validation error messages. Empty means the model is
            valid.
        """
        errors: list[str] = []
        if not self.version:
            errors.append("version is required")
        if not self.machine.id:
            errors.append("machine.id is required")
        if not self.personas:
            errors.append("at least one persona is required")
        for i, persona in enumerate(self.personas):
            if not persona.name:
                errors.append(f"persona[{i}].name is required")
            if not persona.email:
                errors.append(f"persona[{i}].email is required")
            if not persona.platforms:
                errors.append(f"persona[{i}] must have at least one platform")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "machine": self.machine.to_dict(),
            "personas": [p.to_dict() for p in self.personas],
            "defaults": self.defaults.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeclaredConfig:
        return cls(
            version=str(data.get("version", "") or ""),
            machine=Machine.from_dict(data.get("machine")),
            personas=[Persona.from_dict(p) for p in data.get("personas") or []],
            defaults=Defaults.from_dict(data.get("defaults")),
        )
