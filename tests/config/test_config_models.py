"""Tests for the declared-config data model.

Verifies:
    - Active-key selection and expiry queries on a platform.
    - Structural validation messages.
    - Dict conversion of optional fields.
"""

from __future__ import annotations

from datetime import timedelta

from gitkeys.config.models import (
    DeclaredConfig,
    Defaults,
    KeyConfig,
    KeyStatus,
    KeyType,
    Machine,
    Persona,
    Platform,
    PlatformType,
)
from tests.fakes import FIXED_NOW


def _key(status: KeyStatus, fingerprint: str, expires_in_days: int = 30) -> KeyConfig:
    return KeyConfig(
        type=KeyType.ED25519,
        created_at=FIXED_NOW - timedelta(days=10),
        expires_at=FIXED_NOW + timedelta(days=expires_in_days),
        fingerprint=fingerprint,
        local_path=f"key-{fingerprint}",
        status=status,
    )


class TestPlatformKeys:
    """Tests for active and expired key selection."""

    def test_active_key_skips_revoked(self) -> None:
        """The first key with status active is returned."""
        platform = Platform(
            type=PlatformType.GITHUB,
            account="octocat",
            keys=[_key(KeyStatus.REVOKED, "a"), _key(KeyStatus.ACTIVE, "b")],
        )
        assert platform.active_key().fingerprint == "b"

    def test_first_active_key_wins(self) -> None:
        """With two active keys the earlier one in list order is chosen."""
        platform = Platform(
            type=PlatformType.GITHUB,
            account="octocat",
            keys=[_key(KeyStatus.ACTIVE, "a"), _key(KeyStatus.ACTIVE, "b")],
        )
        assert platform.active_key().fingerprint == "a"

    def test_no_active_key(self) -> None:
        """A platform without active keys returns None."""
        platform = Platform(type=PlatformType.GITLAB, account="jdoe")
        assert platform.active_key() is None

    def test_expired_keys(self) -> None:
        """Only active keys past their expiry are reported."""
        platform = Platform(
            type=PlatformType.GITHUB,
            account="octocat",
            keys=[
                _key(KeyStatus.ACTIVE, "old", expires_in_days=-1),
                _key(KeyStatus.ACTIVE, "new", expires_in_days=10),
                _key(KeyStatus.REVOKED, "gone", expires_in_days=-5),
            ],
        )
        assert [k.fingerprint for k in platform.expired_keys(FIXED_NOW)] == ["old"]


class TestValidation:
    """Tests for DeclaredConfig.validate()."""

    def test_valid_config(self) -> None:
        """A machine id and a persona with one platform is enough."""
        config = DeclaredConfig(
            machine=Machine(id="m1"),
            personas=[Persona(
                name="personal",
                email="me@example.com",
                platforms=[Platform(type=PlatformType.GITHUB, account="octocat")],
            )],
        )
        assert config.validate() == []

    def test_empty_config_errors(self) -> None:
        """Missing machine id and personas are both reported."""
        errors = DeclaredConfig(machine=Machine(id="")).validate()
        assert "machine.id is required" in errors
        assert "at least one persona is required" in errors

    def test_persona_errors(self) -> None:
        """Persona name, email and platforms are required."""
        config = DeclaredConfig(machine=Machine(id="m1"), personas=[Persona(name="", email="")])
        errors = config.validate()
        assert "persona[0].name is required" in errors
        assert "persona[0].email is required" in errors
        assert "persona[0] must have at least one platform" in errors


class TestDictConversion:
    """Tests for to_dict/from_dict details."""

    def test_optional_fields_omitted(self) -> None:
        """Empty base_url, git_dir and keys are left out of the document."""
        data = Platform(type=PlatformType.GITHUB, account="octocat").to_dict()
        assert data == {"type": "github", "account": "octocat"}

    def test_naive_timestamps_read_as_utc(self) -> None:
        """Timestamps without an offset are taken as UTC."""
        key = KeyConfig.from_dict({
            "type": "ed25519",
            "created_at": "2026-01-01T10:00:00",
            "fingerprint": "SHA256:x",
            "local_path": "k",
        })
        assert key.created_at.utcoffset() == timedelta(0)
        assert key.status == KeyStatus.ACTIVE

    def test_defaults_fill_missing_values(self) -> None:
        """An absent defaults section yields ed25519 and 180 days."""
        defaults = Defaults.from_dict(None)
        assert defaults.key_type == KeyType.ED25519
        assert defaults.key_expiration_days == 180
