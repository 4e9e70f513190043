"""Declared-config store: whole-file YAML load/save with validation.

The config file is the only shared mutable resource git-keys owns. There
is no locking: two concurrent invocations race and the later whole-file
write wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from gitkeys.config.models import DeclaredConfig, Defaults, Machine
from gitkeys.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".git-keys.yaml"


def default_config_path() -> Path:
    """Return ``~/.git-keys.yaml``."""
    return Path.home() / DEFAULT_CONFIG_FILENAME


class ConfigStore:
    """Reads and writes the declared configuration file.

    Usage::

        store = ConfigStore()
        if store.exists():
            config = store.load()
            ...
            store.save(config)
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path).expanduser() if path is not None else default_config_path()

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> DeclaredConfig:
        """Read, parse and validate the config file.

        Raises:
            ConfigError: If the file is missing, unreadable or not YAML.
            ConfigValidationError: If the parsed model is invalid.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigError(
                f"configuration file not found at {self.path}; "
                "run 'git-keys init' first"
            ) from None
        except OSError as exc:
            raise ConfigError(f"failed to read config file: {exc}") from exc

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"failed to parse config file: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError("failed to parse config file: top level must be a mapping")

        try:
            config = DeclaredConfig.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"failed to parse config file: {exc}") from exc

        errors = config.validate()
        if errors:
            raise ConfigValidationError(errors)
        return config

    def save(self, config: DeclaredConfig) -> None:
        """Validate and write the whole config file with mode 0600.

        Raises:
            ConfigValidationError: If the model is invalid; nothing is written.
            ConfigError: On filesystem failures.
        """
        errors = config.validate()
        if errors:
            raise ConfigValidationError(errors)

        text = yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")
            os.chmod(self.path, 0o600)
        except OSError as exc:
            raise ConfigError(f"failed to write config file: {exc}") from exc
        logger.info("Saved configuration to %s", self.path)

    def delete(self) -> bool:
        """Remove the config file. Returns False if it did not exist."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise ConfigError(f"failed to delete config file: {exc}") from exc
        return True

    def create_default(self, machine: Machine) -> DeclaredConfig:
        """Build an empty (not yet valid) config for a freshly detected machine."""
        return DeclaredConfig(machine=machine, personas=[], defaults=Defaults())
