"""Declared configuration: data model, YAML store and machine detection.

Public API::

    from gitkeys.config import ConfigStore, DeclaredConfig

    store = ConfigStore()
    config = store.load()
    for persona in config.personas:
        print(persona.name, len(persona.platforms))
"""

from __future__ import annotations

from gitkeys.config.machine import detect_machine
from gitkeys.config.models import (
    CONFIG_VERSION,
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
from gitkeys.config.store import ConfigStore, default_config_path

__all__ = [
    "CONFIG_VERSION",
    "ConfigStore",
    "DeclaredConfig",
    "Defaults",
    "KeyConfig",
    "KeyStatus",
    "KeyType",
    "Machine",
    "Persona",
    "Platform",
    "PlatformType",
    "default_config_path",
    "detect_machine",
]
