"""git-keys: per-identity SSH key management for GitHub and GitLab."""

from __future__ import annotations

__version__ = "0.3.0"
__license__ = "MIT"

# Namespace used for managed regions, key comments and keyring services.
TOOL_NAME = "git-keys"
