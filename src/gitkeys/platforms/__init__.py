"""Git-hosting platform integrations: API clients, tokens and lookup table.

Public API::

    from gitkeys.platforms import PlatformType, TokenStore, create_client

    token = TokenStore(PlatformType.GITHUB).resolve("octocat")
    with create_client(PlatformType.GITHUB, token) as client:
        for key in client.list_keys():
            print(key.id, key.fingerprint)
"""

from __future__ import annotations

from gitkeys.config.models import PlatformType
from gitkeys.platforms.base import (
    PlatformClient,
    RemoteKey,
    normalize_fingerprint,
    public_key_fingerprint,
)
from gitkeys.platforms.github import GitHubClient
from gitkeys.platforms.gitlab import GitLabClient
from gitkeys.platforms.registry import (
    PLATFORMS,
    PlatformSpec,
    canonical_host,
    create_client,
    platform_host,
)
from gitkeys.platforms.tokens import DEFAULT_ACCOUNT, TokenStore

__all__ = [
    "DEFAULT_ACCOUNT",
    "GitHubClient",
    "GitLabClient",
    "PLATFORMS",
    "PlatformClient",
    "PlatformSpec",
    "PlatformType",
    "RemoteKey",
    "TokenStore",
    "canonical_host",
    "create_client",
    "normalize_fingerprint",
    "platform_host",
    "public_key_fingerprint",
]
