"""Platform lookup table.

Every ``PlatformType`` variant maps to a ``PlatformSpec`` carrying its
canonical hostname, keyring service and client constructor, so callers
never dispatch on platform name strings.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from gitkeys.config.models import Platform, PlatformType
from gitkeys.platforms.base import PlatformClient
from gitkeys.platforms.github import GitHubClient
from gitkeys.platforms.gitlab import GitLabClient
from gitkeys.platforms.tokens import token_service

ClientFactory = Callable[..., PlatformClient]


@dataclass(frozen=True)
class PlatformSpec:
    """Static facts about one platform type."""

    type: PlatformType
    display_name: str
    canonical_host: str
    token_service: str
    client_factory: ClientFactory


PLATFORMS: dict[PlatformType, PlatformSpec] = {
    PlatformType.GITHUB: PlatformSpec(
        type=PlatformType.GITHUB,
        display_name="GitHub",
        canonical_host="github.com",
        token_service=token_service(PlatformType.GITHUB),
        client_factory=GitHubClient,
    ),
    PlatformType.GITLAB: PlatformSpec(
        type=PlatformType.GITLAB,
        display_name="GitLab",
        canonical_host="gitlab.com",
        token_service=token_service(PlatformType.GITLAB),
        client_factory=GitLabClient,
    ),
}


def canonical_host(platform_type: PlatformType, base_url: str = "") -> str:
    """SSH hostname for a platform, honouring a self-hosted base URL."""
    if base_url:
        parsed = urlparse(base_url if "://" in base_url else f"https://{base_url}")
        if parsed.hostname:
            return parsed.hostname
    return PLATFORMS[platform_type].canonical_host


def platform_host(platform: Platform) -> str:
    return canonical_host(platform.type, platform.base_url)


def create_client(
    platform_type: PlatformType,
    token: str,
    base_url: str = "",
    http: httpx.Client | None = None,
) -> PlatformClient:
    """Construct the API client for *platform_type*."""
    return PLATFORMS[platform_type].client_factory(token, base_url=base_url, http=http)
