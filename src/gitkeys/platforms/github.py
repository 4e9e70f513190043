"""GitHub SSH key API client (``/user/keys``).

github.com uses ``https://api.github.com``; a GitHub Enterprise base URL
maps to ``<base>/api/v3``. GitHub does not report fingerprints, so they
are computed from the listed public key material.
"""

from __future__ import annotations

from typing import Any

import httpx

from gitkeys.platforms.base import PlatformClient, RemoteKey, public_key_fingerprint

GITHUB_API_URL = "https://api.github.com"


class GitHubClient(PlatformClient):
    """``PlatformClient`` for GitHub and GitHub Enterprise."""

    def __init__(
        self,
        token: str,
        base_url: str = "",
        http: httpx.Client | None = None,
    ) -> None:
        super().__init__(token, http=http)
        base = base_url.rstrip("/")
        if not base or base in ("https://github.com", "http://github.com"):
            self._api_url = GITHUB_API_URL
        else:
            self._api_url = f"{base}/api/v3"

    @property
    def platform_name(self) -> str:
        return "GitHub"

    @property
    def api_url(self) -> str:
        return self._api_url

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _to_remote_key(self, data: dict[str, Any]) -> RemoteKey:
        key = str(data.get("key", "") or "")
        return RemoteKey(
            id=str(data.get("id", "")),
            title=str(data.get("title", "") or ""),
            key=key,
            fingerprint=public_key_fingerprint(key),
            created_at=str(data.get("created_at", "") or ""),
        )
