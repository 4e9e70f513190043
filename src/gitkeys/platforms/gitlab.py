"""GitLab SSH key API client (``/api/v4/user/keys``).

Works against gitlab.com and self-hosted instances. Authenticates with a
personal access token in the ``PRIVATE-TOKEN`` header.
"""

from __future__ import annotations

from typing import Any

import httpx

from gitkeys.platforms.base import PlatformClient, RemoteKey, public_key_fingerprint

GITLAB_DEFAULT_URL = "https://gitlab.com"


class GitLabClient(PlatformClient):
    """``PlatformClient`` for GitLab."""

    def __init__(
        self,
        token: str,
        base_url: str = "",
        http: httpx.Client | None = None,
    ) -> None:
        super().__init__(token, http=http)
        self.base_url = (base_url or GITLAB_DEFAULT_URL).rstrip("/")

    @property
    def platform_name(self) -> str:
        return "GitLab"

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api/v4"

    def _auth_headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self._token}

    def _to_remote_key(self, data: dict[str, Any]) -> RemoteKey:
        key = str(data.get("key", "") or "")
        fingerprint = public_key_fingerprint(key) or str(
            data.get("fingerprint_sha256", "") or ""
        )
        return RemoteKey(
            id=str(data.get("id", "")),
            title=str(data.get("title", "") or ""),
            key=key,
            fingerprint=fingerprint,
            created_at=str(data.get("created_at", "") or ""),
        )
