"""Base classes and shared HTTP helpers for platform API clients.

Defines the ``PlatformClient`` abstract base class that the GitHub and
GitLab clients implement, the ``RemoteKey`` data model, and a thin
request helper around ``httpx.Client`` with standardised timeouts,
user-agent header and error mapping.

Raises ``PlatformAPIError`` (a subclass of ``GitKeysError``) on transport
failures and non-2xx responses.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from gitkeys import __version__
from gitkeys.exceptions import PlatformAPIError

logger = logging.getLogger(__name__)

# Timeout for all platform HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = f"git-keys/{__version__}"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RemoteKey:
    """An SSH key registered on a platform account.

    Attributes:
        id: The platform's key id, as a string.
        title: Human-readable title given at upload time.
        key: Public key material (``ssh-ed25519 AAAA...``).
        fingerprint: ``SHA256:...`` fingerprint, computed from ``key`` when
            the API does not report one.
        created_at: Creation timestamp as reported by the API.
    """

    id: str
    title: str = ""
    key: str = ""
    fingerprint: str = ""
    created_at: str = ""


def public_key_fingerprint(public_key: str) -> str:
    """Compute the ``SHA256:`` fingerprint of an OpenSSH public key line.

    Matches ``ssh-keygen -l`` output: SHA-256 over the decoded key blob,
    base64-encoded without padding.

    Returns:
        The fingerprint, or an empty string if the key cannot be decoded.
    """
    parts = public_key.split()
    if len(parts) < 2:
        return ""
    try:
        blob = base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError):
        return ""
    digest = base64.b64encode(hashlib.sha256(blob).digest()).decode("ascii")
    return "SHA256:" + digest.rstrip("=")


def normalize_fingerprint(fingerprint: str) -> str:
    """Strip the ``SHA256:`` prefix so fingerprints compare by digest only."""
    return fingerprint.strip().removeprefix("SHA256:")


# ---------------------------------------------------------------------------
# Abstract base client
# ---------------------------------------------------------------------------


class PlatformClient(ABC):
    """Uniform contract for a git-hosting platform's SSH key API.

    Subclasses supply the base URL and auth headers and map the platform's
    JSON into ``RemoteKey`` values.
    """

    def __init__(self, token: str, http: httpx.Client | None = None) -> None:
        self._token = token
        self._http = http or httpx.Client(
            timeout=DEFAULT_TIMEOUT,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Human-readable platform name used in messages."""

    @property
    @abstractmethod
    def api_url(self) -> str:
        """Root URL of the platform's REST API."""

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying the API token."""

    @abstractmethod
    def _to_remote_key(self, data: dict[str, Any]) -> RemoteKey:
        """Map one JSON key object to a ``RemoteKey``."""

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        expected: tuple[int, ...] = (200,),
    ) -> httpx.Response:
        url = self.api_url.rstrip("/") + path
        try:
            resp = self._http.request(method, url, json=json, headers=self._auth_headers())
        except httpx.TimeoutException as exc:
            raise PlatformAPIError(f"{self.platform_name} API timeout: {url}") from exc
        except httpx.RequestError as exc:
            raise PlatformAPIError(f"{self.platform_name} API request failed: {exc}") from exc

        if resp.status_code not in expected:
            raise PlatformAPIError(
                f"{self.platform_name} API error (status {resp.status_code}): "
                f"{resp.text.strip()[:200]}",
                status_code=resp.status_code,
            )
        return resp

    def _json(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise PlatformAPIError(
                f"{self.platform_name} API returned invalid JSON"
            ) from exc

    # -- Contract -----------------------------------------------------------

    def list_keys(self) -> list[RemoteKey]:
        """List the SSH keys registered for the authenticated user."""
        logger.debug("Listing %s SSH keys", self.platform_name)
        data = self._json(self._request("GET", "/user/keys"))
        if not isinstance(data, list):
            raise PlatformAPIError(f"{self.platform_name} API returned an unexpected payload")
        keys = [self._to_remote_key(item) for item in data]
        logger.info("Found %d SSH keys on %s", len(keys), self.platform_name)
        return keys

    def add_key(self, title: str, public_key: str) -> str:
        """Upload a public key and return the platform's id for it."""
        logger.debug("Adding SSH key to %s: %s", self.platform_name, title)
        resp = self._request(
            "POST", "/user/keys",
            json={"title": title, "key": public_key},
            expected=(200, 201),
        )
        key = self._to_remote_key(self._json(resp))
        logger.info("Added SSH key to %s: %s (ID: %s)", self.platform_name, title, key.id)
        return key.id

    def delete_key(self, key_id: str) -> None:
        """Delete a key by its platform id."""
        logger.debug("Deleting %s SSH key: %s", self.platform_name, key_id)
        self._request("DELETE", f"/user/keys/{key_id}", expected=(200, 204))
        logger.info("Deleted SSH key from %s: %s", self.platform_name, key_id)

    def get_key(self, key_id: str) -> RemoteKey:
        """Fetch a single key by its platform id."""
        return self._to_remote_key(self._json(self._request("GET", f"/user/keys/{key_id}")))

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> PlatformClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
