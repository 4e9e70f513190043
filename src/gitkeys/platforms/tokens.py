"""API token storage in the OS credential store via ``keyring``.

Each platform type gets its own keyring service (``git-keys-github``,
``git-keys-gitlab``); the username slot holds the account name. The
literal account ``"default"`` holds a token usable for any account on
that platform.
"""

from __future__ import annotations

import logging
from typing import Any

import keyring
import keyring.errors

from gitkeys.config.models import PlatformType
from gitkeys.exceptions import GitKeysError, TokenNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT = "default"


def token_service(platform_type: PlatformType) -> str:
    """Keyring service name for a platform type."""
    return f"git-keys-{platform_type.value}"


class TokenStore:
    """Read and write API tokens for one platform type.

    Args:
        platform_type: Which platform's service to use.
        backend: Object exposing ``get_password``/``set_password``/
            ``delete_password``. Defaults to the ``keyring`` module, which
            dispatches to the configured OS backend.
    """

    def __init__(self, platform_type: PlatformType, backend: Any = None) -> None:
        self.platform_type = platform_type
        self.service = token_service(platform_type)
        self._backend = backend if backend is not None else keyring

    def get_token(self, account: str) -> str:
        """Return the token stored for *account*.

        Raises:
            TokenNotFoundError: If no token is stored.
            GitKeysError: If the credential store itself fails.
        """
        try:
            token = self._backend.get_password(self.service, account)
        except keyring.errors.KeyringError as exc:
            raise GitKeysError(f"credential store error reading {self.service}/{account}: {exc}") from exc
        if not token:
            raise TokenNotFoundError(
                f"no {self.platform_type.value} token stored for account '{account}'"
            )
        return token

    def set_token(self, account: str, token: str) -> None:
        if not token:
            raise GitKeysError("token must not be empty")
        try:
            self._backend.set_password(self.service, account, token)
        except keyring.errors.KeyringError as exc:
            raise GitKeysError(f"credential store error writing {self.service}/{account}: {exc}") from exc
        logger.info("Stored %s token for %s", self.platform_type.value, account)

    def delete_token(self, account: str) -> None:
        """Delete the token for *account*.

        Raises:
            TokenNotFoundError: If no token was stored.
        """
        try:
            self._backend.delete_password(self.service, account)
        except keyring.errors.PasswordDeleteError as exc:
            raise TokenNotFoundError(
                f"no {self.platform_type.value} token stored for account '{account}'"
            ) from exc
        except keyring.errors.KeyringError as exc:
            raise GitKeysError(f"credential store error deleting {self.service}/{account}: {exc}") from exc
        logger.info("Deleted %s token for %s", self.platform_type.value, account)

    def has_token(self, account: str) -> bool:
        try:
            self.get_token(account)
        except TokenNotFoundError:
            return False
        return True

    def resolve(self, account: str) -> str:
        """Return the account-scoped token, falling back to ``"default"``.

        Raises:
            TokenNotFoundError: If neither token is stored.
        """
        try:
            return self.get_token(account)
        except TokenNotFoundError:
            if account == DEFAULT_ACCOUNT:
                raise
            logger.debug(
                "No %s token for %s, trying '%s'",
                self.platform_type.value, account, DEFAULT_ACCOUNT,
            )
        try:
            return self.get_token(DEFAULT_ACCOUNT)
        except TokenNotFoundError as exc:
            raise TokenNotFoundError(
                f"no {self.platform_type.value} token for account '{account}' "
                f"or '{DEFAULT_ACCOUNT}'; run 'git-keys token set'"
            ) from exc
