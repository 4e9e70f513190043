"""git-keys exception hierarchy.

All public exceptions inherit from GitKeysError, giving callers a single
base class to catch when they want to handle any git-keys failure
without swallowing unrelated errors.
"""


class GitKeysError(Exception):
    """Base exception for all git-keys errors."""


class ConfigError(GitKeysError):
    """Raised when the declared configuration cannot be read or written.

    Covers a missing config file, YAML syntax errors, and filesystem
    failures while persisting the model.
    """


class ConfigValidationError(ConfigError):
    """Raised when a declared configuration fails structural validation.

    The individual problems are available on ``errors`` so callers can
    render them one per line.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("invalid config: " + "; ".join(self.errors))


class KeyMaterialError(GitKeysError):
    """Raised when key generation or inspection fails.

    Covers ``ssh-keygen`` failures, unreadable public keys, and
    unsupported key algorithms.
    """


class RoutingConfigError(GitKeysError):
    """Raised when the SSH routing file cannot be read or rewritten."""


class PlatformAPIError(GitKeysError):
    """Raised when a git-hosting platform API call fails.

    ``status_code`` is the HTTP status for non-2xx responses and None for
    transport-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TokenNotFoundError(GitKeysError):
    """Raised when no API token is stored for an account.

    This is a recoverable condition: callers fall back to the ``default``
    account or skip the remote step.
    """


class KeyNotFoundError(GitKeysError):
    """Raised when a revocation target matches no key in the declared model."""


class BackupError(GitKeysError):
    """Raised when a backup snapshot cannot be written, read, or restored."""


class AgentUnavailableError(GitKeysError):
    """Raised when no SSH agent is reachable (``ssh-add`` exit status 2)."""
