"""Exception hierarchy for directus_provider.

All exceptions inherit from :class:`DirectusProviderError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`directus_provider.exit_codes`.  The CLI entry point in
:func:`directus_provider.app.main` catches ``DirectusProviderError`` and
exits with the appropriate code.

Subclass hierarchy::

    DirectusProviderError (exit 1)
    +-- ConfigurationError  (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- StorageError        (exit 8)

A failing startup probe is *not* represented here: it is
logged and resolved to ``AuthState.UNAUTHENTICATED`` by
:class:`~directus_provider.auth.state.AuthStateMachine`.
"""

from directus_provider.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIGURATION_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORAGE_ERROR,
)


class DirectusProviderError(Exception):
    """Base exception for all directus_provider errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(DirectusProviderError):
    """Raised when the provider is composed incorrectly.

    Covers a malformed :class:`~directus_provider.models.CapabilityConfig`,
    an accessor for a capability that was never configured, and
    :func:`use_directus` being called outside a mounted provider.  This is a
    programmer error and is never retried.
    """

    exit_code = EXIT_CONFIGURATION_ERROR


class AuthError(DirectusProviderError):
    """Raised when authentication or authorisation fails (HTTP 401/403, bad login)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(DirectusProviderError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(DirectusProviderError):
    """Raised when the API returns an HTTP 5xx, an unmapped 4xx, or GraphQL errors."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(DirectusProviderError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class StorageError(DirectusProviderError):
    """Raised when a credential storage backend rejects a write.

    The in-memory auth state already reflects the intended write when this
    is raised; it is not rolled back.
    """

    exit_code = EXIT_STORAGE_ERROR
