# ABOUTME: Exception taxonomy for the Argo CD provider
# ABOUTME: Separates wrong-kind, configuration, remote-service, and cancellation failures

"""
Exception taxonomy for the Argo CD provider.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

Every failure the provider can surface is one of these exception types.
The reconciliation driver decides what to do with a failure purely from
its type:

    WrongManagedKindError     -> fatal for the attempt, never retried
    ConfigurationError        -> fatal until an operator fixes the config
    ConfigResolutionError     -> Connect could not resolve a ProviderConfig
    ClientConstructionError   -> Connect could not build a client
    RemoteServiceError        -> network/auth/4xx/5xx, retried with backoff
    OperationCancelledError   -> the caller's deadline expired

The one lookup miss that is NOT an error is a missing key inside an
existing Secret or ConfigMap; that resolves to an empty string.

=============================================================================
HIERARCHY
=============================================================================

    ProviderError
    ├── WrongManagedKindError
    ├── ConfigurationError
    │   ├── NoAddressConfiguredError
    │   ├── NoneSourceNotSupportedError
    │   ├── UnsupportedSourceTypeError
    │   ├── UndecodableSecretValueError
    │   └── StoreObjectNotFoundError
    ├── ConfigResolutionError
    ├── ClientConstructionError
    ├── RemoteServiceError
    └── OperationCancelledError
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

__all__ = [
    "ClientConstructionError",
    "ConfigResolutionError",
    "ConfigurationError",
    "NoAddressConfiguredError",
    "NoneSourceNotSupportedError",
    "OperationCancelledError",
    "ProviderError",
    "RemoteServiceError",
    "StoreObjectNotFoundError",
    "UndecodableSecretValueError",
    "UnsupportedSourceTypeError",
    "WrongManagedKindError",
    "deadline",
]


class ProviderError(Exception):
    """Base exception for everything raised by this package."""


# =============================================================================
# TYPE MISMATCH
# =============================================================================


class WrongManagedKindError(ProviderError):
    """A record of an unexpected kind was handed to a connector or client."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"managed resource is not a {expected} custom resource (got {actual})")


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ProviderError):
    """The provider configuration is invalid or points at something missing."""


class NoAddressConfiguredError(ConfigurationError):
    """Neither a literal server address nor an address reference is set."""

    def __init__(self) -> None:
        super().__init__("neither serverAddr nor serverAddressRef is set in ProviderConfig")


class NoneSourceNotSupportedError(ConfigurationError):
    """The reference source is the explicit ``None`` discriminant."""

    def __init__(self) -> None:
        super().__init__("source type None is not supported")


class UnsupportedSourceTypeError(ConfigurationError):
    """The reference source is a value we do not know how to resolve.

    The raw discriminant is kept on ``source`` and in the message so the
    operator can see exactly what was configured.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"source type {source} is not supported")


class StoreObjectNotFoundError(ConfigurationError):
    """A Secret, ConfigMap, or ProviderConfig does not exist in the store.

    The message follows the Kubernetes API server wording, e.g.
    ``secrets "argocd-address" not found``.
    """

    def __init__(self, resource: str, name: str, namespace: str | None = None) -> None:
        self.resource = resource
        self.name = name
        self.namespace = namespace
        super().__init__(f'{resource} "{name}" not found')


class UndecodableSecretValueError(ConfigurationError):
    """A Secret key holds bytes that are not valid UTF-8."""

    def __init__(self, namespace: str, name: str, key: str) -> None:
        self.namespace = namespace
        self.name = name
        self.key = key
        super().__init__(f'key "{key}" of secret "{namespace}/{name}" is not valid UTF-8')


# =============================================================================
# CONNECT FAILURES
# =============================================================================


class ConfigResolutionError(ProviderError):
    """Connect failed while resolving the ProviderConfig for a record.

    The underlying failure is chained as ``__cause__`` and its message is
    kept in ours, so "not found" semantics stay visible to callers.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"cannot resolve provider config: {cause}")


class ClientConstructionError(ProviderError):
    """The client factory raised while building an Argo CD client."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"cannot create new Argo CD client: {cause}")


# =============================================================================
# REMOTE SERVICE ERRORS
# =============================================================================


class RemoteServiceError(ProviderError):
    """
    Structured Argo CD API error.

    ``code`` is the HTTP status for API errors, or ``None`` for transport
    failures (connection refused, TLS errors, client-side timeouts).

    USAGE:
    ------
    try:
        project = await client.get_project("team-a")
    except RemoteServiceError as e:
        if e.is_not_found:
            ...
    """

    def __init__(self, code: int | None, message: str, details: str | None = None) -> None:
        self.code = code
        self.message = message
        self.details = details
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.code is None:
            base = f"Argo CD transport error: {self.message}"
        else:
            base = f"Argo CD API error ({self.code}): {self.message}"
        if self.details:
            base += f" - {self.details}"
        return base

    @property
    def is_not_found(self) -> bool:
        return self.code == 404

    @property
    def is_already_exists(self) -> bool:
        return self.code == 409


# =============================================================================
# CANCELLATION
# =============================================================================


class OperationCancelledError(ProviderError):
    """An operation was aborted because the caller's deadline expired."""

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} cancelled after {timeout:g}s deadline")


@asynccontextmanager
async def deadline(timeout: float | None, operation: str = "operation") -> AsyncIterator[None]:
    """
    Abort the enclosed awaits once ``timeout`` seconds have passed.

    Outstanding I/O inside the block is cancelled by asyncio and the
    expiry surfaces as OperationCancelledError instead of a bare
    TimeoutError. ``None`` means no deadline.

    Example:
        async with deadline(30, "observe"):
            observation = await external.observe(record)
    """
    if timeout is None:
        yield
        return
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        raise OperationCancelledError(operation, timeout) from e
