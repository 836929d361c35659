# ABOUTME: Unit tests for the exception hierarchy and the deadline helper
# ABOUTME: Tests error messages, classification properties, and cancellation

import asyncio

import pytest

from argocd_provider.errors import (
    ClientConstructionError,
    ConfigResolutionError,
    ConfigurationError,
    NoAddressConfiguredError,
    OperationCancelledError,
    ProviderError,
    RemoteServiceError,
    StoreObjectNotFoundError,
    UnsupportedSourceTypeError,
    WrongManagedKindError,
    deadline,
)


@pytest.mark.unit
class TestErrors:
    """Tests for error types and messages."""

    def test_hierarchy(self):
        assert issubclass(NoAddressConfiguredError, ConfigurationError)
        assert issubclass(StoreObjectNotFoundError, ConfigurationError)
        for cls in (ConfigurationError, ConfigResolutionError, ClientConstructionError,
                    RemoteServiceError, OperationCancelledError, WrongManagedKindError):
            assert issubclass(cls, ProviderError)

    def test_wrong_kind(self):
        err = WrongManagedKindError("Project", "Token")

        assert str(err) == "managed resource is not a Project custom resource (got Token)"

    def test_unsupported_source_keeps_value(self):
        err = UnsupportedSourceTypeError("Anything")

        assert err.source == "Anything"
        assert "Anything" in str(err)

    def test_resolution_wraps_cause(self):
        cause = StoreObjectNotFoundError("secrets", "creds", "ns")

        err = ConfigResolutionError(cause)

        assert err.cause is cause
        assert str(err) == 'cannot resolve provider config: secrets "creds" not found'

    def test_remote_error_str(self):
        err = RemoteServiceError(403, "permission denied", details="rpc error")

        assert str(err) == "Argo CD API error (403): permission denied - rpc error"
        assert not err.is_not_found
        assert not err.is_already_exists

    def test_transport_error_str(self):
        assert str(RemoteServiceError(None, "ConnectError")) == "Argo CD transport error: ConnectError"

    def test_classification(self):
        assert RemoteServiceError(404, "x").is_not_found
        assert RemoteServiceError(409, "x").is_already_exists


@pytest.mark.unit
class TestDeadline:
    """Tests for the deadline context manager."""

    async def test_expires(self):
        with pytest.raises(OperationCancelledError) as exc_info:
            async with deadline(0.01, "observe"):
                await asyncio.sleep(1)

        assert exc_info.value.operation == "observe"
        assert str(exc_info.value) == "observe cancelled after 0.01s deadline"

    async def test_completes_in_time(self):
        async with deadline(1.0):
            await asyncio.sleep(0)

    async def test_no_deadline(self):
        async with deadline(None):
            await asyncio.sleep(0)

    async def test_other_errors_pass_through(self):
        with pytest.raises(ValueError):
            async with deadline(1.0):
                raise ValueError("boom")
