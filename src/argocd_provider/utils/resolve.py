# ABOUTME: Resolves the Argo CD server address and credentials from a ProviderConfig
# ABOUTME: Literal address first, then Secret/ConfigMap key lookups with a soft miss on keys

"""
Indirect configuration resolution.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

Before the provider can talk to Argo CD it needs two strings: the server
address and an API token. A ProviderConfig can give the address
literally or point at a key inside a Secret or ConfigMap; the token is
always pointed at.

    resolve_server_address()  -> "argocd-server.argocd.svc:443"
    resolve_credentials()     -> "eyJhbGciOi..."
    get_config()              -> ClientOptions ready for a client factory

=============================================================================
LOOKUP RULES
=============================================================================

1. A literal serverAddr always wins, even if a reference is also set.
2. A referenced object that does not exist is an error
   (StoreObjectNotFoundError, message contains "not found").
3. A referenced KEY that does not exist inside an existing object is NOT
   an error: the value resolves to "". The object may simply not be
   populated yet.
4. Source "None" and unknown sources are configuration errors; the
   unknown source string is reported verbatim.

Nothing here is cached. Each reconciliation resolves again, so rotated
secrets are picked up on the next attempt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from argocd_provider.apis.provider_config import SourceType
from argocd_provider.errors import (
    NoAddressConfiguredError,
    NoneSourceNotSupportedError,
    UndecodableSecretValueError,
    UnsupportedSourceTypeError,
)
from argocd_provider.utils.client import ClientOptions

if TYPE_CHECKING:
    from argocd_provider.apis.common import ManagedResource
    from argocd_provider.apis.provider_config import (
        ProviderConfigSpec,
        ProviderCredentials,
        SourceSelector,
    )
    from argocd_provider.utils.store import KeyedStore

logger = structlog.get_logger(__name__)


async def lookup_key(store: KeyedStore, source: SourceType | str, selector: SourceSelector) -> str:
    """
    Read ``selector.key`` from the Secret or ConfigMap the selector names.

    Args:
        store: Keyed store to read from
        source: Discriminant choosing Secret or ConfigMap
        selector: Namespace, name, and key to read

    Returns:
        The value decoded to a string, or "" when the key is absent.

    Raises:
        StoreObjectNotFoundError: The object itself does not exist.
        UndecodableSecretValueError: The Secret value is not valid UTF-8.
        NoneSourceNotSupportedError: ``source`` is None.
        UnsupportedSourceTypeError: ``source`` is anything else unknown.
    """
    if source == SourceType.SECRET:
        secret = await store.get_secret(selector.namespace, selector.name)
        raw = secret.data.get(selector.key)
        if raw is None:
            logger.debug(
                "Key not present in secret",
                secret=f"{selector.namespace}/{selector.name}",
                key=selector.key,
            )
            return ""
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UndecodableSecretValueError(
                selector.namespace, selector.name, selector.key
            ) from e

    if source == SourceType.CONFIG_MAP:
        config_map = await store.get_config_map(selector.namespace, selector.name)
        value = config_map.data.get(selector.key)
        if value is None:
            logger.debug(
                "Key not present in configmap",
                configmap=f"{selector.namespace}/{selector.name}",
                key=selector.key,
            )
            return ""
        return value

    if source == SourceType.NONE:
        raise NoneSourceNotSupportedError()

    raise UnsupportedSourceTypeError(str(getattr(source, "value", source)))


async def resolve_server_address(store: KeyedStore, config: ProviderConfigSpec) -> str:
    """Resolve the Argo CD server address from a ProviderConfig spec."""
    if config.server_addr:
        return config.server_addr

    ref = config.server_address_ref
    if ref is None:
        raise NoAddressConfiguredError()

    return await lookup_key(store, ref.source, ref.source_selector)


async def resolve_credentials(store: KeyedStore, credentials: ProviderCredentials) -> str:
    """Resolve the Argo CD API token. Same key-lookup rules as the address."""
    return await lookup_key(store, credentials.source, credentials.secret_ref)


async def get_config(
    store: KeyedStore,
    mg: ManagedResource,
    request_timeout: float = 30.0,
) -> ClientOptions:
    """
    Build client options for a managed record.

    Looks up the record's ProviderConfig, resolves address and token,
    and carries the transport flags over.

    Raises:
        StoreObjectNotFoundError: ProviderConfig, Secret, or ConfigMap missing.
        ConfigurationError: Any other address or credential problem.
    """
    pc = await store.get_provider_config(mg.spec.provider_config_ref.name)
    server_addr = await resolve_server_address(store, pc.spec)
    auth_token = await resolve_credentials(store, pc.spec.credentials)

    logger.debug(
        "Resolved provider config",
        provider_config=pc.metadata.name,
        server=server_addr,
    )
    return ClientOptions(
        server_addr=server_addr,
        auth_token=auth_token,
        insecure=bool(pc.spec.insecure),
        plain_text=bool(pc.spec.plain_text),
        root_path=pc.spec.grpc_web_root_path or "",
        timeout=request_timeout,
    )
