# ABOUTME: Keyed store collaborator interface and an in-memory implementation
# ABOUTME: Secrets, ConfigMaps, ProviderConfigs, and connection-secret publishing

"""
Keyed store: the read side the provider resolves configuration from.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

The provider never owns Secrets, ConfigMaps, or ProviderConfigs. It only
looks them up by namespace + name through the KeyedStore protocol:

    secret = await store.get_secret("crossplane-system", "argocd-creds")
    token = secret.data.get("authToken", b"")

Lookups of absent objects raise StoreObjectNotFoundError. Whatever
happens inside an object (which keys it has) is the caller's business.

InMemoryStore is a complete implementation used by tests and by
embedders that feed objects in from their own watch machinery.

SecretPublisher is the connection-detail sink: it writes the details a
convergence operation produced into the Secret named by the record's
``writeConnectionSecretToRef``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import structlog

from argocd_provider.errors import StoreObjectNotFoundError

if TYPE_CHECKING:
    from argocd_provider.apis.common import ConnectionDetails, ManagedResource
    from argocd_provider.apis.provider_config import ProviderConfig

logger = structlog.get_logger(__name__)


@dataclass
class Secret:
    namespace: str
    name: str
    data: dict[str, bytes] = field(default_factory=dict)


@dataclass
class ConfigMap:
    namespace: str
    name: str
    data: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class KeyedStore(Protocol):
    """Read-only lookups the provider needs from the resource store."""

    async def get_secret(self, namespace: str, name: str) -> Secret: ...

    async def get_config_map(self, namespace: str, name: str) -> ConfigMap: ...

    async def get_provider_config(self, name: str) -> ProviderConfig: ...


@runtime_checkable
class SecretWriter(Protocol):
    async def apply_secret(self, secret: Secret) -> None: ...

    async def delete_secret(self, namespace: str, name: str) -> None: ...


class InMemoryStore:
    """Dictionary-backed KeyedStore and SecretWriter."""

    def __init__(self) -> None:
        self._secrets: dict[tuple[str, str], Secret] = {}
        self._config_maps: dict[tuple[str, str], ConfigMap] = {}
        self._provider_configs: dict[str, ProviderConfig] = {}

    def add_secret(self, secret: Secret) -> None:
        self._secrets[(secret.namespace, secret.name)] = secret

    def add_config_map(self, config_map: ConfigMap) -> None:
        self._config_maps[(config_map.namespace, config_map.name)] = config_map

    def add_provider_config(self, provider_config: ProviderConfig) -> None:
        self._provider_configs[provider_config.metadata.name] = provider_config

    async def get_secret(self, namespace: str, name: str) -> Secret:
        try:
            return self._secrets[(namespace, name)]
        except KeyError:
            raise StoreObjectNotFoundError("secrets", name, namespace) from None

    async def get_config_map(self, namespace: str, name: str) -> ConfigMap:
        try:
            return self._config_maps[(namespace, name)]
        except KeyError:
            raise StoreObjectNotFoundError("configmaps", name, namespace) from None

    async def get_provider_config(self, name: str) -> ProviderConfig:
        try:
            return self._provider_configs[name]
        except KeyError:
            raise StoreObjectNotFoundError("providerconfigs", name) from None

    async def apply_secret(self, secret: Secret) -> None:
        self.add_secret(secret)

    async def delete_secret(self, namespace: str, name: str) -> None:
        self._secrets.pop((namespace, name), None)


# =============================================================================
# CONNECTION DETAIL PUBLISHING
# =============================================================================


class ConnectionPublisher(Protocol):
    async def publish(self, mg: ManagedResource, details: ConnectionDetails) -> None: ...

    async def unpublish(self, mg: ManagedResource, details: ConnectionDetails) -> None: ...


class SecretPublisher:
    """
    Publish connection details into the record's connection Secret.

    Details are merged into the existing Secret so that values returned
    only once (a freshly issued token) survive later reconciles that
    return nothing new. Records without ``writeConnectionSecretToRef``
    publish nothing.
    """

    def __init__(self, writer: SecretWriter, reader: KeyedStore | None = None) -> None:
        self._writer = writer
        self._reader = reader

    async def publish(self, mg: ManagedResource, details: ConnectionDetails) -> None:
        ref = mg.spec.write_connection_secret_to_ref
        if ref is None or not details:
            return

        data: dict[str, bytes] = {}
        if self._reader is not None:
            try:
                existing = await self._reader.get_secret(ref.namespace, ref.name)
                data.update(existing.data)
            except StoreObjectNotFoundError:
                pass
        data.update(details)

        await self._writer.apply_secret(Secret(namespace=ref.namespace, name=ref.name, data=data))
        logger.debug(
            "Published connection details",
            secret=f"{ref.namespace}/{ref.name}",
            keys=sorted(details),
        )

    async def unpublish(self, mg: ManagedResource, details: ConnectionDetails) -> None:
        ref = mg.spec.write_connection_secret_to_ref
        if ref is None:
            return
        await self._writer.delete_secret(ref.namespace, ref.name)
        logger.debug("Unpublished connection details", secret=f"{ref.namespace}/{ref.name}")
