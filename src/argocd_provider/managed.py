# ABOUTME: Generic convergence engine: Connect, Observe, Create, Update, Delete
# ABOUTME: One engine for every managed kind, parameterized by a ResourceHandler

"""
External-resource convergence engine.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

Every managed kind (Project, ApplicationSet, Token) is converged the same
way. Only the API calls and the shape of the remote object differ, so the
state machine lives here once and each kind supplies a small
ResourceHandler:

    handler = ProjectHandler()
    connector = Connector(handler, store)

    async with await connector.connect(project) as external:
        observation = await external.observe(project)
        if not observation.resource_exists:
            await external.create(project)
        elif not observation.resource_up_to_date:
            await external.update(project)

=============================================================================
STATE MACHINE (per attempt, nothing persisted)
=============================================================================

    Unconnected --connect--> Connected --observe--> NotExists        -> create
                                                  |-> Exists-OutOfDate -> update
                                                  `-> Exists-UpToDate  -> nothing
    any Exists state --delete--> Deleted

=============================================================================
IDEMPOTENCY
=============================================================================

- The external name is the key for every call.
- observe never changes anything in Argo CD.
- create adopts an object that already exists (HTTP 409) instead of failing,
  so a retry after a lost response does not fail or duplicate.
- delete of an object that is already gone succeeds.

The engine never retries. Failures are raised as-is for the driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

from argocd_provider.diff import changed_fields
from argocd_provider.errors import (
    ClientConstructionError,
    ConfigResolutionError,
    ConfigurationError,
    RemoteServiceError,
    WrongManagedKindError,
)
from argocd_provider.utils.client import new_argocd_client
from argocd_provider.utils.resolve import get_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from argocd_provider.apis.common import ConnectionDetails, ManagedResource
    from argocd_provider.utils.client import ArgocdClient, ClientOptions
    from argocd_provider.utils.store import KeyedStore

logger = structlog.get_logger(__name__)

ManagedT = TypeVar("ManagedT", bound="ManagedResource")

Remote = dict[str, Any]


# =============================================================================
# OPERATION RESULTS
# =============================================================================


@dataclass
class ExternalObservation:
    resource_exists: bool = False
    resource_up_to_date: bool = False
    connection_details: ConnectionDetails = field(default_factory=dict)


@dataclass
class ExternalCreation:
    connection_details: ConnectionDetails = field(default_factory=dict)


@dataclass
class ExternalUpdate:
    connection_details: ConnectionDetails = field(default_factory=dict)


# =============================================================================
# PER-KIND CAPABILITY SET
# =============================================================================


class ResourceHandler(ABC, Generic[ManagedT]):
    """
    What the engine needs to know about one managed kind.

    ``read`` returns the remote object as JSON, or None when it does not
    exist. Raising RemoteServiceError with a 404 means the same thing.
    """

    kind: type[ManagedT]

    @abstractmethod
    async def read(self, client: ArgocdClient, mg: ManagedT) -> Remote | None: ...

    def parameters_of(self, remote: Remote) -> BaseModel | None:
        """
        Observed remote state in the shape of the kind's parameters.

        None means the kind has no comparable parameters, so an existing
        remote object is always up to date.
        """
        return None

    @abstractmethod
    def observation_of(self, remote: Remote) -> BaseModel:
        """Observed state to store under status.atProvider."""

    @abstractmethod
    async def create(self, client: ArgocdClient, mg: ManagedT) -> ConnectionDetails: ...

    @abstractmethod
    async def update(self, client: ArgocdClient, mg: ManagedT, remote: Remote) -> ConnectionDetails: ...

    @abstractmethod
    async def delete(self, client: ArgocdClient, mg: ManagedT, remote: Remote) -> None: ...

    def connection_details(self, remote: Remote) -> ConnectionDetails:
        """Details readable from an existing remote object without changing it."""
        return {}

    def changed_fields(self, mg: ManagedT, remote: Remote) -> list[str]:
        """Desired fields that differ from the remote object; empty means up to date."""
        observed = self.parameters_of(remote)
        if observed is None:
            return []
        return changed_fields(mg.spec.for_provider, observed)


# =============================================================================
# EXTERNAL CLIENT
# =============================================================================


class ExternalResourceClient(Generic[ManagedT]):
    """
    Observe/Create/Update/Delete for one kind against one Argo CD server.

    Use as an async context manager so the HTTP pool is closed:

        async with await connector.connect(mg) as external:
            ...
    """

    def __init__(self, handler: ResourceHandler[ManagedT], client: ArgocdClient) -> None:
        self._handler = handler
        self._client = client

    async def __aenter__(self) -> ExternalResourceClient[ManagedT]:
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._client.__aexit__(*args)

    def _check(self, mg: ManagedResource) -> ManagedT:
        kind = self._handler.kind
        if not isinstance(mg, kind):
            raise WrongManagedKindError(kind.__name__, type(mg).__name__)
        return mg

    def _log(self, mg: ManagedResource) -> structlog.typing.FilteringBoundLogger:
        return logger.bind(
            kind=self._handler.kind.__name__,
            name=mg.metadata.name,
            external_name=mg.external_name,
        )

    async def _read(self, mg: ManagedT) -> Remote | None:
        try:
            return await self._handler.read(self._client, mg)
        except RemoteServiceError as e:
            if e.is_not_found:
                return None
            raise

    async def observe(self, mg: ManagedResource) -> ExternalObservation:
        """Report whether the external resource exists and is up to date."""
        cr = self._check(mg)
        log = self._log(cr)

        remote = await self._read(cr)
        if remote is None:
            log.debug("External resource does not exist")
            return ExternalObservation(resource_exists=False)

        cr.status.at_provider = self._handler.observation_of(remote)
        changed = self._handler.changed_fields(cr, remote)
        if changed:
            log.debug("External resource is out of date", changed=changed)

        return ExternalObservation(
            resource_exists=True,
            resource_up_to_date=not changed,
            connection_details=self._handler.connection_details(remote),
        )

    async def create(self, mg: ManagedResource) -> ExternalCreation:
        """Create the external resource, adopting it if it already exists."""
        cr = self._check(mg)
        log = self._log(cr)

        try:
            details = await self._handler.create(self._client, cr)
        except RemoteServiceError as e:
            if not e.is_already_exists:
                raise
            remote = await self._read(cr)
            if remote is None:
                raise
            log.info("Adopted existing external resource")
            return ExternalCreation(connection_details=self._handler.connection_details(remote))

        log.info("Created external resource")
        return ExternalCreation(connection_details=details)

    async def update(self, mg: ManagedResource) -> ExternalUpdate:
        cr = self._check(mg)
        log = self._log(cr)

        remote = await self._read(cr)
        if remote is None:
            raise RemoteServiceError(
                code=404,
                message=f"{self._handler.kind.__name__} {cr.external_name} not found",
            )

        details = await self._handler.update(self._client, cr, remote)
        log.info("Updated external resource")
        return ExternalUpdate(connection_details=details)

    async def delete(self, mg: ManagedResource) -> None:
        """Delete the external resource. Already gone counts as success."""
        cr = self._check(mg)
        log = self._log(cr)

        remote = await self._read(cr)
        if remote is None:
            log.debug("External resource already absent")
            return

        try:
            await self._handler.delete(self._client, cr, remote)
        except RemoteServiceError as e:
            if not e.is_not_found:
                raise
            log.debug("External resource vanished before delete")
            return
        log.info("Deleted external resource")


# =============================================================================
# CONNECTOR
# =============================================================================


class Connector(Generic[ManagedT]):
    """
    Produce a ready ExternalResourceClient for a record.

    Each call resolves the record's ProviderConfig from scratch: address,
    token, and transport flags. Nothing is cached between calls.
    """

    def __init__(
        self,
        handler: ResourceHandler[ManagedT],
        store: KeyedStore,
        client_factory: Callable[[ClientOptions], ArgocdClient] = new_argocd_client,
        request_timeout: float = 30.0,
    ) -> None:
        self._handler = handler
        self._store = store
        self._client_factory = client_factory
        self._request_timeout = request_timeout

    @property
    def kind(self) -> type[ManagedT]:
        return self._handler.kind

    async def connect(self, mg: ManagedResource) -> ExternalResourceClient[ManagedT]:
        """
        Raises:
            WrongManagedKindError: ``mg`` is not this connector's kind
            ConfigResolutionError: ProviderConfig, address, or token could not be resolved
            ClientConstructionError: The client factory failed
        """
        kind = self._handler.kind
        if not isinstance(mg, kind):
            raise WrongManagedKindError(kind.__name__, type(mg).__name__)

        try:
            options = await get_config(self._store, mg, request_timeout=self._request_timeout)
        except ConfigurationError as e:
            raise ConfigResolutionError(e) from e

        try:
            client = self._client_factory(options)
        except Exception as e:
            raise ClientConstructionError(e) from e

        return ExternalResourceClient(self._handler, client)
