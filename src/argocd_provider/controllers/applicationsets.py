# ABOUTME: ApplicationSet handler for the convergence engine
# ABOUTME: Creates with upsert=false, updates by upserting the full object

"""ApplicationSet handler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from argocd_provider.apis.applicationsets import (
    ApplicationSet,
    ApplicationSetObservation,
    ApplicationSetParameters,
)
from argocd_provider.managed import Remote, ResourceHandler

if TYPE_CHECKING:
    from argocd_provider.apis.common import ConnectionDetails
    from argocd_provider.utils.client import ArgocdClient


def generate_applicationset(mg: ApplicationSet, current: Remote | None = None) -> dict[str, Any]:
    spec = mg.spec.for_provider.model_dump(by_alias=True, exclude_none=True)
    if current is None:
        return {"metadata": {"name": mg.external_name}, "spec": spec}
    metadata = dict(current.get("metadata") or {})
    return {"metadata": metadata, "spec": {**(current.get("spec") or {}), **spec}}


class ApplicationSetHandler(ResourceHandler[ApplicationSet]):
    kind = ApplicationSet

    async def read(self, client: ArgocdClient, mg: ApplicationSet) -> Remote | None:
        return await client.get_applicationset(mg.external_name)

    def parameters_of(self, remote: Remote) -> ApplicationSetParameters:
        return ApplicationSetParameters.model_validate(remote.get("spec") or {})

    def observation_of(self, remote: Remote) -> ApplicationSetObservation:
        return ApplicationSetObservation.model_validate(remote.get("status") or {})

    async def create(self, client: ArgocdClient, mg: ApplicationSet) -> ConnectionDetails:
        await client.create_applicationset(generate_applicationset(mg), upsert=False)
        return {}

    async def update(
        self, client: ArgocdClient, mg: ApplicationSet, remote: Remote
    ) -> ConnectionDetails:
        await client.create_applicationset(generate_applicationset(mg, current=remote), upsert=True)
        return {}

    async def delete(self, client: ArgocdClient, mg: ApplicationSet, remote: Remote) -> None:
        await client.delete_applicationset(mg.external_name)
