# ABOUTME: Project handler for the convergence engine
# ABOUTME: Maps Project records onto Argo CD AppProject CRUD calls

"""Project handler: Argo CD AppProjects."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from argocd_provider.apis.projects import Project, ProjectObservation, ProjectParameters
from argocd_provider.managed import Remote, ResourceHandler

if TYPE_CHECKING:
    from argocd_provider.apis.common import ConnectionDetails
    from argocd_provider.utils.client import ArgocdClient


def _merge_roles(spec: dict[str, Any], current_spec: dict[str, Any]) -> None:
    """
    Lay each desired role over the current role of the same name.

    Fields the record leaves unset on a role (its description, the JWT
    tokens Argo CD recorded) keep their current values.
    """
    current = {r.get("name"): r for r in current_spec.get("roles") or []}
    if "roles" in spec:
        spec["roles"] = [{**current.get(role.get("name"), {}), **role} for role in spec["roles"]]


def generate_project(mg: Project, current: Remote | None = None) -> dict[str, Any]:
    """
    Build the AppProject JSON for a record.

    With ``current`` the desired spec is laid over the object as last read,
    so server-managed metadata (resourceVersion) and fields the record
    leaves unset are kept.
    """
    params = mg.spec.for_provider
    spec = params.model_dump(by_alias=True, exclude_none=True, exclude={"project_labels"})

    if current is None:
        metadata: dict[str, Any] = {"name": mg.external_name}
    else:
        metadata = dict(current.get("metadata") or {})
        current_spec = current.get("spec") or {}
        _merge_roles(spec, current_spec)
        spec = {**current_spec, **spec}

    if params.project_labels is not None:
        metadata["labels"] = params.project_labels

    return {"metadata": metadata, "spec": spec}


class ProjectHandler(ResourceHandler[Project]):
    kind = Project

    async def read(self, client: ArgocdClient, mg: Project) -> Remote | None:
        return await client.get_project(mg.external_name)

    def parameters_of(self, remote: Remote) -> ProjectParameters:
        spec = dict(remote.get("spec") or {})
        labels = (remote.get("metadata") or {}).get("labels")
        if labels:
            spec["projectLabels"] = labels
        return ProjectParameters.model_validate(spec)

    def observation_of(self, remote: Remote) -> ProjectObservation:
        return ProjectObservation.model_validate(remote.get("status") or {})

    async def create(self, client: ArgocdClient, mg: Project) -> ConnectionDetails:
        await client.create_project(generate_project(mg))
        return {}

    async def update(self, client: ArgocdClient, mg: Project, remote: Remote) -> ConnectionDetails:
        await client.update_project(generate_project(mg, current=remote))
        return {}

    async def delete(self, client: ArgocdClient, mg: Project, remote: Remote) -> None:
        await client.delete_project(mg.external_name)
