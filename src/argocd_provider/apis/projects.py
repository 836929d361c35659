# ABOUTME: Project managed resource schema
# ABOUTME: Desired AppProject parameters and the observed per-role JWT tokens

"""Project managed resource: an Argo CD AppProject."""

from __future__ import annotations

from pydantic import Field

from argocd_provider.apis.common import CamelModel, ManagedResource


class ApplicationDestination(CamelModel):
    server: str | None = None
    namespace: str | None = None
    name: str | None = None


class GroupKind(CamelModel):
    group: str = ""
    kind: str


class OrphanedResourceKey(CamelModel):
    group: str | None = None
    kind: str | None = None
    name: str | None = None


class OrphanedResourcesMonitorSettings(CamelModel):
    warn: bool | None = None
    ignore: list[OrphanedResourceKey] | None = None


class ProjectRole(CamelModel):
    name: str
    description: str | None = None
    policies: list[str] | None = None
    groups: list[str] | None = None


class SignatureKey(CamelModel):
    key_id: str = Field(alias="keyID")


class SyncWindow(CamelModel):
    kind: str | None = None
    schedule: str | None = None
    duration: str | None = None
    applications: list[str] | None = None
    namespaces: list[str] | None = None
    clusters: list[str] | None = None
    manual_sync: bool | None = None
    time_zone: str | None = None


class ProjectParameters(CamelModel):
    """Desired AppProject spec. ``None`` fields are left to Argo CD."""

    project_labels: dict[str, str] | None = None
    source_repos: list[str] | None = None
    destinations: list[ApplicationDestination] | None = None
    description: str | None = None
    roles: list[ProjectRole] | None = None
    cluster_resource_whitelist: list[GroupKind] | None = None
    cluster_resource_blacklist: list[GroupKind] | None = None
    namespace_resource_blacklist: list[GroupKind] | None = None
    namespace_resource_whitelist: list[GroupKind] | None = None
    orphaned_resources: OrphanedResourcesMonitorSettings | None = None
    sync_windows: list[SyncWindow] | None = None
    signature_keys: list[SignatureKey] | None = None
    source_namespaces: list[str] | None = None


class JWTToken(CamelModel):
    iat: int
    exp: int | None = None
    id: str | None = None


class JWTTokens(CamelModel):
    items: list[JWTToken] = Field(default_factory=list)


class ProjectObservation(CamelModel):
    jwt_tokens_by_role: dict[str, JWTTokens] | None = None


class Project(ManagedResource[ProjectParameters, ProjectObservation]):
    kind: str = "Project"
