# ABOUTME: ApplicationSet managed resource schema
# ABOUTME: Generators and templates are carried as raw JSON documents

"""
ApplicationSet managed resource.

Generators, the application template, and the rollout strategy are large,
open-ended documents in Argo CD. They are kept as plain JSON here and
compared by content.
"""

from __future__ import annotations

from typing import Any

from argocd_provider.apis.common import CamelModel, ManagedResource


class ApplicationSetSyncPolicy(CamelModel):
    preserve_resources_on_deletion: bool | None = None
    applications_sync: str | None = None


class ApplicationSetParameters(CamelModel):
    generators: list[dict[str, Any]] | None = None
    template: dict[str, Any] | None = None
    sync_policy: ApplicationSetSyncPolicy | None = None
    go_template: bool | None = None
    go_template_options: list[str] | None = None
    strategy: dict[str, Any] | None = None
    preserved_fields: dict[str, Any] | None = None
    ignore_application_differences: list[dict[str, Any]] | None = None
    template_patch: str | None = None


class ApplicationSetObservation(CamelModel):
    conditions: list[dict[str, Any]] | None = None
    resources: list[dict[str, Any]] | None = None


class ApplicationSet(ManagedResource[ApplicationSetParameters, ApplicationSetObservation]):
    kind: str = "ApplicationSet"
