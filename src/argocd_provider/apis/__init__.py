# ABOUTME: Resource schema package for the Argo CD provider
# ABOUTME: Re-exports managed kinds and the ProviderConfig model

"""
Resource schema.

    common.py           <- metadata/spec/status shape shared by all kinds
    provider_config.py  <- where Argo CD lives and how to authenticate
    projects.py         <- Project (AppProject)
    applicationsets.py  <- ApplicationSet
    tokens.py           <- Token (project role JWT)
"""

from argocd_provider.apis.applicationsets import ApplicationSet, ApplicationSetParameters
from argocd_provider.apis.common import (
    Condition,
    ConnectionDetails,
    DeletionPolicy,
    ManagedResource,
    ManagementAction,
    ObjectMeta,
)
from argocd_provider.apis.projects import Project, ProjectParameters
from argocd_provider.apis.provider_config import (
    ProviderConfig,
    ProviderConfigSpec,
    ServerReference,
    SourceSelector,
    SourceType,
)
from argocd_provider.apis.tokens import Token, TokenParameters

__all__ = [
    "ApplicationSet",
    "ApplicationSetParameters",
    "Condition",
    "ConnectionDetails",
    "DeletionPolicy",
    "ManagedResource",
    "ManagementAction",
    "ObjectMeta",
    "Project",
    "ProjectParameters",
    "ProviderConfig",
    "ProviderConfigSpec",
    "ServerReference",
    "SourceSelector",
    "SourceType",
    "Token",
    "TokenParameters",
]
