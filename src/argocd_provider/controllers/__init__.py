# ABOUTME: Controllers package: one ResourceHandler per managed kind
# ABOUTME: Exposes the handler registry used to build connectors and reconcilers

"""
Per-kind handlers for the convergence engine.

    projects.py         <- Project        -> /api/v1/projects
    applicationsets.py  <- ApplicationSet -> /api/v1/applicationsets
    tokens.py           <- Token          -> /api/v1/projects/{p}/roles/{r}/token

The state machine itself is in argocd_provider.managed; these modules
only say which API calls implement read/create/update/delete.
"""

from typing import Any

from argocd_provider.controllers.applicationsets import ApplicationSetHandler
from argocd_provider.controllers.projects import ProjectHandler
from argocd_provider.controllers.tokens import TokenHandler
from argocd_provider.managed import ResourceHandler


def default_handlers() -> list[ResourceHandler[Any]]:
    """A fresh handler for every supported kind."""
    return [ProjectHandler(), ApplicationSetHandler(), TokenHandler()]


__all__ = ["ApplicationSetHandler", "ProjectHandler", "TokenHandler", "default_handlers"]
