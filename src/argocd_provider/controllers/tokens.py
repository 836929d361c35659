# ABOUTME: Token handler for the convergence engine
# ABOUTME: Issues project role JWTs keyed by external name and publishes them as connection details

"""
Token handler: JWTs for AppProject roles.

Argo CD keeps only token metadata (id, iat, exp) on the project; the
signed token is returned once, by the create call. The handler therefore
publishes it from create and never from observe.

Tokens cannot be changed after issue, so an existing token is always
reported up to date and update does nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from argocd_provider.apis.tokens import CONNECTION_TOKEN_KEY, Token, TokenObservation
from argocd_provider.managed import Remote, ResourceHandler

if TYPE_CHECKING:
    from argocd_provider.apis.common import ConnectionDetails
    from argocd_provider.utils.client import ArgocdClient


def find_token(project: Remote, role: str, token_id: str) -> Remote | None:
    """Look a token up by id, in status first and then on the role spec."""
    by_role = (project.get("status") or {}).get("jwtTokensByRole") or {}
    items = list((by_role.get(role) or {}).get("items") or [])
    for spec_role in (project.get("spec") or {}).get("roles") or []:
        if spec_role.get("name") == role:
            items.extend(spec_role.get("jwtTokens") or [])

    for item in items:
        if item.get("id") == token_id:
            return item
    return None


class TokenHandler(ResourceHandler[Token]):
    kind = Token

    async def read(self, client: ArgocdClient, mg: Token) -> Remote | None:
        params = mg.spec.for_provider
        project = await client.get_project(params.project)
        return find_token(project, params.role, mg.external_name)

    def observation_of(self, remote: Remote) -> TokenObservation:
        return TokenObservation.model_validate(remote)

    async def create(self, client: ArgocdClient, mg: Token) -> ConnectionDetails:
        params = mg.spec.for_provider
        token = await client.create_project_token(
            project=params.project,
            role=params.role,
            token_id=mg.external_name,
            description=params.description,
            expires_in=params.expires_in,
        )
        return {CONNECTION_TOKEN_KEY: token.encode("utf-8")}

    async def update(self, client: ArgocdClient, mg: Token, remote: Remote) -> ConnectionDetails:
        return {}

    async def delete(self, client: ArgocdClient, mg: Token, remote: Remote) -> None:
        params = mg.spec.for_provider
        await client.delete_project_token(
            project=params.project,
            role=params.role,
            iat=int(remote["iat"]),
            token_id=mg.external_name,
        )
