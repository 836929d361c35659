# ABOUTME: Token managed resource schema
# ABOUTME: A JWT issued for an AppProject role, published as a connection secret

"""Token managed resource: a JWT for an AppProject role.

The external name is used as the token id, so a retried create finds the
token it already issued instead of minting a second one.
"""

from __future__ import annotations

from argocd_provider.apis.common import CamelModel, ManagedResource

CONNECTION_TOKEN_KEY = "attribute.token"


class TokenParameters(CamelModel):
    project: str
    role: str
    description: str | None = None
    expires_in: int | None = None


class TokenObservation(CamelModel):
    id: str | None = None
    iat: int | None = None
    exp: int | None = None


class Token(ManagedResource[TokenParameters, TokenObservation]):
    kind: str = "Token"
