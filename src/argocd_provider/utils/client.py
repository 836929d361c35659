# ABOUTME: Argo CD REST client used by the convergence engine
# ABOUTME: Async httpx wrapper for project, token, and applicationset CRUD with structured errors

"""
Argo CD API client with structured error handling.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

This module provides the HTTP client the controllers use to read and
change objects in Argo CD. It handles:

1. CONNECTION OPTIONS: Turning a resolved address + token into a base URL,
   TLS settings, and headers (ClientOptions)
2. HTTP COMMUNICATION: CRUD calls for projects, project tokens, and
   applicationsets
3. ERROR HANDLING: Converting HTTP and transport failures into
   RemoteServiceError

The client does NOT retry. A failed call raises immediately and the
reconciliation driver decides when to try again.

=============================================================================
ARGOCD REST API OVERVIEW
=============================================================================

    GET    /api/v1/projects/{name}
    POST   /api/v1/projects                         {"project": {...}, "upsert": false}
    PUT    /api/v1/projects/{name}                  {"project": {...}}
    DELETE /api/v1/projects/{name}

    POST   /api/v1/projects/{p}/roles/{r}/token     {"id": ..., "expiresIn": ...}
    DELETE /api/v1/projects/{p}/roles/{r}/token/{iat}?id=...

    GET    /api/v1/applicationsets/{name}
    POST   /api/v1/applicationsets?upsert=true|false
    DELETE /api/v1/applicationsets/{name}

Errors come back as JSON:
    {"message": "error description", "error": "additional details", "code": 5}

=============================================================================
CONTEXT MANAGERS (async with)
=============================================================================

    async with ArgocdClient(options) as client:
        project = await client.get_project("team-a")

__aenter__ creates the httpx connection pool, __aexit__ closes it even
when the block raises.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, SecretStr

from argocd_provider.errors import RemoteServiceError

logger = structlog.get_logger(__name__)


# =============================================================================
# CONNECTION OPTIONS
# =============================================================================


class ClientOptions(BaseModel):
    """
    Everything needed to open a connection to one Argo CD server.

    Built by resolve.get_config() from a ProviderConfig; handed to a client
    factory. ``server_addr`` is usually "host:port" without a scheme, the
    way Argo CD's own CLI takes it.
    """

    server_addr: str = Field(description="Argo CD server address")
    auth_token: SecretStr = Field(description="Argo CD API token")
    insecure: bool = Field(default=False, description="Skip TLS verification")
    plain_text: bool = Field(default=False, description="Use http instead of https")
    root_path: str = Field(default="", description="Path prefix Argo CD is served under")
    timeout: float = Field(default=30.0, description="Per-request timeout in seconds")

    @property
    def base_url(self) -> str:
        """
        API base URL.

        "argocd.example.com:443"           -> "https://argocd.example.com:443/api/v1"
        "argocd:80" with plain_text=True   -> "http://argocd:80/api/v1"
        "https://argocd.example.com/"      -> "https://argocd.example.com/api/v1"
        """
        addr = self.server_addr.rstrip("/")
        if not addr.startswith(("http://", "https://")):
            scheme = "http" if self.plain_text else "https"
            addr = f"{scheme}://{addr}"
        root = self.root_path.strip("/")
        if root:
            addr = f"{addr}/{root}"
        return f"{addr}/api/v1"


# =============================================================================
# ARGOCD CLIENT
# =============================================================================


class ArgocdClient:
    """
    Async Argo CD API client.

    LIFECYCLE:
    ----------
    1. Create client: client = ArgocdClient(options)
    2. Enter context: async with client: ...
    3. Use client: await client.get_project("team-a")
    4. Exit context: HTTP connections cleaned up
    """

    def __init__(self, options: ClientOptions) -> None:
        """
        Initialize Argo CD client.

        NOTE: This only creates the client object. The HTTP connection
        is established later in __aenter__.
        """
        self._options = options
        self._client: httpx.AsyncClient | None = None

    @property
    def options(self) -> ClientOptions:
        return self._options

    async def __aenter__(self) -> ArgocdClient:
        self._client = httpx.AsyncClient(
            base_url=self._options.base_url,
            headers={
                "Authorization": f"Bearer {self._options.auth_token.get_secret_value()}",
                "Content-Type": "application/json",
            },
            timeout=self._options.timeout,
            verify=not self._options.insecure,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make HTTP request to the Argo CD API.

        Args:
            method: HTTP method ("GET", "POST", "PUT", "DELETE")
            path: API path (e.g., "/projects/team-a")
            params: URL query parameters (optional)
            json_data: JSON request body (optional)

        Returns:
            API response as dictionary ({} for empty bodies)

        Raises:
            RemoteServiceError: On API error (4xx, 5xx) or transport failure
            RuntimeError: If client not initialized (forgot async with)
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        log = logger.bind(method=method, path=path, server=self._options.server_addr)
        log.debug("Making Argo CD API request")

        try:
            response = await self._client.request(method, path, params=params, json=json_data)
        except httpx.HTTPError as e:
            log.warning("Argo CD transport error", error=str(e))
            raise RemoteServiceError(code=None, message=type(e).__name__, details=str(e)) from e

        if response.status_code >= 400:
            error_body = response.text
            log.warning("Argo CD API error", status=response.status_code, body=error_body[:200])

            message = f"HTTP {response.status_code}"
            details = None
            try:
                error_json = response.json()
                if isinstance(error_json, dict):
                    message = error_json.get("message", message)
                    details = error_json.get("error")
            except ValueError:
                details = error_body[:200] if error_body else None

            raise RemoteServiceError(
                code=response.status_code,
                message=message,
                details=details,
            )

        result = response.json() if response.content else {}
        return result if isinstance(result, dict) else {}

    # =========================================================================
    # PROJECTS
    # =========================================================================

    async def get_project(self, name: str) -> dict[str, Any]:
        """
        Get an AppProject.

        Raises:
            RemoteServiceError: 404 if the project does not exist
        """
        return await self._request("GET", f"/projects/{name}")

    async def create_project(self, project: dict[str, Any], upsert: bool = False) -> dict[str, Any]:
        """Create an AppProject. ``project`` is the full object with metadata and spec."""
        return await self._request(
            "POST", "/projects", json_data={"project": project, "upsert": upsert}
        )

    async def update_project(self, project: dict[str, Any]) -> dict[str, Any]:
        """
        Replace an AppProject.

        Argo CD rejects updates whose metadata.resourceVersion is stale, so
        pass the object as last read with the new spec merged in.
        """
        name = project["metadata"]["name"]
        return await self._request("PUT", f"/projects/{name}", json_data={"project": project})

    async def delete_project(self, name: str) -> None:
        await self._request("DELETE", f"/projects/{name}")

    # =========================================================================
    # PROJECT ROLE TOKENS
    # =========================================================================

    async def create_project_token(
        self,
        project: str,
        role: str,
        token_id: str,
        description: str | None = None,
        expires_in: int | None = None,
    ) -> str:
        """
        Issue a JWT for a project role.

        Returns:
            The signed token. Argo CD never returns it again.
        """
        body: dict[str, Any] = {"project": project, "role": role, "id": token_id}
        if description:
            body["description"] = description
        if expires_in is not None:
            body["expiresIn"] = expires_in

        data = await self._request(
            "POST", f"/projects/{project}/roles/{role}/token", json_data=body
        )
        return str(data.get("token", ""))

    async def delete_project_token(self, project: str, role: str, iat: int, token_id: str) -> None:
        await self._request(
            "DELETE",
            f"/projects/{project}/roles/{role}/token/{iat}",
            params={"id": token_id},
        )

    # =========================================================================
    # APPLICATIONSETS
    # =========================================================================

    async def get_applicationset(self, name: str) -> dict[str, Any]:
        return await self._request("GET", f"/applicationsets/{name}")

    async def create_applicationset(
        self,
        appset: dict[str, Any],
        upsert: bool = False,
    ) -> dict[str, Any]:
        """Create an ApplicationSet, or replace it when ``upsert`` is True."""
        return await self._request(
            "POST",
            "/applicationsets",
            params={"upsert": str(upsert).lower()},
            json_data=appset,
        )

    async def delete_applicationset(self, name: str) -> None:
        await self._request("DELETE", f"/applicationsets/{name}")


def new_argocd_client(options: ClientOptions) -> ArgocdClient:
    """Default client factory."""
    return ArgocdClient(options)
