# ABOUTME: Unit tests for the Argo CD API client
# ABOUTME: Tests base URL building, request handling, error parsing, and resource endpoints

import json

import httpx
import pytest
import respx

from argocd_provider.errors import RemoteServiceError
from argocd_provider.utils.client import ArgocdClient, ClientOptions, new_argocd_client

BASE_URL = "https://argocd.example.com/api/v1"


@pytest.fixture
def options() -> ClientOptions:
    return ClientOptions(server_addr="argocd.example.com", auth_token="test-token", insecure=True)


@pytest.mark.unit
class TestClientOptions:
    """Tests for ClientOptions.base_url."""

    def test_adds_https_scheme(self):
        """Test a bare host:port gets https."""
        options = ClientOptions(server_addr="argocd.example.com:443", auth_token="t")

        assert options.base_url == "https://argocd.example.com:443/api/v1"

    def test_plain_text_uses_http(self):
        """Test plain_text switches the scheme to http."""
        options = ClientOptions(server_addr="argocd-server:80", auth_token="t", plain_text=True)

        assert options.base_url == "http://argocd-server:80/api/v1"

    def test_keeps_explicit_scheme_and_strips_slash(self):
        """Test an address that already has a scheme is kept, minus trailing slash."""
        options = ClientOptions(server_addr="https://argocd.example.com/", auth_token="t")

        assert options.base_url == "https://argocd.example.com/api/v1"

    def test_root_path(self):
        """Test the root path is inserted before /api/v1."""
        options = ClientOptions(server_addr="example.com", auth_token="t", root_path="/argo-cd/")

        assert options.base_url == "https://example.com/argo-cd/api/v1"

    def test_token_is_secret(self):
        """Test the token does not leak through repr."""
        options = ClientOptions(server_addr="example.com", auth_token="very-secret")

        assert "very-secret" not in repr(options)


@pytest.mark.unit
class TestArgocdClientLifecycle:
    """Tests for client initialization and context management."""

    def test_factory_returns_client(self, options: ClientOptions):
        """Test the default factory builds an ArgocdClient with the given options."""
        client = new_argocd_client(options)

        assert isinstance(client, ArgocdClient)
        assert client.options is options

    async def test_request_requires_context(self, options: ClientOptions):
        """Test _request outside async with raises RuntimeError."""
        client = ArgocdClient(options)

        with pytest.raises(RuntimeError, match="not initialized"):
            await client._request("GET", "/projects/x")

    async def test_context_closes_client(self, options: ClientOptions):
        """Test leaving the context releases the HTTP client."""
        async with ArgocdClient(options) as client:
            assert client._client is not None

        assert client._client is None

    @respx.mock
    async def test_sends_bearer_token(self, options: ClientOptions):
        """Test requests carry the bearer token."""
        route = respx.get(f"{BASE_URL}/projects/team-a").mock(
            return_value=httpx.Response(200, json={"metadata": {"name": "team-a"}})
        )

        async with ArgocdClient(options) as client:
            await client.get_project("team-a")

        assert route.calls.last.request.headers["Authorization"] == "Bearer test-token"


@pytest.mark.unit
class TestArgocdClientRequest:
    """Tests for _request error handling."""

    @respx.mock
    async def test_not_found(self, options: ClientOptions):
        """Test a 404 raises RemoteServiceError with the Argo CD message."""
        respx.get(f"{BASE_URL}/projects/nope").mock(
            return_value=httpx.Response(
                404, json={"error": "not found", "message": 'appprojects "nope" not found'}
            )
        )

        async with ArgocdClient(options) as client:
            with pytest.raises(RemoteServiceError) as exc_info:
                await client.get_project("nope")

        assert exc_info.value.code == 404
        assert exc_info.value.is_not_found
        assert "nope" in exc_info.value.message
        assert exc_info.value.details == "not found"

    @respx.mock
    async def test_non_json_error_body(self, options: ClientOptions):
        """Test a non-JSON error body is kept as details."""
        respx.get(f"{BASE_URL}/projects/x").mock(
            return_value=httpx.Response(502, text="Bad Gateway")
        )

        async with ArgocdClient(options) as client:
            with pytest.raises(RemoteServiceError) as exc_info:
                await client.get_project("x")

        assert exc_info.value.code == 502
        assert exc_info.value.message == "HTTP 502"
        assert exc_info.value.details == "Bad Gateway"

    @respx.mock
    async def test_transport_error(self, options: ClientOptions):
        """Test connection failures become RemoteServiceError without a code."""
        respx.get(f"{BASE_URL}/projects/x").mock(side_effect=httpx.ConnectError("refused"))

        async with ArgocdClient(options) as client:
            with pytest.raises(RemoteServiceError) as exc_info:
                await client.get_project("x")

        assert exc_info.value.code is None
        assert exc_info.value.message == "ConnectError"
        assert "transport error" in str(exc_info.value)

    @respx.mock
    async def test_no_retry(self, options: ClientOptions):
        """Test the client makes exactly one attempt per call."""
        route = respx.get(f"{BASE_URL}/projects/x").mock(
            return_value=httpx.Response(503, json={"message": "unavailable"})
        )

        async with ArgocdClient(options) as client:
            with pytest.raises(RemoteServiceError):
                await client.get_project("x")

        assert route.call_count == 1

    @respx.mock
    async def test_empty_body(self, options: ClientOptions):
        """Test an empty success body returns an empty dict."""
        respx.delete(f"{BASE_URL}/projects/x").mock(return_value=httpx.Response(200))

        async with ArgocdClient(options) as client:
            assert await client._request("DELETE", "/projects/x") == {}


@pytest.mark.unit
class TestProjectEndpoints:
    """Tests for AppProject and token endpoints."""

    @respx.mock
    async def test_create_project(self, options: ClientOptions):
        """Test create wraps the object with upsert=false."""
        route = respx.post(f"{BASE_URL}/projects").mock(
            return_value=httpx.Response(200, json={"metadata": {"name": "team-a"}})
        )
        project = {"metadata": {"name": "team-a"}, "spec": {"description": "d"}}

        async with ArgocdClient(options) as client:
            await client.create_project(project)

        assert json.loads(route.calls.last.request.content) == {"project": project, "upsert": False}

    @respx.mock
    async def test_update_project(self, options: ClientOptions):
        """Test update PUTs to the project's name."""
        route = respx.put(f"{BASE_URL}/projects/team-a").mock(
            return_value=httpx.Response(200, json={})
        )
        project = {"metadata": {"name": "team-a", "resourceVersion": "7"}, "spec": {}}

        async with ArgocdClient(options) as client:
            await client.update_project(project)

        body = json.loads(route.calls.last.request.content)
        assert body["project"]["metadata"]["resourceVersion"] == "7"

    @respx.mock
    async def test_create_project_token(self, options: ClientOptions):
        """Test token creation sends id and expiry and returns the JWT."""
        route = respx.post(f"{BASE_URL}/projects/team-a/roles/ci/token").mock(
            return_value=httpx.Response(200, json={"token": "eyJhbGciOi..."})
        )

        async with ArgocdClient(options) as client:
            token = await client.create_project_token(
                "team-a", "ci", "ci-token", description="CI", expires_in=3600
            )

        assert token == "eyJhbGciOi..."
        assert json.loads(route.calls.last.request.content) == {
            "project": "team-a",
            "role": "ci",
            "id": "ci-token",
            "description": "CI",
            "expiresIn": 3600,
        }

    @respx.mock
    async def test_delete_project_token(self, options: ClientOptions):
        """Test token deletion addresses the token by iat and id."""
        route = respx.delete(f"{BASE_URL}/projects/team-a/roles/ci/token/1700000000").mock(
            return_value=httpx.Response(200, json={})
        )

        async with ArgocdClient(options) as client:
            await client.delete_project_token("team-a", "ci", 1700000000, "ci-token")

        assert route.calls.last.request.url.params["id"] == "ci-token"


@pytest.mark.unit
class TestApplicationSetEndpoints:
    """Tests for ApplicationSet endpoints."""

    @respx.mock
    async def test_create_sends_upsert_flag(self, options: ClientOptions):
        """Test create and upsert differ only in the query flag."""
        route = respx.post(f"{BASE_URL}/applicationsets").mock(
            return_value=httpx.Response(200, json={})
        )
        appset = {"metadata": {"name": "guestbook"}, "spec": {"generators": []}}

        async with ArgocdClient(options) as client:
            await client.create_applicationset(appset)
            await client.create_applicationset(appset, upsert=True)

        assert route.calls[0].request.url.params["upsert"] == "false"
        assert route.calls[1].request.url.params["upsert"] == "true"
        assert json.loads(route.calls[0].request.content) == appset

    @respx.mock
    async def test_get_and_delete(self, options: ClientOptions):
        """Test get and delete address the ApplicationSet by name."""
        get_route = respx.get(f"{BASE_URL}/applicationsets/guestbook").mock(
            return_value=httpx.Response(200, json={"metadata": {"name": "guestbook"}})
        )
        delete_route = respx.delete(f"{BASE_URL}/applicationsets/guestbook").mock(
            return_value=httpx.Response(200, json={})
        )

        async with ArgocdClient(options) as client:
            appset = await client.get_applicationset("guestbook")
            await client.delete_applicationset("guestbook")

        assert appset["metadata"]["name"] == "guestbook"
        assert get_route.called
        assert delete_route.called
