# ABOUTME: Pytest fixtures and configuration for Argo CD provider tests
# ABOUTME: Provides a populated in-memory store and sample managed records

from typing import Any

import pytest

from argocd_provider.apis.applicationsets import ApplicationSet
from argocd_provider.apis.common import ObjectMeta
from argocd_provider.apis.projects import Project
from argocd_provider.apis.provider_config import (
    ProviderConfig,
    ProviderConfigSpec,
    ProviderCredentials,
    SourceSelector,
    SourceType,
)
from argocd_provider.apis.tokens import Token
from argocd_provider.utils.client import ClientOptions
from argocd_provider.utils.store import InMemoryStore, Secret

ARGOCD_ADDR = "argocd.example.com"
BASE_URL = f"https://{ARGOCD_ADDR}/api/v1"
CREDENTIALS_NAMESPACE = "crossplane-system"
CREDENTIALS_NAME = "argocd-credentials"


@pytest.fixture
def credentials() -> ProviderCredentials:
    """Credentials pointing at the authToken key of the credentials Secret."""
    return ProviderCredentials(
        source=SourceType.SECRET,
        secret_ref=SourceSelector(
            namespace=CREDENTIALS_NAMESPACE,
            name=CREDENTIALS_NAME,
            key="authToken",
        ),
    )


@pytest.fixture
def provider_config(credentials: ProviderCredentials) -> ProviderConfig:
    """The default ProviderConfig with a literal server address."""
    return ProviderConfig(
        metadata=ObjectMeta(name="default"),
        spec=ProviderConfigSpec(server_addr=ARGOCD_ADDR, credentials=credentials),
    )


@pytest.fixture
def store(provider_config: ProviderConfig) -> InMemoryStore:
    """Store holding the default ProviderConfig and its credentials Secret."""
    store = InMemoryStore()
    store.add_secret(
        Secret(
            namespace=CREDENTIALS_NAMESPACE,
            name=CREDENTIALS_NAME,
            data={"authToken": b"test-token"},
        )
    )
    store.add_provider_config(provider_config)
    return store


@pytest.fixture
def client_options() -> ClientOptions:
    return ClientOptions(server_addr=ARGOCD_ADDR, auth_token="test-token", insecure=True)


@pytest.fixture
def project() -> Project:
    """A Project record for AppProject team-a."""
    return Project.model_validate(
        {
            "metadata": {"name": "team-a"},
            "spec": {
                "forProvider": {
                    "description": "Team A applications",
                    "sourceRepos": ["https://github.com/example/team-a.git"],
                    "destinations": [
                        {"server": "https://kubernetes.default.svc", "namespace": "team-a"}
                    ],
                    "roles": [{"name": "ci", "policies": ["p, proj:team-a:ci, applications, sync, team-a/*, allow"]}],
                },
            },
        }
    )


@pytest.fixture
def project_response() -> dict[str, Any]:
    """Argo CD's view of AppProject team-a, matching the project fixture."""
    return {
        "metadata": {"name": "team-a", "namespace": "argocd", "resourceVersion": "1234"},
        "spec": {
            "description": "Team A applications",
            "sourceRepos": ["https://github.com/example/team-a.git"],
            "destinations": [
                {"server": "https://kubernetes.default.svc", "namespace": "team-a"}
            ],
            "roles": [
                {
                    "name": "ci",
                    "policies": ["p, proj:team-a:ci, applications, sync, team-a/*, allow"],
                    "jwtTokens": [{"iat": 1700000000, "id": "ci-token"}],
                }
            ],
        },
        "status": {
            "jwtTokensByRole": {"ci": {"items": [{"iat": 1700000000, "id": "ci-token"}]}},
        },
    }


@pytest.fixture
def token() -> Token:
    """A Token record for role ci of project team-a, published to a Secret."""
    return Token.model_validate(
        {
            "metadata": {
                "name": "ci-token",
                "annotations": {"crossplane.io/external-name": "ci-token"},
            },
            "spec": {
                "forProvider": {"project": "team-a", "role": "ci", "description": "CI pipeline"},
                "writeConnectionSecretToRef": {"namespace": "ci", "name": "argocd-token"},
            },
        }
    )


@pytest.fixture
def applicationset() -> ApplicationSet:
    """An ApplicationSet record with a list generator."""
    return ApplicationSet.model_validate(
        {
            "metadata": {"name": "guestbook"},
            "spec": {
                "forProvider": {
                    "generators": [{"list": {"elements": [{"cluster": "in-cluster"}]}}],
                    "template": {
                        "metadata": {"name": "{{cluster}}-guestbook"},
                        "spec": {
                            "project": "default",
                            "source": {
                                "repoURL": "https://github.com/argoproj/argocd-example-apps.git",
                                "path": "guestbook",
                            },
                            "destination": {"name": "{{cluster}}", "namespace": "guestbook"},
                        },
                    },
                },
            },
        }
    )
