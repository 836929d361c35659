# ABOUTME: ProviderConfig schema describing how to reach and authenticate against Argo CD
# ABOUTME: Holds the literal/indirect server address and the credential source

"""
ProviderConfig schema.

A ProviderConfig tells the provider where Argo CD lives and which token
to use. The server address can be given two ways:

    spec:
      serverAddr: argocd-server.argocd.svc:443        # literal

    spec:
      serverAddressRef:                               # indirect
        source: ConfigMap
        sourceSelector:
          namespace: crossplane-system
          name: argocd-endpoint
          key: address

If both are set, the literal wins. Credentials are always indirect:

    spec:
      credentials:
        source: Secret
        secretRef:
          namespace: crossplane-system
          name: argocd-credentials
          key: authToken
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from argocd_provider.apis.common import CamelModel, ObjectMeta


class SourceType(str, Enum):
    """Where an indirect value is read from."""

    NONE = "None"
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"


def coerce_source(value: object) -> object:
    """Map known discriminants onto SourceType, leave anything else as-is."""
    if isinstance(value, str) and not isinstance(value, SourceType):
        try:
            return SourceType(value)
        except ValueError:
            return value
    return value


class SourceSelector(CamelModel):
    """Namespace, name, and key of the value inside a keyed store object."""

    namespace: str = ""
    name: str = ""
    key: str = ""


class ServerReference(CamelModel):
    """
    Indirect server address.

    ``source`` accepts any string: known values become SourceType members,
    anything else is kept verbatim so resolution can report it.
    """

    source: SourceType | str
    source_selector: SourceSelector = Field(default_factory=SourceSelector)

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: object) -> object:
        return coerce_source(v)


class ProviderCredentials(CamelModel):
    source: SourceType | str = SourceType.SECRET
    secret_ref: SourceSelector = Field(default_factory=SourceSelector)

    @field_validator("source", mode="before")
    @classmethod
    def validate_source(cls, v: object) -> object:
        return coerce_source(v)


class ProviderConfigSpec(CamelModel):
    server_addr: str | None = None
    server_address_ref: ServerReference | None = None
    credentials: ProviderCredentials = Field(default_factory=ProviderCredentials)
    insecure: bool | None = None
    plain_text: bool | None = None
    grpc_web_root_path: str | None = None


class ProviderConfig(CamelModel):
    api_version: str = "argocd.crossplane.io/v1alpha1"
    kind: str = "ProviderConfig"
    metadata: ObjectMeta
    spec: ProviderConfigSpec
