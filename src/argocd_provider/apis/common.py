# ABOUTME: Shared resource schema for managed records (metadata, spec, status, conditions)
# ABOUTME: Pydantic models with camelCase aliases matching Kubernetes JSON

"""
Common schema shared by every managed resource kind.

Every managed record has the same outer shape as a Kubernetes object:

    metadata:
      name: team-a
      annotations:
        crossplane.io/external-name: team-a
    spec:
      forProvider: {...}          <- kind-specific desired parameters
      providerConfigRef: {name: default}
      deletionPolicy: Delete
      managementPolicies: ["*"]
      writeConnectionSecretToRef: {name: ..., namespace: ...}
    status:
      atProvider: {...}           <- kind-specific observed state
      conditions: [...]

ManagedResource is generic over the parameter and observation models so
each kind only declares those two.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ANNOTATION_EXTERNAL_NAME = "crossplane.io/external-name"

ConnectionDetails = dict[str, bytes]


class CamelModel(BaseModel):
    """Base for schema models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# REFERENCES
# =============================================================================


class Reference(CamelModel):
    """Reference to a cluster-scoped object by name."""

    name: str


class SecretReference(CamelModel):
    """Reference to a namespaced Secret."""

    name: str
    namespace: str


class DeletionPolicy(str, Enum):
    """What happens to the external resource when the record is deleted."""

    DELETE = "Delete"
    ORPHAN = "Orphan"


class ManagementAction(str, Enum):
    """Actions a record allows the provider to take on the external resource."""

    ALL = "*"
    OBSERVE = "Observe"
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    LATE_INITIALIZE = "LateInitialize"


# =============================================================================
# CONDITIONS
# =============================================================================


class ConditionType(str, Enum):
    READY = "Ready"
    SYNCED = "Synced"


class ConditionReason(str, Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    CREATING = "Creating"
    DELETING = "Deleting"
    RECONCILE_SUCCESS = "ReconcileSuccess"
    RECONCILE_ERROR = "ReconcileError"
    RECONCILE_PAUSED = "ReconcilePaused"


class Condition(CamelModel):
    """A single status condition."""

    type: ConditionType
    status: str
    reason: ConditionReason
    message: str = ""
    last_transition_time: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def equal(self, other: Condition) -> bool:
        """Compare everything except the transition timestamp."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )

    @classmethod
    def available(cls) -> Condition:
        return cls(type=ConditionType.READY, status="True", reason=ConditionReason.AVAILABLE)

    @classmethod
    def unavailable(cls) -> Condition:
        return cls(type=ConditionType.READY, status="False", reason=ConditionReason.UNAVAILABLE)

    @classmethod
    def creating(cls) -> Condition:
        return cls(type=ConditionType.READY, status="False", reason=ConditionReason.CREATING)

    @classmethod
    def deleting(cls) -> Condition:
        return cls(type=ConditionType.READY, status="False", reason=ConditionReason.DELETING)

    @classmethod
    def reconcile_success(cls) -> Condition:
        return cls(
            type=ConditionType.SYNCED, status="True", reason=ConditionReason.RECONCILE_SUCCESS
        )

    @classmethod
    def reconcile_error(cls, err: Exception) -> Condition:
        return cls(
            type=ConditionType.SYNCED,
            status="False",
            reason=ConditionReason.RECONCILE_ERROR,
            message=str(err),
        )


# =============================================================================
# OBJECT SHAPE
# =============================================================================


class ObjectMeta(CamelModel):
    name: str
    namespace: str | None = None
    annotations: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    deletion_timestamp: datetime | None = None


ParamsT = TypeVar("ParamsT", bound=BaseModel)
ObsT = TypeVar("ObsT", bound=BaseModel)


class ResourceSpec(CamelModel, Generic[ParamsT]):
    for_provider: ParamsT
    provider_config_ref: Reference = Field(default_factory=lambda: Reference(name="default"))
    deletion_policy: DeletionPolicy = DeletionPolicy.DELETE
    management_policies: list[ManagementAction] = Field(
        default_factory=lambda: [ManagementAction.ALL]
    )
    write_connection_secret_to_ref: SecretReference | None = None


class ResourceStatus(CamelModel, Generic[ObsT]):
    at_provider: ObsT | None = None
    conditions: list[Condition] = Field(default_factory=list)

    def get_condition(self, ct: ConditionType) -> Condition | None:
        for condition in self.conditions:
            if condition.type == ct:
                return condition
        return None

    def set_conditions(self, *conditions: Condition) -> None:
        """Add or replace conditions by type, keeping transition times stable."""
        for new in conditions:
            for i, existing in enumerate(self.conditions):
                if existing.type != new.type:
                    continue
                if not existing.equal(new):
                    self.conditions[i] = new
                break
            else:
                self.conditions.append(new)


class ManagedResource(CamelModel, Generic[ParamsT, ObsT]):
    """A desired-state record owned by the resource store."""

    api_version: str = "argocd.crossplane.io/v1alpha1"
    kind: str = ""
    metadata: ObjectMeta
    spec: ResourceSpec[ParamsT]
    status: ResourceStatus[ObsT] = Field(default_factory=ResourceStatus)

    @property
    def external_name(self) -> str:
        """The Argo CD-side name, defaulting to the record name."""
        return self.metadata.annotations.get(ANNOTATION_EXTERNAL_NAME) or self.metadata.name

    def set_external_name(self, name: str) -> None:
        self.metadata.annotations[ANNOTATION_EXTERNAL_NAME] = name

    @property
    def being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def set_conditions(self, *conditions: Condition) -> None:
        self.status.set_conditions(*conditions)

    def get_condition(self, ct: ConditionType) -> Condition | None:
        return self.status.get_condition(ct)
