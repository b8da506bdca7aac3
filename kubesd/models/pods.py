"""Typed Kubernetes pod resources.

Only the fields target discovery needs are modelled; every other key in the
API payload is ignored. Keys follow the Kubernetes JSON spelling (camelCase)
and a JSON ``null`` is treated the same as a missing key, so partially
populated objects degrade to default values instead of failing.

See https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#pod-v1-core
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _K8sModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class OwnerReference(_K8sModel):
    """Reference to the object that owns a pod (ReplicaSet, StatefulSet, ...)."""

    kind: str = ""
    name: str = ""
    controller: bool = False


class ObjectMeta(_K8sModel):
    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = Field(default="", alias="resourceVersion")
    owner_references: list[OwnerReference] = Field(default_factory=list, alias="ownerReferences")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class ContainerPort(_K8sModel):
    name: str = ""
    container_port: int = Field(default=0, alias="containerPort")
    protocol: str = ""


class Container(_K8sModel):
    name: str = ""
    ports: list[ContainerPort] = Field(default_factory=list)


class PodSpec(_K8sModel):
    node_name: str = Field(default="", alias="nodeName")
    containers: list[Container] = Field(default_factory=list)
    init_containers: list[Container] = Field(default_factory=list, alias="initContainers")


class PodCondition(_K8sModel):
    type: str = ""
    status: str = ""


class PodStatus(_K8sModel):
    phase: str = ""
    pod_ip: str = Field(default="", alias="podIP")
    host_ip: str = Field(default="", alias="hostIP")
    conditions: list[PodCondition] = Field(default_factory=list)


class Pod(_K8sModel):
    """A single pod as seen by the discovery pipeline."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)
    status: PodStatus = Field(default_factory=PodStatus)

    @property
    def key(self) -> tuple[str, str]:
        """Resource-local identity: (namespace, name)."""
        return (self.metadata.namespace, self.metadata.name)


class ListMeta(_K8sModel):
    resource_version: str = Field(default="", alias="resourceVersion")


class PodList(_K8sModel):
    """Result of a pod list call; ``metadata.resource_version`` resumes a watch."""

    items: list[Pod] = Field(default_factory=list)
    metadata: ListMeta = Field(default_factory=ListMeta)
