"""Core data structures for kubesd."""

from kubesd.models.config import KubeSDConfig, SectionConfig
from kubesd.models.events import SyncEvent, WatchAction
from kubesd.models.pods import (
    Container,
    ContainerPort,
    ObjectMeta,
    OwnerReference,
    Pod,
    PodCondition,
    PodList,
    PodSpec,
    PodStatus,
)

__all__ = [
    "Container",
    "ContainerPort",
    "KubeSDConfig",
    "ObjectMeta",
    "OwnerReference",
    "Pod",
    "PodCondition",
    "PodList",
    "PodSpec",
    "PodStatus",
    "SectionConfig",
    "SyncEvent",
    "WatchAction",
]
