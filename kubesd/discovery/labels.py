"""Scrape-target label synthesis for pods.

One label set is produced per (container, port) pair, plus one port-less set
for every container that declares no ports. Label names follow the
``__meta_kubernetes_pod_*`` vocabulary the relabeling stage expects.

See https://prometheus.io/docs/prometheus/latest/configuration/configuration/#pod
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from kubesd.models.pods import Container, ContainerPort, OwnerReference, Pod, PodCondition

ADDRESS_LABEL = "__address__"
POD_PREFIX = "__meta_kubernetes_pod"

LABEL_CONTAINER_INIT = f"{POD_PREFIX}_container_init"
LABEL_CONTAINER_NAME = f"{POD_PREFIX}_container_name"
LABEL_PORT_NAME = f"{POD_PREFIX}_container_port_name"
LABEL_PORT_NUMBER = f"{POD_PREFIX}_container_port_number"
LABEL_PORT_PROTOCOL = f"{POD_PREFIX}_container_port_protocol"
LABEL_POD_NAME = f"{POD_PREFIX}_name"
LABEL_POD_IP = f"{POD_PREFIX}_ip"
LABEL_POD_READY = f"{POD_PREFIX}_ready"
LABEL_POD_PHASE = f"{POD_PREFIX}_phase"
LABEL_NODE_NAME = f"{POD_PREFIX}_node_name"
LABEL_HOST_IP = f"{POD_PREFIX}_host_ip"
LABEL_POD_UID = f"{POD_PREFIX}_uid"
LABEL_NAMESPACE = "__meta_kubernetes_namespace"
LABEL_CONTROLLER_KIND = f"{POD_PREFIX}_controller_kind"
LABEL_CONTROLLER_NAME = f"{POD_PREFIX}_controller_name"

PORT_LABELS = (LABEL_PORT_NAME, LABEL_PORT_NUMBER, LABEL_PORT_PROTOCOL)

_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def synthesize(pod: Pod) -> list[dict[str, str]]:
    """Return one label set per scrape-able endpoint of *pod*.

    Regular containers come first, then init containers, each in declared
    order. A pod without an IP has nothing to scrape and yields ``[]``.
    """
    if not pod.status.pod_ip:
        return []
    label_sets: list[dict[str, str]] = []
    _append_container_labels(label_sets, pod, pod.spec.containers, "false")
    _append_container_labels(label_sets, pod, pod.spec.init_containers, "true")
    return label_sets


def _append_container_labels(
    label_sets: list[dict[str, str]],
    pod: Pod,
    containers: list[Container],
    is_init: str,
) -> None:
    for container in containers:
        for port in container.ports:
            label_sets.append(_endpoint_labels(pod, container, port, is_init))
        if not container.ports:
            label_sets.append(_endpoint_labels(pod, container, None, is_init))


def _endpoint_labels(pod: Pod, container: Container, port: ContainerPort | None, is_init: str) -> dict[str, str]:
    address = pod.status.pod_ip
    if port is not None:
        address = join_host_port(address, port.container_port)
    labels = {
        ADDRESS_LABEL: address,
        LABEL_CONTAINER_INIT: is_init,
    }
    _add_pod_labels(labels, pod)
    labels[LABEL_CONTAINER_NAME] = container.name
    if port is not None:
        labels[LABEL_PORT_NAME] = port.name
        labels[LABEL_PORT_NUMBER] = str(port.container_port)
        labels[LABEL_PORT_PROTOCOL] = port.protocol
    return labels


def _add_pod_labels(labels: dict[str, str], pod: Pod) -> None:
    labels[LABEL_POD_NAME] = pod.metadata.name
    labels[LABEL_POD_IP] = pod.status.pod_ip
    labels[LABEL_POD_READY] = pod_ready_status(pod.status.conditions)
    labels[LABEL_POD_PHASE] = pod.status.phase
    labels[LABEL_NODE_NAME] = pod.spec.node_name
    labels[LABEL_HOST_IP] = pod.status.host_ip
    labels[LABEL_POD_UID] = pod.metadata.uid
    labels[LABEL_NAMESPACE] = pod.metadata.namespace
    controller = pod_controller(pod.metadata.owner_references)
    if controller is not None:
        if controller.kind:
            labels[LABEL_CONTROLLER_KIND] = controller.kind
        if controller.name:
            labels[LABEL_CONTROLLER_NAME] = controller.name
    register_labels_and_annotations(labels, POD_PREFIX, pod.metadata.labels, pod.metadata.annotations)


def pod_controller(owner_references: list[OwnerReference]) -> OwnerReference | None:
    """Return the first owner reference flagged as controller, if any."""
    for ref in owner_references:
        if ref.controller:
            return ref
    return None


def pod_ready_status(conditions: list[PodCondition]) -> str:
    """Lower-cased status of the ``Ready`` condition, or ``"unknown"``."""
    for condition in conditions:
        if condition.type == "Ready":
            return condition.status.lower()
    return "unknown"


def sanitize_label_name(name: str) -> str:
    """Replace every character that is invalid in a label name with ``_``."""
    return _INVALID_LABEL_CHARS.sub("_", name)


def register_labels_and_annotations(
    labels: dict[str, str],
    prefix: str,
    resource_labels: Mapping[str, str],
    resource_annotations: Mapping[str, str],
) -> None:
    """Copy object labels and annotations into *labels* under *prefix*.

    Each entry produces a value key and a ``*present`` key set to ``"true"``,
    so relabeling can match on existence even when the value is empty.
    """
    for name, value in resource_labels.items():
        sanitized = sanitize_label_name(name)
        labels[f"{prefix}_label_{sanitized}"] = value
        labels[f"{prefix}_labelpresent_{sanitized}"] = "true"
    for name, value in resource_annotations.items():
        sanitized = sanitize_label_name(name)
        labels[f"{prefix}_annotation_{sanitized}"] = value
        labels[f"{prefix}_annotationpresent_{sanitized}"] = "true"


def join_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals (``[::1]:80``)."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
