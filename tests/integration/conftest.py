"""Shared fixtures for kubesd integration tests.

Provides pod factories and a wired section (channel, translator,
reconciler) so tests can drive the whole discovery pipeline without a
Kubernetes cluster.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import pytest

from kubesd.app import DiscoverySection, build_section
from kubesd.models.config import SectionConfig
from kubesd.observability.metrics import DiscoveryMetrics

# ---------------------------------------------------------------------------
# Pod factory helpers
# ---------------------------------------------------------------------------


def make_raw_pod(
    name: str = "web-7b4f8c6d-x2kj",
    namespace: str = "shop",
    pod_ip: str = "10.0.0.5",
    ports: list[int] | None = None,
    init_ports: list[int] | None = None,
    ready: str | None = "True",
    resource_version: str = "1",
    controller: tuple[str, str] | None = ("ReplicaSet", "web-7b4f8c6d"),
) -> dict[str, Any]:
    """Build a pod as the API server would serialize it."""
    owner_refs = []
    if controller is not None:
        owner_refs.append({"kind": controller[0], "name": controller[1], "controller": True})
    conditions = [{"type": "Ready", "status": ready}] if ready is not None else []
    return {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "resourceVersion": resource_version,
            "ownerReferences": owner_refs,
            "labels": {"app": "web"},
        },
        "spec": {
            "nodeName": "node-a",
            "containers": [
                {
                    "name": "web",
                    "ports": [{"name": f"p{p}", "containerPort": p, "protocol": "TCP"} for p in (ports or [])],
                }
            ],
            "initContainers": (
                [{"name": "init", "ports": [{"containerPort": p} for p in init_ports]}] if init_ports else []
            ),
        },
        "status": {
            "phase": "Running",
            "podIP": pod_ip,
            "hostIP": "192.168.0.10",
            "conditions": conditions,
        },
    }


def make_pod_list(*pods: dict[str, Any], resource_version: str = "100") -> bytes:
    body = {"kind": "PodList", "metadata": {"resourceVersion": resource_version}, "items": list(pods)}
    return json.dumps(body).encode()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def metrics() -> DiscoveryMetrics:
    return DiscoveryMetrics()


@pytest.fixture
async def section(metrics: DiscoveryMetrics) -> AsyncIterator[DiscoverySection]:
    """A started section with a small channel and a running reconciler."""
    built = build_section(SectionConfig(name="apps"), channel_capacity=4, metrics=metrics)
    await built.reconciler.start()
    try:
        yield built
    finally:
        await built.reconciler.stop()
