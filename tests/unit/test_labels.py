"""Tests for kubesd.discovery.labels: per-endpoint label synthesis."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from kubesd.discovery.labels import (
    ADDRESS_LABEL,
    LABEL_CONTAINER_INIT,
    LABEL_CONTAINER_NAME,
    LABEL_CONTROLLER_KIND,
    LABEL_CONTROLLER_NAME,
    LABEL_NAMESPACE,
    LABEL_POD_READY,
    LABEL_PORT_NUMBER,
    PORT_LABELS,
    join_host_port,
    pod_controller,
    pod_ready_status,
    sanitize_label_name,
    synthesize,
)
from kubesd.models.pods import (
    Container,
    ContainerPort,
    ObjectMeta,
    OwnerReference,
    Pod,
    PodCondition,
    PodSpec,
    PodStatus,
)

# ---------------------------------------------------------------------------
# Helper factories
# ---------------------------------------------------------------------------


def _make_pod(
    name: str = "p",
    namespace: str = "ns",
    pod_ip: str = "10.0.0.5",
    containers: list[Container] | None = None,
    init_containers: list[Container] | None = None,
    conditions: list[PodCondition] | None = None,
    owner_references: list[OwnerReference] | None = None,
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
) -> Pod:
    return Pod(
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            uid="uid-1",
            owner_references=owner_references or [],
            labels=labels or {},
            annotations=annotations or {},
        ),
        spec=PodSpec(
            node_name="node-a",
            containers=containers if containers is not None else [],
            init_containers=init_containers or [],
        ),
        status=PodStatus(
            phase="Running",
            pod_ip=pod_ip,
            host_ip="192.168.0.10",
            conditions=conditions or [],
        ),
    )


def _container(name: str, *ports: int) -> Container:
    return Container(
        name=name,
        ports=[ContainerPort(name=f"p{port}", container_port=port, protocol="TCP") for port in ports],
    )


# =====================================================================
# synthesize
# =====================================================================


class TestSynthesize:
    def test_pod_without_ip_yields_nothing(self) -> None:
        pod = _make_pod(pod_ip="", containers=[_container("c", 80)])
        assert synthesize(pod) == []

    def test_single_port_scenario(self) -> None:
        pod = _make_pod(
            containers=[Container(name="c", ports=[ContainerPort(name="http", container_port=80, protocol="TCP")])]
        )

        [labels] = synthesize(pod)

        assert labels == {
            "__address__": "10.0.0.5:80",
            "__meta_kubernetes_pod_container_init": "false",
            "__meta_kubernetes_pod_name": "p",
            "__meta_kubernetes_pod_ip": "10.0.0.5",
            "__meta_kubernetes_pod_ready": "unknown",
            "__meta_kubernetes_pod_phase": "Running",
            "__meta_kubernetes_pod_node_name": "node-a",
            "__meta_kubernetes_pod_host_ip": "192.168.0.10",
            "__meta_kubernetes_pod_uid": "uid-1",
            "__meta_kubernetes_namespace": "ns",
            "__meta_kubernetes_pod_container_name": "c",
            "__meta_kubernetes_pod_container_port_name": "http",
            "__meta_kubernetes_pod_container_port_number": "80",
            "__meta_kubernetes_pod_container_port_protocol": "TCP",
        }

    def test_container_without_ports_yields_one_portless_set(self) -> None:
        pod = _make_pod(containers=[Container(name="sidecar")])

        [labels] = synthesize(pod)

        assert labels[ADDRESS_LABEL] == "10.0.0.5"
        assert labels[LABEL_CONTAINER_NAME] == "sidecar"
        for key in PORT_LABELS:
            assert key not in labels

    def test_regular_containers_precede_init_containers(self) -> None:
        pod = _make_pod(
            containers=[_container("app", 8080, 9090)],
            init_containers=[_container("init", 7070), Container(name="wait")],
        )

        result = synthesize(pod)

        assert [(ls[LABEL_CONTAINER_NAME], ls[ADDRESS_LABEL], ls[LABEL_CONTAINER_INIT]) for ls in result] == [
            ("app", "10.0.0.5:8080", "false"),
            ("app", "10.0.0.5:9090", "false"),
            ("init", "10.0.0.5:7070", "true"),
            ("wait", "10.0.0.5", "true"),
        ]

    def test_pod_scoped_keys_on_every_set(self) -> None:
        pod = _make_pod(containers=[_container("a", 1), _container("b")])
        for labels in synthesize(pod):
            assert labels[LABEL_NAMESPACE] == "ns"
            assert labels["__meta_kubernetes_pod_name"] == "p"
            assert labels["__meta_kubernetes_pod_uid"] == "uid-1"

    def test_is_deterministic(self) -> None:
        pod = _make_pod(containers=[_container("a", 1, 2)], labels={"app": "x"})
        first = synthesize(pod)
        second = synthesize(pod)
        assert first == second
        assert [list(ls) for ls in first] == [list(ls) for ls in second]

    def test_ipv6_address_is_bracketed(self) -> None:
        pod = _make_pod(pod_ip="fd00::1", containers=[_container("c", 80)])
        [labels] = synthesize(pod)
        assert labels[ADDRESS_LABEL] == "[fd00::1]:80"

    @settings(max_examples=50)
    @given(
        ports_per_container=st.lists(st.integers(min_value=1, max_value=4), min_size=1, max_size=5),
    )
    def test_one_set_per_container_port_pair(self, ports_per_container: list[int]) -> None:
        containers = [
            _container(f"c{i}", *range(1000, 1000 + n)) for i, n in enumerate(ports_per_container)
        ]
        result = synthesize(_make_pod(containers=containers))

        assert len(result) == sum(ports_per_container)
        pairs = {(ls[LABEL_CONTAINER_NAME], ls[LABEL_PORT_NUMBER]) for ls in result}
        assert len(pairs) == len(result)


# =====================================================================
# Readiness and controller
# =====================================================================


class TestReadiness:
    def test_ready_true_lowercased(self) -> None:
        assert pod_ready_status([PodCondition(type="Ready", status="True")]) == "true"

    def test_ready_false(self) -> None:
        conditions = [
            PodCondition(type="PodScheduled", status="True"),
            PodCondition(type="Ready", status="False"),
        ]
        assert pod_ready_status(conditions) == "false"

    def test_no_conditions_is_unknown(self) -> None:
        assert pod_ready_status([]) == "unknown"

    def test_readiness_in_labels(self) -> None:
        pod = _make_pod(containers=[_container("c", 80)], conditions=[PodCondition(type="Ready", status="True")])
        assert synthesize(pod)[0][LABEL_POD_READY] == "true"


class TestController:
    def test_no_owner_references_omits_keys(self) -> None:
        [labels] = synthesize(_make_pod(containers=[_container("c", 80)]))
        assert LABEL_CONTROLLER_KIND not in labels
        assert LABEL_CONTROLLER_NAME not in labels

    def test_non_controller_owner_omits_keys(self) -> None:
        pod = _make_pod(
            containers=[_container("c", 80)],
            owner_references=[OwnerReference(kind="Node", name="node-a", controller=False)],
        )
        [labels] = synthesize(pod)
        assert LABEL_CONTROLLER_KIND not in labels

    def test_second_owner_reference_used_when_flagged(self) -> None:
        refs = [
            OwnerReference(kind="Node", name="node-a", controller=False),
            OwnerReference(kind="ReplicaSet", name="web-7b4f8c6d", controller=True),
        ]
        pod = _make_pod(containers=[_container("c", 80)], owner_references=refs)

        [labels] = synthesize(pod)

        assert labels[LABEL_CONTROLLER_KIND] == "ReplicaSet"
        assert labels[LABEL_CONTROLLER_NAME] == "web-7b4f8c6d"

    def test_empty_controller_fields_not_set(self) -> None:
        pod = _make_pod(
            containers=[_container("c", 80)],
            owner_references=[OwnerReference(kind="StatefulSet", name="", controller=True)],
        )
        [labels] = synthesize(pod)
        assert labels[LABEL_CONTROLLER_KIND] == "StatefulSet"
        assert LABEL_CONTROLLER_NAME not in labels

    def test_pod_controller_returns_first_flagged(self) -> None:
        refs = [
            OwnerReference(kind="A", name="a", controller=True),
            OwnerReference(kind="B", name="b", controller=True),
        ]
        assert pod_controller(refs) is refs[0]


# =====================================================================
# Labels and annotations pass-through
# =====================================================================


class TestLabelsAndAnnotations:
    def test_labels_and_annotations_copied_with_presence_keys(self) -> None:
        pod = _make_pod(
            containers=[_container("c", 80)],
            labels={"app.kubernetes.io/name": "web"},
            annotations={"prometheus.io/port": "9100"},
        )

        [labels] = synthesize(pod)

        assert labels["__meta_kubernetes_pod_label_app_kubernetes_io_name"] == "web"
        assert labels["__meta_kubernetes_pod_labelpresent_app_kubernetes_io_name"] == "true"
        assert labels["__meta_kubernetes_pod_annotation_prometheus_io_port"] == "9100"
        assert labels["__meta_kubernetes_pod_annotationpresent_prometheus_io_port"] == "true"

    def test_sanitize_label_name(self) -> None:
        assert sanitize_label_name("a.b/c-d_e9") == "a_b_c_d_e9"


class TestJoinHostPort:
    def test_ipv4(self) -> None:
        assert join_host_port("10.0.0.1", 9100) == "10.0.0.1:9100"

    def test_ipv6(self) -> None:
        assert join_host_port("::1", 9100) == "[::1]:9100"
