"""Prometheus metrics for the discovery pipeline.

``DiscoveryMetrics`` is created once at startup and handed to every
component that records something. Each instance owns its registry, so tests
can build as many as they like without colliding on metric names.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest


@dataclass(frozen=True)
class DiscoveryMetrics:
    """Counters and gauges exported on ``/metrics``, labelled per section."""

    registry: CollectorRegistry = field(default_factory=CollectorRegistry)
    sync_events_total: Counter = field(init=False)
    unexpected_actions_total: Counter = field(init=False)
    decode_errors_total: Counter = field(init=False)
    watch_restarts_total: Counter = field(init=False)
    relists_total: Counter = field(init=False)
    targets: Gauge = field(init=False)

    def __post_init__(self) -> None:
        metrics = {
            "sync_events_total": Counter(
                "kubesd_sync_events_total",
                "Sync events emitted by the event translator",
                ["section", "type"],
                registry=self.registry,
            ),
            "unexpected_actions_total": Counter(
                "kubesd_unexpected_actions_total",
                "Watch notifications dropped because of an unrecognized action",
                ["section"],
                registry=self.registry,
            ),
            "decode_errors_total": Counter(
                "kubesd_decode_errors_total",
                "Pod payloads that could not be decoded",
                ["section"],
                registry=self.registry,
            ),
            "watch_restarts_total": Counter(
                "kubesd_watch_restarts_total",
                "Watch streams restarted after a failure",
                ["section"],
                registry=self.registry,
            ),
            "relists_total": Counter(
                "kubesd_relists_total",
                "Full pod list calls issued to resync a watch",
                ["section"],
                registry=self.registry,
            ),
            "targets": Gauge(
                "kubesd_targets",
                "Scrape targets currently known to the reconciler",
                ["section"],
                registry=self.registry,
            ),
        }
        # frozen dataclass: assign through object.__setattr__
        for name, metric in metrics.items():
            object.__setattr__(self, name, metric)

    def render(self) -> bytes:
        """Return the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
