"""Translation of pod watch actions into sync events.

The translator is stateless: every call looks only at the pod and action it
is given. It is driven sequentially by one section's watch loop, and the only
point where it can wait is the hand-off to the section's bounded channel.
A full channel suspends the caller, which is how a slow reconciler slows the
watch loop down instead of letting events pile up in memory.
"""

from __future__ import annotations

import asyncio

from kubesd.discovery.keys import POD_KIND, build_sync_key
from kubesd.discovery.labels import synthesize
from kubesd.models.events import SyncEvent, WatchAction
from kubesd.models.pods import Pod
from kubesd.observability.logging import DiagnosticReporter, get_logger
from kubesd.observability.metrics import DiscoveryMetrics


class EventTranslator:
    """Turns (pod, action) pairs into upserts and tombstones for one section."""

    def __init__(
        self,
        section: str,
        channel: asyncio.Queue[SyncEvent],
        reporter: DiagnosticReporter | None = None,
        metrics: DiscoveryMetrics | None = None,
    ) -> None:
        self.section = section
        self._channel = channel
        self._reporter = reporter or get_logger("discovery.translator", section=section)
        self._metrics = metrics

    def key_for(self, pod: Pod) -> str:
        return build_sync_key(POD_KIND, self.section, pod.key)

    async def process(self, pod: Pod, action: str) -> SyncEvent | None:
        """Emit the sync event for *action* on *pod*; return it, or None if dropped.

        ``ERROR`` is a watch-stream signal handled by the watch loop and never
        produces an event. Unrecognized actions are reported and dropped.
        """
        if action in (WatchAction.ADDED, WatchAction.MODIFIED):
            event = SyncEvent(key=self.key_for(pod), section=self.section, labels=synthesize(pod))
        elif action == WatchAction.DELETED:
            event = SyncEvent(key=self.key_for(pod), section=self.section)
        elif action == WatchAction.ERROR:
            return None
        else:
            self._reporter.warning(
                "unexpected watch action",
                action=action,
                namespace=pod.metadata.namespace,
                pod=pod.metadata.name,
            )
            if self._metrics is not None:
                self._metrics.unexpected_actions_total.labels(section=self.section).inc()
            return None

        await self._channel.put(event)
        if self._metrics is not None:
            kind = "delete" if event.is_tombstone else "upsert"
            self._metrics.sync_events_total.labels(section=self.section, type=kind).inc()
        return event
