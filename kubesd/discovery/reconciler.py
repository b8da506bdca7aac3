"""Live target map for one discovery section.

TargetReconciler owns the consumer side of a section's channel. Merging is
idempotent: replaying an upsert leaves the map unchanged, and a tombstone for
an unknown key is a no-op, so duplicate deliveries and relists are harmless.
"""

from __future__ import annotations

import asyncio
import contextlib

from kubesd.models.events import SyncEvent
from kubesd.observability.logging import get_logger
from kubesd.observability.metrics import DiscoveryMetrics


class TargetReconciler:
    """Drains a section channel into a ``{sync key: [label sets]}`` map."""

    def __init__(
        self,
        section: str,
        channel: asyncio.Queue[SyncEvent],
        metrics: DiscoveryMetrics | None = None,
    ) -> None:
        self.section = section
        self._channel = channel
        self._metrics = metrics
        self._targets: dict[str, list[dict[str, str]]] = {}
        self._task: asyncio.Task[None] | None = None
        self._log = get_logger("discovery.reconciler", section=section)

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._consume(), name=f"reconciler-{self.section}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _consume(self) -> None:
        while True:
            event = await self._channel.get()
            try:
                self.apply(event)
            finally:
                self._channel.task_done()

    def apply(self, event: SyncEvent) -> None:
        """Merge one event into the target map."""
        if event.section != self.section:
            self._log.warning("event for foreign section dropped", event_section=event.section, key=event.key)
            return
        if event.labels:
            self._targets[event.key] = event.labels
        else:
            # Tombstones and pods without an address both leave nothing to scrape.
            self._targets.pop(event.key, None)
        if self._metrics is not None:
            self._metrics.targets.labels(section=self.section).set(self.target_count())

    def targets(self) -> dict[str, list[dict[str, str]]]:
        """Snapshot of the current targets, safe for the caller to mutate."""
        return {key: [dict(labels) for labels in label_sets] for key, label_sets in self._targets.items()}

    def target_count(self) -> int:
        return sum(len(label_sets) for label_sets in self._targets.values())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
