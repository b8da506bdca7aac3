"""Pod watch loops feeding a section's EventTranslator.

Each PodWatcher covers one namespace (or the whole cluster) for one section:
list once to learn the current state and resourceVersion, then stream watch
notifications from that version. Reconnects, relists and backoff live here;
the translator and everything downstream of it never retry anything.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
from collections.abc import Awaitable, Callable
from typing import Any

from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubesd.discovery.decoder import PodDecodeError, PodListDecodeError, parse_pod, parse_pod_list
from kubesd.discovery.translator import EventTranslator
from kubesd.models.config import SectionConfig
from kubesd.models.events import WatchAction
from kubesd.models.pods import ObjectMeta, Pod
from kubesd.observability.logging import get_logger
from kubesd.observability.metrics import DiscoveryMetrics

_BACKOFF_BASE_SECONDS = 1.0
_BACKOFF_MAX_SECONDS = 30.0
_HTTP_GONE = 410


def _extract_rv_from_bookmark(raw: object) -> str:
    if not isinstance(raw, dict):
        return ""
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict):
        return ""
    return str(metadata.get("resourceVersion", ""))


class PodWatcher:
    """List-then-watch loop for the pods of one section in one namespace.

    ``namespace=None`` watches every namespace. The set of pod keys seen on
    the last list is kept so that a relist can tombstone pods that vanished
    while the stream was down.
    """

    def __init__(
        self,
        api: Any,
        section: SectionConfig,
        translator: EventTranslator,
        metrics: DiscoveryMetrics | None = None,
        namespace: str | None = None,
        timeout_seconds: int = 300,
    ) -> None:
        self._api = api
        self._section = section
        self._translator = translator
        self._metrics = metrics
        self._namespace = namespace
        self._timeout_seconds = timeout_seconds

        self._resource_version = ""
        self._known: set[tuple[str, str]] = set()
        self._consecutive_failures = 0
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._log = get_logger("discovery.watcher", section=section.name, namespace=namespace or "*")

    @property
    def name(self) -> str:
        return f"pod-watcher/{self._section.name}/{self._namespace or '*'}"

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._watch_loop(), name=self.name)
        self._log.info("pod watcher started")

    async def stop(self) -> None:
        self._running = False
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._log.info("pod watcher stopped")

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _watch_loop(self) -> None:
        while self._running:
            try:
                await self._run_watch()
            except asyncio.CancelledError:
                return
            except ApiException as exc:
                if not self._running:
                    return
                await self._handle_api_exception(exc)
            except Exception as exc:
                if not self._running:
                    return
                await self._handle_loop_exception(exc)

    async def _run_watch(self) -> None:
        if not self._resource_version:
            await self._relist()

        w = watch.Watch()
        try:
            async for event in w.stream(
                self._list_func(),
                *self._list_args(),
                resource_version=self._resource_version,
                allow_watch_bookmarks=True,
                timeout_seconds=self._timeout_seconds,
                **self._selectors(),
            ):
                if not self._running:
                    return
                await self._handle_event(str(event.get("type", "")), event.get("raw_object"))
        finally:
            await w.close()
        # Stream ended on the server-side timeout; resume from the same version.
        self._consecutive_failures = 0

    async def _handle_event(self, event_type: str, raw: object) -> None:
        if event_type == WatchAction.BOOKMARK:
            rv = _extract_rv_from_bookmark(raw)
            if rv:
                self._resource_version = rv
            return
        if event_type == WatchAction.ERROR:
            # The stream is no longer trustworthy; rebuild state from a list.
            self._log.warning("watch error event, forcing relist", status=raw)
            self._resource_version = ""
            return
        if not isinstance(raw, dict):
            self._log.warning("watch event without object dropped", event_type=event_type)
            return

        try:
            pod = parse_pod(raw)
        except PodDecodeError as exc:
            self._log.warning("undecodable pod in watch event dropped", event_type=event_type, error=str(exc))
            self._record_decode_error()
            return

        if pod.metadata.resource_version:
            self._resource_version = pod.metadata.resource_version
        if event_type == WatchAction.DELETED:
            self._known.discard(pod.key)
        elif event_type in (WatchAction.ADDED, WatchAction.MODIFIED):
            self._known.add(pod.key)
        await self._translator.process(pod, event_type)

    # ------------------------------------------------------------------
    # Relist
    # ------------------------------------------------------------------

    async def _relist(self) -> None:
        """List all pods, upsert each, and tombstone pods that disappeared."""
        self._log.info("relisting pods")
        if self._metrics is not None:
            self._metrics.relists_total.labels(section=self._section.name).inc()

        response = await self._list_func()(*self._list_args(), _preload_content=False, **self._selectors())
        payload = await response.read()
        try:
            pod_list = parse_pod_list(payload)
        except PodListDecodeError:
            self._record_decode_error()
            raise

        current: set[tuple[str, str]] = set()
        for pod in pod_list.items:
            current.add(pod.key)
            await self._translator.process(pod, WatchAction.ADDED)
        for namespace, name in sorted(self._known - current):
            gone = Pod(metadata=ObjectMeta(namespace=namespace, name=name))
            await self._translator.process(gone, WatchAction.DELETED)
        self._known = current

        self._resource_version = pod_list.metadata.resource_version
        if not self._resource_version:
            self._log.warning("pod list returned no resourceVersion; next iteration relists again")
        self._log.info("relist complete", pods=len(current), resource_version=self._resource_version)

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    async def _handle_api_exception(self, exc: ApiException) -> None:
        if exc.status == _HTTP_GONE:
            self._log.info("resource version expired, relisting", resource_version=self._resource_version)
            self._resource_version = ""
            return
        await self._handle_loop_exception(exc)

    async def _handle_loop_exception(self, exc: Exception) -> None:
        self._consecutive_failures += 1
        self._log.error(
            "pod watch failed",
            error=str(exc),
            error_type=type(exc).__name__,
            consecutive_failures=self._consecutive_failures,
        )
        if self._metrics is not None:
            self._metrics.watch_restarts_total.labels(section=self._section.name).inc()
        await self._backoff()

    async def _backoff(self) -> None:
        delay = min(_BACKOFF_BASE_SECONDS * 2 ** (self._consecutive_failures - 1), _BACKOFF_MAX_SECONDS)
        delay += random.uniform(0, delay / 4)
        self._log.debug("watch backoff", delay_seconds=round(delay, 2))
        await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _list_func(self) -> Callable[..., Awaitable[Any]]:
        if self._namespace:
            return self._api.list_namespaced_pod  # type: ignore[no-any-return]
        return self._api.list_pod_for_all_namespaces  # type: ignore[no-any-return]

    def _list_args(self) -> tuple[str, ...]:
        return (self._namespace,) if self._namespace else ()

    def _selectors(self) -> dict[str, str]:
        selectors: dict[str, str] = {}
        if self._section.label_selector:
            selectors["label_selector"] = self._section.label_selector
        if self._section.field_selector:
            selectors["field_selector"] = self._section.field_selector
        return selectors

    def _record_decode_error(self) -> None:
        if self._metrics is not None:
            self._metrics.decode_errors_total.labels(section=self._section.name).inc()


def build_pod_watchers(
    api: Any,
    section: SectionConfig,
    translator: EventTranslator,
    metrics: DiscoveryMetrics | None = None,
    timeout_seconds: int = 300,
) -> list[PodWatcher]:
    """One watcher per configured namespace, or a single cluster-wide watcher."""
    namespaces: list[str | None] = list(section.namespaces) or [None]
    return [
        PodWatcher(
            api,
            section,
            translator,
            metrics=metrics,
            namespace=namespace,
            timeout_seconds=timeout_seconds,
        )
        for namespace in namespaces
    ]
