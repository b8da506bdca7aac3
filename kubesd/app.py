"""Application bootstrap for kubesd.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → metrics → K8s client → sections → REST

Every discovery section gets its own bounded channel, translator, reconciler
and watch loops; sections never share mutable state. Shutdown stops
components in reverse startup order, and a failure while stopping one
component does not prevent the rest from stopping.
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from kubesd.config import load_config
from kubesd.discovery.reconciler import TargetReconciler
from kubesd.discovery.translator import EventTranslator
from kubesd.models.config import KubeSDConfig, SectionConfig
from kubesd.models.events import SyncEvent
from kubesd.observability.logging import get_logger, setup_logging
from kubesd.observability.metrics import DiscoveryMetrics

if TYPE_CHECKING:
    import structlog

    from kubesd.discovery.watcher import PodWatcher

_SHUTDOWN_GRACE_SECONDS = 15


class ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


@dataclass
class DiscoverySection:
    """Everything one configured section owns."""

    config: SectionConfig
    channel: asyncio.Queue[SyncEvent]
    translator: EventTranslator
    reconciler: TargetReconciler
    watchers: list[PodWatcher] = field(default_factory=list)


def build_section(
    config: SectionConfig,
    channel_capacity: int,
    metrics: DiscoveryMetrics,
) -> DiscoverySection:
    """Create the channel, translator and reconciler for one section."""
    channel: asyncio.Queue[SyncEvent] = asyncio.Queue(maxsize=channel_capacity)
    return DiscoverySection(
        config=config,
        channel=channel,
        translator=EventTranslator(config.name, channel, metrics=metrics),
        reconciler=TargetReconciler(config.name, channel, metrics=metrics),
    )


class KubeSDApp:
    """Application root. Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already stopped)
    is safe.
    """

    def __init__(self, config: KubeSDConfig | None = None) -> None:
        self.config = config
        self.metrics: DiscoveryMetrics | None = None
        self.sections: dict[str, DiscoverySection] = {}

        self._k8s_client: Any = None
        self._rest_server: Any = None
        self._background_tasks: list[asyncio.Task[Any]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises ComponentError if a mandatory component cannot start.
        """
        if self.config is None:
            self.config = load_config()

        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubesd starting", version=_kubesd_version(), sections=[s.name for s in self.config.sections])

        self.metrics = DiscoveryMetrics()

        await self._start_k8s_client()
        await self._start_sections()
        await self._start_rest()

        self._running = True
        self._log.info("kubesd started", port=self.config.api.port)

    async def _start_k8s_client(self) -> None:
        """Create a kubernetes-asyncio ApiClient from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                self._log.info("k8s client configured from in-cluster service account")
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                self._log.info("k8s client configured from kubeconfig")

            self._k8s_client = k8s_client.ApiClient()
        except Exception as exc:
            raise ComponentError("k8s_client", exc) from exc

    async def _start_sections(self) -> None:
        """Create and start channel, reconciler and watch loops per section."""
        assert self._log is not None
        assert self.config is not None
        assert self.metrics is not None
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            from kubesd.discovery.watcher import build_pod_watchers

            core_v1 = k8s_client.CoreV1Api(self._k8s_client)
            for section_cfg in self.config.sections:
                section = build_section(section_cfg, self.config.watch.channel_capacity, self.metrics)
                section.watchers = build_pod_watchers(
                    core_v1,
                    section_cfg,
                    section.translator,
                    metrics=self.metrics,
                    timeout_seconds=self.config.watch.timeout_seconds,
                )
                # Consumer first, so the initial relist never stalls on a full channel.
                await section.reconciler.start()
                for watcher in section.watchers:
                    await watcher.start()
                self.sections[section_cfg.name] = section
                self._log.info(
                    "discovery section started",
                    section=section_cfg.name,
                    namespaces=section_cfg.namespaces or ["*"],
                )
        except Exception as exc:
            raise ComponentError("sections", exc) from exc

    async def _start_rest(self) -> None:
        """Start the uvicorn REST server."""
        assert self._log is not None
        assert self.config is not None
        assert self.metrics is not None
        self._log.debug("starting rest api")
        try:
            import uvicorn

            from kubesd.api import create_app

            fastapi_app = create_app(
                reconcilers={name: s.reconciler for name, s in self.sections.items()},
                metrics=self.metrics,
                config=self.config,
            )
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="rest-server")
            self._background_tasks.append(task)
            self._rest_server = server
            self._log.info("rest api started", port=self.config.api.port)
        except Exception as exc:
            raise ComponentError("rest", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubesd shutting down")
        self._running = False

        if self._rest_server is not None:
            self._rest_server.should_exit = True
        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._rest_server = None

        # Watchers before reconcilers: stop producing before the consumer goes away.
        for name, section in reversed(list(self.sections.items())):
            for watcher in section.watchers:
                await self._stop_component(watcher.name, watcher)
            await self._stop_component(f"reconciler/{name}", section.reconciler)
        self.sections.clear()

        await self._stop_k8s_client()
        log.info("kubesd stopped")

    async def _stop_component(self, name: str, component: object | None) -> None:
        """Call stop() on a component if it has that method, catching all errors."""
        if component is None:
            return
        log = self._log or get_logger("app")
        stop_fn = getattr(component, "stop", None)
        if stop_fn is None:
            return
        try:
            result = stop_fn()
            if asyncio.iscoroutine(result):
                await asyncio.wait_for(result, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))

    async def _stop_k8s_client(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._k8s_client is None:
            return
        log = self._log or get_logger("app")
        try:
            await self._k8s_client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))
        self._k8s_client = None


def _kubesd_version() -> str:
    from kubesd import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeSDApp()
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app.running:
            await app.stop()


def run() -> None:
    """Console-script entry point (``kubesd``)."""
    asyncio.run(main())
