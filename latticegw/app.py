"""Application bootstrap for latticegw.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → K8s client → object store → controllers
              → watchers → webhook

Shutdown is graceful: components are stopped in reverse startup order.
Each component's stop error is caught and logged independently so that a
single component failure does not prevent the rest from shutting down.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from latticegw.config import load_config
from latticegw.models.config import LatticeGWConfig
from latticegw.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

    from latticegw.runtime.controllers import Controller
    from latticegw.store.kube import KubeObjectStore

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


async def load_kube_config() -> None:
    """Load in-cluster config, falling back to the local kubeconfig."""
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    log = get_logger("app")
    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        log.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        log.info("k8s client configured from kubeconfig")


class LatticeGWApp:
    """Application root. Owns every component and coordinates their lifecycle.

    Calling ``stop()`` on an app that was never started (or already
    stopped) is safe.
    """

    def __init__(self) -> None:
        self.config: LatticeGWConfig | None = None

        self._store: KubeObjectStore | None = None
        self._controllers: list[Controller] = []
        self._webhook_server: object | None = None

        # Background tasks that must be cancelled on shutdown
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info(
            "latticegw starting",
            version=_latticegw_version(),
            controller_name=self.config.controller.controller_name,
        )

        # --- 3. Kubernetes client and store ------------------------------
        await self._start_store()

        # --- 4. Controllers and their queues -----------------------------
        await self._start_controllers()

        # --- 5. Pod readiness gate webhook (optional) --------------------
        await self._start_webhook()

        self._running = True
        self._log.info("latticegw started", controllers=len(self._controllers))

    async def _start_store(self) -> None:
        assert self._log is not None
        self._log.debug("starting object store")
        try:
            await load_kube_config()

            from latticegw.store.kube import KubeObjectStore

            self._store = KubeObjectStore()
            self._log.info("object store started")
        except Exception as exc:
            raise _ComponentError("store", exc) from exc

    async def _start_controllers(self) -> None:
        """Build every controller, start its worker, then start one watcher per kind."""
        assert self._log is not None
        assert self.config is not None
        assert self._store is not None
        self._log.debug("starting controllers")
        try:
            from latticegw.runtime.controllers import Controller, build_controllers, build_watchers

            specs = build_controllers(self._store, self.config)
            for spec in specs:
                controller = Controller(spec)
                self._controllers.append(controller)
                task = asyncio.create_task(controller.run(), name=f"controller-{spec.name}")
                self._background_tasks.append(task)

            watchers = build_watchers(
                self._store,
                specs,
                namespace=self.config.controller.watch_namespace or None,
                timeout_seconds=self.config.controller.watch_timeout_seconds,
            )
            for watcher in watchers:
                task = asyncio.create_task(watcher.run(), name=f"watch-{watcher.cls.KIND}")
                self._background_tasks.append(task)
            self._log.info("controllers started", controllers=len(specs), watchers=len(watchers))
        except Exception as exc:
            raise _ComponentError("controllers", exc) from exc

    async def _start_webhook(self) -> None:
        """Start the uvicorn webhook server."""
        assert self._log is not None
        assert self.config is not None
        assert self._store is not None
        if not self.config.webhook.enabled:
            self._log.info("webhook disabled (LATTICEGW_WEBHOOK_ENABLED=false)")
            return

        self._log.debug("starting webhook")
        try:
            import uvicorn  # type: ignore[import-untyped]

            from latticegw.webhook.app import create_app
            from latticegw.webhook.injector import PodReadinessGateInjector
            from latticegw.webhook.readiness import PodReadinessGateDecider

            decider = PodReadinessGateDecider(self._store, self.config.controller.controller_name)
            fastapi_app = create_app(injector=PodReadinessGateInjector(decider))
            webhook = self.config.webhook
            uv_config = uvicorn.Config(
                app=fastapi_app,
                host="0.0.0.0",
                port=webhook.port,
                ssl_certfile=webhook.cert_file or None,
                ssl_keyfile=webhook.key_file or None,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="webhook-server")
            self._background_tasks.append(task)
            self._webhook_server = server
            self._log.info("webhook started", port=webhook.port, tls=bool(webhook.cert_file))
        except Exception as exc:
            raise _ComponentError("webhook", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Gracefully stop all components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("latticegw shutting down")
        self._running = False

        if self._webhook_server is not None:
            self._webhook_server.should_exit = True  # type: ignore[attr-defined]

        # Drain queues so workers return, then cancel the watch loops.
        for controller in self._controllers:
            controller.stop()

        for task in reversed(self._background_tasks):
            if not task.done():
                task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._controllers.clear()

        await self._stop_store()
        log.info("latticegw stopped")

    async def _stop_store(self) -> None:
        """Close the kubernetes-asyncio ApiClient connection pool."""
        if self._store is None:
            return
        log = self._log or get_logger("app")
        try:
            await asyncio.wait_for(self._store.close(), timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("store close timed out", timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("store close raised an error", error=str(exc))
        self._store = None


def _latticegw_version() -> str:
    from latticegw import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = LatticeGWApp()
    loop = asyncio.get_running_loop()

    shutdown_triggered = False

    def _request_shutdown() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            return
        shutdown_triggered = True
        asyncio.create_task(app.stop(), name="shutdown")

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        while app._running:
            await asyncio.sleep(1)
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        if app._running:
            await app.stop()
