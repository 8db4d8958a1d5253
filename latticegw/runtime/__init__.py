"""Watch, queue and worker runtime."""

from latticegw.runtime.controllers import (
    Controller,
    ControllerSpec,
    build_controllers,
    build_watchers,
    log_reconcile,
)
from latticegw.runtime.queue import RequestCollector, RequestQueue
from latticegw.runtime.watcher import ResourceWatcher

__all__ = [
    "Controller",
    "ControllerSpec",
    "RequestCollector",
    "RequestQueue",
    "ResourceWatcher",
    "build_controllers",
    "build_watchers",
    "log_reconcile",
]
