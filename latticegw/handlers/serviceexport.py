"""ServiceExport -> co-named Service."""

from __future__ import annotations

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import KubeObject, Service, ServiceExport
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import store_errors_total
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("handlers.serviceexport")


class ServiceExportEventHandler(EventHandler):
    name = "serviceexport"

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, ServiceExport)
        await self._enqueue_impacted_service(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        assert isinstance(new, ServiceExport)
        if old != new:
            await self._enqueue_impacted_service(new, sink)

    async def _enqueue_impacted_service(self, export: ServiceExport, sink: RequestSink) -> None:
        try:
            await self._store.get(Service, export.key)
        except NotFoundError:
            _log.debug("service_export_without_service", service_export=str(export.key))
            return
        except StoreError as exc:
            _log.error("service_lookup_failed", service_export=str(export.key), error=str(exc))
            store_errors_total.labels(operation="get_service").inc()
            return
        self.enqueue(sink, export.key)
