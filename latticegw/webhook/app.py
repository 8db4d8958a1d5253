"""FastAPI application factory for the pod mutating webhook.

Usage::

    from latticegw.webhook.app import create_app

    app = create_app(injector=PodReadinessGateInjector(decider))

Admission never blocks pod creation: every review is answered with
``allowed: true``, with a JSONPatch only when the readiness gate was added.
"""

from __future__ import annotations

import base64
import copy
import json
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from latticegw.models.resources import Pod
from latticegw.store.decode import decode
from latticegw.webhook.injector import PodReadinessGateInjector
from latticegw.webhook.readiness import READINESS_GATE_CONDITION_TYPE
from latticegw.webhook.schemas import AdmissionResponse, AdmissionReview, AdmissionReviewResponse, ErrorResponse

_log = structlog.get_logger(component="webhook.app")


def _pod_from_request(raw: dict[str, Any], namespace: str, name: str) -> Pod:
    """Decode the admitted pod; pods created from generateName have no name yet."""
    raw = copy.deepcopy(raw)
    metadata = raw.setdefault("metadata", {})
    metadata["namespace"] = metadata.get("namespace") or namespace
    metadata["name"] = metadata.get("name") or name or metadata.get("generateName") or "<unnamed>"
    return decode(Pod, raw)


def readiness_gate_patch(raw_pod: dict[str, Any]) -> list[dict[str, Any]]:
    """JSONPatch appending the readiness gate to ``raw_pod``."""
    gate = {"conditionType": READINESS_GATE_CONDITION_TYPE}
    if (raw_pod.get("spec") or {}).get("readinessGates"):
        return [{"op": "add", "path": "/spec/readinessGates/-", "value": gate}]
    return [{"op": "add", "path": "/spec/readinessGates", "value": [gate]}]


def create_app(injector: PodReadinessGateInjector) -> FastAPI:
    """Create the webhook application.

    Args:
        injector: Readiness gate injector consulted for every created pod.

    Returns:
        FastAPI application serving ``/mutate-pod``, ``/healthz`` and ``/metrics``.
    """
    from latticegw import __version__

    app = FastAPI(title="latticegw webhook", version=__version__, docs_url=None, redoc_url=None)
    app.state.injector = injector
    app.mount("/metrics", make_asgi_app())

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/mutate-pod")
    async def mutate_pod(review: AdmissionReview) -> JSONResponse:
        req = review.request
        if req is None:
            return JSONResponse(
                status_code=400,
                content=ErrorResponse(error="INVALID_REVIEW", detail="AdmissionReview without request").model_dump(),
            )

        response = AdmissionResponse(uid=req.uid, allowed=True)
        if req.operation != "CREATE" or not req.object:
            return _review_response(response)

        try:
            pod = _pod_from_request(req.object, req.namespace, req.name)
        except (ValueError, TypeError) as exc:
            _log.warning("admission_pod_decode_failed", uid=req.uid, error=str(exc))
            return _review_response(response)

        if await app.state.injector.mutate(pod):
            patch = readiness_gate_patch(req.object)
            response.patch = base64.b64encode(json.dumps(patch).encode()).decode()
            response.patch_type = "JSONPatch"
        _log.debug("admission_reviewed", uid=req.uid, pod=str(pod.key), patched=response.patch is not None)
        return _review_response(response)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first_msg = str(errors[0].get("msg", "")) if errors else ""
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REVIEW", detail=first_msg).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error("unhandled_exception", path=str(request.url.path), method=request.method, error=str(exc))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", detail="An unexpected error occurred.").model_dump(),
        )

    return app


def _review_response(response: AdmissionResponse) -> JSONResponse:
    body = AdmissionReviewResponse(response=response)
    return JSONResponse(content=body.model_dump(by_alias=True, exclude_none=True))
