"""AdmissionReview (admission.k8s.io/v1) request and response bodies."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AdmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uid: str
    operation: str = "CREATE"
    namespace: str = ""
    name: str = ""
    object: dict[str, Any] | None = None


class AdmissionReview(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    request: AdmissionRequest | None = None


class AdmissionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    allowed: bool = True
    patch: str | None = None
    patch_type: str | None = Field(default=None, alias="patchType")


class AdmissionReviewResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    response: AdmissionResponse


class ErrorResponse(BaseModel):
    error: str
    detail: str
