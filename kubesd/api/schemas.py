"""Pydantic response schemas for the kubesd REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str = ""


class HealthResponse(BaseModel):
    status: str
    version: str
    sections: dict[str, bool] = Field(default_factory=dict)


class SectionSummary(BaseModel):
    name: str
    running: bool
    targets: int


class TargetGroup(BaseModel):
    """All label sets discovered for one sync key."""

    key: str
    section: str
    labels: list[dict[str, str]]


class TargetsResponse(BaseModel):
    count: int
    targets: list[TargetGroup]
