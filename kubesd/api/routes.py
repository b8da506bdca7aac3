"""Route handlers for the kubesd REST API.

Dependencies (reconcilers, metrics) are read from ``request.app.state``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from kubesd.api.schemas import (
    ErrorResponse,
    HealthResponse,
    SectionSummary,
    TargetGroup,
    TargetsResponse,
)

if TYPE_CHECKING:
    from kubesd.discovery.reconciler import TargetReconciler

router = APIRouter()


def _reconcilers(request: Request) -> dict[str, TargetReconciler]:
    return request.app.state.reconcilers  # type: ignore[no-any-return]


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from kubesd import __version__

    sections = {name: rec.running for name, rec in _reconcilers(request).items()}
    status = "ok" if all(sections.values()) else "degraded"
    return HealthResponse(status=status, version=__version__, sections=sections)


@router.get("/sections", response_model=list[SectionSummary])
async def list_sections(request: Request) -> list[SectionSummary]:
    return [
        SectionSummary(name=name, running=rec.running, targets=rec.target_count())
        for name, rec in sorted(_reconcilers(request).items())
    ]


@router.get("/targets", response_model=TargetsResponse)
async def list_targets(
    request: Request,
    section: str | None = Query(default=None, max_length=253),
) -> TargetsResponse | JSONResponse:
    reconcilers = _reconcilers(request)
    if section is not None:
        if section not in reconcilers:
            return JSONResponse(
                status_code=404,
                content=ErrorResponse(error="SECTION_NOT_FOUND", detail=f"unknown section {section!r}").model_dump(),
            )
        selected = {section: reconcilers[section]}
    else:
        selected = reconcilers

    groups = [
        TargetGroup(key=key, section=name, labels=label_sets)
        for name, rec in sorted(selected.items())
        for key, label_sets in sorted(rec.targets().items())
    ]
    return TargetsResponse(count=sum(len(g.labels) for g in groups), targets=groups)
