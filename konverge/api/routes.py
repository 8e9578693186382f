"""Status API routes."""

from __future__ import annotations

from fastapi import APIRouter, Request

from konverge.api.schemas import FailureItem, HealthResponse, PassSummary, StatusResponse
from konverge.models.results import Operation, PassResult

router = APIRouter()


def summarize_pass(result: PassResult) -> PassSummary:
    return PassSummary(
        started_at=result.started_at.isoformat(),
        finished_at=result.finished_at.isoformat() if result.finished_at else None,
        duration_seconds=result.duration_seconds,
        live=result.live_count,
        desired=result.desired_count,
        created=result.count(Operation.CREATE),
        updated=result.count(Operation.UPDATE),
        deleted=result.count(Operation.DELETE),
        unchanged=result.count(Operation.SKIP),
        failures=[
            FailureItem(
                operation=f.operation.value,
                resource=str(f.identity),
                error=f.error,
                status=f.status,
            )
            for f in result.failures
        ],
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from konverge import __version__

    return HealthResponse(version=__version__)


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    loop = request.app.state.loop
    last = loop.last_result
    return StatusResponse(
        running=loop.running,
        directory=loop.directory,
        apply_mode=loop.mode.value,
        passes_completed=loop.passes_completed,
        last_error=loop.last_error,
        last_pass=summarize_pass(last) if last is not None else None,
    )
