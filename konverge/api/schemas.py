"""Pydantic response models for the status API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-2xx response."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str


class FailureItem(BaseModel):
    operation: str
    resource: str
    error: str
    status: int | None = None


class PassSummary(BaseModel):
    """Outcome of the most recent completed pass."""

    started_at: str
    finished_at: str | None
    duration_seconds: float
    live: int
    desired: int
    created: int
    updated: int
    deleted: int
    unchanged: int
    failures: list[FailureItem] = Field(default_factory=list)


class StatusResponse(BaseModel):
    running: bool
    directory: str
    apply_mode: str
    passes_completed: int
    last_error: str | None = None
    last_pass: PassSummary | None = None
