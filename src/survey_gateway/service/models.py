"""Pydantic models backing the Survey Gateway API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class FailureResponse(BaseModel):
    """Uniform failure envelope for every endpoint."""

    success: bool = False
    message: str


class SurveyNotFoundResponse(FailureResponse):
    """Returned by the schema read before any survey has been saved."""

    message: str = "Survey not found"
    survey: None = None


# ---------------------------------------------------------------------------
# Schema Models
# ---------------------------------------------------------------------------


class SurveyResponse(BaseModel):
    """The current survey schema."""

    success: bool = True
    survey: Any


class SaveSurveyResponse(BaseModel):
    """Response from the schema save endpoint."""

    success: bool = True
    message: str = "Survey saved successfully"
    file: str = Field(description="Path of the persisted schema document")
    bytes_written: int


# ---------------------------------------------------------------------------
# Results Models
# ---------------------------------------------------------------------------


class SaveResultsResponse(BaseModel):
    """Response from the result append endpoint."""

    success: bool = True
    message: str = "Results saved successfully"
    file: str = Field(description="Path of the persisted results document")
    total_submissions: int
    bytes_written: int


# ---------------------------------------------------------------------------
# Health Models
# ---------------------------------------------------------------------------


class DocumentHealth(BaseModel):
    """Health of one stored document."""

    status: str = Field(description="healthy, absent, corrupt or unhealthy")
    error: str | None = None


class HealthResponse(BaseModel):
    """Response from the health endpoint."""

    status: str
    service: str = "survey-gateway"
    version: str
    checks: dict[str, DocumentHealth]


__all__ = [
    "FailureResponse",
    "SurveyNotFoundResponse",
    "SurveyResponse",
    "SaveSurveyResponse",
    "SaveResultsResponse",
    "DocumentHealth",
    "HealthResponse",
]
