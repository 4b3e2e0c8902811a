"""FastAPI router for the Survey Gateway.

Implements the four persistence endpoints consumed by the survey editor
and viewer:
- GET  /api/load_survey
- POST /api/save_survey
- GET  /api/load_results
- POST /api/save_results

Each is also reachable under its legacy `.php` name.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from .core import SurveyService, parse_request_body
from .executor import run_in_executor
from .middleware import LEGACY_SUFFIX
from .models import (
    SaveResultsResponse,
    SaveSurveyResponse,
    SurveyNotFoundResponse,
    SurveyResponse,
)

LOAD_SURVEY_PATH = "/api/load_survey"
SAVE_SURVEY_PATH = "/api/save_survey"
LOAD_RESULTS_PATH = "/api/load_results"
SAVE_RESULTS_PATH = "/api/save_results"


def build_router(service: SurveyService) -> APIRouter:
    """Build the Survey Gateway API router.

    Args:
        service: The SurveyService instance

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    # -----------------------------------------------------------------------
    # Survey Schema Endpoints
    # -----------------------------------------------------------------------

    @router.get(
        LOAD_SURVEY_PATH,
        response_model=SurveyResponse,
        responses={404: {"model": SurveyNotFoundResponse}},
    )
    async def load_survey() -> Any:
        """Get the current survey schema."""
        survey = await run_in_executor(service.load_survey)
        if survey is None:
            return JSONResponse(
                status_code=404,
                content=SurveyNotFoundResponse().model_dump(),
            )
        return survey

    @router.post(SAVE_SURVEY_PATH, response_model=SaveSurveyResponse)
    async def save_survey(request: Request) -> SaveSurveyResponse:
        """Replace the survey schema.

        Body: {"survey": {...}}
        """
        payload = parse_request_body(await request.body())
        return await run_in_executor(service.save_survey, payload)

    # -----------------------------------------------------------------------
    # Results Endpoints
    # -----------------------------------------------------------------------

    @router.get(LOAD_RESULTS_PATH)
    async def load_results() -> JSONResponse:
        """Get every submission in arrival order (empty list if none)."""
        results = await run_in_executor(service.load_results)
        return JSONResponse(content=results)

    @router.post(SAVE_RESULTS_PATH, response_model=SaveResultsResponse)
    async def save_results(request: Request) -> SaveResultsResponse:
        """Append one submission.

        Body: {"timestamp": "<ISO-8601, optional>", "results": {...}}
        """
        payload = parse_request_body(await request.body())
        return await run_in_executor(service.save_results, payload)

    # -----------------------------------------------------------------------
    # Legacy script names
    # -----------------------------------------------------------------------

    # Deployed front ends still call the endpoints as /api/<name>.php
    for path, endpoint, method in (
        (LOAD_SURVEY_PATH, load_survey, "GET"),
        (SAVE_SURVEY_PATH, save_survey, "POST"),
        (LOAD_RESULTS_PATH, load_results, "GET"),
        (SAVE_RESULTS_PATH, save_results, "POST"),
    ):
        router.add_api_route(
            f"{path}{LEGACY_SUFFIX}",
            endpoint,
            methods=[method],
            include_in_schema=False,
        )

    return router
