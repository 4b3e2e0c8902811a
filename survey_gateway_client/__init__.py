"""Survey Gateway Client SDK.

Provides async and sync interfaces for the survey editor and viewer to
load/save the survey schema and load/append respondent results.

Example:
    >>> from survey_gateway_client import SurveyClient
    >>> async with SurveyClient("http://localhost:8080") as client:
    ...     survey = await client.load_survey()
    ...     await client.save_results({"q1": "hello"})
"""

from .client import (
    SaveResultsResult,
    SaveSurveyResult,
    SurveyClient,
    SurveyClientConfig,
    SurveyClientError,
    SurveyClientSync,
    SurveyConnectionError,
    SurveyNotFoundError,
    SurveyServerError,
    SurveyValidationError,
)

__all__ = [
    "SurveyClient",
    "SurveyClientSync",
    "SurveyClientConfig",
    "SurveyClientError",
    "SurveyConnectionError",
    "SurveyValidationError",
    "SurveyNotFoundError",
    "SurveyServerError",
    "SaveSurveyResult",
    "SaveResultsResult",
]
__version__ = "0.1.0"
