"""Survey Gateway client implementation with async/sync interfaces."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SurveyClientError(Exception):
    """Base exception for Survey Gateway client errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SurveyConnectionError(SurveyClientError):
    """Connection to the gateway failed."""
    pass


class SurveyValidationError(SurveyClientError):
    """The gateway rejected the request (400/405)."""
    pass


class SurveyNotFoundError(SurveyClientError):
    """Resource not found."""
    pass


class SurveyServerError(SurveyClientError):
    """The gateway failed to read or write its documents (5xx)."""
    pass


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class SurveyClientConfig:
    """Configuration for SurveyClient."""

    base_url: str = "http://localhost:8080"
    timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 1.0
    connection_pool_size: int = 10

    @classmethod
    def from_env(cls) -> "SurveyClientConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.environ.get("SURVEY_URL", "http://localhost:8080"),
            timeout=float(os.environ.get("SURVEY_TIMEOUT", "30.0")),
            max_retries=int(os.environ.get("SURVEY_MAX_RETRIES", "3")),
        )


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class SaveSurveyResult:
    """Result of saving the survey schema."""

    message: str
    file: str
    bytes_written: int


@dataclass(slots=True)
class SaveResultsResult:
    """Result of appending a submission."""

    message: str
    file: str
    total_submissions: int
    bytes_written: int


def _error_message(response: httpx.Response) -> str:
    """Extract the gateway's failure message from a response."""
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text}"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {response.status_code}: {response.text}"


# ---------------------------------------------------------------------------
# Async Client
# ---------------------------------------------------------------------------


class SurveyClient:
    """Async client for the Survey Gateway.

    Example:
        >>> async with SurveyClient("http://localhost:8080") as client:
        ...     await client.save_survey({"pages": [...]})
        ...     survey = await client.load_survey()
        ...     await client.save_results({"q1": "hello"})
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = SurveyClientConfig(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=max_retries,
            retry_backoff=retry_backoff,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: SurveyClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SurveyClient":
        """Create a client from a SurveyClientConfig."""
        return cls(
            config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_backoff=config.retry_backoff,
            transport=transport,
        )

    async def __aenter__(self) -> "SurveyClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                transport=self._transport,
                limits=httpx.Limits(
                    max_connections=self._config.connection_pool_size,
                    max_keepalive_connections=5,
                ),
            )
        return self._client

    async def close(self) -> None:
        """Close the client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> Any:
        """Make request with retry logic.

        Failures to connect are retried with exponential backoff for every
        method. Timeouts and 5xx responses are retried only for idempotent
        methods; a POST that reached the server is sent at most once. 4xx
        responses are raised immediately.
        """
        client = await self._ensure_client()
        headers = {"X-Correlation-ID": correlation_id} if correlation_id else {}
        idempotent = method.upper() in _IDEMPOTENT_METHODS

        last_error: Exception | None = None
        for attempt in range(self._config.max_retries):
            try:
                response = await client.request(method, path, json=json, headers=headers)

                if response.status_code == 404:
                    raise SurveyNotFoundError(_error_message(response), 404)
                elif response.status_code in (400, 405):
                    raise SurveyValidationError(
                        _error_message(response), response.status_code
                    )
                elif response.status_code >= 500:
                    last_error = SurveyServerError(
                        _error_message(response), response.status_code
                    )
                    if not idempotent:
                        raise last_error
                else:
                    response.raise_for_status()
                    return response.json()

            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                last_error = SurveyConnectionError(f"Connection failed: {e}")
            except httpx.TimeoutException as e:
                last_error = SurveyConnectionError(f"Request timed out: {e}")
                if not idempotent:
                    raise last_error from e
            except SurveyClientError:
                raise  # Don't retry validation/not-found errors
            except httpx.HTTPStatusError as e:
                raise SurveyClientError(
                    f"HTTP {e.response.status_code}: {e.response.text}",
                    e.response.status_code,
                ) from e

            if attempt < self._config.max_retries - 1:
                delay = self._config.retry_backoff * (2 ** attempt)
                logger.debug(f"Retry {attempt + 1}/{self._config.max_retries} after {delay}s")
                await asyncio.sleep(delay)

        if last_error:
            raise last_error
        raise SurveyConnectionError("Request failed after retries")

    # -----------------------------------------------------------------------
    # Survey Schema API
    # -----------------------------------------------------------------------

    async def load_survey(
        self,
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any] | None:
        """Load the current survey schema.

        Returns:
            The schema, or None if no survey has been saved yet.
        """
        try:
            data = await self._request(
                "GET", "/api/load_survey", correlation_id=correlation_id
            )
        except SurveyNotFoundError:
            return None
        return data.get("survey")

    async def save_survey(
        self,
        survey: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> SaveSurveyResult:
        """Replace the survey schema.

        Args:
            survey: Survey definition (non-empty JSON object).
            correlation_id: Optional request correlation ID.
        """
        data = await self._request(
            "POST",
            "/api/save_survey",
            json={"survey": survey},
            correlation_id=correlation_id,
        )
        return SaveSurveyResult(
            message=data.get("message", ""),
            file=data.get("file", ""),
            bytes_written=data.get("bytes_written", 0),
        )

    # -----------------------------------------------------------------------
    # Results API
    # -----------------------------------------------------------------------

    async def load_results(
        self,
        *,
        correlation_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Load every submission in arrival order."""
        return await self._request(
            "GET", "/api/load_results", correlation_id=correlation_id
        )

    async def save_results(
        self,
        results: dict[str, Any],
        *,
        timestamp: str | None = None,
        correlation_id: str | None = None,
    ) -> SaveResultsResult:
        """Append one respondent's answers.

        Args:
            results: Answers keyed by question name.
            timestamp: ISO-8601 submission time; defaults to now (UTC).
            correlation_id: Optional request correlation ID.
        """
        payload = {
            "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "results": results,
        }
        data = await self._request(
            "POST",
            "/api/save_results",
            json=payload,
            correlation_id=correlation_id,
        )
        return SaveResultsResult(
            message=data.get("message", ""),
            file=data.get("file", ""),
            total_submissions=data.get("total_submissions", 0),
            bytes_written=data.get("bytes_written", 0),
        )

    # -----------------------------------------------------------------------
    # Health API
    # -----------------------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        """Get service health status."""
        return await self._request("GET", "/healthz")

    async def ready(self) -> bool:
        """Check if service is ready."""
        try:
            data = await self._request("GET", "/ready")
            return data.get("ready", False)
        except SurveyClientError:
            return False


# ---------------------------------------------------------------------------
# Sync Client Wrapper
# ---------------------------------------------------------------------------


class SurveyClientSync:
    """Synchronous wrapper for SurveyClient.

    Each call runs on its own event loop, so this must not be used from
    inside a running loop; use SurveyClient there instead.

    Example:
        >>> client = SurveyClientSync("http://localhost:8080")
        >>> client.save_results({"q1": "hello"}).total_submissions
        1
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._async_client = SurveyClient(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )

    def _run(self, coro):
        """Run a coroutine to completion and release the connection pool."""

        async def _call():
            try:
                return await coro
            finally:
                await self._async_client.close()

        return asyncio.run(_call())

    def load_survey(self, *, correlation_id: str | None = None) -> dict[str, Any] | None:
        """Load the current survey schema (None if absent)."""
        return self._run(self._async_client.load_survey(correlation_id=correlation_id))

    def save_survey(
        self,
        survey: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> SaveSurveyResult:
        """Replace the survey schema."""
        return self._run(
            self._async_client.save_survey(survey, correlation_id=correlation_id)
        )

    def load_results(self, *, correlation_id: str | None = None) -> list[dict[str, Any]]:
        """Load every submission in arrival order."""
        return self._run(self._async_client.load_results(correlation_id=correlation_id))

    def save_results(
        self,
        results: dict[str, Any],
        *,
        timestamp: str | None = None,
        correlation_id: str | None = None,
    ) -> SaveResultsResult:
        """Append one respondent's answers."""
        return self._run(
            self._async_client.save_results(
                results,
                timestamp=timestamp,
                correlation_id=correlation_id,
            )
        )

    def health(self) -> dict[str, Any]:
        """Get service health status."""
        return self._run(self._async_client.health())

    def ready(self) -> bool:
        """Check if service is ready."""
        return self._run(self._async_client.ready())
