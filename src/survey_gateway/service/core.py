"""Core Survey Gateway service - request semantics over the persistence layer."""

from __future__ import annotations

import os
from datetime import datetime
from typing import Any, Callable

from .. import __version__
from ..persistence.document_store import DocumentStore, decode_document
from ..persistence.errors import CorruptDocument, StoreFailure, SurveyStoreError
from ..persistence.ledger import ResultsLedger
from ..persistence.schema_repository import SchemaRepository
from .config import GatewayConfig
from .logging import get_logger
from .metrics import get_metrics
from .models import (
    DocumentHealth,
    HealthResponse,
    SaveResultsResponse,
    SaveSurveyResponse,
    SurveyResponse,
)

logger = get_logger(__name__)


class InvalidRequest(SurveyStoreError):
    """The request body could not be parsed as JSON."""


def parse_request_body(raw: bytes) -> Any:
    """Parse a raw request body as strict JSON.

    Raises:
        InvalidRequest: If the body is empty or not valid JSON
    """
    try:
        return decode_document(raw)
    except ValueError as e:
        raise InvalidRequest(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise InvalidRequest("Invalid JSON: nesting too deep") from e


def _field(payload: Any, name: str) -> Any:
    """Get a top-level field from a request payload that may not be an object."""
    if isinstance(payload, dict):
        return payload.get(name)
    return None


class SurveyService:
    """Core Survey Gateway service.

    Provides:
    - Survey schema load/save
    - Result submission load/append
    - Storage health checks
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        store: DocumentStore | None = None,
        schema_repository: SchemaRepository | None = None,
        results_ledger: ResultsLedger | None = None,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config

        self._store = store or DocumentStore(config.data_dir)
        self._schema = schema_repository or SchemaRepository(
            self._store, key=config.schema_key
        )
        self._ledger = results_ledger or ResultsLedger(
            self._store, key=config.results_key, time_provider=time_provider
        )

    # -----------------------------------------------------------------------
    # Survey Schema
    # -----------------------------------------------------------------------

    def load_survey(self) -> SurveyResponse | None:
        """Load the current survey, or None if none has been saved."""
        try:
            survey = self._schema.get_schema()
        except CorruptDocument as e:
            get_metrics().record_corrupt_read(e.key)
            logger.error("survey_schema_corrupt", key=e.key, reason=e.reason)
            raise

        if survey is None:
            return None
        return SurveyResponse(survey=survey)

    def save_survey(self, payload: Any) -> SaveSurveyResponse:
        """Replace the survey schema with ``payload["survey"]``."""
        outcome = self._schema.put_schema(_field(payload, "survey"))
        get_metrics().record_schema_save(outcome.bytes_written)
        logger.info("survey_saved", bytes_written=outcome.bytes_written)
        return SaveSurveyResponse(
            file=str(outcome.path),
            bytes_written=outcome.bytes_written,
        )

    # -----------------------------------------------------------------------
    # Results
    # -----------------------------------------------------------------------

    def load_results(self) -> list[Any]:
        """Load every stored submission in arrival order."""
        try:
            return self._ledger.get_results()
        except CorruptDocument as e:
            get_metrics().record_corrupt_read(e.key)
            logger.error("survey_results_corrupt", key=e.key, reason=e.reason)
            raise

    def save_results(self, payload: Any) -> SaveResultsResponse:
        """Append ``payload["results"]`` (and optional timestamp) to the ledger."""
        try:
            outcome = self._ledger.append_result(
                _field(payload, "results"),
                timestamp=_field(payload, "timestamp"),
            )
        except CorruptDocument as e:
            get_metrics().record_corrupt_read(e.key)
            logger.error("survey_results_corrupt", key=e.key, reason=e.reason)
            raise

        get_metrics().record_result_append(outcome.bytes_written)
        logger.info(
            "results_saved",
            total_submissions=outcome.total_submissions,
            bytes_written=outcome.bytes_written,
        )
        return SaveResultsResponse(
            file=str(outcome.path),
            total_submissions=outcome.total_submissions,
            bytes_written=outcome.bytes_written,
        )

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------

    def _check_document(self, probe: Callable[[], Any], exists: bool) -> DocumentHealth:
        if not exists:
            return DocumentHealth(status="absent")
        try:
            probe()
        except CorruptDocument as e:
            return DocumentHealth(status="corrupt", error=str(e))
        except StoreFailure as e:
            return DocumentHealth(status="unhealthy", error=str(e))
        return DocumentHealth(status="healthy")

    def health(self) -> HealthResponse:
        """Check the data directory and both documents."""
        data_dir = self._store.data_dir
        if not data_dir.exists():
            # Created on first write
            dir_check = DocumentHealth(status="absent")
        elif data_dir.is_dir() and os.access(data_dir, os.W_OK):
            dir_check = DocumentHealth(status="healthy")
        else:
            dir_check = DocumentHealth(
                status="unhealthy", error=f"{data_dir} is not a writable directory"
            )

        checks = {
            "data_dir": dir_check,
            "survey_schema": self._check_document(
                self._schema.get_schema, self._schema.exists()
            ),
            "survey_results": self._check_document(
                self._ledger.count, self._ledger.exists()
            ),
        }
        healthy = all(c.status in ("healthy", "absent") for c in checks.values())
        return HealthResponse(
            status="ok" if healthy else "degraded",
            version=__version__,
            checks=checks,
        )


__all__ = ["SurveyService", "InvalidRequest", "parse_request_body"]
