"""Results Ledger - append-only record of survey submissions.

The ledger is a single JSON array document. Entries are kept in arrival
order; an append never removes or reorders earlier submissions.

The read-modify-write of an append runs under the document store's per-key
lock, so concurrent appends serialize instead of overwriting each other.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from .document_store import DocumentStore
from .errors import CorruptDocument, InvalidInput

logger = logging.getLogger(__name__)

RESULTS_KEY = "survey_results"


@dataclass
class ResultSubmission:
    """One respondent's answers plus the time they were submitted.

    The timestamp is metadata only; ordering comes from ledger position.
    """

    timestamp: str
    results: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class AppendOutcome:
    """Result of a successful append."""

    path: Path
    total_submissions: int
    bytes_written: int


class ResultsLedger:
    """Append-only ledger of survey result submissions.

    Example:
        ledger = ResultsLedger(DocumentStore("data"))

        outcome = ledger.append_result({"q1": "hello"})
        outcome.total_submissions  # 1

        ledger.get_results()
        # [{"timestamp": "2026-01-01T12:00:00+00:00", "results": {"q1": "hello"}}]
    """

    def __init__(
        self,
        store: DocumentStore,
        key: str = RESULTS_KEY,
        time_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            store: Document store holding the ledger document
            key: Document key for the ledger
            time_provider: Clock used to stamp submissions without a timestamp
        """
        self._store = store
        self._key = key
        self._time_provider = time_provider or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        """Get the file path of the ledger document."""
        return self._store.path_for(self._key)

    def exists(self) -> bool:
        """Check whether the ledger document has been written."""
        return self._store.exists(self._key)

    def _load(self) -> list[Any]:
        """Read the stored ledger, treating an absent document as empty."""
        entries = self._store.read(self._key)
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise CorruptDocument(
                self._key, f"expected a JSON array, found {type(entries).__name__}"
            )
        return entries

    def get_results(self) -> list[Any]:
        """Get every submission in arrival order.

        Returns:
            List of submission dicts; empty if nothing has been submitted

        Raises:
            CorruptDocument: If the stored ledger is not a valid JSON array
            ReadFailure: If the document cannot be read
        """
        return self._load()

    def count(self) -> int:
        """Count stored submissions."""
        return len(self._load())

    def append_result(
        self,
        results: Any,
        timestamp: Any = None,
    ) -> AppendOutcome:
        """Append one submission at the tail of the ledger.

        Args:
            results: Respondent answers; must be a non-empty JSON object
            timestamp: ISO-8601 string; defaults to the current UTC time

        Returns:
            AppendOutcome with the new total and bytes written

        Raises:
            InvalidInput: If results are missing/empty or timestamp is not a string
            CorruptDocument: If the stored ledger is unreadable (nothing is written)
            StoreFailure: If the write fails (previous ledger is kept)
        """
        if not isinstance(results, dict) or not results:
            logger.info("Rejected submission: results are missing or empty")
            raise InvalidInput("results data is required")
        if timestamp is not None and not isinstance(timestamp, str):
            raise InvalidInput("timestamp must be an ISO-8601 string")

        submission = ResultSubmission(
            timestamp=timestamp or self._time_provider().isoformat(timespec="seconds"),
            results=results,
        )

        with self._store.lock(self._key):
            entries = self._load()
            entries.append(submission.to_dict())
            bytes_written = self._store.write(self._key, entries)

        logger.info(
            f"Submission appended: total={len(entries)} bytes={bytes_written}"
        )
        return AppendOutcome(
            path=self.path,
            total_submissions=len(entries),
            bytes_written=bytes_written,
        )


__all__ = ["ResultsLedger", "ResultSubmission", "AppendOutcome", "RESULTS_KEY"]
