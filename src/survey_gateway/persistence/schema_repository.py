"""Schema Repository - the single survey schema slot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .document_store import DocumentStore
from .errors import CorruptDocument, InvalidInput, InvalidStoredSchema

logger = logging.getLogger(__name__)

SCHEMA_KEY = "survey_schema"


@dataclass(frozen=True, slots=True)
class SaveOutcome:
    """Result of a successful schema write."""

    path: Path
    bytes_written: int


class SchemaRepository:
    """Accessor for the one survey schema document.

    A put fully replaces the stored schema; there is no merge and no history.

    Example:
        repo = SchemaRepository(DocumentStore("data"))
        repo.put_schema({"pages": [{"name": "page1", "elements": []}]})
        schema = repo.get_schema()  # None until the first put
    """

    def __init__(self, store: DocumentStore, key: str = SCHEMA_KEY) -> None:
        self._store = store
        self._key = key

    @property
    def path(self) -> Path:
        """Get the file path of the schema document."""
        return self._store.path_for(self._key)

    def exists(self) -> bool:
        """Check whether a schema has been saved."""
        return self._store.exists(self._key)

    def get_schema(self) -> Any | None:
        """Load the current schema.

        Returns:
            The stored schema, or None if no survey has been saved yet

        Raises:
            InvalidStoredSchema: If the stored document is not valid JSON
            ReadFailure: If the document cannot be read
        """
        try:
            return self._store.read(self._key)
        except CorruptDocument as e:
            raise InvalidStoredSchema(e.key, e.reason) from e

    def put_schema(self, schema: Any) -> SaveOutcome:
        """Replace the stored schema.

        Args:
            schema: Survey definition; must be a non-empty JSON object

        Returns:
            SaveOutcome with the document path and bytes written

        Raises:
            InvalidInput: If schema is missing, empty or not an object
            StoreFailure: If the write fails (previous schema is kept)
        """
        if not isinstance(schema, dict) or not schema:
            logger.info("Rejected schema save: survey is missing or empty")
            raise InvalidInput("survey is required")

        bytes_written = self._store.write(self._key, schema)
        logger.info(f"Survey schema saved ({bytes_written} bytes)")
        return SaveOutcome(path=self.path, bytes_written=bytes_written)


__all__ = ["SchemaRepository", "SaveOutcome", "SCHEMA_KEY"]
