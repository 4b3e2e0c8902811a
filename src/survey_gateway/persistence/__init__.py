"""Persistence layer - document store, schema slot and results ledger."""

from .document_store import DocumentStore
from .errors import (
    CorruptDocument,
    EncodeFailure,
    InvalidInput,
    InvalidStoredSchema,
    ReadFailure,
    StoreFailure,
    StoreUnavailable,
    SurveyStoreError,
    WriteFailure,
)
from .ledger import AppendOutcome, ResultsLedger, ResultSubmission
from .schema_repository import SaveOutcome, SchemaRepository

__all__ = [
    "DocumentStore",
    "SchemaRepository",
    "SaveOutcome",
    "ResultsLedger",
    "ResultSubmission",
    "AppendOutcome",
    "SurveyStoreError",
    "InvalidInput",
    "CorruptDocument",
    "InvalidStoredSchema",
    "StoreFailure",
    "StoreUnavailable",
    "ReadFailure",
    "WriteFailure",
    "EncodeFailure",
]
