"""Error taxonomy for the survey persistence layer.

Every error raised by the document store and the repositories built on it
derives from SurveyStoreError, so the API boundary can translate them into a
single failure envelope.
"""

from __future__ import annotations


class SurveyStoreError(Exception):
    """Base exception for survey persistence errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(SurveyStoreError):
    """Well-formed payload with a missing or empty required field."""


class CorruptDocument(SurveyStoreError):
    """Stored bytes exist but are not a valid document."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid JSON in {key} file: {reason}")
        self.key = key
        self.reason = reason


class InvalidStoredSchema(CorruptDocument):
    """The survey schema document could not be parsed."""


class StoreFailure(SurveyStoreError):
    """The storage medium could not complete the operation."""


class StoreUnavailable(StoreFailure):
    """The data directory is missing and could not be created."""

    def __init__(self, reason: str):
        super().__init__(f"Failed to create data directory: {reason}")
        self.reason = reason


class ReadFailure(StoreFailure):
    """A document exists but could not be read."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to read {key} file: {reason}")
        self.key = key
        self.reason = reason


class WriteFailure(StoreFailure):
    """A document could not be durably replaced."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Failed to write {key} file. Check file permissions. ({reason})"
        )
        self.key = key
        self.reason = reason


class EncodeFailure(StoreFailure):
    """A document could not be serialized to JSON."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to encode {key} data: {reason}")
        self.key = key
        self.reason = reason


__all__ = [
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
