"""Configuration primitives for the Survey Gateway service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from ..persistence.document_store import validate_key
from ..persistence.ledger import RESULTS_KEY
from ..persistence.schema_repository import SCHEMA_KEY


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_key(name: str, default: str) -> str:
    raw = os.environ.get(name) or default
    try:
        return validate_key(raw)
    except ValueError:
        raise ValueError(
            f"{name} must be a plain file name (letters, digits, _ . -), got {raw!r}"
        ) from None


@dataclass(slots=True)
class GatewayConfig:
    """Runtime configuration for the Survey Gateway.

    Configuration Sources (priority order):
    1. Direct constructor arguments
    2. Environment variables (SURVEY_*)
    3. Default values

    Attributes:
        data_dir: Directory holding the schema and results documents
        port: Service port (default: 8080)
        schema_key: Document key of the survey schema
        results_key: Document key of the results ledger
        cors_origins: Allowed CORS origins (default: any)

    Raises:
        ValueError: If a document key is not a plain file name
    """

    data_dir: str = "data"
    port: int = 8080
    schema_key: str = SCHEMA_KEY
    results_key: str = RESULTS_KEY
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self) -> None:
        validate_key(self.schema_key)
        validate_key(self.results_key)

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Create configuration from environment variables.

        Optional:
            SURVEY_DATA_DIR: Data directory (default: data)
            SURVEY_PORT: Service port (default: 8080)
            SURVEY_SCHEMA_KEY: Schema document key (default: survey_schema)
            SURVEY_RESULTS_KEY: Results document key (default: survey_results)
            SURVEY_CORS_ORIGINS: Comma-separated origins (default: *)
        """
        origins = [
            origin.strip()
            for origin in os.environ.get("SURVEY_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        return cls(
            data_dir=os.environ.get("SURVEY_DATA_DIR", "data"),
            port=_env_int("SURVEY_PORT", 8080),
            schema_key=_env_key("SURVEY_SCHEMA_KEY", SCHEMA_KEY),
            results_key=_env_key("SURVEY_RESULTS_KEY", RESULTS_KEY),
            cors_origins=origins or ["*"],
        )


__all__ = ["GatewayConfig"]
