"""Test configuration for pytest."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from survey_gateway.persistence.document_store import DocumentStore
from survey_gateway.service import metrics as metrics_module
from survey_gateway.service.app import create_gateway_app
from survey_gateway.service.config import GatewayConfig

FIXED_NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "conformance: API contract conformance tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


@pytest.fixture(autouse=True)
def fresh_metrics(monkeypatch):
    """Give every test its own metrics collector."""
    monkeypatch.setattr(metrics_module, "_metrics", None)


@pytest.fixture
def data_dir(tmp_path):
    """Data directory that does not exist yet."""
    return tmp_path / "data"


@pytest.fixture
def store(data_dir):
    """Document store over a fresh data directory."""
    return DocumentStore(data_dir)


@pytest.fixture
def config(data_dir):
    """Gateway configuration pointing at the test data directory."""
    return GatewayConfig(data_dir=str(data_dir))


@pytest.fixture
def app(config):
    """Gateway application with a fixed clock."""
    return create_gateway_app(config, time_provider=lambda: FIXED_NOW)


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)
