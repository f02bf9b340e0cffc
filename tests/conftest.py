"""Test configuration and fixtures."""

import os
from collections.abc import Iterator

os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gliner_api.app.main import create_app
from gliner_api.app.services.orchestrator import DetectionOrchestrator
from tests.fakes import LABELS, PatternEngine


@pytest.fixture(autouse=True)
def disable_telemetry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Disable OpenTelemetry for all tests.

    Args:
        monkeypatch: pytest's monkeypatch fixture for modifying values.
    """
    from gliner_api.app import telemetry
    from gliner_api.app.config import settings

    monkeypatch.setenv("OTEL_ENABLED", "false")
    monkeypatch.setattr(settings, "OTEL_ENABLED", False)
    telemetry._span_processors.clear()
    telemetry._is_setup_complete = False


@pytest.fixture
def pattern_engine() -> PatternEngine:
    return PatternEngine()


@pytest.fixture
def orchestrator(pattern_engine: PatternEngine) -> DetectionOrchestrator:
    return DetectionOrchestrator(pattern_engine, labels=LABELS, max_text_length=1000)


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app: FastAPI, orchestrator: DetectionOrchestrator) -> Iterator[TestClient]:
    """Create a test client whose orchestrator uses the pattern engine.

    The lifespan still runs, so the configured engine object is created, but
    it is replaced before any request and its model is never loaded.
    """
    with TestClient(app) as test_client:
        app.state.orchestrator = orchestrator
        yield test_client
