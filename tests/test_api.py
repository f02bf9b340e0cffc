"""API endpoint tests."""

import json
import threading
from http import HTTPStatus
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from gliner_api.app.config import settings
from gliner_api.app.services.orchestrator import DetectionOrchestrator
from tests.fakes import LABELS, SCENARIO_A, FailingEngine, PatternEngine

DETECT = "/api/pii/detect"


def test_index_returns_welcome_envelope(client: TestClient) -> None:
    """Verify the root endpoint returns the welcome message in an envelope.

    Args:
        client: FastAPI test client for making requests.
    """
    response = client.get("/")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {
        "success": True,
        "data": "Welcome to Gliner RS API",
        "message": None,
    }


def test_health_check(client: TestClient) -> None:
    """Ensure the health check is not wrapped in the envelope.

    Args:
        client: FastAPI test client for making requests.
    """
    response = client.get("/health")
    assert response.status_code == HTTPStatus.OK
    assert response.headers["content-type"] == "application/json"
    assert response.json() == {"status": "ok", "message": "API is running"}


def test_version(client: TestClient) -> None:
    response = client.get("/api/version")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"success": True, "data": "0.1.0", "message": None}


def test_envelope_shape_is_consistent(client: TestClient) -> None:
    """Every enveloped endpoint exposes exactly success, data and message."""
    responses = [
        client.get("/"),
        client.get("/api/version"),
        client.post(DETECT, json={"text": SCENARIO_A}),
        client.post(DETECT, json={}),
    ]
    for response in responses:
        body = response.json()
        assert set(body) == {"success", "data", "message"}
        assert isinstance(body["success"], bool)


def test_detect_scenario(client: TestClient) -> None:
    """Detect a person, an email and a phone number.

    Args:
        client: FastAPI test client for making requests.
    """
    response = client.post(DETECT, json={"text": SCENARIO_A})
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["success"] is True
    assert body["message"] is None

    data = body["data"]
    assert data["total_entities"] == 3
    assert data["text"] == SCENARIO_A
    assert data["message"] == "PII detection completed successfully"
    assert {entity["label"] for entity in data["entities"]} == {"person", "email", "phone"}
    for entity in data["entities"]:
        assert set(entity) == {"text", "label", "probability", "sequence", "start", "end"}
        assert entity["text"] in SCENARIO_A
        assert 0.0 <= entity["probability"] <= 1.0
        assert entity["sequence"] == 0


def test_detect_empty_text(client: TestClient) -> None:
    response = client.post(DETECT, json={"text": ""})
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["success"] is True
    assert body["data"]["entities"] == []
    assert body["data"]["total_entities"] == 0


def test_detect_missing_text_field(client: TestClient) -> None:
    """A body without 'text' yields an InvalidInput envelope with no data.

    Args:
        client: FastAPI test client for making requests.
    """
    response = client.post(DETECT, json={})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"] == "InvalidInput: missing required field 'text'"


def test_detect_without_body(client: TestClient) -> None:
    response = client.post(DETECT, headers={"Content-Type": "application/json"})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["message"] == "InvalidInput: request body is required"


def test_detect_malformed_json(client: TestClient) -> None:
    response = client.post(
        DETECT,
        content=b'{"text": ',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["success"] is False


def test_detect_requires_json_content_type(client: TestClient) -> None:
    response = client.post(
        DETECT,
        content=json.dumps({"text": SCENARIO_A}),
        headers={"Content-Type": "text/plain"},
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "InvalidInput: Content-Type must be application/json"


def test_detect_accepts_json_content_type_with_charset(client: TestClient) -> None:
    response = client.post(
        DETECT,
        content=json.dumps({"text": SCENARIO_A}).encode(),
        headers={"Content-Type": "application/json; charset=utf-8"},
    )
    assert response.status_code == HTTPStatus.OK
    assert response.json()["data"]["total_entities"] == 3


def test_detect_oversized_text(client: TestClient) -> None:
    response = client.post(DETECT, json={"text": "a" * 1001})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "maximum length" in response.json()["message"]


def test_detect_with_label_subset(client: TestClient) -> None:
    response = client.post(DETECT, json={"text": SCENARIO_A, "labels": ["phone"]})
    assert response.status_code == HTTPStatus.OK
    entities = response.json()["data"]["entities"]
    assert [entity["text"] for entity in entities] == ["(555) 123-4567"]


def test_engine_failure_then_recovery(client: TestClient) -> None:
    """An engine error yields EngineFailure and the next request still succeeds.

    Args:
        client: FastAPI test client for making requests.
    """
    app = client.app
    healthy = app.state.orchestrator
    app.state.orchestrator = DetectionOrchestrator(FailingEngine(), labels=LABELS)

    response = client.post(DETECT, json={"text": SCENARIO_A})
    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"].startswith("EngineFailure:")
    assert "onnx" not in body["message"]

    app.state.orchestrator = healthy
    response = client.post(DETECT, json={"text": SCENARIO_A})
    assert response.status_code == HTTPStatus.OK
    assert response.json()["data"]["total_entities"] == 3


def test_detect_orchestrator_unavailable(client: TestClient) -> None:
    with patch.object(client.app.state, "orchestrator", None):
        response = client.post(DETECT, json={"text": SCENARIO_A})
    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "EngineFailure: detection service is not available"


def test_detect_timeout_is_engine_failure(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    release = threading.Event()

    class BlockingEngine(PatternEngine):
        def extract(self, text, labels):
            release.wait(timeout=5)
            return super().extract(text, labels)

    client.app.state.orchestrator = DetectionOrchestrator(BlockingEngine(), labels=LABELS)
    monkeypatch.setattr(settings, "DETECT_TIMEOUT_SECONDS", 0.05)
    try:
        response = client.post(DETECT, json={"text": SCENARIO_A})
    finally:
        release.set()

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.json()["message"] == "EngineFailure: entity extraction timed out"


def test_detect_is_idempotent(client: TestClient) -> None:
    first = client.post(DETECT, json={"text": SCENARIO_A}).json()
    second = client.post(DETECT, json={"text": SCENARIO_A}).json()
    assert first["data"]["entities"] == second["data"]["entities"]


def test_detect_response_round_trips(client: TestClient) -> None:
    body = client.post(DETECT, json={"text": SCENARIO_A}).json()
    assert json.loads(json.dumps(body)) == body
    assert all(isinstance(entity["probability"], float) for entity in body["data"]["entities"])


def test_unknown_route_returns_structured_404(client: TestClient) -> None:
    """Unknown routes get a JSON 404 that is not an envelope.

    Args:
        client: FastAPI test client for making requests.
    """
    response = client.get("/unknown-route")
    assert response.status_code == HTTPStatus.NOT_FOUND
    body = response.json()
    assert body == {"detail": "Not Found", "path": "/unknown-route"}
    assert "success" not in body


def test_wrong_method_is_not_found(client: TestClient) -> None:
    """An unsupported method on a known route is reported like an unknown route."""
    response = client.post("/health")
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"detail": "Not Found", "path": "/health"}
    assert "allow" not in response.headers

    response = client.get("/api/pii/detect")
    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"detail": "Not Found", "path": "/api/pii/detect"}


def test_multiple_requests(client: TestClient) -> None:
    for _ in range(10):
        assert client.get("/health").status_code == HTTPStatus.OK
