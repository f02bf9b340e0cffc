"""Routes module for the Gliner API."""

import asyncio
import contextvars
import functools
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from gliner_api.app.config import settings
from gliner_api.app.errors import ErrorKind
from gliner_api.app.models import ApiResponse, DetectionResult, DetectRequest, HealthStatus
from gliner_api.app.prometheus import track_detection_failure
from gliner_api.app.services.orchestrator import DetectionOrchestrator
from gliner_api.app.services.response_builder import build_failure, build_payload
from gliner_api.app.telemetry import trace_method

logger = logging.getLogger(__name__)
router = APIRouter()


def _envelope_response(envelope: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=envelope.status_code, content=envelope.model_dump(mode="json"))


def _failure(kind: ErrorKind, detail: str) -> JSONResponse:
    track_detection_failure(kind.value)
    return _envelope_response(build_failure(kind, detail))


def _is_json(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


@router.get(
    "/",
    response_model=ApiResponse[str],
    summary="Root endpoint",
    status_code=status.HTTP_200_OK,
    tags=["Info"],
)
async def index() -> ApiResponse[str]:
    """Return the welcome message."""
    return build_payload(settings.WELCOME_MESSAGE)


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health check endpoint",
    status_code=status.HTTP_200_OK,
    tags=["Monitoring"],
)
async def health_check() -> HealthStatus:
    """Liveness check; does not touch the extraction engine."""
    return HealthStatus(status="ok", message="API is running")


@router.get(
    "/api/version",
    response_model=ApiResponse[str],
    summary="Service version",
    status_code=status.HTTP_200_OK,
    tags=["Info"],
)
async def version() -> ApiResponse[str]:
    """Return the semantic version of the service."""
    return build_payload(settings.API_VERSION)


@router.post(
    "/api/pii/detect",
    response_model=ApiResponse[DetectionResult],
    summary="Detect PII entities in text",
    response_description="Detected entities wrapped in the response envelope",
    status_code=status.HTTP_200_OK,
    tags=["Detection"],
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": DetectRequest.model_json_schema()}},
        }
    },
)
@trace_method("detect_pii")
async def detect_pii(req: Request) -> JSONResponse:
    """Detect personally identifiable information in the submitted text.

    The body is handed undecoded to the DetectionOrchestrator, which owns
    request validation. The orchestrator blocks on model inference, so it
    runs in the default executor rather than on the event loop.

    Args:
        req: FastAPI request object, used for the raw body and to reach the
            shared orchestrator on the application state.

    Returns:
        JSONResponse: The envelope, with status 200 on success, 400 for
        invalid input and 500 when the engine fails or times out.
    """
    if not _is_json(req):
        return _failure(ErrorKind.INVALID_INPUT, "Content-Type must be application/json")

    orchestrator: DetectionOrchestrator | None = getattr(req.app.state, "orchestrator", None)
    if orchestrator is None:
        logger.error("Detection orchestrator not available")
        return _failure(ErrorKind.ENGINE_FAILURE, "detection service is not available")

    body = await req.body()
    # The worker thread cannot be interrupted; on timeout it finishes in the background.
    loop = asyncio.get_running_loop()
    context = contextvars.copy_context()
    call = loop.run_in_executor(None, functools.partial(context.run, orchestrator.handle, body))
    timeout = settings.DETECT_TIMEOUT_SECONDS
    try:
        envelope = await asyncio.wait_for(call, timeout or None)
    except asyncio.TimeoutError:
        logger.warning("PII detection timed out after %.1fs", timeout)
        return _failure(ErrorKind.ENGINE_FAILURE, "entity extraction timed out")

    return _envelope_response(envelope)
