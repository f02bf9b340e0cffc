"""Application configuration management."""

import logging
from functools import lru_cache
from typing import Any, Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings managed via Pydantic BaseSettings.

    Attributes:
        API_VERSION: Semantic version reported by /api/version.
        WELCOME_MESSAGE: Payload returned by the root endpoint.
        OTEL_ENABLED: Whether OpenTelemetry instrumentation is enabled.
        OTEL_SERVICE_NAME: The service name for OpenTelemetry.
        OTEL_EXPORTER_OTLP_ENDPOINT: The OTLP endpoint for OpenTelemetry.
        OTEL_TRACES_SAMPLER_ARG: The sampling rate for traces.
        OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: URLs to exclude from tracing.
        OTLP_SECURE: Whether to use a secure connection for OTLP.
        PROMETHEUS_MONITORED_PATHS: Comma-separated paths collected by Prometheus.
        LOG_LEVEL: The logging level for the application.
        SERVER_HOST: The host address for the server.
        SERVER_PORT: The port number for the server.
        SERVER_RELOAD: Whether uvicorn should reload on code changes.
        ALLOWED_ORIGINS: Comma-separated string of allowed CORS origins.
        ENGINE_BACKEND: Which entity extraction engine to build.
        ENGINE_PRELOAD: Load the model during startup instead of on first use.
        GLINER_MODEL: Model identifier passed to GLiNER.from_pretrained.
        PII_LABELS: Comma-separated label vocabulary accepted in responses.
        MIN_CONFIDENCE_SCORE: Threshold handed to the engine.
        GLINER_CHUNK_LENGTH: GLiNER window size in word tokens; longer texts are scanned in windows.
        GLINER_CHUNK_OVERLAP: Word tokens shared by consecutive GLiNER windows.
        MAX_TEXT_LENGTH: Maximum allowed text length for detection.
        SEGMENT_STRATEGY: How submitted text is split into sequences.
        DETECT_TIMEOUT_SECONDS: Optional per-request detection timeout.
        NLP_ENGINE_NAME: NLP engine used by the Presidio backend.
        SPACY_MODEL_EN: The spaCy model used by the Presidio backend.
        ENTITY_MAPPING: Presidio entity names accepted for each label.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API metadata
    API_VERSION: str = "0.1.0"
    WELCOME_MESSAGE: str = "Welcome to Gliner RS API"

    # OpenTelemetry Configuration
    OTEL_ENABLED: bool = True
    OTEL_SERVICE_NAME: str = "gliner-api"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_TRACES_SAMPLER_ARG: float = 1.0
    OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: str = "health,metrics"
    OTLP_SECURE: bool = False

    # Prometheus
    PROMETHEUS_MONITORED_PATHS: str = "/api/pii/detect"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    SERVER_RELOAD: bool = False
    ALLOWED_ORIGINS: str = ""

    # Engine Configuration
    ENGINE_BACKEND: Literal["gliner", "presidio"] = "gliner"
    ENGINE_PRELOAD: bool = False
    GLINER_MODEL: str = "knowledgator/gliner-multitask-large-v0.5"
    PII_LABELS: str = "person,email,phone,address"
    MIN_CONFIDENCE_SCORE: float = 0.5
    GLINER_CHUNK_LENGTH: int = 384
    GLINER_CHUNK_OVERLAP: int = 128

    # Detection Configuration
    MAX_TEXT_LENGTH: int = 102400
    SEGMENT_STRATEGY: Literal["single", "paragraph"] = "single"
    DETECT_TIMEOUT_SECONDS: float | None = None

    # Presidio backend
    NLP_ENGINE_NAME: str = "spacy"
    SPACY_MODEL_EN: str = "en_core_web_lg"
    ENTITY_MAPPING: dict[str, list[str]] = {
        "person": ["PERSON", "PER"],
        "email": ["EMAIL_ADDRESS", "EMAIL"],
        "phone": ["PHONE_NUMBER", "PHONE"],
        "address": ["LOCATION", "LOC", "GPE", "ADDRESS"],
    }

    @model_validator(mode="before")
    @classmethod
    def _strip_inline_comments(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: value.split("#")[0].strip() if isinstance(value, str) else value
                for key, value in data.items()
            }
        return data

    @property
    def cors_origins(self) -> list[str]:
        """Get the list of allowed CORS origins.

        Returns:
            A list of allowed CORS origins split from the ALLOWED_ORIGINS setting.
            If no origins are configured, returns an empty list.
        """
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def label_set(self) -> frozenset[str]:
        """Lower-cased label vocabulary parsed from PII_LABELS."""
        return frozenset(
            label.strip().lower() for label in self.PII_LABELS.split(",") if label.strip()
        )

    @property
    def nlp_configuration(self) -> dict[str, Any]:
        """Construct the NLP configuration for the Presidio backend.

        Returns:
            A dictionary suitable for presidio's NlpEngineProvider:
            {"nlp_engine_name": str, "models": [{"lang_code": str, "model_name": str}]}
        """
        return {
            "nlp_engine_name": self.NLP_ENGINE_NAME,
            "models": [{"lang_code": "en", "model_name": self.SPACY_MODEL_EN}],
        }

    @property
    def log_level(self) -> int:
        """Convert the string log level from settings to a logging constant.

        Returns:
            The integer value of the logging level (e.g., logging.INFO,
            logging.DEBUG). Defaults to logging.INFO if the configured
            LOG_LEVEL is invalid.
        """
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)


@lru_cache()
def get_settings() -> Settings:
    """Create and cache a Settings instance.

    Returns:
        A cached instance of the Settings class.
    """
    return Settings()


settings = get_settings()
