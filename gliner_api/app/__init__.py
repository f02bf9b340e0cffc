"""FastAPI application for PII detection."""
