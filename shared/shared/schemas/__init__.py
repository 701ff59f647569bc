"""Pydantic schemas shared across services."""

from shared.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "ErrorResponse",
    "HealthResponse",
]
