"""Shared DTOs for the support chat API."""
from datetime import datetime

from pydantic import BaseModel, Field


class BaseDTO(BaseModel):
    """Base DTO with common configuration."""

    class Config:
        from_attributes = True
        populate_by_name = True


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""
    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str = Field(default="0.1.0")


class ErrorResponse(BaseDTO):
    """Error response DTO."""
    error: str = Field(description="Human-readable error message")
