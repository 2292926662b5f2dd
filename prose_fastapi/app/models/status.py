"""Health and error response models."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: Literal["UP"] = "UP"


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Machine-readable error class")
    detail: str = Field(..., description="Human-readable error description")
