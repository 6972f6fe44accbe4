"""
API-specific request and response models for FastAPI endpoints.

The probe endpoint itself returns ProbeResult.to_response_body(); these
models cover the request body and the auxiliary endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from grounded_probe.models.enums import GateState
from grounded_probe.models.records import utc_now


class ProbeRequest(BaseModel):
    """Optional body of POST /probe."""

    prompt: Optional[str] = Field(
        default=None,
        max_length=4000,
        description="Prompt to send; a random catalog prompt is used when omitted",
    )


class CooldownResponse(BaseModel):
    """Response for cooldown status endpoint."""

    state: GateState = Field(description="clear or cooling")
    cooldown_until: Optional[datetime] = Field(
        default=None,
        description="End of the most recent cooldown window, if any",
    )
    remaining_seconds: int = Field(
        default=0,
        ge=0,
        description="Seconds until the gate clears (0 when clear)",
    )


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded"]
    )
    version: str = Field(
        description="Service version",
        examples=["0.1.0"]
    )
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"store": "ok", "redis": "ok", "gemini": "configured"}]
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="Health check timestamp (UTC)"
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    status: str = Field(
        default="error",
        description="Always 'error'",
    )
    message: str = Field(
        description="Human-readable error message"
    )
    details: Optional[dict] = Field(
        default=None,
        description="Additional error details (e.g., missing settings)"
    )
