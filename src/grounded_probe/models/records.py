"""
Persisted row models.

One model per table in the relational store:
- gemini_responses: response log, one row per successful invocation
- api_health_checks: one boolean row per invocation
- gemini_rate_limit_cooldown: insert-only cooldown records
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ResponseLogRecord(BaseModel):
    """Row in gemini_responses."""

    prompt: str
    response: str
    grounding_metadata: Optional[Dict[str, Any]] = None
    model_used: str
    created_at: datetime = Field(default_factory=utc_now)


class HealthCheckRecord(BaseModel):
    """Row in api_health_checks."""

    is_successful: bool


class CooldownRecord(BaseModel):
    """
    Row in gemini_rate_limit_cooldown.

    Records are never mutated; a newer row supersedes older ones and only the
    row with the latest cooldown_until is consulted.
    """

    cooldown_until: datetime
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("cooldown_until", "created_at")
    @classmethod
    def _normalize_timezone(cls, value: datetime) -> datetime:
        return _assume_utc(value)
