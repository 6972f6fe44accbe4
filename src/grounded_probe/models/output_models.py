"""
Output model for one probe invocation.

ProbeResult is what the orchestrator returns to its callers (HTTP route,
Celery task). It always distinguishes success, skipped (cooldown active)
and error, and never carries a stack trace.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from grounded_probe.models.enums import ProbeStatus
from grounded_probe.models.llm_models import SearchSummary


class ProbeResult(BaseModel):
    """Structured result of a probe invocation."""

    status: ProbeStatus
    http_status: int = Field(..., description="Status code the HTTP surface should use")
    message: Optional[str] = None
    prompt: Optional[str] = None
    model_used: Optional[str] = None
    credential_label: Optional[str] = None
    reply: Optional[Any] = Field(default=None, description="Id of the inserted response row")
    search_strategy: Optional[SearchSummary] = None
    attempts: int = Field(default=0, ge=0)
    check_recorded: bool = False
    in_cooldown: bool = False
    cooldown_set: bool = False

    def to_response_body(self) -> dict[str, Any]:
        """JSON body for the HTTP surface (http_status travels as the status line)."""
        return self.model_dump(mode="json", exclude={"http_status"}, exclude_none=True)
