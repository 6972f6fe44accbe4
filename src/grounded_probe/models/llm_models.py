"""
LLM-specific data models for the request/response cycle.

These models are internal to the LLM layer and handle the raw communication
with the Gemini generateContent endpoint. The ladder only looks at
ClassifiedResult; the Gemini* models exist to parse the upstream body.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from grounded_probe.models.enums import CallResultKind


class Credential(BaseModel):
    """An API key plus the label used in logs, metrics and audit rows."""

    model_config = ConfigDict(frozen=True)

    key: SecretStr = Field(..., description="API key (never logged)")
    label: str = Field(..., min_length=1, description="Label such as 'primary' or 'backup'")


class GenerationRequest(BaseModel):
    """
    Internal request model for one generateContent call.

    Grounding is an opaque request option: when enabled the client adds the
    google_search tool to the payload and does not interpret it further.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1, description="Prompt text")
    model: str = Field(..., description="Model identifier (e.g., 'gemini-2.5-flash-lite')")
    system_instruction: Optional[str] = Field(
        default=None, description="Optional system instruction text"
    )
    grounding: bool = Field(default=True, description="Request web-search grounding")


class SearchSummary(BaseModel):
    """How a priority search arrived at its answer."""

    domain_search_completed: bool
    general_search_completed: bool
    primary_source: str = Field(..., examples=["quadrate.lk", "general_web"])
    aggregation_type: str = Field(..., examples=["prioritized", "fallback"])


class GenerationPayload(BaseModel):
    """Successful generation: extracted text plus the upstream structure."""

    text: str = Field(..., description="candidates[0].content.parts[0].text")
    grounding_metadata: Optional[Dict[str, Any]] = Field(
        default=None, description="candidates[0].groundingMetadata, if present"
    )
    raw: Dict[str, Any] = Field(default_factory=dict, description="Full upstream response")
    search_strategy: Optional[SearchSummary] = Field(
        default=None, description="Set only by priority search"
    )


class ClassifiedResult(BaseModel):
    """
    Result of one outbound call, classified into exactly one kind.

    ``payload`` is present only for SUCCESS. ``credential_rejected`` and
    ``malformed`` refine CLIENT_ERROR; ``timed_out`` refines NETWORK_ERROR.
    """

    model_config = ConfigDict(frozen=True)

    kind: CallResultKind
    payload: Optional[GenerationPayload] = None
    status_code: Optional[int] = Field(default=None, description="HTTP status, if any")
    message: str = Field(default="", description="Human-readable error summary")
    latency_ms: int = Field(default=0, ge=0)
    credential_rejected: bool = False
    malformed: bool = False
    timed_out: bool = False

    @property
    def is_retryable(self) -> bool:
        return self.kind.is_retryable


# === Gemini response body ===


class GeminiPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: Optional[str] = None


class GeminiContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content: Optional[GeminiContent] = None
    grounding_metadata: Optional[Dict[str, Any]] = Field(default=None, alias="groundingMetadata")


class GeminiResponse(BaseModel):
    """Subset of the generateContent response the service relies on."""

    model_config = ConfigDict(extra="allow")

    candidates: list[GeminiCandidate] = Field(default_factory=list)

    def first_text(self) -> Optional[str]:
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text

    def first_grounding_metadata(self) -> Optional[Dict[str, Any]]:
        if not self.candidates:
            return None
        return self.candidates[0].grounding_metadata
