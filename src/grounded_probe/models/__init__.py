"""
Data models for the grounded probe service.

- enums: closed sets (call result kinds, outcome tags, policies, statuses)
- llm_models: credentials, generation request/response, Gemini body parsing
- records: rows persisted to the relational store
- output_models: ProbeResult returned by the orchestrator
"""

from grounded_probe.models.enums import (
    CallResultKind,
    GateState,
    OutcomeTag,
    ProbeStatus,
    RateLimitPolicy,
    SearchStrategyName,
)
from grounded_probe.models.llm_models import (
    ClassifiedResult,
    Credential,
    GeminiResponse,
    GenerationPayload,
    GenerationRequest,
    SearchSummary,
)
from grounded_probe.models.output_models import ProbeResult
from grounded_probe.models.records import (
    CooldownRecord,
    HealthCheckRecord,
    ResponseLogRecord,
    utc_now,
)

__all__ = [
    # Enums
    "CallResultKind",
    "GateState",
    "OutcomeTag",
    "ProbeStatus",
    "RateLimitPolicy",
    "SearchStrategyName",
    # LLM models
    "ClassifiedResult",
    "Credential",
    "GeminiResponse",
    "GenerationPayload",
    "GenerationRequest",
    "SearchSummary",
    # Records
    "CooldownRecord",
    "HealthCheckRecord",
    "ResponseLogRecord",
    "utc_now",
    # Output
    "ProbeResult",
]
