"""
Outcome of one escalation ladder run.

Exactly one of three tags:
- SUCCESS: payload plus the (model, credential label) that produced it
- RATE_LIMITED: no payload; the caller should install a cooldown
- EXHAUSTED: last_error is the most recent non-rate-limit failure
"""

from dataclasses import dataclass, field
from typing import Optional

from grounded_probe.models.enums import OutcomeTag
from grounded_probe.models.llm_models import ClassifiedResult, GenerationPayload
from grounded_probe.retry.metadata import LadderMetadata


@dataclass(frozen=True)
class Outcome:
    """Return value of EscalationLadder.attempt()."""

    tag: OutcomeTag
    payload: Optional[GenerationPayload] = None
    model_used: Optional[str] = None
    credential_label_used: Optional[str] = None
    last_error: Optional[ClassifiedResult] = None
    metadata: LadderMetadata = field(default_factory=LadderMetadata)

    def __post_init__(self) -> None:
        """Validate outcome invariants."""
        if self.tag is OutcomeTag.SUCCESS:
            if self.payload is None or not self.model_used or not self.credential_label_used:
                raise ValueError("success outcome requires payload, model_used and credential_label_used")
        elif self.payload is not None:
            raise ValueError(f"{self.tag.value} outcome must not carry a payload")

        if self.tag is OutcomeTag.EXHAUSTED and self.last_error is None:
            raise ValueError("exhausted outcome requires last_error")

    @classmethod
    def success(
        cls,
        payload: GenerationPayload,
        model_used: str,
        credential_label_used: str,
        metadata: LadderMetadata,
    ) -> "Outcome":
        return cls(
            tag=OutcomeTag.SUCCESS,
            payload=payload,
            model_used=model_used,
            credential_label_used=credential_label_used,
            metadata=metadata,
        )

    @classmethod
    def rate_limited(cls, metadata: LadderMetadata) -> "Outcome":
        return cls(tag=OutcomeTag.RATE_LIMITED, metadata=metadata)

    @classmethod
    def exhausted(cls, last_error: ClassifiedResult, metadata: LadderMetadata) -> "Outcome":
        return cls(tag=OutcomeTag.EXHAUSTED, last_error=last_error, metadata=metadata)

    @property
    def is_success(self) -> bool:
        return self.tag is OutcomeTag.SUCCESS

    @property
    def is_rate_limited(self) -> bool:
        return self.tag is OutcomeTag.RATE_LIMITED

    @property
    def error_message(self) -> Optional[str]:
        if self.last_error is None:
            return None
        return self.last_error.message or self.last_error.kind.value
