"""
Attempt history tracking.

This module defines the dataclasses that capture every call the escalation
ladder made, for audit logs and metrics.
"""

from dataclasses import dataclass
from typing import Optional

from grounded_probe.models.enums import CallResultKind


@dataclass(frozen=True)
class AttemptRecord:
    """
    One outbound call made by the ladder.

    Attributes:
        credential_label: Label of the credential used
        model: Model identifier used
        attempt: 1-based attempt number within the (credential, model) pair
        kind: Classified result of the call
        status_code: HTTP status, if a response was received
        latency_ms: Call latency
        delay_after_s: Sleep applied after this attempt (0 if none)
    """

    credential_label: str
    model: str
    attempt: int
    kind: CallResultKind
    status_code: Optional[int] = None
    latency_ms: int = 0
    delay_after_s: float = 0.0


@dataclass(frozen=True)
class LadderMetadata:
    """
    Complete attempt history of one ladder run (or several merged runs).

    Attributes:
        attempts: Every call in the order it was made
        total_latency_ms: Wall time from first call to outcome (ms)
        failovers: Credential labels failed over *to*, in order
    """

    attempts: tuple[AttemptRecord, ...] = ()
    total_latency_ms: int = 0
    failovers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate metadata invariants."""
        if self.total_latency_ms < 0:
            raise ValueError("total_latency_ms must be >= 0")

    @property
    def total_attempts(self) -> int:
        return len(self.attempts)

    def merge(self, other: "LadderMetadata") -> "LadderMetadata":
        """Combine the history of two sequential runs (priority search phases)."""
        return LadderMetadata(
            attempts=self.attempts + other.attempts,
            total_latency_ms=self.total_latency_ms + other.total_latency_ms,
            failovers=self.failovers + other.failovers,
        )

    def to_log_dict(self) -> dict:
        return {
            "total_attempts": self.total_attempts,
            "total_latency_ms": self.total_latency_ms,
            "failovers": list(self.failovers),
            "attempts": [
                {
                    "credential": a.credential_label,
                    "model": a.model,
                    "attempt": a.attempt,
                    "result": a.kind.value,
                    "status_code": a.status_code,
                }
                for a in self.attempts
            ],
        }
