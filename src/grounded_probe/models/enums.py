"""
Enumerations for the grounded probe data models.

All enums are closed sets - no values outside these sets are permitted.
"""

from enum import Enum


class CallResultKind(str, Enum):
    """
    Classification of a single outbound generation call.

    Exactly one kind is assigned to every call made by the Gemini client.
    """

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"  # HTTP 429
    SERVER_ERROR = "server_error"  # HTTP >= 500
    CLIENT_ERROR = "client_error"  # Other non-2xx, or malformed 2xx body
    NETWORK_ERROR = "network_error"  # Timeout, DNS, connection reset

    @property
    def is_retryable(self) -> bool:
        """Whether the same (credential, model) pair may be retried."""
        return self in (CallResultKind.SERVER_ERROR, CallResultKind.NETWORK_ERROR)


class OutcomeTag(str, Enum):
    """Final result of one escalation ladder run."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    EXHAUSTED = "exhausted"


class RateLimitPolicy(str, Enum):
    """
    How the ladder reacts to HTTP 429.

    ABORT: propagate on the first 429, no further calls.
    FALLBACK: pause, switch to the next model (and credential), and only
    report rate-limiting once every pair has been tried.
    """

    ABORT = "abort"
    FALLBACK = "fallback"


class SearchStrategyName(str, Enum):
    """Search strategy used by the orchestrator."""

    DIRECT = "direct"
    PRIORITY = "priority"


class ProbeStatus(str, Enum):
    """Status reported to callers of the probe endpoint."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class GateState(str, Enum):
    """Cooldown gate state (global per deployment)."""

    CLEAR = "clear"
    COOLING = "cooling"
