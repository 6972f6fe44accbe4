"""
Exponential backoff with optional jitter and cap.

delay(i) = min(cap, initial_delay * factor**i + uniform(0, jitter))

``i`` is the 0-based index of the attempt that just failed within one
(credential, model) pair; it restarts at 0 for every new pair.
"""

import random
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Backoff parameters for retryable failures.

    Attributes:
        initial_delay: Delay before the first retry (seconds)
        factor: Multiplier applied per retry
        jitter: Upper bound of uniform random jitter added to each delay (seconds)
        cap: Maximum delay for a single sleep (seconds)
    """

    initial_delay: float = 1.0
    factor: float = 2.0
    jitter: Optional[float] = 0.5
    cap: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate policy invariants."""
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")

        if self.factor < 1:
            raise ValueError("factor must be >= 1")

        if self.jitter is not None and self.jitter < 0:
            raise ValueError("jitter must be >= 0")

        if self.cap is not None and self.cap < 0:
            raise ValueError("cap must be >= 0")

    def base_delay(self, attempt_index: int) -> float:
        """Delay without jitter or cap for a 0-based attempt index."""
        if attempt_index < 0:
            raise ValueError("attempt_index must be >= 0")
        return self.initial_delay * (self.factor ** attempt_index)

    def compute_delay(self, attempt_index: int, rng: Optional[random.Random] = None) -> float:
        """Delay to sleep after the attempt at ``attempt_index`` failed."""
        delay = self.base_delay(attempt_index)
        if self.jitter:
            delay += (rng or random).uniform(0, self.jitter)
        if self.cap is not None:
            delay = min(self.cap, delay)
        return delay
