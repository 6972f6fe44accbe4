"""
Retry policy engine: escalation ladder, backoff and cooldown gate.

The ladder decides how many calls one "get a grounded answer" operation
makes, against which model and with which credential:

1. **Retry**: same (credential, model) pair with exponential backoff
2. **Model fallback**: next model in the ladder, delay reset
3. **Credential failover**: backup key once the primary's ladder is spent
4. **Cooldown**: a rate-limited outcome installs a persisted back-off window

The ladder never raises for upstream failures; it returns an Outcome.

Main Components:
    - EscalationLadder / LadderConfig: the retry loop and its policy
    - BackoffPolicy: delay computation
    - CooldownGate: persisted cross-invocation back-off
    - Outcome / LadderMetadata: result and attempt history
    - SearchStrategy: direct or priority search on top of the ladder

Usage:
    >>> from grounded_probe.retry import EscalationLadder, LadderConfig
    >>> ladder = EscalationLadder(client, LadderConfig.from_settings(settings))
    >>> outcome = await ladder.attempt(prompt, settings.credential_set())
"""

from grounded_probe.retry.backoff import BackoffPolicy
from grounded_probe.retry.cooldown import CooldownGate, CooldownStore
from grounded_probe.retry.engine import EscalationLadder, LadderConfig
from grounded_probe.retry.metadata import AttemptRecord, LadderMetadata
from grounded_probe.retry.outcome import Outcome
from grounded_probe.retry.strategies import (
    DirectSearchStrategy,
    PrioritySearchStrategy,
    SearchStrategy,
)

__all__ = [
    "AttemptRecord",
    "BackoffPolicy",
    "CooldownGate",
    "CooldownStore",
    "DirectSearchStrategy",
    "EscalationLadder",
    "LadderConfig",
    "LadderMetadata",
    "Outcome",
    "PrioritySearchStrategy",
    "SearchStrategy",
]
