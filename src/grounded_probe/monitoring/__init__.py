"""Monitoring and metrics instrumentation for the grounded probe service.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from grounded_probe.monitoring.metrics import (
    cooldown_skips_total,
    cooldowns_set_total,
    credential_failovers_total,
    gemini_call_latency_seconds,
    gemini_calls_total,
    ladder_outcomes_total,
    persistence_failures_total,
)

__all__ = [
    "gemini_calls_total",
    "gemini_call_latency_seconds",
    "ladder_outcomes_total",
    "credential_failovers_total",
    "cooldown_skips_total",
    "cooldowns_set_total",
    "persistence_failures_total",
]
