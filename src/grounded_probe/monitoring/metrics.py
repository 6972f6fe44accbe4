"""Custom Prometheus metrics for the grounded probe service.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- ladder_outcomes_total{outcome="exhausted"} (upstream failing beyond retries)
- cooldowns_set_total (quota pressure)
- persistence_failures_total (store unavailable, audit rows lost)
"""

from prometheus_client import Counter, Histogram

# === Outbound Call Metrics ===

gemini_calls_total = Counter(
    "gemini_calls_total",
    "Total generateContent calls by model, credential label and classified result",
    ["model", "credential", "result"],
)
"""
Outbound call counter.

Labels:
- model: Model identifier (e.g., gemini-2.5-flash-lite)
- credential: Credential label (primary, backup), never the key itself
- result: success, rate_limited, server_error, client_error, network_error
"""

gemini_call_latency_seconds = Histogram(
    "gemini_call_latency_seconds",
    "generateContent call latency in seconds",
    ["model", "result"],
    buckets=[0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 30.0],
)
"""
Outbound call latency histogram.

Buckets stop at 30s; the default per-call timeout is 15s.
"""

# === Ladder Metrics ===

ladder_outcomes_total = Counter(
    "ladder_outcomes_total",
    "Escalation ladder outcomes",
    ["outcome"],
)
"""
Ladder outcome counter.

Labels:
- outcome: success, rate_limited, exhausted

Alert thresholds:
- WARN: exhausted rate > 10% of runs
"""

credential_failovers_total = Counter(
    "credential_failovers_total",
    "Credential failovers by the failure kind that triggered them",
    ["trigger"],
)

# === Cooldown Metrics ===

cooldown_skips_total = Counter(
    "cooldown_skips_total",
    "Probe invocations skipped because the cooldown gate was cooling",
)

cooldowns_set_total = Counter(
    "cooldowns_set_total",
    "Cooldown records written after a rate-limit outcome",
)

# === Persistence Metrics ===

persistence_failures_total = Counter(
    "persistence_failures_total",
    "Failed store operations by operation name",
    ["operation"],
)
"""
Store failure counter.

Labels:
- operation: save_response, record_health_check, get_latest_cooldown,
  save_cooldown, prune_health_checks
"""
