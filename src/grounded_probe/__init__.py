"""
Grounded Probe: periodic, rate-limit-aware Gemini probing.

Queries the Gemini generateContent API (with Google Search grounding) using
a prompt from a fixed catalog, stores the answer in Supabase, and protects
the upstream quota with:
- Retries with exponential backoff and jitter
- Model fallback and backup-key failover
- A persisted cooldown window after rate limiting

Architecture: FastAPI + Celery beat front ends over one escalation ladder
"""

__version__ = "0.1.0"
