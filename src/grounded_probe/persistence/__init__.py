"""
Persistence layer.

- rest_client.py: Supabase PostgREST client (insert / select / delete)
- repository.py: Repository for response logs, health checks and cooldowns
- redis_client.py: Async Redis pool, used to report broker health
- exceptions.py: PersistenceError

Storage Strategy:
- Response log: one row per successful probe in gemini_responses
- Health checks: one boolean row per invocation, pruned by a beat task
- Cooldowns: insert-only rows, latest cooldown_until wins
"""

from grounded_probe.persistence.exceptions import PersistenceError
from grounded_probe.persistence.redis_client import RedisClient, ping_redis
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient

__all__ = [
    "PersistenceError",
    "ProbeRepository",
    "RedisClient",
    "SupabaseRestClient",
    "ping_redis",
]
