"""
FastAPI dependency injection for the probe service.

Settings are a process-wide singleton. The orchestrator and repository are
built per request and their HTTP clients are closed when the request ends,
so a missing secret fails that request (ConfigurationError -> 500) instead
of the process.
"""

from datetime import timedelta
from functools import lru_cache
from typing import AsyncIterator

from fastapi import Depends

from grounded_probe.config import Settings, settings
from grounded_probe.orchestrator import ProbeOrchestrator, open_orchestrator
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient
from grounded_probe.retry.cooldown import CooldownGate


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


async def get_orchestrator(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[ProbeOrchestrator]:
    """
    Build a probe orchestrator for one request.

    Raises:
        ConfigurationError: a required setting is missing
    """
    async with open_orchestrator(settings) as orchestrator:
        yield orchestrator


async def get_repository(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[ProbeRepository]:
    """
    Build a repository over a fresh PostgREST client.

    Raises:
        ConfigurationError: store URL or key is missing
    """
    url, key = settings.require_store()
    async with SupabaseRestClient(url, key, timeout=settings.SUPABASE_TIMEOUT) as rest_client:
        yield ProbeRepository(rest_client)


def get_cooldown_gate(
    repository: ProbeRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> CooldownGate:
    """Cooldown gate backed by the request's repository."""
    return CooldownGate(repository, duration=timedelta(minutes=settings.COOLDOWN_MINUTES))
