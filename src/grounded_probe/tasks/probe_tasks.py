"""
Celery tasks for periodic probing and health-check maintenance.

Tasks return JSON-serializable dicts for Celery's JSON serialization.
Async work runs under asyncio.run, one event loop per task invocation.
"""

import asyncio
from typing import Optional

import structlog

from grounded_probe.config import ConfigurationError, settings
from grounded_probe.orchestrator import open_orchestrator
from grounded_probe.persistence.exceptions import PersistenceError
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient
from grounded_probe.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def _probe(prompt: Optional[str]) -> dict:
    async with open_orchestrator(settings) as orchestrator:
        result = await orchestrator.run(prompt)
    return result.model_dump(mode="json", exclude_none=True)


async def _prune() -> Optional[int]:
    url, key = settings.require_store()
    async with SupabaseRestClient(url, key, timeout=settings.SUPABASE_TIMEOUT) as rest_client:
        return await ProbeRepository(rest_client).prune_health_checks()


@celery_app.task(bind=True, name="run_probe")
def run_probe_task(self, prompt: Optional[str] = None) -> dict:
    """
    Run one probe.

    Not retried at the Celery level: the escalation ladder already retries,
    and the next beat tick is the next attempt.

    Args:
        prompt: Optional prompt (random catalog prompt if None)

    Returns:
        ProbeResult as dict

    Raises:
        ConfigurationError: a required setting is missing
    """
    structlog.contextvars.bind_contextvars(task_id=self.request.id)
    try:
        result = asyncio.run(_probe(prompt))
    except ConfigurationError as exc:
        logger.error("Probe task misconfigured", error=exc.message, missing=exc.missing)
        raise
    finally:
        structlog.contextvars.clear_contextvars()

    logger.info(
        "Probe task completed",
        task_id=self.request.id,
        status=result["status"],
        http_status=result["http_status"],
    )
    return result


@celery_app.task(
    bind=True,
    name="prune_health_checks",
    autoretry_for=(PersistenceError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def prune_health_checks_task(self) -> dict:
    """
    Delete health-check rows whose is_successful is set.

    Retried with exponential backoff on store failures.

    Returns:
        {"deleted": <count or None>}
    """
    deleted = asyncio.run(_prune())
    logger.info("Prune task completed", task_id=self.request.id, deleted=deleted)
    return {"deleted": deleted}
