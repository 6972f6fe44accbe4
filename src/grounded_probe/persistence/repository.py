"""
Repository pattern for the probe's relational store.

Tables:
- gemini_responses: one row per successful probe (prompt, response,
  grounding_metadata, model_used, created_at)
- api_health_checks: one row per probe invocation (is_successful)
- gemini_rate_limit_cooldown: insert-only cooldown records

Write failures on the request path are logged and reported through the
return value; they never raise, so a store outage cannot turn a successful
probe into an error. Two operations propagate instead:

- get_latest_cooldown: the cooldown gate owns the fail-open decision
- prune_health_checks: maintenance task, retried by Celery
"""

from typing import Any, Optional

import structlog

from grounded_probe.models.records import CooldownRecord, HealthCheckRecord, ResponseLogRecord
from grounded_probe.monitoring.metrics import persistence_failures_total
from grounded_probe.persistence.exceptions import PersistenceError
from grounded_probe.persistence.rest_client import SupabaseRestClient

logger = structlog.get_logger(__name__)


class ProbeRepository:
    """
    Repository for response logs, health checks and cooldown records.

    Implements the CooldownStore interface used by CooldownGate.
    """

    RESPONSES_TABLE = "gemini_responses"
    HEALTH_CHECKS_TABLE = "api_health_checks"
    COOLDOWN_TABLE = "gemini_rate_limit_cooldown"

    def __init__(self, rest_client: SupabaseRestClient):
        """
        Initialize repository.

        Args:
            rest_client: PostgREST client
        """
        self.rest = rest_client

    @staticmethod
    def _failed(operation: str, error: PersistenceError) -> None:
        persistence_failures_total.labels(operation=operation).inc()
        logger.error(
            f"Store operation {operation} failed",
            operation=operation,
            table=error.table,
            status_code=error.status_code,
            error=error.message,
            details=error.details,
            exc_info=True,
        )

    async def save_response(self, record: ResponseLogRecord) -> Optional[Any]:
        """
        Insert a response-log row.

        Returns:
            The inserted row id, or None if the insert failed or the store
            returned no representation
        """
        try:
            rows = await self.rest.insert(self.RESPONSES_TABLE, record.model_dump(mode="json"))
        except PersistenceError as e:
            self._failed("save_response", e)
            return None

        row_id = rows[0].get("id") if rows else None
        logger.info("Saved response", model_used=record.model_used, row_id=row_id)
        return row_id

    async def record_health_check(self, is_successful: bool) -> bool:
        """Insert a health-check row; returns True if it was written."""
        record = HealthCheckRecord(is_successful=is_successful)
        try:
            await self.rest.insert(self.HEALTH_CHECKS_TABLE, record.model_dump(mode="json"))
        except PersistenceError as e:
            self._failed("record_health_check", e)
            return False

        logger.debug("Recorded health check", is_successful=is_successful)
        return True

    async def get_latest_cooldown(self) -> Optional[CooldownRecord]:
        """
        Return the record with the latest cooldown_until, or None.

        Raises:
            PersistenceError: store read failed
        """
        try:
            rows = await self.rest.select(
                self.COOLDOWN_TABLE,
                columns="cooldown_until,created_at",
                order="cooldown_until.desc",
                limit=1,
            )
        except PersistenceError as e:
            self._failed("get_latest_cooldown", e)
            raise

        if not rows:
            return None
        return CooldownRecord.model_validate(rows[0])

    async def save_cooldown(self, record: CooldownRecord) -> Optional[CooldownRecord]:
        """Insert a cooldown record; returns it, or None if the write failed."""
        try:
            await self.rest.insert(self.COOLDOWN_TABLE, record.model_dump(mode="json"))
        except PersistenceError as e:
            self._failed("save_cooldown", e)
            return None
        return record

    async def prune_health_checks(self) -> Optional[int]:
        """
        Delete health-check rows whose is_successful is set.

        Returns:
            Number of deleted rows, if the store reports it

        Raises:
            PersistenceError: delete failed
        """
        try:
            deleted = await self.rest.delete(
                self.HEALTH_CHECKS_TABLE, {"is_successful": "not.is.null"}
            )
        except PersistenceError as e:
            self._failed("prune_health_checks", e)
            raise

        logger.info("Pruned health checks", deleted=deleted)
        return deleted

    async def ping(self) -> bool:
        """Return True if the store is reachable with the configured key."""
        try:
            return await self.rest.ping()
        except PersistenceError as e:
            logger.warning("Store health check failed", error=e.message, status_code=e.status_code)
            return False
