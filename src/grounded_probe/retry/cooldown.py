"""
Cooldown gate: persisted, cross-invocation back-off after rate limiting.

State lives entirely in the store (insert-only records); the gate itself is
stateless. The most recent record by ``cooldown_until`` is authoritative and
the gate is COOLING while ``now < cooldown_until``.

Reads fail open: if the store cannot be read the gate reports CLEAR so a
store outage never blocks probing.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

import structlog

from grounded_probe.models.enums import GateState
from grounded_probe.models.records import CooldownRecord, utc_now
from grounded_probe.monitoring.metrics import cooldowns_set_total

logger = structlog.get_logger(__name__)

DEFAULT_COOLDOWN = timedelta(minutes=45)


class CooldownStore(Protocol):
    """Narrow store interface the gate depends on."""

    async def get_latest_cooldown(self) -> Optional[CooldownRecord]:
        """Return the record with the latest cooldown_until, or None. May raise."""
        ...

    async def save_cooldown(self, record: CooldownRecord) -> Optional[CooldownRecord]:
        """Insert a record; return the stored record or None if the write failed."""
        ...


class CooldownGate:
    """
    Decides whether a probe invocation may call upstream at all.

    Attributes:
        store: Cooldown record store
        duration: Length of one cooldown window
    """

    def __init__(
        self,
        store: CooldownStore,
        duration: timedelta = DEFAULT_COOLDOWN,
        clock: Callable[[], datetime] = utc_now,
    ):
        if duration <= timedelta(0):
            raise ValueError("cooldown duration must be positive")
        self.store = store
        self.duration = duration
        self._clock = clock

    async def _latest(self) -> Optional[CooldownRecord]:
        try:
            return await self.store.get_latest_cooldown()
        except Exception as e:
            logger.warning(
                "Cooldown read failed, treating gate as clear",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def is_in_cooldown(self) -> bool:
        record = await self._latest()
        if record is None:
            return False

        now = self._clock()
        cooling = now < record.cooldown_until
        if cooling:
            logger.info(
                "Cooldown active",
                cooldown_until=record.cooldown_until.isoformat(),
                remaining_s=int((record.cooldown_until - now).total_seconds()),
            )
        return cooling

    async def state(self) -> GateState:
        return GateState.COOLING if await self.is_in_cooldown() else GateState.CLEAR

    def time_left(self, record: Optional[CooldownRecord]) -> timedelta:
        """Time left in the window opened by ``record`` (zero if none or expired)."""
        if record is None:
            return timedelta(0)
        return max(timedelta(0), record.cooldown_until - self._clock())

    async def remaining(self) -> timedelta:
        """Time left in the active window (zero when clear)."""
        return self.time_left(await self._latest())

    async def latest(self) -> Optional[CooldownRecord]:
        """Most recent record, or None if there is none or the read failed."""
        return await self._latest()

    async def set_cooldown(self) -> Optional[CooldownRecord]:
        """
        Insert a new record with cooldown_until = now + duration.

        Returns:
            The stored record, or None if the write failed (logged by the store)
        """
        now = self._clock()
        record = CooldownRecord(cooldown_until=now + self.duration, created_at=now)
        saved = await self.store.save_cooldown(record)
        if saved is not None:
            cooldowns_set_total.inc()
            logger.warning(
                "Cooldown set",
                cooldown_until=record.cooldown_until.isoformat(),
                duration_minutes=self.duration.total_seconds() / 60,
            )
        return saved
