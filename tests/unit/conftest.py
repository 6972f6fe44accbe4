"""Unit test fixtures (fakes and stubs).

Provides the ladder sleep patch, an in-memory cooldown store and a frozen
clock so the ladder, gate and orchestrator can be tested without HTTP.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from tests.unit.fakes import FakeCooldownStore, FrozenClock


@pytest.fixture
def no_sleep():
    """Patch the ladder's asyncio.sleep so backoff delays are recorded, not waited."""
    with patch("grounded_probe.retry.engine.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def cooldown_store() -> FakeCooldownStore:
    return FakeCooldownStore()


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
