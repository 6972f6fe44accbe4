"""Integration test fixtures (in-process upstream and store).

Gemini and the Supabase REST store are replaced by httpx.MockTransport
handlers, so the real clients, ladder, repository and FastAPI app are
exercised end to end without network access.
"""

import pytest

from tests.integration.fakes import FakeGemini, FakeSupabase


@pytest.fixture
def fake_gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture
def fake_store() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def integration_settings(test_settings):
    """Test settings with zero backoff so retries do not slow the suite."""
    return test_settings.model_copy(
        update={
            "RETRY_INITIAL_DELAY": 0.0,
            "RETRY_JITTER": None,
            "RATE_LIMIT_RETRY_DELAY": 0.0,
        }
    )
