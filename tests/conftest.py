"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest
from pydantic import SecretStr

from grounded_probe.config import Settings
from grounded_probe.models.llm_models import Credential


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Built without reading .env so the developer's environment never leaks in.
    Override specific settings with ``test_settings.model_copy(update={...})``.
    """
    return Settings(
        _env_file=None,
        # === Application ===
        APP_NAME="Grounded Probe (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Gemini ===
        GEMINI_API_KEY="test-primary-key",
        GEMINI_BACKUP_API_KEY="test-backup-key",
        GEMINI_BASE_URL="https://gemini.test/v1beta",
        GEMINI_TIMEOUT=5.0,
        PRIMARY_MODEL="model-a",
        FALLBACK_MODELS=["model-b"],

        # === Retry ===
        MAX_RETRIES=3,
        RETRY_INITIAL_DELAY=1.0,
        RETRY_BACKOFF_BASE=2.0,
        RETRY_JITTER=0.5,
        RETRY_MAX_DELAY=30.0,

        # === Supabase ===
        SUPABASE_URL="https://store.test",
        SUPABASE_SERVICE_ROLE_KEY="test-service-key",

        # === Redis ===
        REDIS_URL="redis://localhost:6379/0",

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def credentials() -> list[Credential]:
    """Primary + backup credential set."""
    return [
        Credential(key=SecretStr("key-primary"), label="primary"),
        Credential(key=SecretStr("key-backup"), label="backup"),
    ]


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def gemini_success_body(fixtures_dir: Path) -> Dict[str, Any]:
    """Recorded generateContent response with grounding metadata."""
    with open(fixtures_dir / "gemini_success.json") as f:
        return json.load(f)
