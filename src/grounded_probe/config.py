"""
Configuration settings for the grounded probe service.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see .env.example).

Secrets (API keys, store credentials) are optional at import time and are
validated per invocation through the ``require_*`` helpers, so a missing value
fails that invocation with ConfigurationError instead of crashing the process.
"""

from typing import Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from grounded_probe.models.enums import CallResultKind, RateLimitPolicy, SearchStrategyName
from grounded_probe.models.llm_models import Credential


class ConfigurationError(Exception):
    """
    Raised when a required configuration value is missing or invalid.

    Terminal for the current invocation: surfaces as HTTP 500 before any
    network activity and is never retried.
    """

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.missing = missing or []


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Grounded Probe"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Gemini ===
    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_BACKUP_API_KEY: Optional[SecretStr] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT: float = 15.0  # seconds, per call
    PRIMARY_MODEL: str = "gemini-2.5-flash-lite-preview-09-2025"
    FALLBACK_MODELS: list[str] = ["gemini-2.5-flash-lite"]

    # === Retry & Fallback ===
    MAX_RETRIES: int = 3  # Attempts per (credential, model) pair
    RETRY_INITIAL_DELAY: float = 1.0  # seconds
    RETRY_BACKOFF_BASE: float = 2.0  # Exponential backoff multiplier
    RETRY_JITTER: Optional[float] = 0.5  # seconds, upper bound of uniform jitter
    RETRY_MAX_DELAY: Optional[float] = 30.0  # seconds, cap on a single backoff sleep
    RATE_LIMIT_POLICY: RateLimitPolicy = RateLimitPolicy.ABORT
    RATE_LIMIT_RETRY_DELAY: float = 3.0  # seconds, only used by the "fallback" policy
    FAILOVER_ON: list[CallResultKind] = [
        CallResultKind.RATE_LIMITED,
        CallResultKind.SERVER_ERROR,
        CallResultKind.CLIENT_ERROR,
    ]

    # === Cooldown ===
    COOLDOWN_ENABLED: bool = True
    COOLDOWN_MINUTES: int = 45

    # === Search ===
    SEARCH_STRATEGY: SearchStrategyName = SearchStrategyName.DIRECT
    PRIORITY_DOMAIN: Optional[str] = None  # e.g. "quadrate.lk"
    PROMPT_TEMPLATES_DIR: Optional[str] = None  # Defaults to the packaged llm/prompts
    PROMPTS_FILE: Optional[str] = None  # One prompt per line; defaults to packaged catalog

    # === Supabase (PostgREST) ===
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[SecretStr] = None
    SUPABASE_TIMEOUT: float = 10.0

    # === Redis & Celery ===
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10
    CELERY_BROKER_URL: str = "redis://redis:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_TIME_LIMIT: int = 300  # seconds
    CELERY_WORKER_CONCURRENCY: int = 2
    PROBE_INTERVAL_SECONDS: int = 900
    PRUNE_INTERVAL_SECONDS: int = 86400

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    @property
    def model_ladder(self) -> list[str]:
        """Primary model first, then fallbacks, duplicates removed."""
        ladder: list[str] = []
        for model in [self.PRIMARY_MODEL, *self.FALLBACK_MODELS]:
            if model and model not in ladder:
                ladder.append(model)
        return ladder

    def credential_set(self) -> list[Credential]:
        """
        Build the ordered credential set (primary before backup).

        Raises:
            ConfigurationError: GEMINI_API_KEY is not set
        """
        if self.GEMINI_API_KEY is None or not self.GEMINI_API_KEY.get_secret_value():
            raise ConfigurationError(
                "GEMINI_API_KEY is not set", missing=["GEMINI_API_KEY"]
            )

        credentials = [Credential(key=self.GEMINI_API_KEY, label="primary")]
        backup = self.GEMINI_BACKUP_API_KEY
        if backup is not None and backup.get_secret_value():
            credentials.append(Credential(key=backup, label="backup"))
        return credentials

    def require_store(self) -> tuple[str, SecretStr]:
        """
        Return the Supabase URL and service key.

        Raises:
            ConfigurationError: either value is missing
        """
        missing = []
        if not self.SUPABASE_URL:
            missing.append("SUPABASE_URL")
        if self.SUPABASE_SERVICE_ROLE_KEY is None or not self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value():
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            raise ConfigurationError(
                "Missing Supabase credentials: " + ", ".join(missing), missing=missing
            )
        return self.SUPABASE_URL, self.SUPABASE_SERVICE_ROLE_KEY

    def require_priority_domain(self) -> str:
        """
        Return the domain prioritized by priority search.

        Raises:
            ConfigurationError: PRIORITY_DOMAIN is not set
        """
        if not self.PRIORITY_DOMAIN:
            raise ConfigurationError(
                "PRIORITY_DOMAIN is required when SEARCH_STRATEGY=priority",
                missing=["PRIORITY_DOMAIN"],
            )
        return self.PRIORITY_DOMAIN


# Global settings instance
settings = Settings()
