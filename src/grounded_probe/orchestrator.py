"""
Probe orchestrator: one end-to-end probe invocation.

Flow:
    1. Cooldown gate: if cooling, record a failed health check and skip (429)
    2. Prompt: caller-supplied, else a random one from the catalog
    3. Search strategy: direct or priority search over the escalation ladder
    4. Outcome mapping:
        SUCCESS       -> save response, health check true      -> 200
        RATE_LIMITED  -> set cooldown once, health check false  -> 429
        EXHAUSTED     -> health check false                     -> 500

Store failures are logged by the repository and never change the status.

Usage:
    async with open_orchestrator(settings) as orchestrator:
        result = await orchestrator.run()
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional, Sequence

import httpx
import structlog

from grounded_probe.config import Settings
from grounded_probe.llm.gemini_client import GeminiClient
from grounded_probe.llm.prompt_builder import PromptCatalog, SearchPromptBuilder
from grounded_probe.models.enums import ProbeStatus, SearchStrategyName
from grounded_probe.models.llm_models import Credential
from grounded_probe.models.output_models import ProbeResult
from grounded_probe.models.records import ResponseLogRecord
from grounded_probe.monitoring.metrics import cooldown_skips_total
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient
from grounded_probe.retry.cooldown import CooldownGate
from grounded_probe.retry.engine import EscalationLadder, LadderConfig
from grounded_probe.retry.outcome import Outcome
from grounded_probe.retry.strategies import (
    DirectSearchStrategy,
    PrioritySearchStrategy,
    SearchStrategy,
)

logger = structlog.get_logger(__name__)


class ProbeOrchestrator:
    """
    Runs one probe and maps the ladder outcome to a ProbeResult.

    Attributes:
        strategy: Search strategy (direct or priority)
        ladder: Escalation ladder used by the strategy
        credentials: Ordered credential set
        repository: Store for responses, health checks and cooldowns
        catalog: Prompt catalog used when no prompt is supplied
        gate: Cooldown gate (None disables the cooldown check)
    """

    def __init__(
        self,
        strategy: SearchStrategy,
        ladder: EscalationLadder,
        credentials: Sequence[Credential],
        repository: ProbeRepository,
        catalog: PromptCatalog,
        gate: Optional[CooldownGate] = None,
    ):
        self.strategy = strategy
        self.ladder = ladder
        self.credentials = list(credentials)
        self.repository = repository
        self.catalog = catalog
        self.gate = gate

    async def run(self, prompt: Optional[str] = None) -> ProbeResult:
        """
        Execute one probe.

        Args:
            prompt: Prompt to send (random catalog prompt if None or blank)

        Returns:
            ProbeResult with status success, skipped or error
        """
        if self.gate is not None and await self.gate.is_in_cooldown():
            cooldown_skips_total.inc()
            logger.info("Skipping upstream call due to active cooldown")
            recorded = await self.repository.record_health_check(False)
            minutes = int(self.gate.duration.total_seconds() // 60)
            return ProbeResult(
                status=ProbeStatus.SKIPPED,
                http_status=429,
                message=f"API call skipped due to rate limit cooldown period ({minutes} minutes)",
                check_recorded=recorded,
                in_cooldown=True,
            )

        selected = prompt.strip() if prompt and prompt.strip() else self.catalog.choose()
        log = logger.bind(strategy=self.strategy.name.value)
        log.info("Running probe", prompt_length=len(selected), caller_prompt=prompt is not None)

        outcome = await self.strategy.execute(selected, self.ladder, self.credentials)

        if outcome.is_success:
            return await self._on_success(selected, outcome)
        if outcome.is_rate_limited:
            return await self._on_rate_limited(selected, outcome)
        return await self._on_exhausted(selected, outcome)

    async def _on_success(self, prompt: str, outcome: Outcome) -> ProbeResult:
        payload = outcome.payload
        row_id = await self.repository.save_response(
            ResponseLogRecord(
                prompt=prompt,
                response=payload.text,
                grounding_metadata=payload.grounding_metadata,
                model_used=outcome.model_used,
            )
        )
        recorded = await self.repository.record_health_check(True)

        logger.info(
            "Probe succeeded",
            model_used=outcome.model_used,
            credential=outcome.credential_label_used,
            total_attempts=outcome.metadata.total_attempts,
            row_id=row_id,
        )
        return ProbeResult(
            status=ProbeStatus.SUCCESS,
            http_status=200,
            prompt=prompt,
            model_used=outcome.model_used,
            credential_label=outcome.credential_label_used,
            reply=row_id,
            search_strategy=payload.search_strategy,
            attempts=outcome.metadata.total_attempts,
            check_recorded=recorded,
        )

    async def _on_rate_limited(self, prompt: str, outcome: Outcome) -> ProbeResult:
        cooldown_set = False
        minutes = None
        if self.gate is not None:
            cooldown_set = await self.gate.set_cooldown() is not None
            minutes = int(self.gate.duration.total_seconds() // 60)
        recorded = await self.repository.record_health_check(False)

        logger.warning(
            "Probe rate limited",
            cooldown_set=cooldown_set,
            total_attempts=outcome.metadata.total_attempts,
        )
        message = "Rate limit exceeded."
        if minutes is not None:
            message = f"Rate limit exceeded. API calls paused for {minutes} minutes."
        return ProbeResult(
            status=ProbeStatus.ERROR,
            http_status=429,
            message=message,
            prompt=prompt,
            attempts=outcome.metadata.total_attempts,
            check_recorded=recorded,
            cooldown_set=cooldown_set,
        )

    async def _on_exhausted(self, prompt: str, outcome: Outcome) -> ProbeResult:
        recorded = await self.repository.record_health_check(False)

        logger.error(
            "Probe failed",
            error=outcome.error_message,
            total_attempts=outcome.metadata.total_attempts,
        )
        return ProbeResult(
            status=ProbeStatus.ERROR,
            http_status=500,
            message=outcome.error_message or "An unexpected error occurred.",
            prompt=prompt,
            attempts=outcome.metadata.total_attempts,
            check_recorded=recorded,
        )


def build_strategy(settings: Settings) -> SearchStrategy:
    """
    Build the configured search strategy.

    Raises:
        ConfigurationError: priority search without PRIORITY_DOMAIN
    """
    if settings.SEARCH_STRATEGY is SearchStrategyName.PRIORITY:
        domain = settings.require_priority_domain()
        return PrioritySearchStrategy(
            SearchPromptBuilder(domain, templates_dir=settings.PROMPT_TEMPLATES_DIR)
        )
    return DirectSearchStrategy()


@asynccontextmanager
async def open_orchestrator(
    settings: Settings,
    gemini_transport: Optional[httpx.AsyncBaseTransport] = None,
    store_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[ProbeOrchestrator]:
    """
    Build an orchestrator from settings and close its HTTP clients on exit.

    Required configuration is validated before any client is created.

    Raises:
        ConfigurationError: a required setting is missing
    """
    credentials = settings.credential_set()
    store_url, store_key = settings.require_store()
    strategy = build_strategy(settings)

    client = GeminiClient(
        base_url=settings.GEMINI_BASE_URL,
        timeout=settings.GEMINI_TIMEOUT,
        transport=gemini_transport,
    )
    rest_client = SupabaseRestClient(
        store_url,
        store_key,
        timeout=settings.SUPABASE_TIMEOUT,
        transport=store_transport,
    )
    repository = ProbeRepository(rest_client)
    gate = None
    if settings.COOLDOWN_ENABLED:
        gate = CooldownGate(repository, duration=timedelta(minutes=settings.COOLDOWN_MINUTES))

    orchestrator = ProbeOrchestrator(
        strategy=strategy,
        ladder=EscalationLadder(client, LadderConfig.from_settings(settings)),
        credentials=credentials,
        repository=repository,
        catalog=PromptCatalog.from_file(settings.PROMPTS_FILE),
        gate=gate,
    )
    try:
        yield orchestrator
    finally:
        await client.close()
        await rest_client.close()
