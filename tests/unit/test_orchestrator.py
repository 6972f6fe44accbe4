"""
Unit tests for ProbeOrchestrator.

The ladder is real; the upstream client is scripted, the repository is a
mock and the cooldown gate runs on the in-memory store.
"""

import random
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from grounded_probe.config import ConfigurationError
from grounded_probe.llm.prompt_builder import PromptCatalog
from grounded_probe.models.enums import ProbeStatus, SearchStrategyName
from grounded_probe.models.records import CooldownRecord, ResponseLogRecord
from grounded_probe.orchestrator import ProbeOrchestrator, build_strategy
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.retry.cooldown import CooldownGate
from grounded_probe.retry.engine import EscalationLadder, LadderConfig
from grounded_probe.retry.strategies import DirectSearchStrategy, PrioritySearchStrategy
from tests.unit.fakes import ScriptedClient, client_error, ok, rate_limited, server_error

CATALOG_PROMPT = "What does Quadrate Tech Solutions (quadrate.lk) build?"


@pytest.fixture
def repository():
    repo = MagicMock(spec=ProbeRepository)
    repo.save_response = AsyncMock(return_value=101)
    repo.record_health_check = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def gate(cooldown_store, frozen_clock) -> CooldownGate:
    return CooldownGate(cooldown_store, duration=timedelta(minutes=45), clock=frozen_clock)


def make_orchestrator(script, repository, credentials, gate=None):
    client = ScriptedClient(script)
    ladder = EscalationLadder(
        client,
        LadderConfig(model_ladder=("model-a", "model-b")),
        rng=random.Random(0),
    )
    orchestrator = ProbeOrchestrator(
        strategy=DirectSearchStrategy(),
        ladder=ladder,
        credentials=credentials,
        repository=repository,
        catalog=PromptCatalog([CATALOG_PROMPT]),
        gate=gate,
    )
    return orchestrator, client


class TestProbeSuccess:

    @pytest.mark.asyncio
    async def test_success_saves_response_and_health_check(self, repository, credentials, gate, no_sleep):
        orchestrator, client = make_orchestrator(
            [ok("grounded answer", {"webSearchQueries": ["q"]})], repository, credentials, gate
        )

        result = await orchestrator.run()

        assert result.status is ProbeStatus.SUCCESS
        assert result.http_status == 200
        assert result.prompt == CATALOG_PROMPT
        assert result.model_used == "model-a"
        assert result.credential_label == "primary"
        assert result.reply == 101
        assert result.attempts == 1
        assert result.check_recorded is True

        saved: ResponseLogRecord = repository.save_response.await_args.args[0]
        assert saved.prompt == CATALOG_PROMPT
        assert saved.response == "grounded answer"
        assert saved.grounding_metadata == {"webSearchQueries": ["q"]}
        assert saved.model_used == "model-a"
        repository.record_health_check.assert_awaited_once_with(True)

    @pytest.mark.asyncio
    async def test_caller_prompt_is_used_stripped(self, repository, credentials, no_sleep):
        orchestrator, client = make_orchestrator([ok()], repository, credentials)

        result = await orchestrator.run("  custom question  ")

        assert result.prompt == "custom question"
        assert client.calls[0][2] == "custom question"

    @pytest.mark.asyncio
    async def test_blank_prompt_falls_back_to_catalog(self, repository, credentials, no_sleep):
        orchestrator, client = make_orchestrator([ok()], repository, credentials)

        result = await orchestrator.run("   ")

        assert result.prompt == CATALOG_PROMPT

    @pytest.mark.asyncio
    async def test_store_failures_do_not_change_status(self, repository, credentials, no_sleep):
        repository.save_response.return_value = None
        repository.record_health_check.return_value = False
        orchestrator, client = make_orchestrator([ok()], repository, credentials)

        result = await orchestrator.run()

        assert result.status is ProbeStatus.SUCCESS
        assert result.http_status == 200
        assert result.reply is None
        assert result.check_recorded is False

    @pytest.mark.asyncio
    async def test_response_body_excludes_http_status(self, repository, credentials, no_sleep):
        orchestrator, client = make_orchestrator([ok()], repository, credentials)

        body = (await orchestrator.run()).to_response_body()

        assert body["status"] == "success"
        assert body["reply"] == 101
        assert "http_status" not in body
        assert "message" not in body


class TestProbeCooldown:

    @pytest.mark.asyncio
    async def test_active_cooldown_skips_without_upstream_calls(
        self, repository, credentials, gate, cooldown_store, frozen_clock, no_sleep
    ):
        now = frozen_clock.now
        cooldown_store.records.append(
            CooldownRecord(cooldown_until=now + timedelta(minutes=10), created_at=now - timedelta(minutes=35))
        )
        orchestrator, client = make_orchestrator([], repository, credentials, gate)

        result = await orchestrator.run()

        assert result.status is ProbeStatus.SKIPPED
        assert result.http_status == 429
        assert result.in_cooldown is True
        assert result.message == "API call skipped due to rate limit cooldown period (45 minutes)"
        assert client.calls == []
        repository.record_health_check.assert_awaited_once_with(False)
        repository.save_response.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limited_sets_exactly_one_cooldown(
        self, repository, credentials, gate, cooldown_store, no_sleep
    ):
        orchestrator, client = make_orchestrator([rate_limited()], repository, credentials, gate)

        result = await orchestrator.run()

        assert result.status is ProbeStatus.ERROR
        assert result.http_status == 429
        assert result.cooldown_set is True
        assert result.message == "Rate limit exceeded. API calls paused for 45 minutes."
        assert len(cooldown_store.records) == 1
        assert client.pairs == [("primary", "model-a")]
        repository.record_health_check.assert_awaited_once_with(False)

    @pytest.mark.asyncio
    async def test_next_invocation_after_rate_limit_is_skipped(
        self, repository, credentials, gate, no_sleep
    ):
        orchestrator, client = make_orchestrator([rate_limited()], repository, credentials, gate)

        await orchestrator.run()
        second = await orchestrator.run()

        assert second.status is ProbeStatus.SKIPPED
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_cooldown_write_failure_still_reports_rate_limit(
        self, repository, credentials, gate, cooldown_store, no_sleep
    ):
        cooldown_store.fail_writes = True
        orchestrator, client = make_orchestrator([rate_limited()], repository, credentials, gate)

        result = await orchestrator.run()

        assert result.http_status == 429
        assert result.cooldown_set is False

    @pytest.mark.asyncio
    async def test_unreadable_cooldown_store_fails_open(
        self, repository, credentials, gate, cooldown_store, no_sleep
    ):
        cooldown_store.fail_reads = True
        orchestrator, client = make_orchestrator([ok()], repository, credentials, gate)

        result = await orchestrator.run()

        assert result.status is ProbeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_without_gate_rate_limit_sets_nothing(self, repository, credentials, no_sleep):
        orchestrator, client = make_orchestrator([rate_limited()], repository, credentials)

        result = await orchestrator.run()

        assert result.http_status == 429
        assert result.cooldown_set is False
        assert result.message == "Rate limit exceeded."


class TestProbeFailure:

    @pytest.mark.asyncio
    async def test_exhausted_returns_500_with_last_error(self, repository, credentials, gate, cooldown_store, no_sleep):
        orchestrator, client = make_orchestrator([client_error(400)], repository, credentials, gate)

        result = await orchestrator.run()

        assert result.status is ProbeStatus.ERROR
        assert result.http_status == 500
        assert result.message == "Gemini client error 400: bad request"
        assert cooldown_store.records == []
        repository.record_health_check.assert_awaited_once_with(False)
        repository.save_response.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistent_server_errors(self, repository, credentials, no_sleep):
        orchestrator, client = make_orchestrator(lambda request, credential: server_error(503), repository, credentials)

        result = await orchestrator.run()

        assert result.http_status == 500
        assert result.attempts == 12
        assert "503" in result.message


class TestBuildStrategy:

    def test_direct_by_default(self, test_settings):
        assert isinstance(build_strategy(test_settings), DirectSearchStrategy)

    def test_priority_with_domain(self, test_settings):
        settings = test_settings.model_copy(
            update={"SEARCH_STRATEGY": SearchStrategyName.PRIORITY, "PRIORITY_DOMAIN": "quadrate.lk"}
        )

        strategy = build_strategy(settings)

        assert isinstance(strategy, PrioritySearchStrategy)
        assert strategy.domain == "quadrate.lk"

    def test_priority_without_domain_is_configuration_error(self, test_settings):
        settings = test_settings.model_copy(update={"SEARCH_STRATEGY": SearchStrategyName.PRIORITY})

        with pytest.raises(ConfigurationError) as exc_info:
            build_strategy(settings)

        assert exc_info.value.missing == ["PRIORITY_DOMAIN"]
