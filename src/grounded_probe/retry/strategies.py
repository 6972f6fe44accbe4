"""
Search strategies built on top of the escalation ladder.

This module implements the Strategy Pattern for how one probe prompt is
turned into ladder runs. Each strategy exposes a single ``execute`` method
and returns an Outcome, so the orchestrator does not care which one ran.

Strategies:
    1. DirectSearchStrategy: one ladder run with the prompt as-is
    2. PrioritySearchStrategy: domain-focused search first, then a
       supplementary general search; general-only fallback when the
       domain search is exhausted

A rate-limited outcome from any ladder run is returned immediately.
"""

from typing import Optional, Protocol, Sequence

import structlog

from grounded_probe.llm.prompt_builder import SearchPromptBuilder
from grounded_probe.models.enums import SearchStrategyName
from grounded_probe.models.llm_models import Credential, GenerationPayload, SearchSummary
from grounded_probe.retry.engine import EscalationLadder
from grounded_probe.retry.outcome import Outcome

logger = structlog.get_logger(__name__)

GENERAL_WEB_SOURCE = "general_web"


class SearchStrategy(Protocol):
    """
    Protocol for search strategies.

    Implementations may run the ladder more than once but must return a
    single Outcome whose metadata covers every call made.
    """

    name: SearchStrategyName

    async def execute(
        self,
        prompt: str,
        ladder: EscalationLadder,
        credentials: Sequence[Credential],
    ) -> Outcome:
        """
        Execute the strategy for one prompt.

        Args:
            prompt: Selected probe prompt
            ladder: Escalation ladder used for every upstream call
            credentials: Ordered credential set

        Returns:
            Outcome (SUCCESS, RATE_LIMITED or EXHAUSTED)
        """
        ...


class DirectSearchStrategy:
    """Single ladder run with the prompt unchanged."""

    name = SearchStrategyName.DIRECT

    async def execute(
        self,
        prompt: str,
        ladder: EscalationLadder,
        credentials: Sequence[Credential],
    ) -> Outcome:
        return await ladder.attempt(prompt, credentials)


class PrioritySearchStrategy:
    """
    Domain-prioritized search.

    Phase 1 asks the model to search the priority domain only. If it
    succeeds, phase 2 runs a general search to supplement it; a phase 2
    failure other than rate limiting is tolerated and the phase 1 answer is
    returned alone. If phase 1 is exhausted, a general-only search runs
    and its outcome is final.

    The returned payload carries a SearchSummary describing which phases
    completed.
    """

    name = SearchStrategyName.PRIORITY

    def __init__(self, builder: SearchPromptBuilder):
        """
        Initialize priority search strategy.

        Args:
            builder: Renders the domain and general prompts/instructions
        """
        self.builder = builder

    @property
    def domain(self) -> str:
        return self.builder.domain

    async def execute(
        self,
        prompt: str,
        ladder: EscalationLadder,
        credentials: Sequence[Credential],
    ) -> Outcome:
        logger.info("Priority search phase 1: domain search", domain=self.domain)
        domain_outcome = await ladder.attempt(
            self.builder.domain_prompt(prompt),
            credentials,
            system_instruction=self.builder.domain_instruction(),
        )
        metadata = domain_outcome.metadata

        if domain_outcome.is_rate_limited:
            return domain_outcome

        if domain_outcome.is_success:
            logger.info("Priority search phase 2: supplementary general search")
            general_outcome = await self._general_search(prompt, ladder, credentials)
            metadata = metadata.merge(general_outcome.metadata)

            if general_outcome.is_rate_limited:
                return Outcome.rate_limited(metadata)

            if not general_outcome.is_success:
                logger.warning(
                    "Supplementary general search failed, returning domain results only",
                    error=general_outcome.error_message,
                )

            return Outcome.success(
                payload=self._aggregate(
                    domain_outcome.payload,
                    general_outcome.payload if general_outcome.is_success else None,
                ),
                model_used=domain_outcome.model_used,
                credential_label_used=domain_outcome.credential_label_used,
                metadata=metadata,
            )

        logger.warning(
            "Domain search exhausted, falling back to general search only",
            domain=self.domain,
            error=domain_outcome.error_message,
        )
        fallback_outcome = await self._general_search(prompt, ladder, credentials)
        metadata = metadata.merge(fallback_outcome.metadata)

        if fallback_outcome.is_success:
            return Outcome.success(
                payload=self._fallback(fallback_outcome.payload),
                model_used=fallback_outcome.model_used,
                credential_label_used=fallback_outcome.credential_label_used,
                metadata=metadata,
            )
        if fallback_outcome.is_rate_limited:
            return Outcome.rate_limited(metadata)
        return Outcome.exhausted(fallback_outcome.last_error, metadata)

    async def _general_search(
        self,
        prompt: str,
        ladder: EscalationLadder,
        credentials: Sequence[Credential],
    ) -> Outcome:
        return await ladder.attempt(
            self.builder.general_prompt(prompt),
            credentials,
            system_instruction=self.builder.general_instruction(),
        )

    def _aggregate(
        self,
        domain: GenerationPayload,
        general: Optional[GenerationPayload],
    ) -> GenerationPayload:
        """Combine phase 1 and phase 2; the domain answer always comes first."""
        text = domain.text
        if general is not None:
            text = f"{domain.text}\n\n{general.text}"

        return GenerationPayload(
            text=text,
            grounding_metadata=domain.grounding_metadata,
            raw={
                "domain_search": domain.raw,
                "general_search": general.raw if general is not None else None,
            },
            search_strategy=SearchSummary(
                domain_search_completed=True,
                general_search_completed=general is not None,
                primary_source=self.domain,
                aggregation_type="prioritized",
            ),
        )

    @staticmethod
    def _fallback(general: GenerationPayload) -> GenerationPayload:
        return GenerationPayload(
            text=general.text,
            grounding_metadata=general.grounding_metadata,
            raw={"domain_search": None, "general_search": general.raw},
            search_strategy=SearchSummary(
                domain_search_completed=False,
                general_search_completed=True,
                primary_source=GENERAL_WEB_SOURCE,
                aggregation_type="fallback",
            ),
        )
