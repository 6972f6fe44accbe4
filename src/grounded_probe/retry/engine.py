"""
Escalation ladder: retries, model fallback and credential failover.

This module implements the EscalationLadder that decides how many calls a
single "get a grounded answer" operation makes, against which model, and
with which credential.

Ladder (outer to inner):
    for credential in credential_set:        # primary before backup
        for model in model_ladder:           # most capable first
            for attempt in 1..retry_budget:
                call the client once

Per classified result:
    SUCCESS         -> return Outcome.success with the exact pair used
    RATE_LIMITED    -> ABORT policy: return Outcome.rate_limited now
                       FALLBACK policy: pause, move to the next model
    SERVER/NETWORK  -> back off and retry the same pair until the budget is spent
    CLIENT_ERROR    -> stop this credential; fail over only if the key was
                       rejected, otherwise return Outcome.exhausted now

Credential failover after a credential's models are all spent happens only
when the last failure kind under it is listed in ``failover_on``.

Usage:
    ladder = EscalationLadder(client, LadderConfig.from_settings(settings))
    outcome = await ladder.attempt(prompt, settings.credential_set())
"""

import asyncio
import random
import time
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

import structlog

from grounded_probe.config import Settings
from grounded_probe.llm.base_client import BaseGenerativeClient
from grounded_probe.models.enums import CallResultKind, RateLimitPolicy
from grounded_probe.models.llm_models import ClassifiedResult, Credential, GenerationRequest
from grounded_probe.monitoring.metrics import credential_failovers_total, ladder_outcomes_total
from grounded_probe.retry.backoff import BackoffPolicy
from grounded_probe.retry.metadata import AttemptRecord, LadderMetadata
from grounded_probe.retry.outcome import Outcome

logger = structlog.get_logger(__name__)

DEFAULT_FAILOVER_ON = frozenset(
    {CallResultKind.RATE_LIMITED, CallResultKind.SERVER_ERROR, CallResultKind.CLIENT_ERROR}
)


@dataclass(frozen=True)
class LadderConfig:
    """
    Policy parameters for one ladder run.

    Attributes:
        model_ladder: Model identifiers, most capable first
        retry_budget: Max attempts per (credential, model) pair
        backoff: Delay policy for SERVER_ERROR / NETWORK_ERROR retries
        rate_limit_policy: ABORT on first 429, or FALLBACK to the next model
        rate_limit_delay: Pause before switching model after a 429 (FALLBACK only)
        failover_on: Failure kinds that move the ladder to the next credential
        timeout: Hard per-call timeout in seconds
    """

    model_ladder: tuple[str, ...]
    retry_budget: int = 3
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    rate_limit_policy: RateLimitPolicy = RateLimitPolicy.ABORT
    rate_limit_delay: float = 3.0
    failover_on: frozenset[CallResultKind] = DEFAULT_FAILOVER_ON
    timeout: float = 15.0

    def __post_init__(self) -> None:
        """Validate config invariants."""
        if not self.model_ladder:
            raise ValueError("model_ladder must not be empty")

        if self.retry_budget < 1:
            raise ValueError("retry_budget must be >= 1")

        if self.rate_limit_delay < 0:
            raise ValueError("rate_limit_delay must be >= 0")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LadderConfig":
        return cls(
            model_ladder=tuple(settings.model_ladder),
            retry_budget=settings.MAX_RETRIES,
            backoff=BackoffPolicy(
                initial_delay=settings.RETRY_INITIAL_DELAY,
                factor=settings.RETRY_BACKOFF_BASE,
                jitter=settings.RETRY_JITTER,
                cap=settings.RETRY_MAX_DELAY,
            ),
            rate_limit_policy=settings.RATE_LIMIT_POLICY,
            rate_limit_delay=settings.RATE_LIMIT_RETRY_DELAY,
            failover_on=frozenset(settings.FAILOVER_ON),
            timeout=settings.GEMINI_TIMEOUT,
        )


class EscalationLadder:
    """
    Retry policy engine for one logical generation request.

    The ladder holds no state between runs; every ``attempt()`` call builds
    its own history and returns an Outcome. It never raises for upstream
    failures.

    Attributes:
        client: Outbound call primitive
        config: Default policy (can be overridden per call)
    """

    def __init__(
        self,
        client: BaseGenerativeClient,
        config: LadderConfig,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize escalation ladder.

        Args:
            client: Generative client used for every call
            config: Default ladder policy
            rng: Random source for backoff jitter
        """
        self.client = client
        self.config = config
        self._rng = rng or random.Random()

        logger.info(
            "EscalationLadder initialized",
            model_ladder=list(config.model_ladder),
            retry_budget=config.retry_budget,
            rate_limit_policy=config.rate_limit_policy.value,
            failover_on=sorted(kind.value for kind in config.failover_on),
        )

    async def attempt(
        self,
        prompt: str,
        credentials: Sequence[Credential],
        config: Optional[LadderConfig] = None,
        system_instruction: Optional[str] = None,
    ) -> Outcome:
        """
        Run the full ladder for one prompt.

        Args:
            prompt: Text to send
            credentials: Ordered credential set (non-empty, unique labels)
            config: Policy override for this run
            system_instruction: Optional system instruction sent with every call

        Returns:
            Outcome (SUCCESS, RATE_LIMITED or EXHAUSTED)

        Raises:
            ValueError: credential set is empty or has duplicate labels
        """
        config = config or self.config
        self._validate_credentials(credentials)

        start_time = time.perf_counter()
        attempts: list[AttemptRecord] = []
        failovers: list[str] = []
        last_error: Optional[ClassifiedResult] = None
        rate_limited_seen = False

        def metadata() -> LadderMetadata:
            return LadderMetadata(
                attempts=tuple(attempts),
                total_latency_ms=int((time.perf_counter() - start_time) * 1000),
                failovers=tuple(failovers),
            )

        for cred_index, credential in enumerate(credentials):
            has_next_credential = cred_index + 1 < len(credentials)
            credential_failure: Optional[ClassifiedResult] = None
            stop_credential = False

            for model_index, model in enumerate(config.model_ladder):
                has_next_model = model_index + 1 < len(config.model_ladder)
                request = GenerationRequest(
                    prompt=prompt, model=model, system_instruction=system_instruction
                )

                for attempt in range(1, config.retry_budget + 1):
                    result = await self.client.call(request, credential, timeout=config.timeout)
                    record = AttemptRecord(
                        credential_label=credential.label,
                        model=model,
                        attempt=attempt,
                        kind=result.kind,
                        status_code=result.status_code,
                        latency_ms=result.latency_ms,
                    )

                    if result.kind is CallResultKind.SUCCESS:
                        attempts.append(record)
                        outcome = Outcome.success(
                            payload=result.payload,
                            model_used=model,
                            credential_label_used=credential.label,
                            metadata=metadata(),
                        )
                        self._log_outcome(outcome)
                        return outcome

                    credential_failure = result

                    if result.kind is CallResultKind.RATE_LIMITED:
                        rate_limited_seen = True
                        if config.rate_limit_policy is RateLimitPolicy.ABORT:
                            attempts.append(record)
                            logger.warning(
                                "Rate limited, aborting ladder",
                                model=model,
                                credential=credential.label,
                                attempt=attempt,
                            )
                            outcome = Outcome.rate_limited(metadata())
                            self._log_outcome(outcome)
                            return outcome

                        more_to_try = has_next_model or (
                            has_next_credential and CallResultKind.RATE_LIMITED in config.failover_on
                        )
                        delay = config.rate_limit_delay if more_to_try else 0.0
                        attempts.append(replace(record, delay_after_s=delay))
                        logger.warning(
                            "Rate limited, switching model",
                            model=model,
                            credential=credential.label,
                            delay_s=delay,
                        )
                        if delay:
                            await asyncio.sleep(delay)
                        break

                    last_error = result

                    if not result.is_retryable:
                        attempts.append(record)
                        logger.error(
                            "Non-retryable client error",
                            model=model,
                            credential=credential.label,
                            status_code=result.status_code,
                            malformed=result.malformed,
                            credential_rejected=result.credential_rejected,
                            error=result.message,
                        )
                        stop_credential = True
                        break

                    if attempt < config.retry_budget:
                        delay = config.backoff.compute_delay(attempt - 1, self._rng)
                        attempts.append(replace(record, delay_after_s=delay))
                        logger.info(
                            f"Retrying same pair (attempt {attempt + 1}/{config.retry_budget})",
                            model=model,
                            credential=credential.label,
                            result=result.kind.value,
                            delay_s=round(delay, 3),
                        )
                        await asyncio.sleep(delay)
                        continue

                    attempts.append(record)
                    logger.warning(
                        f"Retry budget exhausted for model {model} (after {config.retry_budget} attempts)",
                        model=model,
                        credential=credential.label,
                        result=result.kind.value,
                        escalating=has_next_model,
                    )

                if stop_credential:
                    break

            if stop_credential:
                can_failover = (
                    has_next_credential
                    and credential_failure.credential_rejected
                    and CallResultKind.CLIENT_ERROR in config.failover_on
                )
                if not can_failover:
                    if rate_limited_seen:
                        outcome = Outcome.rate_limited(metadata())
                    else:
                        outcome = Outcome.exhausted(credential_failure, metadata())
                    self._log_outcome(outcome)
                    return outcome
            elif has_next_credential and credential_failure.kind not in config.failover_on:
                logger.warning(
                    "Not failing over to next credential",
                    credential=credential.label,
                    last_failure=credential_failure.kind.value,
                    failover_on=sorted(kind.value for kind in config.failover_on),
                )
                break

            if has_next_credential:
                next_label = credentials[cred_index + 1].label
                failovers.append(next_label)
                credential_failovers_total.labels(trigger=credential_failure.kind.value).inc()
                logger.warning(
                    "Failing over to next credential",
                    from_credential=credential.label,
                    to_credential=next_label,
                    trigger=credential_failure.kind.value,
                )

        if rate_limited_seen:
            outcome = Outcome.rate_limited(metadata())
        else:
            outcome = Outcome.exhausted(last_error, metadata())
        self._log_outcome(outcome)
        return outcome

    @staticmethod
    def _validate_credentials(credentials: Sequence[Credential]) -> None:
        if not credentials:
            raise ValueError("credential set must not be empty")
        labels = [c.label for c in credentials]
        if len(set(labels)) != len(labels):
            raise ValueError(f"credential labels must be unique: {labels}")

    @staticmethod
    def _log_outcome(outcome: Outcome) -> None:
        ladder_outcomes_total.labels(outcome=outcome.tag.value).inc()
        log = logger.info if outcome.is_success else logger.error
        log(
            "Ladder finished",
            outcome=outcome.tag.value,
            model_used=outcome.model_used,
            credential=outcome.credential_label_used,
            last_error=outcome.error_message,
            **outcome.metadata.to_log_dict(),
        )

