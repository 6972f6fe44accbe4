"""
Abstract base client for generative text APIs.

Defines the interface the escalation ladder depends on. This abstraction
allows swapping the upstream provider (or a scripted fake in tests) without
changing the retry logic.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from grounded_probe.models.llm_models import ClassifiedResult, Credential, GenerationRequest


logger = structlog.get_logger(__name__)


class BaseGenerativeClient(ABC):
    """
    Abstract base class for generative API clients.

    Responsibilities:
    - Send exactly one request per ``call()`` under a hard timeout
    - Classify the transport result into a ClassifiedResult

    Does NOT handle:
    - Retries, model fallback or credential failover (EscalationLadder)
    - Cooldown state (CooldownGate)
    - Persistence of any kind
    """

    def __init__(self, base_url: str, timeout: float = 15.0):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the API (e.g., https://generativelanguage.googleapis.com/v1beta)
            timeout: Per-call timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        logger.info(
            "Initialized generative client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=timeout,
        )

    @abstractmethod
    async def call(
        self,
        request: GenerationRequest,
        credential: Credential,
        timeout: Optional[float] = None,
    ) -> ClassifiedResult:
        """
        Perform one generation call and classify the result.

        Implementations must not raise for upstream or transport failures;
        every outcome is reported through ClassifiedResult.kind.

        Args:
            request: Prompt, model and request options
            credential: API key to authenticate with
            timeout: Hard timeout in seconds (defaults to the client timeout)

        Returns:
            ClassifiedResult (SUCCESS carries the payload)
        """
        pass

    async def close(self):
        """
        Close client connections and cleanup resources.

        Default implementation does nothing. Subclasses should override if
        they hold persistent connections.
        """
        logger.debug("Closing generative client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )
