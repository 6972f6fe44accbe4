"""
Gemini client implementation for grounded text generation.

Communicates with the Gemini generateContent API using httpx AsyncClient.
Each ``call()`` makes exactly one HTTP request and classifies the result:

- 429                  -> RATE_LIMITED
- >= 500               -> SERVER_ERROR
- other non-2xx        -> CLIENT_ERROR (401/403/API_KEY_INVALID flagged credential_rejected)
- timeout / transport  -> NETWORK_ERROR (timeout bounds the whole call)
- undecodable 2xx body -> CLIENT_ERROR flagged malformed
- 2xx, unusable body   -> CLIENT_ERROR flagged malformed
- 2xx with text        -> SUCCESS
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional

import httpx
import structlog
from pydantic import ValidationError

from grounded_probe.llm.base_client import BaseGenerativeClient
from grounded_probe.llm.exceptions import MalformedResponseError
from grounded_probe.models.enums import CallResultKind
from grounded_probe.models.llm_models import (
    ClassifiedResult,
    Credential,
    GeminiResponse,
    GenerationPayload,
    GenerationRequest,
)
from grounded_probe.monitoring.metrics import gemini_call_latency_seconds, gemini_calls_total


logger = structlog.get_logger(__name__)

# Gemini reports an invalid key as 400 INVALID_ARGUMENT with this reason
API_KEY_INVALID_REASON = "API_KEY_INVALID"
CREDENTIAL_REJECTED_STATUSES = (401, 403)
ERROR_TEXT_LIMIT = 500


class GeminiClient(BaseGenerativeClient):
    """
    Gemini-specific client using httpx for async HTTP communication.

    API Endpoints:
    - POST /models/{model}:generateContent

    The API key travels in the x-goog-api-key header rather than the query
    string so it never shows up in URLs or access logs.
    """

    def __init__(
        self,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 15.0,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            base_url: Gemini API base URL (including version segment)
            timeout: Hard per-call timeout in seconds
            connection_limits: httpx connection pool limits
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(base_url, timeout)

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    @staticmethod
    def build_payload(request: GenerationRequest) -> Dict[str, Any]:
        """
        Build the generateContent body.

        {
            "tools": [{"google_search": {}}],
            "contents": [{"parts": [{"text": "..."}]}],
            "systemInstruction": {"role": "system", "parts": [{"text": "..."}]}
        }
        """
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": request.prompt}]}],
        }
        if request.grounding:
            payload["tools"] = [{"google_search": {}}]
        if request.system_instruction:
            payload["systemInstruction"] = {
                "role": "system",
                "parts": [{"text": request.system_instruction}],
            }
        return payload

    async def call(
        self,
        request: GenerationRequest,
        credential: Credential,
        timeout: Optional[float] = None,
    ) -> ClassifiedResult:
        timeout = timeout or self.timeout
        start_time = time.perf_counter()
        payload = self.build_payload(request)

        logger.info(
            "Sending generateContent request",
            model=request.model,
            credential=credential.label,
            prompt_length=len(request.prompt),
            has_system_instruction=bool(request.system_instruction),
        )

        try:
            client = await self._get_client()
            response = await asyncio.wait_for(
                client.post(
                    f"/models/{request.model}:generateContent",
                    json=payload,
                    headers={"x-goog-api-key": credential.key.get_secret_value()},
                    timeout=timeout,
                ),
                timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            # total deadline; httpx timeouts apply per connect/read step
            result = ClassifiedResult(
                kind=CallResultKind.NETWORK_ERROR,
                message=f"Request timeout after {timeout}s",
                latency_ms=self._elapsed_ms(start_time),
                timed_out=True,
            )
            logger.warning("Gemini request timeout", model=request.model, error=repr(e))
        except httpx.DecodingError as e:
            result = ClassifiedResult(
                kind=CallResultKind.CLIENT_ERROR,
                message=f"Could not decode Gemini response body: {e}",
                latency_ms=self._elapsed_ms(start_time),
                malformed=True,
            )
            logger.error("Undecodable Gemini response", model=request.model, error=str(e))
        except httpx.RequestError as e:
            result = ClassifiedResult(
                kind=CallResultKind.NETWORK_ERROR,
                message=f"Network error: {type(e).__name__}: {e}",
                latency_ms=self._elapsed_ms(start_time),
            )
            logger.warning("Gemini network error", model=request.model, error=str(e))
        else:
            result = self.classify(response, latency_ms=self._elapsed_ms(start_time))

        gemini_calls_total.labels(
            model=request.model, credential=credential.label, result=result.kind.value
        ).inc()
        gemini_call_latency_seconds.labels(
            model=request.model, result=result.kind.value
        ).observe(result.latency_ms / 1000.0)

        logger.info(
            "Gemini call classified",
            model=request.model,
            credential=credential.label,
            result=result.kind.value,
            status_code=result.status_code,
            latency_ms=result.latency_ms,
        )
        return result

    def classify(self, response: httpx.Response, latency_ms: int = 0) -> ClassifiedResult:
        """Classify an HTTP response into a ClassifiedResult."""
        status_code = response.status_code

        if status_code == 429:
            return ClassifiedResult(
                kind=CallResultKind.RATE_LIMITED,
                status_code=status_code,
                message="Rate limit exceeded (429)",
                latency_ms=latency_ms,
            )

        if status_code >= 500:
            return ClassifiedResult(
                kind=CallResultKind.SERVER_ERROR,
                status_code=status_code,
                message=f"Gemini server error {status_code}: {self._error_message(response)}",
                latency_ms=latency_ms,
            )

        if not response.is_success:
            return ClassifiedResult(
                kind=CallResultKind.CLIENT_ERROR,
                status_code=status_code,
                message=f"Gemini client error {status_code}: {self._error_message(response)}",
                latency_ms=latency_ms,
                credential_rejected=self._is_credential_rejection(response),
            )

        try:
            payload = self.parse_payload(response)
        except MalformedResponseError as e:
            logger.error("Malformed Gemini response", error=e.message, details=e.details)
            return ClassifiedResult(
                kind=CallResultKind.CLIENT_ERROR,
                status_code=status_code,
                message=e.message,
                latency_ms=latency_ms,
                malformed=True,
            )

        return ClassifiedResult(
            kind=CallResultKind.SUCCESS,
            payload=payload,
            status_code=status_code,
            latency_ms=latency_ms,
        )

    @staticmethod
    def parse_payload(response: httpx.Response) -> GenerationPayload:
        """
        Extract text and grounding metadata from a 2xx body.

        Raises:
            MalformedResponseError: body is not JSON, has the wrong shape,
                or has no text in the first candidate
        """
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise MalformedResponseError(
                "Invalid JSON response from Gemini",
                details={"parse_error": str(e)},
            )

        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Unexpected Gemini response structure",
                details={"type": type(data).__name__},
            )

        try:
            parsed = GeminiResponse.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(
                "Unexpected Gemini response structure",
                details={"errors": e.errors(include_url=False)},
            )

        text = parsed.first_text()
        if not text:
            raise MalformedResponseError(
                "Could not extract text from the AI's response",
                details={"candidates": len(parsed.candidates)},
            )

        return GenerationPayload(
            text=text,
            grounding_metadata=parsed.first_grounding_metadata(),
            raw=data,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer error.message from a JSON error body, else truncated text."""
        try:
            body = response.json()
        except ValueError:
            return response.text[:ERROR_TEXT_LIMIT]
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
            if message:
                return str(message)[:ERROR_TEXT_LIMIT]
        return response.text[:ERROR_TEXT_LIMIT]

    @staticmethod
    def _is_credential_rejection(response: httpx.Response) -> bool:
        if response.status_code in CREDENTIAL_REJECTED_STATUSES:
            return True
        return API_KEY_INVALID_REASON in response.text

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Gemini client connection")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
