"""
API routes for the probe service.

- POST /probe: run one probe (optional JSON body {"prompt": ...})
- OPTIONS /probe: CORS preflight, always 200 "ok"
- GET /cooldown: current cooldown gate state
- GET /health: store, broker and credential status
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from grounded_probe.api.dependencies import get_cooldown_gate, get_orchestrator, get_settings
from grounded_probe.api.middleware import CORS_HEADERS
from grounded_probe.api.models import CooldownResponse, ErrorResponse, HealthResponse, ProbeRequest
from grounded_probe.config import ConfigurationError, Settings
from grounded_probe.models.enums import GateState
from grounded_probe.orchestrator import ProbeOrchestrator
from grounded_probe.persistence.redis_client import ping_redis
from grounded_probe.persistence.repository import ProbeRepository
from grounded_probe.persistence.rest_client import SupabaseRestClient
from grounded_probe.retry.cooldown import CooldownGate

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/probe",
    summary="Run one probe",
    description="""
    Query Gemini once (with retries, model fallback and credential failover),
    store the response and record a health check.

    Skipped with 429 while a rate-limit cooldown is active.
    """,
    responses={
        200: {"description": "Probe succeeded"},
        429: {"description": "Skipped (cooldown active) or rate limited (cooldown set)"},
        500: {"description": "Upstream failed after retries, or configuration missing", "model": ErrorResponse},
    },
)
async def run_probe(
    request: Optional[ProbeRequest] = None,
    orchestrator: ProbeOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    prompt = request.prompt if request is not None else None
    result = await orchestrator.run(prompt)

    logger.info(
        "Probe request finished",
        status=result.status.value,
        http_status=result.http_status,
        model_used=result.model_used,
    )
    return JSONResponse(
        status_code=result.http_status,
        content=result.to_response_body(),
        headers=CORS_HEADERS,
    )


@router.options("/probe", include_in_schema=False)
async def probe_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.get(
    "/cooldown",
    response_model=CooldownResponse,
    summary="Cooldown gate state",
)
async def cooldown_status(
    gate: CooldownGate = Depends(get_cooldown_gate),
) -> CooldownResponse:
    record = await gate.latest()
    remaining = gate.time_left(record)
    return CooldownResponse(
        state=GateState.COOLING if remaining.total_seconds() > 0 else GateState.CLEAR,
        cooldown_until=record.cooldown_until if record is not None else None,
        remaining_seconds=int(remaining.total_seconds()),
    )


async def _check_store(settings: Settings) -> str:
    try:
        url, key = settings.require_store()
    except ConfigurationError:
        return "not_configured"

    async with SupabaseRestClient(url, key, timeout=5.0) as rest_client:
        reachable = await ProbeRepository(rest_client).ping()
    return "ok" if reachable else "unreachable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check the health of the probe service and its dependencies.

    Returns status of:
    - Supabase REST store (required)
    - Gemini credentials (configured or not; no upstream call is made)
    - Redis (Celery broker)
    """,
    responses={
        200: {"description": "Healthy or degraded"},
        503: {"description": "Store unreachable or credentials missing"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    services = {"store": await _check_store(settings)}

    try:
        settings.credential_set()
        services["gemini"] = "configured"
    except ConfigurationError:
        services["gemini"] = "not_configured"

    services["redis"] = "ok" if await ping_redis(settings) else "unreachable"

    if services["store"] != "ok" or services["gemini"] != "configured":
        health_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif services["redis"] != "ok":
        health_status = "degraded"
        status_code = status.HTTP_200_OK
    else:
        health_status = "healthy"
        status_code = status.HTTP_200_OK

    logger.info("Health check", status=health_status, services=services)

    response = HealthResponse(
        status=health_status,
        version=settings.APP_VERSION,
        services=services,
    )
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
    )
