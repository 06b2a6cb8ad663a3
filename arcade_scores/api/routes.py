"""HTTP route handlers for leaderboard reads, score submission, and health checks."""

from __future__ import annotations

import logging
import traceback

from fastapi import APIRouter, Depends, Query, Request, Response

from arcade_scores.api.client_identity import resolve_client_id
from arcade_scores.api.errors import APIError
from arcade_scores.config import Settings
from arcade_scores.models.schemas import (
    ErrorResponse,
    HealthResponse,
    LeaderboardResponse,
    RateLimitInfo,
    ReadyResponse,
    Score,
    SubmitResponse,
)
from arcade_scores.services.errors import (
    InvalidSubmissionError,
    RateLimitExceededError,
    ServiceError,
    StoreFailureError,
    StoreNotConfiguredError,
)
from arcade_scores.services.leaderboard import LeaderboardService
from arcade_scores.services.submission import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

CONFIGURATION_ERROR_DETAILS = (
    "Score store connection settings (SUPABASE_URL, SUPABASE_ANON_KEY) are not set."
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_leaderboard_service(request: Request) -> LeaderboardService:
    return request.app.state.leaderboard_service


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submission_service


def service_error_to_api_error(exc: ServiceError) -> APIError:
    if isinstance(exc, RateLimitExceededError):
        return APIError.simple(429, str(exc))
    if isinstance(exc, InvalidSubmissionError):
        return APIError.simple(400, exc.message)
    if isinstance(exc, StoreFailureError):
        return APIError(exc.classified.status_code, ErrorResponse.from_classified(exc.classified))
    if isinstance(exc, StoreNotConfiguredError):
        return APIError.simple(500, "Server configuration error", CONFIGURATION_ERROR_DETAILS)
    raise TypeError(f"Unmapped service error: {exc!r}")


def internal_error(exc: Exception, settings: Settings, where: str) -> APIError:
    # Must be called from inside the except block that caught ``exc``.
    logger.exception("Unhandled error in %s", where)
    return APIError(
        500,
        ErrorResponse(
            error="Internal server error",
            details=str(exc) or "Unknown error occurred",
            stack=None if settings.is_production else traceback.format_exc(),
        ),
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    response: Response,
    game_id: str | None = Query(default=None),
    service: LeaderboardService = Depends(get_leaderboard_service),
    settings: Settings = Depends(get_settings),
) -> LeaderboardResponse:
    try:
        rows = await service.get_leaderboard(game_id)
        data = [Score.from_stored(row) for row in rows]
    except ServiceError as exc:
        raise service_error_to_api_error(exc) from exc
    except Exception as exc:
        raise internal_error(exc, settings, "leaderboard GET") from exc

    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
    return LeaderboardResponse(data=data)


@router.post("/leaderboard/submit", response_model=SubmitResponse, status_code=201)
async def submit_score(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
    settings: Settings = Depends(get_settings),
) -> SubmitResponse:
    client_id = resolve_client_id(request.headers)
    try:
        result = await service.submit(client_id, await request.body())
        stored = Score.from_stored(result.score)
    except ServiceError as exc:
        raise service_error_to_api_error(exc) from exc
    except Exception as exc:
        raise internal_error(exc, settings, "leaderboard submit") from exc

    return SubmitResponse(
        data=stored,
        rate_limit=RateLimitInfo(remaining=result.remaining),
    )


# Infrastructure probes, kept out of the OpenAPI schema.
@router.get("/healthz", response_model=HealthResponse, include_in_schema=False)
async def healthz() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/readyz", response_model=ReadyResponse, include_in_schema=False)
async def readyz(request: Request) -> ReadyResponse:
    if request.app.state.score_store is None:
        raise APIError.simple(503, "Service not ready", CONFIGURATION_ERROR_DETAILS)

    limit_store = request.app.state.rate_limiter.store
    ping = getattr(limit_store, "ping", None)
    if ping is not None:
        try:
            # The shared limiter backend must answer too, when one is configured.
            is_ready = await ping()
        except Exception as exc:
            raise APIError.simple(503, "Service not ready", "Redis readiness check failed") from exc
        if not is_ready:
            raise APIError.simple(503, "Service not ready", "Redis readiness check failed")

    return ReadyResponse(status="ok")
