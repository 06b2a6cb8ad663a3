"""Application factory: settings, store and limiter wiring, and the error handler."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arcade_scores.api.errors import APIError
from arcade_scores.api.routes import router
from arcade_scores.config import Settings, get_settings
from arcade_scores.services.error_classifier import ErrorClassifier, default_rules
from arcade_scores.services.leaderboard import LeaderboardService
from arcade_scores.services.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
    RateLimitSweeper,
    RedisRateLimitStore,
)
from arcade_scores.services.submission import SubmissionService
from arcade_scores.storage.redis import create_redis_client
from arcade_scores.storage.scores import InMemoryScoreStore, PostgrestScoreStore, ScoreStore

logger = logging.getLogger(__name__)


def create_score_store(settings: Settings) -> ScoreStore | None:
    if settings.score_store_backend == "memory":
        logger.warning("Using the in-memory score store; scores are lost on restart")
        return InMemoryScoreStore()
    if not settings.store_configured:
        logger.error(
            "Missing score store settings: SUPABASE_URL and SUPABASE_ANON_KEY must be set; "
            "leaderboard requests will fail with a configuration error"
        )
        return None
    return PostgrestScoreStore(
        base_url=settings.supabase_url,
        api_key=settings.supabase_anon_key,
        table=settings.scores_table,
        timeout=settings.store_timeout_seconds,
    )


def create_app(
    settings: Settings | None = None,
    *,
    score_store: ScoreStore | None = None,
    rate_limit_store: RateLimitStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        redis_client = None
        limit_store = rate_limit_store
        if limit_store is None:
            if settings.rate_limit_backend == "redis":
                redis_client = create_redis_client(settings.redis_url)
                limit_store = RedisRateLimitStore(redis_client)
            else:
                limit_store = InMemoryRateLimitStore()

        store = score_store if score_store is not None else create_score_store(settings)
        limiter = RateLimiter(
            limit_store,
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
        classifier = ErrorClassifier(
            default_rules(settings.scores_table),
            include_full_error=not settings.is_production,
        )
        leaderboard = LeaderboardService(store, classifier, settings.allowed_game_ids)
        sweeper = RateLimitSweeper(limiter, settings.rate_limit_sweep_interval_seconds)

        app.state.score_store = store
        app.state.rate_limiter = limiter
        app.state.leaderboard_service = leaderboard
        app.state.submission_service = SubmissionService(leaderboard, limiter, classifier)

        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            if store is not None:
                await store.aclose()
            if redis_client is not None:
                await redis_client.aclose()

    app = FastAPI(title="Arcade Scores API", version="1.0.0", lifespan=app_lifespan)
    app.state.settings = settings

    @app.exception_handler(APIError)
    async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.body.model_dump(by_alias=True, exclude_none=True),
        )

    app.include_router(router)
    return app


app = create_app()
