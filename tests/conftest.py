from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from arcade_scores.config import Settings
from arcade_scores.main import create_app
from arcade_scores.services.rate_limiter import InMemoryRateLimitStore
from arcade_scores.storage.scores import InMemoryScoreStore, StoreError


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingScoreStore(InMemoryScoreStore):
    """In-memory store that records calls and can be told to fail."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None

    async def top_scores(self, game_id, limit):
        self.calls.append(("top_scores", game_id, limit))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().top_scores(game_id, limit)

    async def insert(self, game_id, player_name, score):
        self.calls.append(("insert", game_id, player_name, score))
        if self.fail_with is not None:
            raise self.fail_with
        return await super().insert(game_id, player_name, score)


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_url": "https://example.supabase.co",
        "supabase_anon_key": "anon-key",
        "environment": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(scope="session")
def redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> RecordingScoreStore:
    return RecordingScoreStore()


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def client(settings, store, clock):
    app = create_app(
        settings,
        score_store=store,
        rate_limit_store=InMemoryRateLimitStore(clock=clock),
    )

    with TestClient(app) as test_client:
        yield test_client, store, clock


def post_score(api, player_name="Ann", score=50, game_id="snake", client_ip="203.0.113.7"):
    return api.post(
        "/leaderboard/submit",
        json={"game_id": game_id, "player_name": player_name, "score": score},
        headers={"X-Forwarded-For": client_ip},
    )


def store_error(message=None, code=None, hint=None) -> StoreError:
    return StoreError(message=message, code=code, hint=hint)
