from __future__ import annotations

import httpx
from conftest import make_settings, post_score, store_error
from fastapi.testclient import TestClient

from arcade_scores.main import create_app
from arcade_scores.storage.scores import InMemoryScoreStore, PostgrestScoreStore


def test_empty_leaderboard_is_success(client):
    api, _, _ = client

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 200
    assert response.json() == {"data": []}
    assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate, proxy-revalidate"
    assert response.headers["pragma"] == "no-cache"


def test_leaderboard_sorted_by_score_then_earliest_submission(client):
    api, _, _ = client
    for name, score in [("Ann", 50), ("Cara", 80), ("Bob", 50), ("Dan", 10)]:
        assert post_score(api, player_name=name, score=score).status_code == 201

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 200
    rows = response.json()["data"]
    assert [row["player_name"] for row in rows] == ["Cara", "Ann", "Bob", "Dan"]
    assert set(rows[0]) == {"id", "game_id", "player_name", "score", "created_at"}


def test_leaderboard_returns_top_ten_for_requested_game(client):
    api, store, _ = client
    for index in range(12):
        post_score(api, player_name=f"Player {index}", score=index * 10, client_ip=f"10.0.0.{index}")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    rows = response.json()["data"]
    assert len(rows) == 10
    assert rows[0]["score"] == 110
    assert rows[-1]["score"] == 20
    assert ("top_scores", "snake", 10) in store.calls


def test_unknown_game_id_rejected_without_store_call(client):
    api, store, _ = client

    response = api.get("/leaderboard", params={"game_id": "pong"})

    assert response.status_code == 400
    assert response.json() == {"error": 'Invalid game_id. Only "snake" is allowed.'}
    assert store.calls == []


def test_missing_game_id_rejected(client):
    api, store, _ = client

    response = api.get("/leaderboard")

    assert response.status_code == 400
    assert store.calls == []


def test_privilege_code_is_permission_denied_regardless_of_message(client):
    api, store, _ = client
    store.fail_with = store_error(message="something unexpected", code="42501")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "RLS Permission Denied"
    assert body["details"] == "Row Level Security (RLS) is blocking access to the scores table."
    assert "SELECT policy" in body["solution"]
    assert body["errorCode"] == "42501"
    assert body["errorMessage"] == "something unexpected"


def test_policy_hint_is_permission_denied(client):
    api, store, _ = client
    store.fail_with = store_error(message="request rejected", hint="Check the table policy")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 403
    assert response.json()["errorHint"] == "Check the table policy"


def test_missing_table_names_expected_schema(client):
    api, store, _ = client
    store.fail_with = store_error(message='relation "public.scores" does not exist', code="42P01")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Table not found"
    assert "player_name (text)" in body["solution"]
    assert body["errorCode"] == "42P01"


def test_generic_read_failure_includes_full_error_outside_production(client):
    api, store, _ = client
    store.fail_with = store_error(message="timeout while reading", code="57014", hint="retry later")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to fetch leaderboard"
    assert body["details"] == "timeout while reading"
    assert body["code"] == "57014"
    assert body["hint"] == "retry later"
    assert '"code": "57014"' in body["fullError"]


def test_production_hides_raw_error_detail(store):
    app = create_app(make_settings(environment="production"), score_store=store)
    store.fail_with = store_error(message="timeout while reading")

    with TestClient(app) as api:
        response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "UNKNOWN"
    assert "fullError" not in body


def test_missing_store_settings_is_configuration_error():
    app = create_app(make_settings(supabase_url=None, supabase_anon_key=None))

    with TestClient(app) as api:
        read = api.get("/leaderboard", params={"game_id": "snake"})
        write = post_score(api)
        invalid = api.get("/leaderboard", params={"game_id": "pong"})

    assert read.status_code == 500
    assert read.json()["error"] == "Server configuration error"
    assert "SUPABASE_URL" in read.json()["details"]
    assert write.status_code == 500
    assert write.json()["error"] == "Server configuration error"
    assert invalid.status_code == 400


def test_unexpected_read_exception_is_internal_error(client):
    api, store, _ = client
    store.fail_with = KeyError("created_at")

    response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


def postgrest_store(handler) -> PostgrestScoreStore:
    return PostgrestScoreStore(
        "https://example.supabase.co",
        "anon-key",
        transport=httpx.MockTransport(handler),
    )


def test_row_with_null_column_is_json_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[{"id": "1", "game_id": "snake", "player_name": "Ann", "score": 5, "created_at": None}],
        )

    app = create_app(make_settings(), score_store=postgrest_store(handler))

    with TestClient(app) as api:
        response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["error"] == "Failed to fetch leaderboard"
    assert "created_at" in body["details"]


def test_production_hides_stack_for_unexpected_read_exception(store):
    app = create_app(make_settings(environment="production"), score_store=store)
    store.fail_with = RuntimeError("boom")

    with TestClient(app) as api:
        response = api.get("/leaderboard", params={"game_id": "snake"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Internal server error"
    assert "stack" not in body


def test_in_memory_backend_needs_no_store_settings():
    settings = make_settings(supabase_url=None, supabase_anon_key=None, score_store_backend="memory")
    app = create_app(settings)

    with TestClient(app) as api:
        assert isinstance(app.state.score_store, InMemoryScoreStore)
        assert post_score(api, player_name="Ann", score=70).status_code == 201
        response = api.get("/leaderboard", params={"game_id": "snake"})
        ready = api.get("/readyz")

    assert response.status_code == 200
    assert [row["player_name"] for row in response.json()["data"]] == ["Ann"]
    assert ready.status_code == 200
