"""Gateway to the external ``scores`` table.

The production store is a PostgREST endpoint (Supabase style). The in-memory
store mirrors its ordering rules for local runs and tests.
"""

from __future__ import annotations

import itertools
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StoredScore:
    id: str
    game_id: str
    player_name: str
    score: int
    created_at: datetime


class StoreError(Exception):
    """Raw failure reported by the score store."""

    def __init__(
        self,
        message: str | None,
        code: str | None = None,
        hint: str | None = None,
        details: Any = None,
    ):
        self.message = message
        self.code = code
        self.hint = hint
        self.details = details
        super().__init__(message or code or "store error")

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
            "details": self.details,
        }


class ScoreStore(Protocol):
    async def top_scores(self, game_id: str, limit: int) -> list[StoredScore]:
        ...

    async def insert(self, game_id: str, player_name: str, score: int) -> StoredScore:
        ...

    async def aclose(self) -> None:
        ...


REQUIRED_COLUMNS = ("id", "game_id", "player_name", "score", "created_at")


def score_from_row(row: Any) -> StoredScore:
    if not isinstance(row, dict):
        raise StoreError(message="Score row is not an object", details={"row": row})

    missing = [column for column in REQUIRED_COLUMNS if row.get(column) is None]
    if missing:
        raise StoreError(
            message=f"Score row is missing required columns: {', '.join(missing)}",
            details={"row": row},
        )

    try:
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        if not isinstance(created_at, datetime):
            raise TypeError(f"created_at must be a timestamp, got {created_at!r}")
        return StoredScore(
            id=str(row["id"]),
            game_id=str(row["game_id"]),
            player_name=str(row["player_name"]),
            score=int(row["score"]),
            created_at=created_at,
        )
    except (TypeError, ValueError) as exc:
        raise StoreError(message=f"Malformed score row: {exc}", details={"row": row}) from exc


def store_error_from_response(response: httpx.Response) -> StoreError:
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        return StoreError(
            message=response.text or response.reason_phrase,
            details={"status": response.status_code},
        )

    return StoreError(
        message=body.get("message"),
        code=body.get("code"),
        hint=body.get("hint"),
        details=body.get("details"),
    )


class PostgrestScoreStore:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "scores",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.table = table
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, f"/{self.table}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Score store request to %s failed: %r", self.table, exc)
            raise StoreError(message=str(exc) or exc.__class__.__name__) from exc

        if response.is_error:
            raise store_error_from_response(response)
        return response

    async def top_scores(self, game_id: str, limit: int) -> list[StoredScore]:
        response = await self._request(
            "GET",
            params={
                "select": "*",
                "game_id": f"eq.{game_id}",
                "order": "score.desc,created_at.asc",
                "limit": str(limit),
            },
        )
        rows = response.json()
        if not isinstance(rows, list):
            raise StoreError(message="Expected a list of score rows", details={"body": rows})
        return [score_from_row(row) for row in rows]

    async def insert(self, game_id: str, player_name: str, score: int) -> StoredScore:
        response = await self._request(
            "POST",
            json={"game_id": game_id, "player_name": player_name, "score": score},
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if isinstance(rows, list):
            if len(rows) != 1:
                raise StoreError(
                    message=f"Insert returned {len(rows)} rows, expected 1",
                    details={"rows": rows},
                )
            rows = rows[0]
        return score_from_row(rows)

    async def aclose(self) -> None:
        await self.client.aclose()


@dataclass(slots=True)
class _Row:
    score: StoredScore
    sequence: int


class InMemoryScoreStore:
    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rows: list[_Row] = []
        self._sequence = itertools.count()
        self._lock = Lock()

    async def top_scores(self, game_id: str, limit: int) -> list[StoredScore]:
        with self._lock:
            rows = [row for row in self._rows if row.score.game_id == game_id]
        # Equal timestamps fall back to insertion order.
        rows.sort(key=lambda row: (-row.score.score, row.score.created_at, row.sequence))
        return [row.score for row in rows[:limit]]

    async def insert(self, game_id: str, player_name: str, score: int) -> StoredScore:
        stored = StoredScore(
            id=str(uuid.uuid4()),
            game_id=game_id,
            player_name=player_name,
            score=score,
            created_at=self._clock(),
        )
        with self._lock:
            self._rows.append(_Row(score=stored, sequence=next(self._sequence)))
        return stored

    async def aclose(self) -> None:
        return None
