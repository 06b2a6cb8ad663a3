"""Read path: the ranked top-N list for a recognized game."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from arcade_scores.services.error_classifier import ErrorClassifier
from arcade_scores.services.errors import (
    StoreFailureError,
    StoreNotConfiguredError,
    UnknownGameError,
)
from arcade_scores.storage.scores import ScoreStore, StoreError, StoredScore

logger = logging.getLogger(__name__)

TOP_N = 10


class LeaderboardService:
    def __init__(
        self,
        store: ScoreStore | None,
        classifier: ErrorClassifier,
        allowed_game_ids: Sequence[str],
        limit: int = TOP_N,
    ):
        self.store = store
        self.classifier = classifier
        self.allowed_game_ids = tuple(allowed_game_ids)
        self.limit = limit

    def ensure_known_game(self, game_id: object) -> str:
        if not isinstance(game_id, str) or game_id not in self.allowed_game_ids:
            raise UnknownGameError(game_id, self.allowed_game_ids)
        return game_id

    def require_store(self) -> ScoreStore:
        if self.store is None:
            logger.error("Score store connection settings are not set")
            raise StoreNotConfiguredError()
        return self.store

    async def get_leaderboard(self, game_id: str | None) -> list[StoredScore]:
        game_id = self.ensure_known_game(game_id)
        store = self.require_store()

        logger.debug("Querying top %d scores for game_id=%s", self.limit, game_id)
        try:
            return await store.top_scores(game_id, self.limit)
        except StoreError as exc:
            logger.error(
                "Score store read failed: code=%s message=%s hint=%s details=%s",
                exc.code,
                exc.message,
                exc.hint,
                exc.details,
            )
            raise StoreFailureError(self.classifier.classify(exc, "read")) from exc
