"""Write path: rate-limited, validated score submission.

Steps run in a fixed order and stop at the first failure. Nothing is written
until every check has passed, so a rejected submission leaves no trace apart
from the rate limit unit it consumed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from arcade_scores.services.error_classifier import ErrorClassifier
from arcade_scores.services.errors import InvalidSubmissionError, RateLimitExceededError, StoreFailureError
from arcade_scores.services.leaderboard import LeaderboardService
from arcade_scores.services.rate_limiter import RateLimiter
from arcade_scores.services.validation import validate_player_name, validate_score
from arcade_scores.storage.scores import StoreError, StoredScore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubmissionResult:
    score: StoredScore
    remaining: int


class SubmissionService:
    def __init__(
        self,
        leaderboard: LeaderboardService,
        limiter: RateLimiter,
        classifier: ErrorClassifier,
    ):
        self.leaderboard = leaderboard
        self.limiter = limiter
        self.classifier = classifier

    async def submit(self, client_id: str, body: bytes) -> SubmissionResult:
        decision = await self.limiter.check(client_id)
        if not decision.allowed:
            raise RateLimitExceededError(self.limiter.limit)

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise InvalidSubmissionError("Invalid JSON in request body") from exc
        if not isinstance(payload, dict):
            raise InvalidSubmissionError("Invalid JSON in request body")

        game_id = self.leaderboard.ensure_known_game(payload.get("game_id"))

        player_name = payload.get("player_name")
        if not player_name or not isinstance(player_name, str):
            raise InvalidSubmissionError("player_name is required and must be a string")
        name_result = validate_player_name(player_name)
        if not name_result.valid:
            raise InvalidSubmissionError(name_result.error)

        score = payload.get("score")
        if score is None:
            raise InvalidSubmissionError("score is required")
        score_result = validate_score(score)
        if not score_result.valid:
            raise InvalidSubmissionError(score_result.error)

        store = self.leaderboard.require_store()
        try:
            stored = await store.insert(game_id, player_name.strip(), int(score))
        except StoreError as exc:
            logger.error(
                "Score store insert failed: code=%s message=%s hint=%s details=%s",
                exc.code,
                exc.message,
                exc.hint,
                exc.details,
            )
            raise StoreFailureError(self.classifier.classify(exc, "write")) from exc

        logger.info(
            "Recorded score %d for %r in %s (client %s, %d remaining)",
            stored.score,
            stored.player_name,
            game_id,
            client_id,
            decision.remaining,
        )
        return SubmissionResult(score=stored, remaining=decision.remaining)
