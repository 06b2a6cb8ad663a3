"""Pydantic response schemas for the public leaderboard API.

Wire field names follow the existing game clients, so a few camel-case names
(``rateLimit``, ``errorCode``) are exposed through aliases.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from arcade_scores.services.error_classifier import ClassifiedError
from arcade_scores.storage.scores import StoredScore


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    details: str | None = None
    solution: str | None = None
    error_code: str | None = Field(default=None, alias="errorCode")
    error_message: str | None = Field(default=None, alias="errorMessage")
    error_hint: str | None = Field(default=None, alias="errorHint")
    code: str | None = None
    hint: str | None = None
    full_error: str | None = Field(default=None, alias="fullError")
    stack: str | None = None

    @classmethod
    def from_classified(cls, classified: ClassifiedError) -> ErrorResponse:
        return cls(
            error=classified.error,
            details=classified.details,
            solution=classified.solution,
            error_code=classified.error_code,
            error_message=classified.error_message,
            error_hint=classified.error_hint,
            code=classified.code,
            hint=classified.hint,
            full_error=classified.full_error,
        )


class Score(BaseModel):
    id: str
    game_id: str
    player_name: str
    score: int
    created_at: datetime

    @classmethod
    def from_stored(cls, stored: StoredScore) -> Score:
        return cls(
            id=stored.id,
            game_id=stored.game_id,
            player_name=stored.player_name,
            score=stored.score,
            created_at=stored.created_at,
        )


class LeaderboardResponse(BaseModel):
    data: list[Score]


class RateLimitInfo(BaseModel):
    remaining: int = Field(ge=0)


class SubmitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    data: Score
    rate_limit: RateLimitInfo = Field(alias="rateLimit")


class HealthResponse(BaseModel):
    status: Literal["ok"]


class ReadyResponse(BaseModel):
    status: Literal["ok"]
