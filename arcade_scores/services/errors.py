"""Domain failures raised by the submission and leaderboard services."""

from __future__ import annotations

from collections.abc import Sequence

from arcade_scores.services.error_classifier import ClassifiedError


class ServiceError(Exception):
    """Base class for failures the HTTP layer turns into responses."""


class InvalidSubmissionError(ServiceError):
    """Client input that failed parsing or validation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownGameError(InvalidSubmissionError):
    def __init__(self, game_id: object, allowed: Sequence[str]):
        self.game_id = game_id
        self.allowed = tuple(allowed)
        super().__init__(f"Invalid game_id. Only {describe_allowed(self.allowed)}.")


class RateLimitExceededError(ServiceError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Rate limit exceeded. Maximum {limit} submissions per hour.")


class StoreNotConfiguredError(ServiceError):
    """Score store connection settings were missing at startup."""


class StoreFailureError(ServiceError):
    def __init__(self, classified: ClassifiedError):
        self.classified = classified
        super().__init__(classified.error)


def describe_allowed(allowed: Sequence[str]) -> str:
    quoted = ", ".join(f'"{game_id}"' for game_id in allowed)
    verb = "is" if len(allowed) == 1 else "are"
    return f"{quoted} {verb} allowed"
