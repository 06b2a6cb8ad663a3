"""Submission field checks that run before anything touches the store."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

PLAYER_NAME_MIN_LENGTH = 2
PLAYER_NAME_MAX_LENGTH = 16
PLAYER_NAME_PATTERN = re.compile(r"[A-Za-z0-9\s]+")

SCORE_MIN = 0
SCORE_MAX = 9999


@dataclass(slots=True, frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


VALID = ValidationResult(valid=True)


def validate_player_name(name: str) -> ValidationResult:
    # Callers store the trimmed name, so the checks run against it too.
    trimmed = name.strip()

    if not PLAYER_NAME_MIN_LENGTH <= len(trimmed) <= PLAYER_NAME_MAX_LENGTH:
        return ValidationResult(
            valid=False,
            error=(
                f"Player name must be between {PLAYER_NAME_MIN_LENGTH} "
                f"and {PLAYER_NAME_MAX_LENGTH} characters"
            ),
        )

    if not PLAYER_NAME_PATTERN.fullmatch(trimmed):
        return ValidationResult(
            valid=False,
            error="Player name can only contain letters, numbers, and spaces",
        )

    return VALID


def is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def validate_score(score: Any) -> ValidationResult:
    if not is_integer(score):
        return ValidationResult(valid=False, error="Score must be an integer")

    if not SCORE_MIN <= score <= SCORE_MAX:
        return ValidationResult(
            valid=False,
            error=f"Score must be between {SCORE_MIN} and {SCORE_MAX}",
        )

    return VALID
