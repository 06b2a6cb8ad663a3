"""Turns raw score store failures into categorized, actionable responses.

Store error codes are fairly stable across environments but messages are not,
so a code match and a keyword match count equally. Rules are checked in order
and the first match wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Protocol

from arcade_scores.storage.scores import StoreError

logger = logging.getLogger(__name__)

Operation = Literal["read", "write"]

INSUFFICIENT_PRIVILEGE_CODE = "42501"
RELATION_NOT_FOUND_CODES = frozenset({"42P01", "PGRST205", "PGRST116"})
PERMISSION_KEYWORDS = ("permission denied", "row-level security", "rls", "policy")

EXPECTED_SCHEMA = (
    "id (uuid, primary key), game_id (text), player_name (text), "
    "score (integer), created_at (timestamp)"
)


class ErrorCategory(str, Enum):
    PERMISSION = "permission"
    MISSING_RELATION = "missing_relation"
    GENERIC = "generic"


@dataclass(slots=True)
class ClassifiedError:
    category: ErrorCategory
    status_code: int
    error: str
    details: str
    solution: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    error_hint: str | None = None
    code: str | None = None
    hint: str | None = None
    full_error: str | None = None


class ClassificationRule(Protocol):
    category: ErrorCategory
    operations: frozenset[str]

    def matches(self, error: StoreError) -> bool:
        ...

    def build(self, error: StoreError, operation: Operation) -> ClassifiedError:
        ...


def _lower(text: str | None) -> str:
    return (text or "").lower()


class PermissionDeniedRule:
    category = ErrorCategory.PERMISSION
    operations = frozenset({"read", "write"})

    def __init__(self, table: str = "scores"):
        self.table = table

    def matches(self, error: StoreError) -> bool:
        if error.code == INSUFFICIENT_PRIVILEGE_CODE:
            return True
        haystacks = (_lower(error.message), _lower(error.hint))
        return any(keyword in text for text in haystacks for keyword in PERMISSION_KEYWORDS)

    def build(self, error: StoreError, operation: Operation) -> ClassifiedError:
        if operation == "read":
            details = f"Row Level Security (RLS) is blocking access to the {self.table} table."
            solution = (
                "In Supabase Dashboard: 1) Go to Authentication > Policies, "
                f'2) Create a policy for the "{self.table}" table: "Enable read access for all users" '
                '(SELECT policy with "true" as the expression), 3) Create a policy for INSERT: '
                '"Enable insert for all users" (INSERT policy with "true" as the expression)'
            )
        else:
            details = "Row Level Security (RLS) is blocking score submission."
            solution = (
                "In Supabase Dashboard: 1) Go to Authentication > Policies, "
                f'2) Create an INSERT policy for the "{self.table}" table: '
                '"Enable insert for all users" (INSERT policy with "true" as the expression)'
            )
        return ClassifiedError(
            category=self.category,
            status_code=403,
            error="RLS Permission Denied",
            details=details,
            solution=solution,
            error_code=error.code,
            error_message=error.message,
            error_hint=error.hint,
        )


class MissingRelationRule:
    category = ErrorCategory.MISSING_RELATION
    operations = frozenset({"read"})

    def __init__(self, table: str = "scores"):
        self.table = table

    def matches(self, error: StoreError) -> bool:
        if error.code in RELATION_NOT_FOUND_CODES:
            return True
        message = _lower(error.message)
        return (
            "relation" in message
            or "does not exist" in message
            or ("table" in message and "not found" in message)
        )

    def build(self, error: StoreError, operation: Operation) -> ClassifiedError:
        return ClassifiedError(
            category=self.category,
            status_code=500,
            error="Table not found",
            details=f'The "{self.table}" table does not exist in your Supabase database.',
            solution=f"Create the table in Supabase with columns: {EXPECTED_SCHEMA}",
            error_code=error.code,
            error_message=error.message,
        )


def default_rules(table: str = "scores") -> list[ClassificationRule]:
    return [PermissionDeniedRule(table), MissingRelationRule(table)]


GENERIC_ERRORS: dict[str, str] = {
    "read": "Failed to fetch leaderboard",
    "write": "Failed to submit score",
}


class ErrorClassifier:
    def __init__(
        self,
        rules: Iterable[ClassificationRule] | None = None,
        include_full_error: bool = False,
    ):
        self.rules: Sequence[ClassificationRule] = (
            list(rules) if rules is not None else default_rules()
        )
        self.include_full_error = include_full_error

    def classify(self, error: StoreError, operation: Operation) -> ClassifiedError:
        for rule in self.rules:
            if operation in rule.operations and rule.matches(error):
                return rule.build(error, operation)

        logger.warning(
            "Unclassified score store error during %s: code=%s message=%s hint=%s",
            operation,
            error.code,
            error.message,
            error.hint,
        )
        return ClassifiedError(
            category=ErrorCategory.GENERIC,
            status_code=500,
            error=GENERIC_ERRORS[operation],
            details=error.message or "Unknown error",
            code=error.code or "UNKNOWN",
            hint=error.hint,
            full_error=(
                json.dumps(error.as_dict(), indent=2, default=str)
                if self.include_full_error
                else None
            ),
        )
