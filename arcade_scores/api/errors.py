from __future__ import annotations

from arcade_scores.models.schemas import ErrorResponse


class APIError(Exception):
    def __init__(self, status_code: int, body: ErrorResponse):
        self.status_code = status_code
        self.body = body
        super().__init__(body.error)

    @classmethod
    def simple(cls, status_code: int, error: str, details: str | None = None) -> APIError:
        return cls(status_code, ErrorResponse(error=error, details=details))
