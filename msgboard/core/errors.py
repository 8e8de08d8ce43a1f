"""
core/errors.py
--------------
Domain error taxonomy.

Storage and service layers raise these; a single exception handler in
main.py turns them into JSON responses using the status_code carried by
each class. Route handlers never translate domain errors themselves.

  ValidationError       400  malformed / oversized content, nothing persisted
  NotFoundError         404  target id does not exist, nothing mutated
  DuplicateActionError  409  like already registered for this session
  RateLimitedError      429  origin posted too recently (optional pre-check)
  TransientStoreError   503  storage unavailable, caller may retry
"""

from typing import Optional


class BoardError(Exception):
    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.detail
        super().__init__(self.detail)

    @property
    def headers(self) -> Optional[dict]:
        return None


class ValidationError(BoardError):
    status_code = 400
    detail = "Invalid content"


class NotFoundError(BoardError):
    status_code = 404
    detail = "Not found"


class DuplicateActionError(BoardError):
    status_code = 409
    detail = "Already done"


class RateLimitedError(BoardError):
    status_code = 429
    detail = "Too many messages, slow down"

    def __init__(self, retry_after: int, detail: Optional[str] = None) -> None:
        self.retry_after = max(1, int(retry_after))
        super().__init__(detail)

    @property
    def headers(self) -> Optional[dict]:
        return {"Retry-After": str(self.retry_after)}


class TransientStoreError(BoardError):
    status_code = 503
    detail = "Storage temporarily unavailable, please retry"

    @property
    def headers(self) -> Optional[dict]:
        return {"Retry-After": "1"}
