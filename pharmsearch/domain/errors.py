# pharmsearch/domain/errors.py
"""
Error taxonomy of the search engine.

    SearchError (base, code + http_status)
    ├── InvalidParamsError      INVALID_PARAMS   400
    ├── GuidanceError           (non-alarming; caller should guide the user)
    │   └── QueryTooShortError  QUERY_TOO_SHORT  400
    └── SearchBackendError      SERVER_ERROR     500

Zero matches is never an error.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class SearchError(Exception):
    code = "SERVER_ERROR"
    http_status = 500
    guidance = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "guidance": self.guidance,
        }
        if self.details:
            out["details"] = self.details
        return out


class InvalidParamsError(SearchError):
    code = "INVALID_PARAMS"
    http_status = 400


class GuidanceError(SearchError):
    http_status = 400
    guidance = True


class QueryTooShortError(GuidanceError):
    code = "QUERY_TOO_SHORT"

    def __init__(self, min_length: int):
        super().__init__(
            f"Search query must be at least {min_length} characters",
            {"min_length": min_length},
        )
        self.min_length = min_length


class SearchBackendError(SearchError):
    code = "SERVER_ERROR"
    http_status = 500

    def __init__(self, message: str, kind: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message, {"kind": kind} if kind else None)
        self.kind = kind
        self.cause = cause
