# errors.py
from typing import List, Optional


class LeadScoringError(Exception):
    """Base error. Rendered to clients as {"error": ..., "details": ...}."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.errors = errors

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(LeadScoringError):
    status_code = 400


class NotFoundError(LeadScoringError):
    status_code = 404


class ParseError(LeadScoringError):
    status_code = 400


class UpstreamError(LeadScoringError):
    """The intent classifier could not produce a usable answer."""

    status_code = 502


class PersistenceError(LeadScoringError):
    status_code = 500


class InternalError(LeadScoringError):
    status_code = 500
