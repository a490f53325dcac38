# Overview: Domain error taxonomy shared by services and routes.

"""
Business-rule rejections.

Every error carries a machine-checkable code and the context a client UI needs
to explain the rejection (current value, limit, requested value). Routes turn
them into JSON with `to_dict()` and `http_status`.
"""

from __future__ import annotations

from typing import Any

from flask import jsonify


class DomainError(ValueError):
    code = "DomainError"
    http_status = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.context)
        return payload


class ValidationError(DomainError):
    """Malformed hours, dates, times, or an invalid status transition."""
    code = "ValidationError"


class NotFound(DomainError):
    code = "NotFound"
    http_status = 404


class Forbidden(DomainError):
    """Role or department mismatch."""
    code = "Forbidden"
    http_status = 403


# -- Time clock --

class DuplicateEntry(DomainError):
    code = "DuplicateEntry"
    http_status = 409


class DuplicateLunchExit(DomainError):
    code = "DuplicateLunchExit"
    http_status = 409


class DuplicateLunchReturn(DomainError):
    code = "DuplicateLunchReturn"
    http_status = 409


class DuplicateExit(DomainError):
    code = "DuplicateExit"
    http_status = 409


class MissingEntry(DomainError):
    code = "MissingEntry"


class MissingLunchExit(DomainError):
    code = "MissingLunchExit"


class NoScheduleConfigured(DomainError):
    code = "NoScheduleConfigured"


class JustificationRequired(DomainError):
    code = "JustificationRequired"


# -- Hour bank / overtime --

class AccumulationLimitExceeded(DomainError):
    code = "AccumulationLimitExceeded"


class InsufficientBalance(DomainError):
    code = "InsufficientBalance"


class UsageLimitExceeded(DomainError):
    code = "UsageLimitExceeded"


class MonthlyLimitExceeded(DomainError):
    code = "MonthlyLimitExceeded"


def error_response(exc: DomainError):
    """(body, status) pair for a Flask view."""
    return jsonify(exc.to_dict()), exc.http_status
