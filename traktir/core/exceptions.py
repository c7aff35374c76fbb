"""
Domain Errors

Every failure the rule layer reports to a caller is one of these classes.
Each carries the HTTP status and machine-readable code used by the
exception handler in ``traktir.main``.
"""


class TraktirError(Exception):
    """Base class for errors scoped to a single requested operation."""

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationRequired(TraktirError):
    """No (valid) identity accompanies the request."""
    status_code = 401
    code = "authentication_required"


class ValidationFailed(TraktirError):
    """Malformed or out-of-range input."""
    status_code = 422
    code = "validation_failed"


class ResourceNotFound(TraktirError):
    """A referenced record does not exist."""
    status_code = 404
    code = "resource_not_found"


class QuotaExceeded(TraktirError):
    """The user's AI-chat token balance is exhausted."""
    status_code = 429
    code = "quota_exceeded"


class UpstreamFailure(TraktirError):
    """The language model provider failed to produce a reply."""
    status_code = 502
    code = "upstream_failure"
