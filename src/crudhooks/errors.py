"""Error types raised by crudhooks interceptors and services.

Each error carries an HTTP-like status code and a stable ``name`` so that a
transport layer can serialize it without knowing the concrete class:
- BadRequest: malformed query or unknown service/relation reference
- NotFound: no record matches the id (and query) of a single-record call
- MethodNotAllowed: multi-record write on a service that disallows it
- TooManyRequests: rate limiter denied the call
- GeneralError: misconfiguration (wrong hook placement, bad skip_hooks, ...)
"""

from typing import Any


class HookError(Exception):
    """Base class for all crudhooks errors.

    Attributes:
        message: Human-readable message
        data: Optional structured payload for the client
        hook: The HookContext the error escaped from (set by the pipeline)
    """

    name = "HookError"
    code = 500

    def __init__(self, message: str = "", data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "message": self.message,
            "code": self.code,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


class BadRequest(HookError):
    """The request references an unknown service, relation or operator."""

    name = "BadRequest"
    code = 400


class NotFound(HookError):
    """No record matched a single-record operation."""

    name = "NotFound"
    code = 404


class MethodNotAllowed(HookError):
    """The service does not allow this method (e.g. multi-record writes)."""

    name = "MethodNotAllowed"
    code = 405


class TooManyRequests(HookError):
    """The rate limiter rejected the request."""

    name = "TooManyRequests"
    code = 429


class GeneralError(HookError):
    """Misconfiguration detected at call time."""

    name = "GeneralError"
    code = 500


class ConfigurationError(GeneralError):
    """Invalid resolver, relation or named hook configuration (e.g. a dependency cycle)."""

    pass
