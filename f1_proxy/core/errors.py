"""Error taxonomy and the uniform error envelope.

Every failure is raised as a ``ProxyError`` carrying an immutable ``ApiError``
payload. The payload's ``kind`` decides the HTTP status and machine-readable
code when the error is serialized at the response boundary.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


# kind -> (default status, code)
ERROR_CODES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.VALIDATION: (400, "VALIDATION_ERROR"),
    ErrorKind.UPSTREAM: (503, "EXTERNAL_API_ERROR"),
    ErrorKind.NOT_FOUND: (404, "NOT_FOUND"),
    ErrorKind.METHOD_NOT_ALLOWED: (405, "METHOD_NOT_ALLOWED"),
    ErrorKind.RATE_LIMITED: (429, "RATE_LIMIT_EXCEEDED"),
    ErrorKind.INTERNAL: (500, "INTERNAL_ERROR"),
}

_missing = set(ErrorKind) - set(ERROR_CODES)
if _missing:
    raise RuntimeError(f"Error kinds without a status/code mapping: {sorted(_missing)}")


@dataclass(frozen=True)
class FieldError:
    """One failing request parameter."""
    field: str
    message: str


@dataclass(frozen=True)
class ApiError:
    """Immutable description of a failure, built where the failure happens."""
    kind: ErrorKind
    message: str
    status: int | None = None  # None -> default status for the kind
    details: tuple[FieldError, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def http_status(self) -> int:
        return self.status or ERROR_CODES[self.kind][0]

    @property
    def code(self) -> str:
        return ERROR_CODES[self.kind][1]


class ProxyError(Exception):
    """Raised anywhere in the request pipeline; rendered once at the boundary."""

    def __init__(self, error: ApiError):
        super().__init__(error.message)
        self.error = error

    @property
    def status(self) -> int:
        return self.error.http_status


def validation_error(details: list[FieldError], message: str = "Validation Error") -> ProxyError:
    return ProxyError(ApiError(ErrorKind.VALIDATION, message, details=tuple(details)))


def upstream_error(message: str, status: int | None = None) -> ProxyError:
    # Anything outside 4xx/5xx from upstream is not a meaningful client status.
    if status is not None and not 400 <= status <= 599:
        status = None
    return ProxyError(ApiError(ErrorKind.UPSTREAM, message, status=status))


def not_found(method: str, path: str) -> ProxyError:
    return ProxyError(ApiError(ErrorKind.NOT_FOUND, f"Route not found: {method} {path}"))


def method_not_allowed(method: str, path: str) -> ProxyError:
    return ProxyError(
        ApiError(ErrorKind.METHOD_NOT_ALLOWED, f"Method not allowed: {method} {path}")
    )


def rate_limited(retry_after: int | None = None) -> ProxyError:
    extra = {"retryAfter": retry_after} if retry_after is not None else {}
    return ProxyError(
        ApiError(
            ErrorKind.RATE_LIMITED,
            "Too many requests from this IP, please try again later",
            extra=extra,
        )
    )


def internal_error(message: str = "Internal Server Error") -> ProxyError:
    return ProxyError(ApiError(ErrorKind.INTERNAL, message))


def to_envelope(
    error: ApiError,
    request_id: str | None = None,
    stack: str | None = None,
) -> dict[str, Any]:
    """Serialize an error into the response envelope."""
    body: dict[str, Any] = {
        "message": error.message,
        "code": error.code,
        "status": error.http_status,
    }
    if request_id:
        body["requestId"] = request_id
    if error.details:
        body["details"] = [{"field": d.field, "message": d.message} for d in error.details]
    body.update(error.extra)
    if stack:
        body["stack"] = stack
    return {"error": body}
