from __future__ import annotations

from enum import Enum
from typing import Any, Mapping


class ErrorKind(str, Enum):
    CONFIG = "config"
    VALIDATION = "validation"
    AUTH = "auth"
    RESOLUTION_FAILED = "resolution_failed"
    UPSTREAM = "upstream"
    INTERNAL = "internal"


class PixelfreeError(RuntimeError):
    """
    Base class for every error this package raises on purpose.

    Callers dispatch on `kind` and `code`; the message is for humans only.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "internal_error"
    http_status: int = 500

    def __init__(self, message: str, *, meta: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.meta: dict[str, Any] | None = dict(meta) if meta else None


class ConfigError(PixelfreeError):
    """Raised when configuration is missing or invalid."""

    kind = ErrorKind.CONFIG
    code = "config_error"


class ValidationError(PixelfreeError):
    """Raised when a query payload is malformed or has no usable dimension."""

    kind = ErrorKind.VALIDATION
    code = "validation_error"
    http_status = 400


class AuthError(PixelfreeError):
    """Raised when no valid access token is available."""

    kind = ErrorKind.AUTH
    code = "auth_required"
    http_status = 401


class ResolutionFailure(str, Enum):
    MALFORMED_HANDLE = "malformed_handle"
    UNRESOLVED = "unresolved_handle"


class ResolutionError(PixelfreeError):
    """Raised when a handle is malformed or cannot be mapped to an account id."""

    def __init__(
        self,
        message: str,
        *,
        reason: ResolutionFailure,
        handle: str,
        meta: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, meta=meta)
        self.reason = reason
        self.handle = handle
        self.code = reason.value
        if reason is ResolutionFailure.MALFORMED_HANDLE:
            self.kind = ErrorKind.VALIDATION
            self.http_status = 400
        else:
            self.kind = ErrorKind.RESOLUTION_FAILED
            self.http_status = 404

    def to_json(self) -> dict[str, str]:
        return {"target": self.handle, "code": self.code, "message": self.message}


class UpstreamError(PixelfreeError):
    """
    Raised when the upstream API answers with a non-success status or cannot be reached.

    `status_code` is None for network-level failures.
    """

    kind = ErrorKind.UPSTREAM
    code = "upstream_error"
    http_status = 502

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        path: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        meta: dict[str, Any] = {}
        if status_code is not None:
            meta["upstream_status"] = status_code
        if path:
            meta["path"] = path
        if retry_after is not None:
            meta["retry_after"] = retry_after
        super().__init__(message, meta=meta)
        self.status_code = status_code
        self.body = body
        self.path = path
        self.retry_after = retry_after
        if status_code == 429:
            self.code = "rate_limited"
            self.http_status = 429


def error_payload(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """
    Map an exception to a user-visible (http_status, body) pair.

    Unexpected exceptions never leak their message or traceback.
    """
    if isinstance(exc, PixelfreeError):
        payload: dict[str, Any] = {
            "error": exc.message,
            "code": exc.code,
            "status": exc.http_status,
        }
        if exc.meta:
            payload["details"] = exc.meta
        return exc.http_status, payload

    return 500, {
        "error": "Internal Server Error",
        "code": "internal_error",
        "status": 500,
    }
