"""Registry error kinds and the FastAPI handlers that render them.

Every failure leaves the API in the same envelope::

    {"error": "<human message>", "code": "<STABLE_CODE>", "details": ...}

``details`` is omitted when there is nothing to add. Stores and routers raise
the :class:`RegistryError` subclasses below; nothing builds an error response
by hand. Every response also carries an ``X-Request-Id`` header, and the id is
attached to log records emitted while the request is handled.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from yigyaps.log_buffer import request_id_ctx

if TYPE_CHECKING:  # pragma: no cover
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER: Final[str] = "X-Request-Id"


class RegistryError(Exception):
    code: str = "SYSTEM"
    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(RegistryError):
    code = "VALIDATION"
    status_code = 400


class UnauthenticatedError(RegistryError):
    code = "UNAUTHENTICATED"
    status_code = 401


class ForbiddenError(RegistryError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(RegistryError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(RegistryError):
    code = "CONFLICT"
    status_code = 409


class RateLimitedError(RegistryError):
    code = "RATE_LIMITED"
    status_code = 429


class UpstreamError(RegistryError):
    code = "NETWORK"
    status_code = 502


_STATUS_CODES: Final[dict[int, str]] = {
    400: ValidationError.code,
    401: UnauthenticatedError.code,
    403: ForbiddenError.code,
    404: NotFoundError.code,
    405: "METHOD_NOT_ALLOWED",
    409: ConflictError.code,
    429: RateLimitedError.code,
    502: UpstreamError.code,
    503: UpstreamError.code,
}


class RequestIdMiddleware:
    """ASGI middleware that ensures every request has a request-id."""

    def __init__(self, app: ASGIApp, *, header_name: str = REQUEST_ID_HEADER) -> None:
        self._app = app
        self._header_name_bytes = header_name.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        request_id = self._get_or_create_request_id(scope)
        token = request_id_ctx.set(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers: list[tuple[bytes, bytes]] = message.setdefault("headers", [])
                if not any(key.lower() == self._header_name_bytes for key, _ in headers):
                    headers.append((self._header_name_bytes, request_id.encode("latin-1")))
            await send(message)

        try:
            await self._app(scope, receive, send_with_request_id)
        finally:
            request_id_ctx.reset(token)

    def _get_or_create_request_id(self, scope: Scope) -> str:
        request_id: str | None = None
        for key, value in scope.get("headers", []):
            if key.lower() == self._header_name_bytes:
                candidate = value.decode("latin-1").strip()
                if candidate:
                    request_id = candidate
                break
        if request_id is None:
            request_id = uuid4().hex
        state = scope.setdefault("state", {})
        state["request_id"] = request_id
        return request_id


def install_error_handling(app: FastAPI) -> None:
    """Install the request-id middleware and the envelope exception handlers."""
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(RegistryError, _registry_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)


def error_payload(message: str, code: str, details: Any = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        payload["details"] = _json_safe(details)
    return payload


def _json_safe(value: object) -> object:
    """Return a JSON-serializable representation for error payloads."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


async def _registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.message, exc.code, exc.details),
        headers=headers,
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Bad input is expected; keep it out of the error log.
    errors = [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_payload(message, ValidationError.code, errors),
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "SYSTEM" if exc.status_code >= 500 else "ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(str(exc.detail), code),
        headers=exc.headers,
    )


async def _unhandled_exception_handler(request: Request, _exc: Exception) -> JSONResponse:
    logger.exception("unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_payload("Internal Server Error", "SYSTEM"),
    )
