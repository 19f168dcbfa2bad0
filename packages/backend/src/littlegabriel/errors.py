"""Application-wide error types and exception handlers.

Learn: Route handlers raise; they don't build error responses by hand.
Handlers registered here turn exceptions into one JSON shape:

    {"error": "<human readable>", ...optional detail fields}

- RequestValidationError → 400 with per-field messages
- HTTPException          → its own status, {"error": detail}
- ConfigurationError     → 503 (a required setting is missing)
- UpstreamError          → 502 (OpenAI / api.bible failed)
- anything else          → 500, logged with traceback
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class ConfigurationError(Exception):
    """A setting the operation needs is not configured."""


class UpstreamError(Exception):
    """A third-party API call failed.

    `message` is the client-facing summary; `detail` is the upstream's
    own message, passed through for diagnosis.
    """

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


def _field_name(loc: tuple) -> str:
    # ("body", "email") -> "email"; ("query", "action") -> "action"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "body"


def _clean_message(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details: dict[str, str] = {}
    for err in exc.errors():
        details.setdefault(_field_name(tuple(err.get("loc", ()))), _clean_message(err.get("msg", "")))
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": details},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning("config.missing", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": str(exc)})


async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.warning(
        "upstream.failed", path=request.url.path, error=exc.message, detail=exc.detail
    )
    return JSONResponse(
        status_code=502,
        content={"error": exc.message, "message": exc.detail or exc.message},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("request.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
