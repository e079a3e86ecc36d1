"""
Follow-Up Unit - Request Logging and Error Handling
"""
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import config

logger = logging.getLogger("app.requests")


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def log_requests(request: Request, call_next):
    """Tag every request with an id and log its start, status and duration."""
    request_id = str(uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()

    logger.info(
        f"Incoming request id={request_id} method={request.method} "
        f"path={request.url.path} ip={_client_ip(request)}"
    )

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - start) * 1000.0
    message = (
        f"id={request_id} method={request.method} path={request.url.path} "
        f"status={response.status_code} duration={elapsed_ms:.0f}ms"
    )
    if response.status_code >= 400:
        logger.warning(f"Request completed with error {message}")
    else:
        logger.info(f"Request completed {message}")

    response.headers["X-Request-ID"] = request_id
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 for anything a route did not handle. Details only outside production."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        f"Unhandled error id={request_id} method={request.method} path={request.url.path}: {exc}",
        exc_info=exc,
    )
    body = {"detail": "Internal server error"}
    if not config.IS_PRODUCTION:
        body["error"] = str(exc)
    return JSONResponse(status_code=500, content=body)


def install(app: FastAPI) -> None:
    app.middleware("http")(log_requests)
    app.add_exception_handler(Exception, unhandled_exception_handler)
