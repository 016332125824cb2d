"""
Maps domain errors to HTTP responses.

Every GreenLakeError becomes ``{"error": message, "code": code}`` with the
error's status. Anything else is logged with its traceback and returned
as a 500 INTERNAL_ERROR without leaking internals.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from greenlake.core.exceptions import GreenLakeError
from greenlake.core.logging import get_logger

logger = get_logger(__name__)


async def greenlake_error_handler(request: Request, exc: GreenLakeError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_error", status_code=exc.status_code, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GreenLakeError, greenlake_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
