"""Global exception handler — maps exceptions to the ``{success, message}`` envelope."""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from viewmaxx.auth.errors import AppError
from viewmaxx.config.settings import Settings

logger = logging.getLogger(__name__)


def _error_response(status: int, message: str, exc: Exception, development: bool) -> JSONResponse:
    content = {"success": False, "message": message}
    if development:
        content["error"] = type(exc).__name__
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status, content=content)


def register_error_handlers(app: FastAPI, settings: Settings) -> None:
    development = settings.is_development

    @app.exception_handler(AppError)
    async def app_error(request: Request, exc: AppError):
        return _error_response(exc.status_code, exc.message, exc, development)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        messages = "; ".join(
            f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        return _error_response(400, f"Invalid input data. {messages}", exc, development)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, str(exc.detail), exc, development)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, "Something went wrong!", exc, development)
