import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from audiograb.errors import AudioGrabError

logger = logging.getLogger(__name__)


def error_body(error: str, details=None) -> dict:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return body


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AudioGrabError)
    async def audiograb_exc_handler(request: Request, exc: AudioGrabError):
        logger.warning(
            "%s path=%s status=%s message=%r",
            type(exc).__name__, request.url.path, exc.status_code, exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "HTTPException path=%s status=%s detail=%r",
            request.url.path, exc.status_code, exc.detail,
        )
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(status_code=404, content=error_body("Endpoint not found"))
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail) if exc.detail else "HTTP error"),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        logger.warning("ValidationError path=%s errors=%s", request.url.path, exc.errors())
        details = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_body("Invalid request", details))

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error at path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", "Please try again later"),
        )
