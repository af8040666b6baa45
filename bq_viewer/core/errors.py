import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class WarehouseProxyError(Exception):
    """Base error rendered to the client as ``{"error": message}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WarehouseProxyError):
    """Required input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(WarehouseProxyError):
    """Credentials were rejected, or there is no connection yet."""

    status_code = status.HTTP_401_UNAUTHORIZED


class UpstreamError(WarehouseProxyError):
    """The BigQuery call itself failed (bad SQL, permissions, quota, network)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def proxy_error_handler(request: Request, exc: WarehouseProxyError):
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Pydantic gives a list of problems, the client only needs the first one
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
    else:
        message = "Invalid request"
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return error_response(status.HTTP_400_BAD_REQUEST, message)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(WarehouseProxyError, proxy_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
