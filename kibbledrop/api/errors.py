# kibbledrop/api/errors.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from kibbledrop.domain.errors import (
    AuthenticationError,
    NotFoundError,
    PaymentGatewayError,
    WebhookSignatureError,
)
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI):
    """Service exceptions -> HTTP statuses, in one place for every router."""

    @app.exception_handler(AuthenticationError)
    async def unauthorized(request: Request, exc: AuthenticationError):
        return _error(401, str(exc) or "Unauthorized")

    @app.exception_handler(PermissionError)
    async def forbidden(request: Request, exc: PermissionError):
        return _error(403, str(exc) or "Forbidden")

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, str(exc) or "Not found")

    @app.exception_handler(WebhookSignatureError)
    async def bad_signature(request: Request, exc: WebhookSignatureError):
        return _error(exc.status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(ValueError)
    async def bad_request(request: Request, exc: ValueError):
        return _error(400, str(exc))

    @app.exception_handler(PaymentGatewayError)
    async def gateway_failed(request: Request, exc: PaymentGatewayError):
        logger.error(f"{request.method} {request.url.path}: payment gateway error: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def internal(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} failed: {exc}")
        return _error(500, "Internal server error")
