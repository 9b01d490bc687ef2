"""
Global exception handlers: every failure leaves the API in the same
``{data, error}`` envelope the engine operations use.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import BumpinError, StoreError, ValidationError, UNEXPECTED_MESSAGE

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    401: 'NOT_AUTHENTICATED',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
}


def envelope(code: str, message: str, details=None) -> dict:
    error = {'code': code, 'message': message}
    if details:
        error['details'] = details
    return {'data': None, 'error': error}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(BumpinError)
    async def bumpin_error_handler(request: Request, exc: BumpinError):
        logger.info(f'{exc.code} on {request.url.path}: {exc.message}')
        return JSONResponse(status_code=exc.http_status, content=envelope(exc.code, exc.message))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(f'Validation error on {request.url.path}: {exc.errors()}')
        details = [
            {'field': '.'.join(str(loc) for loc in e['loc']), 'message': e['msg']}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=envelope(ValidationError.code, ValidationError.default_message, details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code) or f'HTTP_{exc.status_code}'
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope(code, str(exc.detail)),
            headers=getattr(exc, 'headers', None),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(f'Unhandled exception on {request.url.path}: {exc}', exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=envelope(StoreError.code, UNEXPECTED_MESSAGE),
        )
