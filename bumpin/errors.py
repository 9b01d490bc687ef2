"""
Error taxonomy and result plumbing shared by the relationship and presence engines.

Engine internals raise the errors below; ``returns_result`` turns every outcome
into a ``Result`` pair at the engine boundary so callers never see an exception.
"""
import functools
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .core import ENGINE_OPERATIONS

logger = logging.getLogger(__name__)

T = TypeVar('T')

UNEXPECTED_MESSAGE = 'An unexpected error occurred. Please try again.'
STORE_RETRY_MESSAGE = 'We could not reach the data store. Please try again in a moment.'


class BumpinError(Exception):
    """Base class for every failure an engine operation can report."""
    code = 'ERROR'
    http_status = 500
    default_message = UNEXPECTED_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class ValidationError(BumpinError):
    code = 'VALIDATION_ERROR'
    http_status = 400
    default_message = 'The request is missing or has invalid fields.'


class DuplicateRelationship(BumpinError):
    code = 'DUPLICATE_RELATIONSHIP'
    http_status = 409
    default_message = 'Friend request already exists or users are already friends.'


class NotAuthorized(BumpinError):
    code = 'NOT_AUTHORIZED'
    http_status = 403
    default_message = "You don't have permission to perform this action."


class NotFound(BumpinError):
    code = 'NOT_FOUND'
    http_status = 404
    default_message = 'The requested record does not exist.'


class StoreError(BumpinError):
    code = 'STORE_ERROR'
    http_status = 503
    default_message = STORE_RETRY_MESSAGE


@dataclass
class Result(Generic[T]):
    data: Optional[T] = None
    error: Optional[BumpinError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        return 200 if self.error is None else self.error.http_status

    def to_envelope(self) -> dict:
        return {'data': self.data, 'error': self.error.to_dict() if self.error else None}


# Postgres SQLSTATE codes surfaced by asyncpg
_PG_MESSAGES = {
    '42501': "You don't have permission to perform this action.",
    '23505': 'This record already exists.',
    '23503': "This operation references a record that doesn't exist.",
}


def format_store_error(exc: BaseException) -> str:
    """Pick a user-facing message for a persistence failure."""
    orig = getattr(exc, 'orig', None)
    sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
    if sqlstate in _PG_MESSAGES:
        return _PG_MESSAGES[sqlstate]
    if isinstance(exc, IntegrityError):
        text = str(orig or exc).lower()
        if 'unique' in text or 'duplicate' in text:
            return _PG_MESSAGES['23505']
        if 'foreign key' in text:
            return _PG_MESSAGES['23503']
    if isinstance(exc, (SQLAlchemyError, OSError)):
        return STORE_RETRY_MESSAGE
    return UNEXPECTED_MESSAGE


def to_bumpin_error(exc: BaseException) -> BumpinError:
    if isinstance(exc, BumpinError):
        return exc
    return StoreError(format_store_error(exc))


def returns_result(func):
    """Run an async engine operation and report its outcome as a ``Result``."""
    op_name = func.__name__

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            data = await func(*args, **kwargs)
        except BumpinError as e:
            logger.info(f'{op_name} refused: {e.code} {e.message}')
            ENGINE_OPERATIONS.labels(operation=op_name, outcome=e.code).inc()
            return Result(error=e)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f'{op_name} store failure: {e}', exc_info=True)
            ENGINE_OPERATIONS.labels(operation=op_name, outcome=StoreError.code).inc()
            return Result(error=StoreError(format_store_error(e)))
        except Exception as e:
            logger.error(f'{op_name} unexpected failure: {e}', exc_info=True)
            ENGINE_OPERATIONS.labels(operation=op_name, outcome=StoreError.code).inc()
            return Result(error=StoreError(UNEXPECTED_MESSAGE))
        ENGINE_OPERATIONS.labels(operation=op_name, outcome='ok').inc()
        return Result(data=data)

    return wrapper
