import logging
from contextlib import contextmanager

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class ValidationError(HTTPException):
    """Missing or malformed input"""

    def __init__(self, message: str):
        super().__init__(status_code=400, detail=message)


class Unauthorized(HTTPException):
    """Missing, invalid or expired credential"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(status_code=401, detail=message)


class Forbidden(HTTPException):
    """Authenticated but not allowed to touch the target resource"""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(status_code=403, detail=message)


class NotFound(HTTPException):
    def __init__(self, message: str = "Not found"):
        super().__init__(status_code=404, detail=message)


class InternalError(HTTPException):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(status_code=500, detail=message)


@contextmanager
def store_errors(message: str):
    """
    Report unexpected store failures as InternalError with a readable message

    Errors already carrying an HTTP status pass through untouched.
    """
    try:
        yield
    except HTTPException:
        raise
    except Exception:
        logger.exception(message)
        raise InternalError(message)
