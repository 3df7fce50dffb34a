"""
Error handling utilities
"""

import functools
from typing import Awaitable, Callable, Optional
from pydantic import ValidationError as PydanticValidationError
from taskhub.models.response import Response
from taskhub.utils.logger import logger


class TaskHubError(Exception):
    """Base exception for expected domain failures"""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class NotFoundError(TaskHubError):
    """Entity does not exist"""
    pass


class PermissionDeniedError(TaskHubError):
    """Caller is not allowed to perform the operation"""
    pass


class AuthenticationError(TaskHubError):
    """No caller identity was supplied"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, error_code="auth_required")


class ValidationError(TaskHubError):
    """Input failed validation"""
    pass


class DuplicateError(TaskHubError):
    """Uniqueness constraint violated"""
    pass


class ConflictError(TaskHubError):
    """Optimistic concurrency check failed"""
    pass


def validation_error_from_pydantic(error: PydanticValidationError) -> ValidationError:
    """
    Convert pydantic validation error to a domain ValidationError

    Args:
        error: Pydantic validation error

    Returns:
        ValidationError carrying the first error message
    """
    errors = error.errors()
    if not errors:
        return ValidationError("Validation failed")

    first = errors[0]
    message = str(first.get("msg", "Validation failed"))
    # Messages raised from our own validators come prefixed by pydantic
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return ValidationError(message)


def handle_error(error: TaskHubError) -> Response:
    """
    Handle expected domain error and return failure envelope

    Args:
        error: Domain error to handle

    Returns:
        Failure Response with the error message
    """
    if isinstance(error, (PermissionDeniedError, AuthenticationError)):
        logger.warning(f"Access rejected: {error.message}")
    else:
        logger.info(f"Request rejected ({type(error).__name__}): {error.message}")

    return Response.fail(error.message)


def format_error_message(error: Exception) -> str:
    """
    Format error message for caller

    Args:
        error: Exception to format

    Returns:
        Caller-facing error message
    """
    if isinstance(error, TaskHubError):
        return error.message
    if isinstance(error, PydanticValidationError):
        return validation_error_from_pydantic(error).message
    return "Internal error"


def handles_errors(func: Callable[..., Awaitable[Response]]) -> Callable[..., Awaitable[Response]]:
    """
    Decorator turning expected domain errors into failure envelopes

    Anything that is not a TaskHubError (storage failures, bugs) propagates.
    """

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Response:
        try:
            return await func(*args, **kwargs)
        except TaskHubError as e:
            return handle_error(e)

    return wrapper
