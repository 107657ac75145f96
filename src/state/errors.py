"""Error taxonomy for the interface state machine."""

import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: Shown whenever an operation fails for a reason we cannot explain to the user.
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class ValidationError(Exception):
    """A local, recoverable problem with user input (e.g. missing recipient).

    ``field`` names the input the message should be rendered next to.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class ServiceError(Exception):
    """A remote rejection whose message is safe to show to the user."""


class UnexpectedError(Exception):
    """Wraps an unhandled exception from a gateway or AI call."""


class DraftConflictError(Exception):
    """Raised when opening a draft would silently discard unsaved content."""


async def guarded(awaitable: Awaitable[T], operation: str) -> T:
    """Await a collaborator call, normalising failures.

    ``ServiceError`` passes through untouched.  Anything else is logged with its
    traceback and re-raised as ``UnexpectedError`` carrying the generic message,
    so callers only ever need to handle the two user-displayable types.
    """
    try:
        return await awaitable
    except ServiceError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("Unexpected failure during %s: %s", operation, exc, exc_info=True)
        raise UnexpectedError(GENERIC_ERROR_MESSAGE) from exc
