"""Shared domain exception bases.

Module-specific exceptions (``modules/<module>/exceptions.py``) derive from
these so the API layer can treat whole families alike.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError


class NotFoundError(Exception):
    """A referenced entity does not exist."""


class PersistenceError(Exception):
    """The store rejected an otherwise-valid write.

    Callers must not assume partial success and should re-fetch the
    authoritative state before retrying.
    """


def validation_detail(exc: ValueError) -> str:
    """Client-facing message for a DTO validation failure.

    pydantic errors are reduced to their messages; the raw input and
    documentation links in ``str(exc)`` never reach the response.
    """
    if isinstance(exc, PydanticValidationError):
        messages = [
            error["msg"].removeprefix("Value error, ") for error in exc.errors()
        ]
        return " ".join(messages)
    return str(exc)
