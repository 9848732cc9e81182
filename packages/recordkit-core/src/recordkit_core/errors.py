"""Shared error codes and base error model for the recordkit framework.

``CoreErrorCode`` contains the error/warning codes common to every recordkit
package.  ``BaseIngestError`` is a Pydantic model that each package extends
with its own location fields (e.g. ``line`` / ``column`` for XML).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class CoreErrorCode(str, Enum):
    """Error codes shared across all recordkit packages.

    Each package maintains its own *complete* ``ErrorCode`` enum that includes
    both the shared codes here and package-specific codes.  Values equal their
    names so they are stable strings suitable for metrics and alerting.
    """

    # Parse errors
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PARSE_MALFORMED = "E_PARSE_MALFORMED"

    # Backend errors
    E_BACKEND_SINK_TIMEOUT = "E_BACKEND_SINK_TIMEOUT"
    E_BACKEND_SINK_CONNECT = "E_BACKEND_SINK_CONNECT"

    # Warnings (non-fatal)
    W_TRUNCATED = "W_TRUNCATED"


class BaseIngestError(BaseModel):
    """Base structured error with code, message, and context.

    Each package extends this model with a location field specific to its
    document type.  The ``code`` field is typed as ``str`` so it accepts any
    package-specific ``ErrorCode`` enum member.
    """

    code: str
    message: str
    stage: str | None = None
    recoverable: bool = False
