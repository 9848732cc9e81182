"""Error codes, structured error model, and exceptions for recordkit-xml.

``ErrorCode`` contains all error/warning codes relevant to XML record
extraction.  ``IngestError`` extends ``BaseIngestError`` with location
fields.  ``ExtractionError`` and its subclasses are the raisable wrappers
used in control flow by the streaming extractor.
"""

from __future__ import annotations

from enum import Enum

from recordkit_core.errors import BaseIngestError


class ErrorCode(str, Enum):
    """Error codes for XML record extraction.

    Values equal their names so they are stable strings suitable for
    metrics and alerting.  ``E_`` prefix = fatal, ``W_`` prefix = warning.
    """

    # Security
    E_SECURITY_TOO_LARGE = "E_SECURITY_TOO_LARGE"
    E_SECURITY_BAD_EXTENSION = "E_SECURITY_BAD_EXTENSION"
    E_SECURITY_ENTITY_DECLARATION = "E_SECURITY_ENTITY_DECLARATION"
    E_SECURITY_DEPTH_BOMB = "E_SECURITY_DEPTH_BOMB"

    # Parse
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_MALFORMED = "E_PARSE_MALFORMED"

    # Schema
    E_SCHEMA_INVALID = "E_SCHEMA_INVALID"

    # Caller callback
    E_CALLBACK_FAILED = "E_CALLBACK_FAILED"

    # Backend
    E_BACKEND_SINK_TIMEOUT = "E_BACKEND_SINK_TIMEOUT"
    E_BACKEND_SINK_CONNECT = "E_BACKEND_SINK_CONNECT"

    # Warnings (non-fatal)
    W_LARGE_FILE = "W_LARGE_FILE"
    W_TRUNCATED = "W_TRUNCATED"
    W_NO_RECORDS = "W_NO_RECORDS"


class IngestError(BaseIngestError):
    """Structured error with XML-specific location context.

    Extends the core ``BaseIngestError`` with the input position reported
    by the tokenizer and the ancestor path of the element being parsed.
    """

    line: int | None = None
    column: int | None = None
    element_path: str | None = None


class ExtractionError(Exception):
    """Raisable exception wrapping an :class:`IngestError` data model.

    Carries the structured error as ``.error`` for inspection and
    serialization; convenience properties delegate to it.
    """

    default_code: ErrorCode = ErrorCode.E_PARSE_CORRUPT
    default_stage: str = "extract"

    def __init__(self, message: str, **kwargs: object) -> None:
        kwargs.setdefault("code", self.default_code)
        kwargs.setdefault("stage", self.default_stage)
        self.error = IngestError(message=message, **kwargs)  # type: ignore[arg-type]
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def stage(self) -> str | None:
        return self.error.stage


class MalformedInputError(ExtractionError):
    """The input is not well-formed XML.

    Always terminal for the current extraction.  The tokenizer's original
    exception is available as ``.cause`` (and as ``__cause__`` when raised
    with ``from``).
    """

    default_code = ErrorCode.E_PARSE_MALFORMED
    default_stage = "tokenize"

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(message, **kwargs)
        self.cause = cause

    @property
    def line(self) -> int | None:
        return self.error.line

    @property
    def column(self) -> int | None:
        return self.error.column


class ExtractionLimitError(ExtractionError):
    """The document exceeded a configured streaming limit (nesting depth)."""

    default_code = ErrorCode.E_SECURITY_DEPTH_BOMB


class SchemaError(ExtractionError):
    """An element schema document could not be loaded or validated."""

    default_code = ErrorCode.E_SCHEMA_INVALID
    default_stage = "schema"
