"""Pre-flight checks run on an XML file before extraction starts.

The scanner never parses the document.  It looks at the path, the size on
disk and the first ``prolog_scan_bytes`` bytes, which is where any DOCTYPE
(and therefore any entity declaration) has to live.  That keeps the scan
constant-time for gigabyte inputs; well-formedness and nesting depth are
enforced later by the streaming extractor.
"""

from __future__ import annotations

import os

from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.errors import ErrorCode, IngestError

_MB = 1024 * 1024


def _security_error(code: ErrorCode, message: str, recoverable: bool = False) -> IngestError:
    return IngestError(code=code, message=message, stage="security", recoverable=recoverable)


class XMLSecurityScanner:
    """Reject files that are unsafe or unreasonable to stream.

    :meth:`scan` returns every finding.  ``E_*`` findings are fatal; the
    only ``W_*`` finding is ``W_LARGE_FILE``.
    """

    def __init__(self, config: XMLExtractorConfig) -> None:
        self.config = config

    def scan(self, file_path: str) -> list[IngestError]:
        if not file_path.lower().endswith(".xml"):
            return [
                _security_error(
                    ErrorCode.E_SECURITY_BAD_EXTENSION,
                    f"File does not have .xml extension: {file_path}",
                )
            ]

        if not os.path.isfile(file_path):
            return [
                _security_error(
                    ErrorCode.E_PARSE_CORRUPT,
                    f"File not found or not readable: {file_path}",
                )
            ]

        size = os.path.getsize(file_path)
        if size == 0:
            return [
                _security_error(ErrorCode.E_PARSE_EMPTY, f"File is empty (0 bytes): {file_path}")
            ]

        limit = self.config.max_file_size_mb * _MB
        if size > limit:
            return [
                _security_error(
                    ErrorCode.E_SECURITY_TOO_LARGE,
                    f"File size {size} bytes exceeds limit of {limit} bytes "
                    f"({self.config.max_file_size_mb} MB)",
                )
            ]

        findings: list[IngestError] = []
        if size > self.config.large_file_warning_mb * _MB:
            findings.append(
                _security_error(
                    ErrorCode.W_LARGE_FILE,
                    f"File is {size / _MB:.1f} MB "
                    f"(> {self.config.large_file_warning_mb} MB)",
                    recoverable=True,
                )
            )

        try:
            with open(file_path, "rb") as fh:
                prolog = fh.read(self.config.prolog_scan_bytes)
        except OSError as exc:
            findings.append(_security_error(ErrorCode.E_PARSE_CORRUPT, f"Cannot read file: {exc}"))
            return findings

        dtd_error = _check_prolog(prolog)
        if dtd_error is not None:
            findings.append(dtd_error)
        return findings


def _check_prolog(prolog: bytes) -> IngestError | None:
    """Flag entity declarations and DOCTYPE internal subsets.

    Both are how billion-laughs and XXE payloads get in; the extractor has
    no use for either.
    """
    upper = prolog.upper()
    if b"<!ENTITY" in upper:
        return _security_error(
            ErrorCode.E_SECURITY_ENTITY_DECLARATION,
            "File contains <!ENTITY declaration (potential billion laughs / XXE attack)",
        )

    doctype = upper.find(b"<!DOCTYPE")
    if doctype == -1:
        return None
    bracket = prolog.find(b"[", doctype)
    close = prolog.find(b">", doctype)
    if bracket != -1 and (close == -1 or bracket < close):
        return _security_error(
            ErrorCode.E_SECURITY_ENTITY_DECLARATION,
            "File contains <!DOCTYPE with internal subset (potential entity expansion attack)",
        )
    return None
