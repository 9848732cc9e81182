"""Ingest keys for detecting repeated runs over the same input.

:func:`compute_ingest_key` fingerprints a file on disk together with the
parser version and optional tenant, so that re-submitting an unchanged
document under the same parser yields the same :pyattr:`IngestKey.key`.
What to do about a repeated key is left to the caller.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from recordkit_core.models import IngestKey

_HASH_BLOCK_SIZE = 1024 * 1024


def hash_file(file_path: str, block_size: int = _HASH_BLOCK_SIZE) -> str:
    """SHA-256 hex digest of *file_path*, read *block_size* bytes at a time."""
    digest = hashlib.sha256()
    with open(file_path, "rb") as fh:
        for block in iter(lambda: fh.read(block_size), b""):
            digest.update(block)
    return digest.hexdigest()


def compute_ingest_key(
    file_path: str,
    parser_version: str,
    tenant_id: str | None = None,
    source_uri: str | None = None,
) -> IngestKey:
    """Build the :class:`IngestKey` for *file_path*.

    Parameters
    ----------
    file_path:
        File whose bytes are fingerprinted.  Read in blocks, so size is
        not a concern.
    parser_version:
        E.g. ``"recordkit_xml:1.0.0"``.  Bump it when extraction output
        changes so old keys stop matching.
    tenant_id:
        Optional tenant identifier.
    source_uri:
        Stored instead of the resolved absolute POSIX path of *file_path*
        when given (e.g. the object-store URI the file was fetched from).

    Raises
    ------
    FileNotFoundError
        If *file_path* does not exist.
    """
    if source_uri is None:
        source_uri = Path(file_path).resolve().as_posix()

    return IngestKey(
        content_hash=hash_file(file_path),
        source_uri=source_uri,
        parser_version=parser_version,
        tenant_id=tenant_id,
    )
