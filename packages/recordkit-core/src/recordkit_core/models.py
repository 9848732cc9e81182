"""Shared Pydantic models for the recordkit framework.

Contains ``IngestKey`` (deterministic dedup key) and ``WrittenArtifacts``
(what a run handed to its sink).
"""

from __future__ import annotations

import hashlib

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Idempotency
# ---------------------------------------------------------------------------


class IngestKey(BaseModel):
    """Deterministic key for deduplication.

    Combines content hash, source URI, parser version, and optional tenant ID
    into a single SHA-256 digest that callers can use to detect duplicate
    ingestion runs.
    """

    content_hash: str
    source_uri: str
    parser_version: str
    tenant_id: str | None = None

    @property
    def key(self) -> str:
        """Deterministic string key for dedup lookups."""
        parts = [self.content_hash, self.source_uri, self.parser_version]
        if self.tenant_id:
            parts.append(self.tenant_id)
        return hashlib.sha256("|".join(parts).encode()).hexdigest()


# ---------------------------------------------------------------------------
# Result Models
# ---------------------------------------------------------------------------


class WrittenArtifacts(BaseModel):
    """Counts of everything handed to the sink, enabling caller-side rollback."""

    records_written: int = 0
    batches_written: int = 0
    sink_name: str | None = None
