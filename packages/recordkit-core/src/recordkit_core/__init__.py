"""recordkit-core -- Shared primitives for the recordkit framework.

Re-exports all public types: errors, models, protocols, and utilities.
"""

from recordkit_core.errors import BaseIngestError, CoreErrorCode
from recordkit_core.idempotency import compute_ingest_key, hash_file
from recordkit_core.models import IngestKey, WrittenArtifacts
from recordkit_core.protocols import RecordSink

__all__ = [
    # Errors
    "CoreErrorCode",
    "BaseIngestError",
    # Models
    "IngestKey",
    "WrittenArtifacts",
    # Idempotency
    "compute_ingest_key",
    "hash_file",
    # Protocols
    "RecordSink",
]
