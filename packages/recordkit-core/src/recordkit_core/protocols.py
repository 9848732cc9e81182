"""Backend protocols for the recordkit framework.

Sinks are the collaborators that persist extracted records (a database
batch upsert, a JSON-lines writer, a message queue).  Concrete
implementations live outside this package; anything with the right method
shape satisfies the protocol structurally.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RecordSink(Protocol):
    """Interface for synchronous record persistence."""

    def write_records(
        self, records: list[dict[str, Any]], ingest_key: str
    ) -> int:
        """Persist a batch of records.  Returns the number written."""
        ...
