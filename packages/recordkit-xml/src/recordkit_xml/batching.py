"""Batch buffering between the extractor callback and a record sink.

``RecordBatcher`` collects records as they are extracted and hands them to
a :class:`~recordkit_core.protocols.RecordSink` in batches, flushing when
``batch_size`` records are pending or when ``batch_flush_interval_seconds``
have passed since the last flush.  Sink exceptions propagate to the caller
unchanged; the pending batch is dropped either way so a failing sink can
never make the buffer grow without bound.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from recordkit_core.protocols import RecordSink

from recordkit_xml.config import XMLExtractorConfig

logger = logging.getLogger("recordkit_xml")


class RecordBatcher:
    """Accumulate records and write them to *sink* in batches.

    Parameters
    ----------
    sink:
        Destination for record batches.
    ingest_key:
        Passed through to every ``write_records`` call.
    config:
        Supplies ``batch_size`` and ``batch_flush_interval_seconds``.
    clock:
        Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        sink: RecordSink,
        ingest_key: str,
        config: XMLExtractorConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._ingest_key = ingest_key
        self._config = config or XMLExtractorConfig()
        self._clock = clock
        self._pending: list[dict[str, Any]] = []
        self._last_flush = clock()
        self.records_written = 0
        self.batches_written = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def add(self, record: dict[str, Any]) -> int:
        """Buffer *record*; flush if the batch is full or stale.

        Returns the number of records written by this call (0 when the
        record was only buffered).
        """
        self._pending.append(record)
        if len(self._pending) >= self._config.batch_size:
            return self.flush()
        elapsed = self._clock() - self._last_flush
        if elapsed >= self._config.batch_flush_interval_seconds:
            return self.flush()
        return 0

    def flush(self) -> int:
        """Write all pending records.  Returns the number written."""
        if not self._pending:
            return 0
        batch, self._pending = self._pending, []
        self._last_flush = self._clock()
        written = self._sink.write_records(batch, self._ingest_key)
        self.records_written += written
        self.batches_written += 1
        logger.debug(
            "recordkit_xml | batch=%d | records=%d | written=%d",
            self.batches_written,
            len(batch),
            written,
        )
        return written
