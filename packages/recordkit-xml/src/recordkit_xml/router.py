"""XMLRouter -- orchestrator and public API for the recordkit-xml pipeline.

Routes XML files through the full extraction pipeline:

1. Security scan via :class:`XMLSecurityScanner`.
2. Compute deterministic :class:`IngestKey` for deduplication.
3. Optionally pre-count record elements for progress reporting.
4. Stream-extract records via :func:`for_each`.
5. Buffer records into batches via :class:`RecordBatcher`.
6. Write batches via :class:`RecordSink` (skipped when no sink is given).
7. Assemble and return :class:`ProcessingResult`.

The router enforces **fail-closed** semantics: any fatal error returns a
result with error codes instead of raising.  Batches written before the
failure are reported in ``result.written`` so the caller can roll back.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from recordkit_core.idempotency import compute_ingest_key
from recordkit_core.models import WrittenArtifacts
from recordkit_core.protocols import RecordSink

from recordkit_xml.batching import RecordBatcher
from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.errors import (
    ErrorCode,
    ExtractionError,
    IngestError,
    MalformedInputError,
)
from recordkit_xml.extractor import count_records, for_each
from recordkit_xml.models import ProcessingResult
from recordkit_xml.schema import ElementSchema
from recordkit_xml.security import XMLSecurityScanner

logger = logging.getLogger("recordkit_xml")

DEFAULT_MAX_DEPTH = 256


class _SinkFailed(Exception):
    """Internal signal that the sink raised while a batch was being written."""

    def __init__(self, original: Exception) -> None:
        super().__init__(str(original))
        self.original = original


class _CallbackFailed(Exception):
    """Internal signal that the caller's ``on_record`` hook raised."""

    def __init__(self, original: Exception) -> None:
        super().__init__(str(original))
        self.original = original


class XMLRouter:
    """Top-level orchestrator for the recordkit-xml pipeline.

    Parameters
    ----------
    schema:
        The element schema records are projected through.
    sink:
        Backend the record batches are written to.  When *None*, records
        are extracted, counted and sampled but not persisted.
    config:
        Pipeline configuration.  Uses defaults when *None*.
    """

    def __init__(
        self,
        schema: ElementSchema,
        sink: RecordSink | None = None,
        config: XMLExtractorConfig | None = None,
    ) -> None:
        self._schema = schema
        self._sink = sink
        config = config or XMLExtractorConfig()
        if config.max_depth is None:
            config = config.model_copy(update={"max_depth": DEFAULT_MAX_DEPTH})
        self._config = config
        self._security_scanner = XMLSecurityScanner(self._config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def can_handle(self, file_path: str) -> bool:
        """Return True if *file_path* ends with ``.xml`` (case-insensitive)."""
        return file_path.lower().endswith(".xml")

    def process(
        self,
        file_path: str,
        source_uri: str | None = None,
        on_record: Callable[[dict[str, Any]], object] | None = None,
    ) -> ProcessingResult:
        """Extract records from a single XML file and write them to the sink.

        Parameters
        ----------
        file_path:
            Filesystem path to the XML file.
        source_uri:
            Optional override for the source URI stored in the ingest key.
        on_record:
            Optional hook called with each record after it is buffered.
            An exception from the hook ends the run with
            ``E_CALLBACK_FAILED``.

        Returns
        -------
        ProcessingResult
            The fully-assembled result.
        """
        overall_start = time.monotonic()
        config = self._config
        filename = os.path.basename(file_path)
        ingest_run_id = str(uuid.uuid4())
        root_element = self._schema.root_element

        def _result(**kwargs: Any) -> ProcessingResult:
            return ProcessingResult(
                file_path=file_path,
                ingest_run_id=ingest_run_id,
                tenant_id=config.tenant_id,
                root_element=root_element,
                processing_time_seconds=time.monotonic() - overall_start,
                **kwargs,
            )

        # ==============================================================
        # Step 1: Security Scan
        # ==============================================================
        security_errors = self._security_scanner.scan(file_path)
        fatal_errors = [e for e in security_errors if e.code.startswith("E_")]
        warnings = [e for e in security_errors if not e.code.startswith("E_")]

        if fatal_errors:
            logger.error(
                "recordkit_xml | file=%s | code=%s | detail=%s",
                filename,
                _code_value(fatal_errors[0].code),
                fatal_errors[0].message,
            )
            return _result(
                ingest_key="",
                errors=[_code_value(e.code) for e in fatal_errors],
                warnings=[_code_value(e.code) for e in warnings],
                error_details=security_errors,
            )

        # ==============================================================
        # Step 2: Compute Ingest Key
        # ==============================================================
        try:
            ingest_key = compute_ingest_key(
                file_path=file_path,
                parser_version=config.parser_version,
                tenant_id=config.tenant_id,
                source_uri=source_uri,
            ).key
        except OSError as exc:
            read_error = _read_error(exc)
            self._log_failure(filename, read_error, 0, WrittenArtifacts())
            return _result(
                ingest_key="",
                errors=[_code_value(read_error.code)],
                warnings=[_code_value(e.code) for e in warnings],
                error_details=[*security_errors, read_error],
            )

        result_warnings: list[str] = [_code_value(e.code) for e in warnings]
        error_details: list[IngestError] = list(warnings)

        # ==============================================================
        # Step 3: Pre-count (optional)
        # ==============================================================
        expected: int | None = None
        if config.precount_records:
            try:
                expected = count_records(
                    Path(file_path), root_element, top_level_only=True, config=config
                )
            except (MalformedInputError, OSError) as exc:
                precount_error = (
                    exc.error
                    if isinstance(exc, MalformedInputError)
                    else _read_error(exc)
                )
                self._log_failure(filename, precount_error, 0, WrittenArtifacts())
                return _result(
                    ingest_key=ingest_key,
                    errors=[_code_value(precount_error.code)],
                    warnings=result_warnings,
                    error_details=[*error_details, precount_error],
                )
            logger.info(
                "recordkit_xml | file=%s | expected_records=%d", filename, expected
            )

        # ==============================================================
        # Steps 4-6: Stream, Batch, Write
        # ==============================================================
        batcher = (
            RecordBatcher(self._sink, ingest_key, config)
            if self._sink is not None
            else None
        )
        samples: list[dict[str, Any]] = []
        seen = 0

        def _handle(record: dict[str, Any]) -> None:
            nonlocal seen
            seen += 1
            if len(samples) < config.sample_size:
                samples.append(copy.deepcopy(record))
            if batcher is not None:
                try:
                    batcher.add(record)
                except Exception as exc:
                    raise _SinkFailed(exc) from exc
            if on_record is not None:
                try:
                    on_record(record)
                except Exception as exc:
                    raise _CallbackFailed(exc) from exc
            if seen % config.progress_log_interval == 0:
                self._log_progress(filename, seen, expected)

        def _written() -> WrittenArtifacts:
            if batcher is None:
                return WrittenArtifacts()
            return WrittenArtifacts(
                records_written=batcher.records_written,
                batches_written=batcher.batches_written,
                sink_name=type(self._sink).__name__,
            )

        failure: IngestError | None = None
        try:
            extract_result = for_each(Path(file_path), self._schema, _handle, config)
            if batcher is not None:
                try:
                    batcher.flush()
                except Exception as exc:
                    raise _SinkFailed(exc) from exc
        except _SinkFailed as exc:
            failure = _sink_error(exc.original)
        except _CallbackFailed as exc:
            failure = IngestError(
                code=ErrorCode.E_CALLBACK_FAILED,
                message=f"Record callback failed: {exc.original}",
                stage="callback",
            )
        except ExtractionError as exc:
            failure = exc.error
        except OSError as exc:
            failure = _read_error(exc)

        if failure is not None:
            written = _written()
            self._log_failure(filename, failure, seen, written)
            return _result(
                ingest_key=ingest_key,
                records_extracted=seen,
                expected_records=expected,
                written=written,
                sample_records=samples,
                errors=[_code_value(failure.code)],
                warnings=result_warnings,
                error_details=[*error_details, failure],
            )

        # ==============================================================
        # Step 7: Assemble Result
        # ==============================================================
        if extract_result.truncated:
            result_warnings.append(ErrorCode.W_TRUNCATED.value)
            error_details.append(
                IngestError(
                    code=ErrorCode.W_TRUNCATED,
                    message=f"Stopped after max_records={config.max_records}",
                    stage="extract",
                    recoverable=True,
                )
            )
            logger.warning(
                "recordkit_xml | file=%s | truncated at %d records",
                filename,
                extract_result.records_extracted,
            )
        if extract_result.records_extracted == 0:
            result_warnings.append(ErrorCode.W_NO_RECORDS.value)
            error_details.append(
                IngestError(
                    code=ErrorCode.W_NO_RECORDS,
                    message=f"No <{root_element}> elements found",
                    stage="extract",
                    recoverable=True,
                )
            )

        written = _written()
        result = _result(
            ingest_key=ingest_key,
            records_extracted=extract_result.records_extracted,
            expected_records=expected,
            total_elements=extract_result.total_elements,
            max_depth=extract_result.max_depth,
            written=written,
            sample_records=samples,
            warnings=result_warnings,
            error_details=error_details,
        )

        logger.info(
            "recordkit_xml | file=%s | ingest_key=%s | records=%d | written=%d | "
            "batches=%d | elements=%d | depth=%d | time=%.1fs",
            filename,
            ingest_key[:8],
            result.records_extracted,
            written.records_written,
            written.batches_written,
            result.total_elements,
            result.max_depth,
            result.processing_time_seconds,
        )
        if config.log_sample_data and samples:
            logger.debug("recordkit_xml | file=%s | sample=%r", filename, samples[0])

        return result

    async def aprocess(
        self,
        file_path: str,
        source_uri: str | None = None,
        on_record: Callable[[dict[str, Any]], object] | None = None,
    ) -> ProcessingResult:
        """Async wrapper around :meth:`process`.

        Offloads the synchronous ``process()`` call to a thread via
        ``asyncio.to_thread()``.
        """
        return await asyncio.to_thread(
            self.process, file_path, source_uri, on_record
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _log_failure(
        self,
        filename: str,
        error: IngestError,
        records_extracted: int,
        written: WrittenArtifacts,
    ) -> None:
        logger.error(
            "recordkit_xml | file=%s | code=%s | records=%d | written=%d | detail=%s",
            filename,
            _code_value(error.code),
            records_extracted,
            written.records_written,
            error.message,
        )

    def _log_progress(self, filename: str, seen: int, expected: int | None) -> None:
        if expected:
            logger.info(
                "recordkit_xml | file=%s | progress=%d%% | records=%d/%d",
                filename,
                min(100, seen * 100 // expected),
                seen,
                expected,
            )
        else:
            logger.info("recordkit_xml | file=%s | records=%d", filename, seen)


def _sink_error(exc: Exception) -> IngestError:
    code = (
        ErrorCode.E_BACKEND_SINK_TIMEOUT
        if isinstance(exc, TimeoutError)
        else ErrorCode.E_BACKEND_SINK_CONNECT
    )
    return IngestError(code=code, message=f"Record sink error: {exc}", stage="write")


def _read_error(exc: OSError) -> IngestError:
    return IngestError(
        code=ErrorCode.E_PARSE_CORRUPT,
        message=f"Cannot read file: {exc}",
        stage="extract",
    )


def _code_value(code: Any) -> str:
    return code.value if isinstance(code, ErrorCode) else str(code)
