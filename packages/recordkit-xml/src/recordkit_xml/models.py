"""Package-specific Pydantic models for the recordkit-xml package.

Contains ``ExtractResult`` and ``ProcessingResult``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from recordkit_core.errors import BaseIngestError
from recordkit_core.models import WrittenArtifacts


class ExtractResult(BaseModel):
    """Summary of one streaming extraction run."""

    root_element: str
    records_extracted: int = 0
    total_elements: int = 0
    max_depth: int = 0
    truncated: bool = False


class ProcessingResult(BaseModel):
    """Final result of XML record extraction via ``XMLRouter.process()``."""

    file_path: str
    ingest_key: str
    ingest_run_id: str
    tenant_id: str | None = None
    root_element: str | None = None
    records_extracted: int = 0
    expected_records: int | None = None
    total_elements: int = 0
    max_depth: int = 0
    written: WrittenArtifacts = WrittenArtifacts()
    sample_records: list[dict[str, Any]] = []
    errors: list[str] = []
    warnings: list[str] = []
    error_details: list[BaseIngestError] = []
    processing_time_seconds: float = 0.0
