"""Configuration model for the recordkit-xml pipeline.

Provides ``XMLExtractorConfig`` with all tunable parameters and sensible
defaults.  Supports loading overrides from YAML or JSON files via the
``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any

import yaml
from pydantic import BaseModel, Field


def load_mapping_file(path: str) -> dict[str, Any]:
    """Load a YAML or JSON file into a dict.

    File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
    ``.json`` for JSON.  An empty document loads as ``{}``.
    """
    file_path = pathlib.Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = file_path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(file_path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    elif suffix == ".json":
        with open(file_path, encoding="utf-8") as fh:
            data = json.load(fh)
    else:
        raise ValueError(
            f"Unsupported config file extension '{suffix}'. "
            "Use .yaml, .yml, or .json."
        )

    if data is None:
        data = {}

    return data


class XMLExtractorConfig(BaseModel):
    """All tunable parameters with sensible defaults."""

    # --- Identity ---
    parser_version: str = "recordkit_xml:1.0.0"
    tenant_id: str | None = None

    # --- Streaming ---
    read_chunk_size: int = Field(default=64 * 1024, gt=0)
    max_depth: int | None = Field(default=None, gt=0)
    max_records: int | None = Field(default=None, gt=0)

    # --- Security / Resource Limits ---
    max_file_size_mb: int = Field(default=1024, ge=0)
    large_file_warning_mb: int = Field(default=100, ge=0)
    prolog_scan_bytes: int = Field(default=64 * 1024, gt=0)

    # --- Sink Batching ---
    batch_size: int = Field(default=100, gt=0)
    batch_flush_interval_seconds: float = Field(default=5.0, gt=0)

    # --- Reporting ---
    sample_size: int = Field(default=20, ge=0)
    progress_log_interval: int = Field(default=100_000, gt=0)
    precount_records: bool = False

    # --- Logging / PII Safety ---
    log_sample_data: bool = False

    @classmethod
    def from_file(cls, path: str) -> XMLExtractorConfig:
        """Load configuration from a YAML or JSON file.

        Keys present in the file override the corresponding defaults; keys
        not present retain their defaults.
        """
        return cls(**load_mapping_file(path))
