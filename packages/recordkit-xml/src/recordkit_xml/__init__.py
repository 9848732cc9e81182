"""recordkit-xml -- schema-driven streaming record extraction from XML.

Public API re-exports for convenient access.
"""

from recordkit_xml.batching import RecordBatcher
from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.errors import (
    ErrorCode,
    ExtractionError,
    ExtractionLimitError,
    IngestError,
    MalformedInputError,
    SchemaError,
)
from recordkit_xml.extractor import (
    RecordExtractor,
    acollect,
    aforeach,
    collect,
    count_records,
    for_each,
    project,
)
from recordkit_xml.models import ExtractResult, ProcessingResult
from recordkit_xml.router import XMLRouter
from recordkit_xml.schema import ArrayField, ElementSchema, FieldSchema, ObjectField, TextField
from recordkit_xml.security import XMLSecurityScanner
from recordkit_xml.tokenizer import XMLTokenizer, aiter_events, iter_events

__all__ = [
    "XMLRouter",
    "XMLExtractorConfig",
    "ElementSchema",
    "FieldSchema",
    "TextField",
    "ObjectField",
    "ArrayField",
    "ErrorCode",
    "IngestError",
    "ExtractionError",
    "MalformedInputError",
    "ExtractionLimitError",
    "SchemaError",
    "ExtractResult",
    "ProcessingResult",
    "RecordBatcher",
    "RecordExtractor",
    "XMLSecurityScanner",
    "XMLTokenizer",
    "iter_events",
    "aiter_events",
    "collect",
    "for_each",
    "acollect",
    "aforeach",
    "count_records",
    "project",
]
