"""Shared test fixtures for recordkit-xml tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.schema import ElementSchema


@pytest.fixture
def default_config() -> XMLExtractorConfig:
    """Return a default XMLExtractorConfig."""
    return XMLExtractorConfig()


@pytest.fixture
def toy_schema() -> ElementSchema:
    """Schema for the ``<toy>`` catalogue used across tests."""
    return ElementSchema.from_dict(
        {
            "rootElement": "toy",
            "fields": [
                {"type": "text", "name": "name"},
                {"type": "text", "name": "price"},
                {
                    "type": "object",
                    "name": "maker",
                    "fields": [
                        {"type": "text", "name": "company"},
                        {"type": "text", "name": "country"},
                    ],
                },
                {
                    "type": "array",
                    "name": "tag",
                    "itemSchema": [{"type": "text", "name": "label"}],
                },
            ],
        }
    )


@pytest.fixture
def mock_sink() -> MagicMock:
    """Return a mock RecordSink that reports every record as written."""
    mock = MagicMock()
    mock.write_records.side_effect = lambda records, ingest_key: len(records)
    return mock


@pytest.fixture
def tmp_xml_file(tmp_path: Path):
    """Factory fixture to write XML string to a temp .xml file and return the path."""

    def _write(xml_content: str, filename: str = "test.xml") -> str:
        file_path = tmp_path / filename
        file_path.write_text(xml_content, encoding="utf-8")
        return str(file_path)

    return _write


@pytest.fixture
def toy_catalogue() -> str:
    """Three toys, one without a maker and one with two tags."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<toys>
    <toy>
        <name>  Robot  </name>
        <price>19.99</price>
        <maker><company>Acme</company><country>US</country></maker>
        <tag><label>metal</label></tag>
        <tag><label>battery</label></tag>
    </toy>
    <toy>
        <name>Kite</name>
        <price>5</price>
    </toy>
    <toy>
        <name>Ball</name>
        <maker><company>Bouncy</company></maker>
        <tag><label>rubber</label></tag>
    </toy>
</toys>"""
