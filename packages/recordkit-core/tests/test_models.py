"""Tests for recordkit_core.models -- IngestKey and WrittenArtifacts."""

from __future__ import annotations

import hashlib
import re

import pytest
from pydantic import ValidationError

from recordkit_core.models import IngestKey, WrittenArtifacts


class TestIngestKey:
    """Deterministic key computation tests."""

    def test_key_is_deterministic(self):
        ik = IngestKey(content_hash="abc", source_uri="file:///test", parser_version="1.0.0")
        assert ik.key == ik.key

    def test_key_is_64_char_hex(self):
        ik = IngestKey(content_hash="abc", source_uri="u", parser_version="v")
        assert len(ik.key) == 64
        assert re.fullmatch(r"[0-9a-f]{64}", ik.key)

    def test_different_content_hash_different_key(self):
        ik1 = IngestKey(content_hash="aaa", source_uri="u", parser_version="v")
        ik2 = IngestKey(content_hash="bbb", source_uri="u", parser_version="v")
        assert ik1.key != ik2.key

    def test_different_source_uri_different_key(self):
        ik1 = IngestKey(content_hash="h", source_uri="a", parser_version="v")
        ik2 = IngestKey(content_hash="h", source_uri="b", parser_version="v")
        assert ik1.key != ik2.key

    def test_different_parser_version_different_key(self):
        ik1 = IngestKey(content_hash="h", source_uri="u", parser_version="v1")
        ik2 = IngestKey(content_hash="h", source_uri="u", parser_version="v2")
        assert ik1.key != ik2.key

    def test_tenant_none_vs_set(self):
        ik1 = IngestKey(content_hash="h", source_uri="u", parser_version="v")
        ik2 = IngestKey(content_hash="h", source_uri="u", parser_version="v", tenant_id="t")
        assert ik1.key != ik2.key

    def test_known_value(self):
        """Verify against hand-computed SHA-256."""
        ik = IngestKey(content_hash="abc", source_uri="file:///toys.xml", parser_version="1.0.0")
        expected = hashlib.sha256(b"abc|file:///toys.xml|1.0.0").hexdigest()
        assert ik.key == expected

    def test_known_value_with_tenant(self):
        ik = IngestKey(content_hash="abc", source_uri="u", parser_version="v", tenant_id="t")
        assert ik.key == hashlib.sha256(b"abc|u|v|t").hexdigest()

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            IngestKey(content_hash="abc", source_uri="u")


class TestWrittenArtifacts:
    """Tests for the sink write summary."""

    def test_defaults(self):
        written = WrittenArtifacts()
        assert written.records_written == 0
        assert written.batches_written == 0
        assert written.sink_name is None

    def test_populated(self):
        written = WrittenArtifacts(records_written=250, batches_written=3, sink_name="PostgresSink")
        assert written.model_dump() == {
            "records_written": 250,
            "batches_written": 3,
            "sink_name": "PostgresSink",
        }
