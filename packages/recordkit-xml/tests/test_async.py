"""Unit tests for the async entry points aforeach() / acollect()."""

from __future__ import annotations

import asyncio

import pytest

from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.errors import MalformedInputError
from recordkit_xml.extractor import acollect, aforeach, collect


class TestACollect:
    """Tests for acollect()."""

    @pytest.mark.asyncio
    async def test_matches_collect(self, toy_schema, toy_catalogue):
        assert await acollect(toy_catalogue, toy_schema) == collect(toy_catalogue, toy_schema)

    @pytest.mark.asyncio
    async def test_async_iterable_source(self, toy_schema, toy_catalogue):
        data = toy_catalogue.encode("utf-8")

        async def chunks():
            for start in range(0, len(data), 7):
                yield data[start : start + 7]

        assert await acollect(chunks(), toy_schema) == collect(data, toy_schema)

    @pytest.mark.asyncio
    async def test_malformed(self, toy_schema):
        with pytest.raises(MalformedInputError):
            await acollect(b"<toys><toy></toys>", toy_schema)


class TestAForEach:
    """Tests for aforeach()."""

    @pytest.mark.asyncio
    async def test_async_callback_awaited(self, toy_schema, toy_catalogue):
        delivered: list[str] = []

        async def on_record(record):
            await asyncio.sleep(0)
            delivered.append(record["name"])

        result = await aforeach(toy_catalogue, toy_schema, on_record)
        assert delivered == ["Robot", "Kite", "Ball"]
        assert result.records_extracted == 3

    @pytest.mark.asyncio
    async def test_sync_callback_accepted(self, toy_schema, toy_catalogue):
        delivered: list[dict] = []
        await aforeach(toy_catalogue, toy_schema, delivered.append)
        assert len(delivered) == 3

    @pytest.mark.asyncio
    async def test_one_callback_in_flight(self, toy_schema):
        log: list[str] = []
        in_flight = 0
        peak = 0

        async def chunks():
            parts = [
                b"<toys><toy><name>A</name></toy>",
                b"<toy><name>B</name></toy>",
                b"</toys>",
            ]
            for index, part in enumerate(parts):
                log.append(f"read:{index}")
                yield part

        async def on_record(record):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            log.append(f"cb:{record['name']}")
            in_flight -= 1

        await aforeach(chunks(), toy_schema, on_record)
        assert peak == 1
        assert log.index("cb:A") < log.index("read:2")
        assert log.index("cb:A") < log.index("cb:B")

    @pytest.mark.asyncio
    async def test_records_before_failure_delivered(self, toy_schema):
        delivered: list[dict] = []

        async def on_record(record):
            delivered.append(record)

        xml = b"<toys><toy><name>A</name></toy><toy><name>B</oops></toys>"
        with pytest.raises(MalformedInputError):
            await aforeach(xml, toy_schema, on_record)
        assert delivered == [{"name": "A"}]

    @pytest.mark.asyncio
    async def test_callback_exception_propagates(self, toy_schema, toy_catalogue):
        async def on_record(record):
            raise RuntimeError("write failed")

        with pytest.raises(RuntimeError, match="write failed"):
            await aforeach(toy_catalogue, toy_schema, on_record)

    @pytest.mark.asyncio
    async def test_max_records(self, toy_schema, toy_catalogue):
        config = XMLExtractorConfig(max_records=1)
        delivered: list[dict] = []
        result = await aforeach(toy_catalogue, toy_schema, delivered.append, config)
        assert len(delivered) == 1
        assert result.truncated is True
