"""Streaming XML tokenizer -- normalized lexical events without a DOM.

Drives the standard library expat parser in push mode, without namespace
processing, and turns its callbacks into a flat, document-ordered sequence
of events:

``OpenTag`` / ``Text`` / ``CloseTag`` ... then exactly one terminal event,
``ParseFailure`` (input was not well-formed) or ``End``.

Tag and attribute names are reduced to their lower-cased local name, so
``<ns:Item xmlns:ns="urn:a">``, ``<a:Item>`` and ``<ITEM>`` all open ``item``.
Prefixes are never resolved, so one that was not declared is not an error,
and ``xmlns`` declarations are not reported as attributes.
"""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field
from typing import Any, Union
from xml.parsers import expat

from recordkit_xml.errors import MalformedInputError

DEFAULT_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OpenTag:
    name: str
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Text:
    content: str


@dataclass(frozen=True, slots=True)
class CloseTag:
    name: str


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Terminal event: the input stopped being well-formed XML."""

    cause: MalformedInputError


@dataclass(frozen=True, slots=True)
class End:
    """Terminal event: the document ended cleanly."""


XMLEvent = Union[OpenTag, Text, CloseTag, ParseFailure, End]


def _local_name(tag: str) -> str:
    """Lower-cased local part of a tag, without its prefix."""
    return tag.rsplit(":", 1)[-1].lower()


def _is_namespace_declaration(name: str) -> bool:
    return name == "xmlns" or name.startswith("xmlns:")


class _EventTarget:
    """Parser target that records events instead of building a tree."""

    def __init__(self) -> None:
        self.events: list[XMLEvent] = []

    def start(self, tag: str, attrib: dict[str, str]) -> None:
        attributes = {
            _local_name(k): v
            for k, v in attrib.items()
            if not _is_namespace_declaration(k)
        }
        self.events.append(OpenTag(_local_name(tag), attributes))

    def end(self, tag: str) -> None:
        self.events.append(CloseTag(_local_name(tag)))

    def data(self, data: str) -> None:
        self.events.append(Text(data))

    def drain(self) -> list[XMLEvent]:
        events = self.events
        self.events = []
        return events


class XMLTokenizer:
    """Incremental tokenizer: feed chunks, receive the events they complete.

    Once a ``ParseFailure`` or ``End`` event has been returned the tokenizer
    is finished and further calls return no events.
    """

    def __init__(self) -> None:
        self._target = _EventTarget()
        self._parser = expat.ParserCreate()
        self._parser.buffer_text = True
        self._parser.StartElementHandler = self._target.start
        self._parser.EndElementHandler = self._target.end
        self._parser.CharacterDataHandler = self._target.data
        self._seen_content = False
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes | str) -> list[XMLEvent]:
        """Feed one chunk; return the events it produced."""
        if self._finished or not chunk:
            return []
        if not self._seen_content and chunk.strip():
            self._seen_content = True
        try:
            self._parser.Parse(chunk, False)
        except expat.ExpatError as exc:
            return self._fail(exc)
        return self._target.drain()

    def close(self) -> list[XMLEvent]:
        """Signal end of input; return the remaining events."""
        if self._finished:
            return []
        if self._seen_content:
            try:
                self._parser.Parse(b"", True)
            except expat.ExpatError as exc:
                return self._fail(exc)
        self._finished = True
        events = self._target.drain()
        events.append(End())
        return events

    def _fail(self, exc: expat.ExpatError) -> list[XMLEvent]:
        self._finished = True
        error = MalformedInputError(
            f"Malformed XML: {exc}",
            cause=exc,
            line=exc.lineno,
            column=exc.offset,
        )
        error.__cause__ = exc
        events = self._target.drain()
        events.append(ParseFailure(error))
        return events


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def _iter_chunks(source: Any, chunk_size: int) -> Iterator[bytes | str]:
    """Yield chunks from any supported synchronous source.

    Supported: ``bytes`` / ``str`` documents, ``os.PathLike`` paths
    (opened in binary mode), objects with ``read(n)``, and iterables of
    ``bytes`` / ``str`` chunks.  A plain ``str`` is XML text, never a path.
    """
    if isinstance(source, (bytes, bytearray, memoryview, str)):
        data = bytes(source) if not isinstance(source, str) else source
        for start in range(0, len(data), chunk_size):
            yield data[start : start + chunk_size]
    elif isinstance(source, os.PathLike):
        with open(source, "rb") as fh:
            yield from iter(lambda: fh.read(chunk_size), b"")
    elif hasattr(source, "read"):
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            yield chunk
    elif hasattr(source, "__iter__"):
        for chunk in source:
            if chunk:
                yield chunk
    else:
        raise TypeError(
            f"Unsupported XML source type: {type(source).__name__}"
        )


def iter_events(
    source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[XMLEvent]:
    """Tokenize a synchronous source, yielding events as input is consumed."""
    tokenizer = XMLTokenizer()
    for chunk in _iter_chunks(source, chunk_size):
        yield from tokenizer.feed(chunk)
        if tokenizer.finished:
            return
    yield from tokenizer.close()


async def _aiter_chunks(source: Any, chunk_size: int) -> AsyncIterator[bytes | str]:
    if hasattr(source, "__aiter__"):
        async for chunk in source:
            if chunk:
                yield chunk
        return

    if isinstance(source, os.PathLike):
        with open(source, "rb") as fh:
            async for chunk in _aiter_reads(fh.read, chunk_size):
                yield chunk
        return

    read = getattr(source, "read", None)
    if read is not None:
        async for chunk in _aiter_reads(read, chunk_size):
            yield chunk
        return

    for chunk in _iter_chunks(source, chunk_size):
        yield chunk


async def _aiter_reads(read: Any, chunk_size: int) -> AsyncIterator[bytes | str]:
    # Blocking reads go to a worker thread; coroutine reads are awaited.
    blocking = not inspect.iscoroutinefunction(read)
    while True:
        if blocking:
            chunk = await asyncio.to_thread(read, chunk_size)
        else:
            chunk = read(chunk_size)
        if inspect.isawaitable(chunk):
            chunk = await chunk
        if not chunk:
            break
        yield chunk


async def aiter_events(
    source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> AsyncIterator[XMLEvent]:
    """Tokenize an asynchronous (or synchronous) source.

    In addition to everything :func:`iter_events` accepts, *source* may be
    an async iterable of chunks or an object whose ``read(n)`` is a
    coroutine (e.g. ``asyncio.StreamReader``).  Paths and objects with a
    blocking ``read(n)`` are read in a worker thread; in-memory documents
    and chunk iterables are consumed inline.
    """
    tokenizer = XMLTokenizer()
    async for chunk in _aiter_chunks(source, chunk_size):
        for event in tokenizer.feed(chunk):
            yield event
        if tokenizer.finished:
            return
    for event in tokenizer.close():
        yield event
