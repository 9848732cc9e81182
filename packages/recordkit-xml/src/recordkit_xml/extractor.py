"""Schema-driven streaming record extraction.

Consumes the event stream from :mod:`recordkit_xml.tokenizer`, keeps an
ancestor stack of open elements, and every time a *record* element closes
projects its subtree through the schema into a plain ``dict``.

Public entry points:

- :func:`collect` / :func:`acollect` -- return every record as a list.
- :func:`for_each` / :func:`aforeach` -- hand each record to a callback as
  soon as its element closes; nothing but the record in flight is kept.
- :func:`count_records` -- count record elements without projecting them.

Only elements inside an open record keep text and children.  A container
such as ``<toys>`` holding millions of ``<toy>`` records therefore never
grows a child list, and a projected record becomes garbage as soon as the
callback returns.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from contextlib import aclosing, closing
from typing import Any, Union

from recordkit_xml.config import XMLExtractorConfig
from recordkit_xml.errors import ExtractionLimitError, MalformedInputError
from recordkit_xml.models import ExtractResult
from recordkit_xml.schema import (
    ArrayField,
    ElementSchema,
    FieldSchema,
    ObjectField,
    TextField,
)
from recordkit_xml.tokenizer import (
    CloseTag,
    OpenTag,
    ParseFailure,
    Text,
    XMLEvent,
    aiter_events,
    iter_events,
)

ParsedValue = Union[str, dict[str, "ParsedValue"], list["ParsedValue"]]
Record = dict[str, ParsedValue]


class ElementContext:
    """One open (or retained) element: name, attributes, text, and children.

    Attributes are kept for the element's lifetime but never projected.
    """

    __slots__ = ("name", "attributes", "parent", "children", "retain", "_text")

    def __init__(
        self,
        name: str,
        parent: ElementContext | None = None,
        retain: bool = False,
        attributes: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self.attributes = attributes if attributes is not None else {}
        self.parent = parent
        self.retain = retain
        self.children: dict[str, list[ElementContext]] = {}
        self._text: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._text)

    def append_text(self, content: str) -> None:
        self._text.append(content)

    def add_child(self, child: ElementContext) -> None:
        self.children.setdefault(child.name, []).append(child)

    def first(self, name: str) -> ElementContext | None:
        matches = self.children.get(name)
        return matches[0] if matches else None

    def all(self, name: str) -> list[ElementContext]:
        return self.children.get(name, [])

    def path(self) -> str:
        names: list[str] = []
        node: ElementContext | None = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return "/" + "/".join(reversed(names))


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def project(context: ElementContext, fields: list[FieldSchema]) -> Record:
    """Project *context* through *fields*.

    Fields with no matching child are omitted rather than set to ``None``;
    an array field with no matches is omitted rather than emitted empty.
    """
    result: Record = {}
    for spec in fields:
        value = _project_field(context, spec)
        if value is not None:
            result[spec.name] = value
    return result


def _project_field(context: ElementContext, spec: FieldSchema) -> ParsedValue | None:
    if isinstance(spec, TextField):
        child = context.first(spec.match_name)
        return child.text.strip() if child is not None else None

    if isinstance(spec, ObjectField):
        child = context.first(spec.match_name)
        return project(child, spec.fields) if child is not None else None

    if isinstance(spec, ArrayField):
        children = context.all(spec.match_name)
        if not children:
            return None
        return [project(child, spec.item_schema) for child in children]

    raise TypeError(f"Unknown field schema: {spec!r}")


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class RecordExtractor:
    """Event-driven extractor for one document.

    Feed events in document order with :meth:`handle`; it returns the
    projected record whenever a record element closes, else ``None``.

    Record elements nested inside record elements of the same name are each
    tracked: the inner record is emitted when it closes, the outer one when
    it closes, and the inner subtree stays visible to the outer projection.
    """

    def __init__(self, schema: ElementSchema, max_depth: int | None = None) -> None:
        self._schema = schema
        self._record_name = schema.match_name
        self._max_depth = max_depth
        self._stack: list[ElementContext] = []
        self._open_records: list[ElementContext] = []
        self.records_emitted = 0
        self.total_elements = 0
        self.max_depth_seen = 0

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def in_record(self) -> bool:
        return bool(self._open_records)

    def element_path(self) -> str | None:
        return self._stack[-1].path() if self._stack else None

    def handle(self, event: XMLEvent) -> Record | None:
        """Advance the state machine by one event.

        Raises
        ------
        MalformedInputError
            On a ``ParseFailure`` event or a close tag that does not match
            the open element.
        ExtractionLimitError
            When nesting exceeds ``max_depth``.
        """
        if isinstance(event, OpenTag):
            self._open(event.name, event.attributes)
        elif isinstance(event, Text):
            if self._stack and self._stack[-1].retain:
                self._stack[-1].append_text(event.content)
        elif isinstance(event, CloseTag):
            return self._close(event.name)
        elif isinstance(event, ParseFailure):
            if event.cause.error.element_path is None:
                event.cause.error.element_path = self.element_path()
            raise event.cause
        return None

    def _open(self, name: str, attributes: dict[str, str]) -> None:
        parent = self._stack[-1] if self._stack else None
        is_record = name == self._record_name
        context = ElementContext(
            name, parent, retain=is_record or self.in_record, attributes=attributes
        )

        if parent is not None and self.in_record:
            parent.add_child(context)

        self._stack.append(context)
        self.total_elements += 1
        depth = len(self._stack)
        if depth > self.max_depth_seen:
            self.max_depth_seen = depth
        if self._max_depth is not None and depth > self._max_depth:
            raise ExtractionLimitError(
                f"XML nesting depth {depth} exceeds limit of {self._max_depth}",
                element_path=context.path(),
            )

        if is_record:
            self._open_records.append(context)

    def _close(self, name: str) -> Record | None:
        if not self._stack:
            raise MalformedInputError(f"Close tag </{name}> with no open element")
        context = self._stack[-1]
        if context.name != name:
            raise MalformedInputError(
                f"Close tag </{name}> does not match open <{context.name}>",
                element_path=context.path(),
            )
        self._stack.pop()

        if self._open_records and self._open_records[-1] is context:
            self._open_records.pop()
            self.records_emitted += 1
            return project(context, self._schema.fields)
        return None

    def result(self, truncated: bool = False) -> ExtractResult:
        return ExtractResult(
            root_element=self._schema.root_element,
            records_extracted=self.records_emitted,
            total_elements=self.total_elements,
            max_depth=self.max_depth_seen,
            truncated=truncated,
        )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def for_each(
    source: Any,
    schema: ElementSchema,
    on_record: Callable[[Record], object],
    config: XMLExtractorConfig | None = None,
) -> ExtractResult:
    """Stream *source*, calling *on_record* for each record in document order.

    Records delivered before a failure stay delivered.  Exceptions raised by
    *on_record* propagate unchanged and end the extraction.

    Parameters
    ----------
    source:
        XML as ``bytes``/``str``, a ``pathlib.Path``, a readable file
        object, or an iterable of chunks.
    schema:
        Which element is a record and how to project it.
    on_record:
        Called synchronously with each projected record.
    config:
        Chunk size, optional depth limit, and optional record cap.

    Returns
    -------
    ExtractResult
        Counts for the completed run.

    Raises
    ------
    MalformedInputError
        If the XML is not well-formed.
    ExtractionLimitError
        If nesting exceeds ``config.max_depth``.
    """
    config = config or XMLExtractorConfig()
    extractor = RecordExtractor(schema, max_depth=config.max_depth)

    with closing(iter_events(source, config.read_chunk_size)) as events:
        for event in events:
            record = extractor.handle(event)
            if record is None:
                continue
            on_record(record)
            if _limit_reached(extractor, config):
                return extractor.result(truncated=True)

    return extractor.result()


def collect(
    source: Any,
    schema: ElementSchema,
    config: XMLExtractorConfig | None = None,
) -> list[Record]:
    """Extract every record from *source* into a list, in document order."""
    records: list[Record] = []
    for_each(source, schema, records.append, config)
    return records


async def aforeach(
    source: Any,
    schema: ElementSchema,
    on_record: Callable[[Record], Awaitable[object] | object],
    config: XMLExtractorConfig | None = None,
) -> ExtractResult:
    """Async :func:`for_each`.

    *on_record* may be a plain function or a coroutine function.  When it
    returns an awaitable, it is awaited before the next chunk of input is
    read, so at most one callback is in flight.  Paths and blocking file
    objects are read in a worker thread, see :func:`aiter_events`.
    """
    config = config or XMLExtractorConfig()
    extractor = RecordExtractor(schema, max_depth=config.max_depth)

    async with aclosing(aiter_events(source, config.read_chunk_size)) as events:
        async for event in events:
            record = extractor.handle(event)
            if record is None:
                continue
            outcome = on_record(record)
            if inspect.isawaitable(outcome):
                await outcome
            if _limit_reached(extractor, config):
                return extractor.result(truncated=True)

    return extractor.result()


async def acollect(
    source: Any,
    schema: ElementSchema,
    config: XMLExtractorConfig | None = None,
) -> list[Record]:
    """Async :func:`collect`."""
    records: list[Record] = []
    await aforeach(source, schema, records.append, config)
    return records


def count_records(
    source: Any,
    root_element: str,
    top_level_only: bool = False,
    config: XMLExtractorConfig | None = None,
) -> int:
    """Count *root_element* elements in *source* without projecting them.

    With *top_level_only*, only direct children of the document element
    are counted, which is what a progress bar over a flat record list
    wants as its total.
    """
    config = config or XMLExtractorConfig()
    target = root_element.lower()
    depth = 0
    count = 0

    with closing(iter_events(source, config.read_chunk_size)) as events:
        for event in events:
            if isinstance(event, OpenTag):
                if event.name == target and (not top_level_only or depth == 1):
                    count += 1
                depth += 1
            elif isinstance(event, CloseTag):
                depth -= 1
            elif isinstance(event, ParseFailure):
                raise event.cause

    return count


def _limit_reached(extractor: RecordExtractor, config: XMLExtractorConfig) -> bool:
    return (
        config.max_records is not None
        and extractor.records_emitted >= config.max_records
    )
