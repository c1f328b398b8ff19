"""Source location index: maps graph nodes and edges back to spans in the YAML text."""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .errors import SpanNotFound
from .schemas import CATEGORY_ORDER, Document, Span

logger = logging.getLogger(__name__)

SECTION_KEYS = frozenset(category.section for category in CATEGORY_ORDER)

_TOP_LEVEL_KEY = re.compile(r'^([^\s#\-][^:]*):(\s|$)')
_LIST_ITEM_KEY = re.compile(r'^(\s*)- ([^\s:#](?:[^:]|:(?=\S))*?):(\s|$)')
_FLOW_FROM = re.compile(r'\bfrom:\s*\[([^\]]*)\]')


@dataclass(frozen=True)
class EntryHeader:
    """A category-list entry header line such as ``- reality: Starting point``."""
    line: int
    indent: int
    node_id: str
    section: str


def find_entry_headers(lines: list[str]) -> list[EntryHeader]:
    """Scan lines for entry headers directly under one of the four section keys.

    An entry header is a list item whose indent equals the first list item's
    indent in its section. Deeper list items (``from`` entries) are skipped.
    """
    headers = []
    section: Optional[str] = None
    entry_indent: Optional[int] = None
    for number, line in enumerate(lines):
        top = _TOP_LEVEL_KEY.match(line)
        if top:
            key = top.group(1).strip()
            section = key if key in SECTION_KEYS else None
            entry_indent = None
            continue
        if section is None:
            continue
        item = _LIST_ITEM_KEY.match(line)
        if not item:
            continue
        indent = len(item.group(1))
        if entry_indent is None:
            entry_indent = indent
        if indent == entry_indent:
            headers.append(EntryHeader(number, indent, item.group(2), section))
    return headers


def _reference_pattern(pred_id: str) -> re.Pattern:
    # The id must be complete: 'net' does not match '- network'.
    return re.compile(r'^(\s*)- (["\']?)' + re.escape(pred_id) + r'\2(?=\s*(?:$|:|#))')


# One comma-separated flow item: a plain or quoted id, optionally written as {id: label}.
_FLOW_ITEM = re.compile(r'\s*\{?\s*(["\']?)(.*?)\1\s*(?:(?::\s|:$|\}).*)?$')


def _flow_reference(line: str, pos: int, pred_id: str) -> Optional[int]:
    """Column of pred_id as a whole item of the ``from: [...]`` list at or after pos."""
    flow_list = _FLOW_FROM.search(line, pos)
    if flow_list is None:
        return None
    position = flow_list.start(1)
    for item in flow_list.group(1).split(','):
        match = _FLOW_ITEM.match(item)
        if match and match.group(2) == pred_id:
            return position + match.start(2)
        position += len(item) + 1
    return None


class LocationIndex:
    """Immutable lookup of node and edge spans for one text snapshot.

    Built by a best-effort line scan. Elements whose text cannot be found
    have no span; lookups return None rather than failing the whole index.
    The index is never patched: every edit builds a new one.
    """

    def __init__(self, node_spans: Mapping[str, Span], edge_spans: Mapping[tuple[str, str], Span],
                 blocks: Mapping[str, tuple[int, int]]):
        self._node_spans = MappingProxyType(dict(node_spans))
        self._edge_spans = MappingProxyType(dict(edge_spans))
        self._blocks = MappingProxyType(dict(blocks))

    @classmethod
    def build(cls, raw_text: str, document: Document) -> 'LocationIndex':
        lines = raw_text.split('\n')
        headers = find_entry_headers(lines)
        header_lines = {header.line for header in headers}

        first_header: dict[str, EntryHeader] = {}
        for header in headers:
            first_header.setdefault(header.node_id, header)

        node_spans: dict[str, Span] = {}
        edge_spans: dict[tuple[str, str], Span] = {}
        blocks: dict[str, tuple[int, int]] = {}

        for node in document.nodes():
            header = first_header.get(node.id)
            if header is None:
                logger.debug("No declaration found for node '%s'", node.id)
                continue
            node_spans[node.id] = Span(line=header.line, column=header.indent, length=len(node.id) + 3)

            end = cls._block_end(lines, header, header_lines)
            blocks[node.id] = (header.line, end)

            for pred_id in dict.fromkeys(node.predecessors):
                span = cls._find_reference(lines, header, end, pred_id)
                if span is None:
                    logger.debug("No reference to '%s' found under '%s'", pred_id, node.id)
                    continue
                edge_spans[(pred_id, node.id)] = span

        return cls(node_spans, edge_spans, blocks)

    @staticmethod
    def _block_end(lines: list[str], header: EntryHeader, header_lines: set[int]) -> int:
        """Line number (exclusive) where the entry starting at header ends."""
        for number in range(header.line + 1, len(lines)):
            line = lines[number]
            if number in header_lines or _TOP_LEVEL_KEY.match(line):
                return number
            stripped = line.lstrip()
            if stripped.startswith('- ') and len(line) - len(stripped) < header.indent:
                return number
        return len(lines)

    @staticmethod
    def _find_reference(lines: list[str], header: EntryHeader, end: int, pred_id: str) -> Optional[Span]:
        # inline record form: - defense: {label: MFA, from: [reality]}
        declaration = _LIST_ITEM_KEY.match(lines[header.line])
        if declaration and lines[header.line][declaration.end():].lstrip().startswith('{'):
            column = _flow_reference(lines[header.line], declaration.end(), pred_id)
            if column is not None:
                return Span(line=header.line, column=column, length=len(pred_id))

        item = _reference_pattern(pred_id)
        for number in range(header.line + 1, end):
            line = lines[number]
            match = item.match(line)
            if match:
                indent, quote = match.group(1), match.group(2)
                return Span(line=number, column=len(indent), length=len(pred_id) + 2 + 2 * len(quote))
            column = _flow_reference(line, 0, pred_id)
            if column is not None:
                return Span(line=number, column=column, length=len(pred_id))
        return None

    def span_for_node(self, node_id: str) -> Optional[Span]:
        return self._node_spans.get(node_id)

    def span_for_edge(self, from_id: str, to_id: str) -> Optional[Span]:
        return self._edge_spans.get((from_id, to_id))

    def span_for_element(self, title: str) -> Optional[Span]:
        """Resolve a rendered SVG element title: a node id, or ``source->target`` for an edge."""
        if title in self._node_spans:
            return self._node_spans[title]
        parts = title.split('->')
        for cut in range(1, len(parts)):
            source, target = '->'.join(parts[:cut]), '->'.join(parts[cut:])
            span = self._edge_spans.get((source, target))
            if span is not None:
                return span
        return None

    def require_node(self, node_id: str) -> Span:
        span = self.span_for_node(node_id)
        if span is None:
            raise SpanNotFound(node_id)
        return span

    def require_edge(self, from_id: str, to_id: str) -> Span:
        span = self.span_for_edge(from_id, to_id)
        if span is None:
            raise SpanNotFound(from_id, to_id)
        return span

    def element_at(self, line: int) -> Optional[Union[str, tuple[str, str]]]:
        """Return the edge reference on a line, else the node whose entry contains it."""
        for pair, span in self._edge_spans.items():
            if span.line == line:
                return pair
        for node_id, (start, end) in self._blocks.items():
            if start <= line < end:
                return node_id
        return None

    def to_offsets(self, text: str) -> dict[str, dict[str, list[int]]]:
        """Offsets of every span for a browser textarea, keyed by rendered element title.

        JavaScript measures strings in UTF-16 code units, so characters outside
        the Basic Multilingual Plane count twice.
        """
        def utf16(offset: int) -> int:
            return len(text[:offset].encode('utf-16-le')) // 2

        def pair(span: Span) -> list[int]:
            start, end = span.offsets(text)
            return [utf16(start), utf16(end)]

        return {
            'nodes': {node_id: pair(span) for node_id, span in self._node_spans.items()},
            'edges': {f'{a}->{b}': pair(span) for (a, b), span in self._edge_spans.items()},
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LocationIndex):
            return NotImplemented
        return (dict(self._node_spans) == dict(other._node_spans)
                and dict(self._edge_spans) == dict(other._edge_spans)
                and dict(self._blocks) == dict(other._blocks))


def build_index(raw_text: str, document: Document) -> LocationIndex:
    return LocationIndex.build(raw_text, document)
