"""Render orchestration: runs one compile cycle per text change and answers click lookups."""

import logging
from dataclasses import dataclass
from typing import Optional

from .compiler import GraphCompiler
from .errors import AttackTreeError
from .layout import GraphvizLayout
from .locator import LocationIndex
from .parser import parse_text
from .schemas import Document, GraphDescription
from .themes import THEMES, ThemeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderResult:
    """Everything produced by one successful compile cycle."""
    revision: int
    text: str
    document: Document
    graph: GraphDescription
    index: LocationIndex
    svg: Optional[str] = None


class RenderSession:
    """Owns the current text of one attack tree and its latest successful render.

    Changes are queued latest-only with submit() and processed by flush(), so
    a burst of edits produces a single cycle on the newest text. A failed
    cycle leaves the previous result in place and reports through ``error``.
    """

    def __init__(self, registry: ThemeRegistry = THEMES, layout: Optional[GraphvizLayout] = None,
                 theme: Optional[str] = None):
        self.registry = registry
        self.compiler = GraphCompiler(registry)
        self.layout = layout
        self.theme = theme
        self.text = ''
        self.result: Optional[RenderResult] = None
        self.error: Optional[str] = None
        self._revision = 0
        self._pending: Optional[str] = None

    @property
    def revision(self) -> int:
        return self._revision

    def submit(self, text: str) -> None:
        self.text = text
        self._pending = text
        self._revision += 1

    def flush(self) -> Optional[RenderResult]:
        if self._pending is None:
            return self.result
        text, self._pending = self._pending, None
        return self._run(text, self._revision)

    def update(self, text: str) -> Optional[RenderResult]:
        self.submit(text)
        return self.flush()

    def set_theme(self, theme: Optional[str]) -> Optional[RenderResult]:
        self.theme = theme
        return self.update(self.text)

    def theme_names(self) -> list[str]:
        return self.registry.list_names()

    def _run(self, text: str, revision: int) -> Optional[RenderResult]:
        if not text.strip():
            self.result = None
            self.error = None
            return None

        try:
            document = parse_text(text)
            graph = self.compiler.compile(document, self.theme)
            index = LocationIndex.build(text, document)
            svg = self.layout.render_svg(graph.dot) if self.layout else None
        except AttackTreeError as e:
            logger.info('Render of revision %d failed: %s', revision, e)
            self.error = str(e)
            return self.result

        self.result = RenderResult(revision, text, document, graph, index, svg)
        self.error = None
        return self.result

    def _current_index(self) -> Optional[LocationIndex]:
        # Spans only make sense against the text they were built from.
        if self.result is None or self.result.text != self.text:
            return None
        return self.result.index

    def navigate(self, element_title: str) -> Optional[tuple[int, int]]:
        """Map a clicked SVG element title to (start, end) offsets in the current text."""
        index = self._current_index()
        if index is None:
            return None
        span = index.span_for_element(element_title)
        if span is None:
            logger.debug("No source location for '%s'", element_title)
            return None
        return span.offsets(self.text)

    def navigate_to_node(self, node_id: str) -> Optional[tuple[int, int]]:
        index = self._current_index()
        span = index.span_for_node(node_id) if index else None
        return span.offsets(self.text) if span else None

    def navigate_to_edge(self, from_id: str, to_id: str) -> Optional[tuple[int, int]]:
        index = self._current_index()
        span = index.span_for_edge(from_id, to_id) if index else None
        return span.offsets(self.text) if span else None
