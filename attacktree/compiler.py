"""Attack tree compiler: Document -> styled Graphviz graph description."""

import logging
from typing import Optional
from graphviz import Digraph, escape
from graphviz.quoting import quote

from .errors import DuplicateId, UnknownReference
from .parser import parse_text
from .schemas import (
    CATEGORY_ORDER, Document, GraphDescription, GraphEdge, GraphNode, Node, Theme,
)
from .themes import THEMES, ThemeRegistry

logger = logging.getLogger(__name__)

_CATEGORY_RANK = {category: rank for rank, category in enumerate(CATEGORY_ORDER)}


class _AttackTreeDigraph(Digraph):
    """Digraph whose edge endpoints are plain node ids, never ``node:port`` pairs."""

    _quote_edge = staticmethod(quote)


class GraphCompiler:
    """Compiles attack tree Documents into DOT using a theme registry.

    Compiling is a pure function of the Document and the registry: the same
    input always yields byte-identical DOT, and nodes and edges are emitted
    in declaration order so successive renders diff cleanly.
    """

    def __init__(self, registry: ThemeRegistry = THEMES):
        self.registry = registry

    def compile(self, document: Document, theme: Optional[str] = None) -> GraphDescription:
        nodes = list(document.nodes())
        index = self._check_ids(nodes)
        self._check_references(nodes, index)

        resolved = self.registry.resolve(theme if theme is not None else document.theme)
        graph_nodes = [self._graph_node(node, resolved) for node in nodes]
        graph_edges = self._graph_edges(nodes, index, resolved)

        dot = self._to_dot(document.title, resolved, graph_nodes, graph_edges)
        logger.debug(
            'Compiled %r: %d nodes, %d edges, theme %s',
            document.title, len(graph_nodes), len(graph_edges), resolved.name,
        )
        return GraphDescription(
            title=document.title,
            theme=resolved.name,
            nodes=tuple(graph_nodes),
            edges=tuple(graph_edges),
            dot=dot,
        )

    def _check_ids(self, nodes: list[Node]) -> dict[str, Node]:
        index: dict[str, Node] = {}
        for node in nodes:
            if node.id in index:
                raise DuplicateId(node.id)
            index[node.id] = node
        return index

    def _check_references(self, nodes: list[Node], index: dict[str, Node]) -> None:
        # nodes is already in category-then-document order, so the first miss is deterministic
        for node in nodes:
            for pred_id in node.predecessors:
                if pred_id not in index:
                    raise UnknownReference(node.id, pred_id)

    def _graph_node(self, node: Node, theme: Theme) -> GraphNode:
        return GraphNode(
            id=node.id,
            label=node.label,
            category=node.category,
            attrs=theme.style_for(node).attrs(),
        )

    def _is_backwards(self, pred: Node, node: Node) -> bool:
        """An edge runs backwards when declared so, or when it points to an earlier category."""
        if pred.id in node.backwards:
            return True
        return _CATEGORY_RANK[pred.category] > _CATEGORY_RANK[node.category]

    def _graph_edges(self, nodes: list[Node], index: dict[str, Node], theme: Theme) -> list[GraphEdge]:
        edges = []
        for node in nodes:
            seen: set[str] = set()
            for pred_id in node.predecessors:
                if pred_id in seen:
                    continue
                seen.add(pred_id)

                backwards = self._is_backwards(index[pred_id], node)
                label = node.edge_label(pred_id)
                attrs: dict[str, str] = {}
                if backwards:
                    attrs.update(color=theme.backwards_edge_color, style='dashed', constraint='false')
                if label:
                    attrs['fontcolor'] = theme.edge_label_color
                edges.append(GraphEdge(
                    source=pred_id,
                    target=node.id,
                    label=label,
                    backwards=backwards,
                    attrs=attrs,
                ))
        return edges

    def _to_dot(self, title: str, theme: Theme, nodes: list[GraphNode], edges: list[GraphEdge]) -> str:
        graph = _AttackTreeDigraph(name='AttackTree', comment=f'Attack Tree: {" ".join(title.split())}', engine='dot')
        graph.attr(
            label=escape(title), labelloc='t', fontname=theme.fontname, fontsize='16',
            fontcolor=theme.title_color, bgcolor=theme.background,
            rankdir='TB', nodesep='0.5', ranksep='0.6',
        )
        graph.attr('node', fontname=theme.fontname, fontsize='10', margin='0.2,0.1')
        graph.attr('edge', fontname=theme.fontname, fontsize='9', color=theme.edge_color)

        for node in nodes:
            graph.node(node.id, label=escape(node.label), **node.attrs)
        for edge in edges:
            edge_attrs = dict(edge.attrs)
            if edge.label:
                edge_attrs['label'] = escape(edge.label)
            graph.edge(edge.source, edge.target, **edge_attrs)
        return graph.source


def compile_document(document: Document, theme: Optional[str] = None,
                     registry: ThemeRegistry = THEMES) -> GraphDescription:
    """Compile a Document with the given (or built-in) theme registry."""
    return GraphCompiler(registry).compile(document, theme)


def compile_text(text: str, theme: Optional[str] = None,
                 registry: ThemeRegistry = THEMES) -> GraphDescription:
    """Parse YAML text and compile it in one step."""
    return compile_document(parse_text(text), theme, registry)
