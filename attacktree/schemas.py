"""Pydantic models for attack tree documents, themes and compiled graphs."""

from enum import Enum
from typing import Iterator, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """The four kinds of node an attack tree is made of."""
    FACT = 'fact'
    ATTACK = 'attack'
    MITIGATION = 'mitigation'
    GOAL = 'goal'

    @property
    def section(self) -> str:
        """Name of the document key that lists nodes of this category."""
        return f'{self.value}s'


# Declaration order. Node and edge enumeration both follow it.
CATEGORY_ORDER = (Category.FACT, Category.ATTACK, Category.MITIGATION, Category.GOAL)


class Node(BaseModel):
    """A declared node with its causal predecessors."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    category: Category
    predecessors: tuple[str, ...] = ()
    edge_labels: tuple[tuple[str, str], ...] = ()  # (predecessor id, edge label) pairs
    backwards: tuple[str, ...] = ()  # predecessors drawn as back edges

    @field_validator('id')
    @classmethod
    def validate_node_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Node id cannot be empty')
        return v

    @field_validator('edge_labels', mode='before')
    @classmethod
    def freeze_edge_labels(cls, v):
        if isinstance(v, dict):
            return tuple(v.items())
        return v

    def edge_label(self, pred_id: str) -> Optional[str]:
        """Label on the edge from pred_id, if one was given."""
        for labelled_id, label in self.edge_labels:
            if labelled_id == pred_id:
                return label
        return None


class Document(BaseModel):
    """One snapshot of an attack tree, rebuilt from the text on every edit."""
    model_config = ConfigDict(frozen=True)

    title: str = 'Attack Tree'
    theme: Optional[str] = None
    facts: tuple[Node, ...] = ()
    attacks: tuple[Node, ...] = ()
    mitigations: tuple[Node, ...] = ()
    goals: tuple[Node, ...] = ()

    def by_category(self, category: Category) -> tuple[Node, ...]:
        return getattr(self, category.section)

    def nodes(self) -> Iterator[Node]:
        """Yield every node in declaration order: facts, attacks, mitigations, goals."""
        for category in CATEGORY_ORDER:
            yield from self.by_category(category)

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes()]


class Span(BaseModel):
    """A region of the source text: 0-based line and column plus a length."""
    model_config = ConfigDict(frozen=True)

    line: int = Field(..., ge=0)
    column: int = Field(..., ge=0)
    length: int = Field(..., ge=0)

    def offsets(self, text: str) -> tuple[int, int]:
        """Return (start, end) character offsets of this span within text."""
        lines = text.split('\n')
        if self.line >= len(lines):
            raise ValueError(f'Span line {self.line} is outside a {len(lines)}-line text')
        start = sum(len(line) + 1 for line in lines[:self.line]) + self.column
        return start, start + self.length

    def excerpt(self, text: str) -> str:
        start, end = self.offsets(text)
        return text[start:end]


class CategoryStyle(BaseModel):
    """Graphviz styling for one node category."""
    model_config = ConfigDict(frozen=True)

    shape: str = 'box'
    style: str = 'filled, rounded'
    fillcolor: str
    color: str
    fontcolor: str = '#000000'
    fontname: str = 'Arial'

    def attrs(self) -> dict[str, str]:
        return {
            'shape': self.shape,
            'style': self.style,
            'fillcolor': self.fillcolor,
            'color': self.color,
            'fontcolor': self.fontcolor,
            'fontname': self.fontname,
        }


class Theme(BaseModel):
    """A named style sheet covering every category plus edges."""
    model_config = ConfigDict(frozen=True)

    name: str
    fact: CategoryStyle
    attack: CategoryStyle
    mitigation: CategoryStyle
    goal: CategoryStyle
    reality: Optional[CategoryStyle] = None  # override for the conventional 'reality' root fact
    background: str = 'white'
    title_color: str = '#000000'
    edge_color: str = '#2B303A'
    edge_label_color: str = '#010065'
    backwards_edge_color: str = '#7692FF'
    fontname: str = 'Arial'

    def style_for(self, node: Node) -> CategoryStyle:
        if node.category is Category.FACT and node.id == 'reality' and self.reality:
            return self.reality
        return getattr(self, node.category.value)


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    category: Category
    attrs: dict[str, str] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    label: Optional[str] = None
    backwards: bool = False
    attrs: dict[str, str] = Field(default_factory=dict)

    @property
    def title(self) -> str:
        """The identifier Graphviz writes into the SVG <title> of this edge."""
        return f'{self.source}->{self.target}'


class GraphDescription(BaseModel):
    """Compiled graph: structured node/edge lists plus the DOT source."""
    model_config = ConfigDict(frozen=True)

    title: str
    theme: str
    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]
    dot: str

    def node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge(self, source: str, target: str) -> Optional[GraphEdge]:
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None
