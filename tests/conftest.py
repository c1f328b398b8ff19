"""
Pytest configuration and fixtures for the attack tree tests.

Provides:
- The seed document (the smallest valid attack tree) as text and model
- A compiler wired to the built-in theme registry
- A fake layout engine so orchestration can be tested without Graphviz
"""

import pytest

from attacktree.compiler import GraphCompiler
from attacktree.errors import LayoutError
from attacktree.parser import SEED_DOCUMENT, parse_text
from attacktree.themes import THEMES


@pytest.fixture
def seed_text():
    return SEED_DOCUMENT


@pytest.fixture
def seed_document(seed_text):
    return parse_text(seed_text)


@pytest.fixture
def compiler():
    return GraphCompiler(THEMES)


class FakeLayout:
    """Stands in for GraphvizLayout; records every DOT source it is asked to render."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rendered = []

    def render_svg(self, dot: str) -> str:
        if self.fail:
            raise LayoutError('Graphviz is not installed')
        self.rendered.append(dot)
        return '<svg><g class="node"><title>reality</title></g></svg>'


@pytest.fixture
def fake_layout():
    return FakeLayout()
