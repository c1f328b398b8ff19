"""Graphviz layout engine adapter."""

import logging
from pathlib import Path
import graphviz

from .errors import LayoutError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('svg', 'png', 'pdf')


class GraphvizLayout:
    """Lays out DOT source with the Graphviz binaries and returns rendered output."""

    def __init__(self, engine: str = 'dot'):
        if engine not in graphviz.ENGINES:
            raise LayoutError(f"Unknown Graphviz engine: {engine}")
        self.engine = engine

    def _source(self, dot: str, output_format: str) -> graphviz.Source:
        if output_format not in OUTPUT_FORMATS:
            raise LayoutError(f"Unsupported output format: {output_format}")
        return graphviz.Source(dot, format=output_format, engine=self.engine)

    def render(self, dot: str, output_format: str = 'svg') -> bytes:
        source = self._source(dot, output_format)
        try:
            return source.pipe()
        except graphviz.ExecutableNotFound as e:
            raise LayoutError(f"Graphviz is not installed: {e}")
        except graphviz.CalledProcessError as e:
            raise LayoutError(f"Graphviz failed to lay out the graph: {e}")

    def render_svg(self, dot: str) -> str:
        return self.render(dot, 'svg').decode('utf-8')

    def render_to_file(self, dot: str, output_path: str | Path, output_format: str = 'svg') -> str:
        """Render to output_path (extension added by Graphviz) and return the written file name."""
        source = self._source(dot, output_format)
        try:
            written = source.render(str(output_path), cleanup=True)
        except graphviz.ExecutableNotFound as e:
            raise LayoutError(f"Graphviz is not installed: {e}")
        except graphviz.CalledProcessError as e:
            raise LayoutError(f"Graphviz failed to lay out the graph: {e}")
        logger.debug('Rendered %s with %s', written, self.engine)
        return written
