"""Standalone HTML preview: source text beside the diagram, click an element to select its text."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .locator import LocationIndex
from .schemas import GraphDescription


def inline_svg(svg: str) -> str:
    """Strip the XML prolog Graphviz writes so the SVG can sit inside an HTML body."""
    start = svg.find('<svg')
    return svg[start:] if start >= 0 else svg


class PreviewGenerator:
    """Generates HTML previews of compiled attack trees."""

    def __init__(self, template_dir: Optional[Path] = None):
        if template_dir is None:
            template_dir = Path(__file__).parent / 'templates'
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def generate(self, text: str, graph: GraphDescription, index: LocationIndex, svg: Optional[str],
                 source_name: str = 'attack-tree.yaml', error: Optional[str] = None) -> str:
        """Render the preview page.

        Browsers hand the textarea back with LF line endings, so the text is
        normalised the same way before it is written and before offsets are
        computed from it. Without an svg the diagram pane shows only the error.
        """
        text = text.replace('\r\n', '\n')
        context = {
            'title': graph.title,
            'theme': graph.theme,
            'source_name': source_name,
            'text': text,
            'svg': Markup(inline_svg(svg)) if svg else '',
            'locations': index.to_offsets(text),
            'node_count': len(graph.nodes),
            'edge_count': len(graph.edges),
            'error': error,
            'generation_timestamp': datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC'),
        }
        template = self.env.get_template('preview.html')
        return template.render(**context)

    def generate_to_file(self, output_path: Path, *args, **kwargs) -> Path:
        html_content = self.generate(*args, **kwargs)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(html_content)
        return output_path
