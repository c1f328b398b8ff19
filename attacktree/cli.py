"""Attack Tree Tool - Command Line Interface."""

import logging
import sys
from pathlib import Path
import click
import yaml

from . import __version__
from .compiler import GraphCompiler
from .errors import AttackTreeError, LayoutError
from .layout import GraphvizLayout
from .locator import LocationIndex
from .parser import SEED_DOCUMENT, load_document
from .preview import PreviewGenerator
from .settings import load_settings
from .themes import THEMES


def _fail(action: str, error: Exception) -> None:
    click.echo(click.style(f'{action} failed: {error}', fg='red'), err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='Settings YAML file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool):
    """Attack Tree Tool - compile YAML attack trees into Graphviz diagrams."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='[%(levelname)s] %(name)s: %(message)s',
    )
    try:
        ctx.obj = load_settings(config_path)
    except AttackTreeError as e:
        _fail('Loading settings', e)


@cli.command()
@click.argument('tree_file', type=click.Path(exists=True, dir_okay=False))
def validate(tree_file: str):
    """Validate an attack tree file."""
    try:
        _, document = load_document(tree_file)
        graph = GraphCompiler(THEMES).compile(document)
    except AttackTreeError as e:
        _fail('Validation', e)
    click.echo(click.style('Validation successful!', fg='green'))
    click.echo(f'  Title: {document.title}')
    click.echo(f'  Facts: {len(document.facts)}')
    click.echo(f'  Attacks: {len(document.attacks)}')
    click.echo(f'  Mitigations: {len(document.mitigations)}')
    click.echo(f'  Goals: {len(document.goals)}')
    click.echo(f'  Edges: {len(graph.edges)}')


@cli.command(name='compile')
@click.argument('tree_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--theme', '-t', help='Theme name (overrides the document and settings)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['dot', 'svg', 'png', 'pdf']))
@click.option('--output', '-o', type=click.Path(), help='Output file path')
@click.pass_obj
def compile_tree(settings, tree_file: str, theme: str, output_format: str, output: str):
    """Compile an attack tree to DOT or a rendered diagram."""
    output_format = output_format or settings.output_format
    try:
        _, document = load_document(tree_file)
        graph = GraphCompiler(THEMES).compile(document, theme or document.theme or settings.default_theme)

        if output_format == 'dot':
            if output:
                Path(output).write_text(graph.dot, encoding='utf-8')
                click.echo(click.style(f'Attack tree compiled: {output}', fg='green'))
            else:
                click.echo(graph.dot)
            return

        layout = GraphvizLayout(settings.layout_engine)
        if output:
            output_path = Path(output)
            if output_path.suffix == f'.{output_format}':
                output_path = output_path.with_suffix('')
        else:
            output_path = Path(tree_file).with_suffix('')
        output_file = layout.render_to_file(graph.dot, output_path, output_format)
        click.echo(click.style(f'Attack tree rendered: {output_file}', fg='green'))
    except AttackTreeError as e:
        _fail('Compile', e)


@cli.command()
@click.argument('tree_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('node_id')
@click.option('--from', 'from_id', help='Locate the edge from this predecessor to NODE_ID instead')
def locate(tree_file: str, node_id: str, from_id: str):
    """Print where a node (or an edge into it) is declared in the source."""
    try:
        text, document = load_document(tree_file)
    except AttackTreeError as e:
        _fail('Locate', e)
    index = LocationIndex.build(text, document)
    span = index.span_for_edge(from_id, node_id) if from_id else index.span_for_node(node_id)
    target = f'{from_id}->{node_id}' if from_id else node_id
    if span is None:
        click.echo(click.style(f'No source location for {target}', fg='yellow'))
        sys.exit(1)
    click.echo(f'{tree_file}:{span.line + 1}:{span.column + 1}: {span.excerpt(text)}')


@cli.command()
@click.pass_obj
def themes(settings):
    """List the available themes."""
    for name in THEMES.list_names():
        marker = ' (default)' if name == settings.default_theme else ''
        click.echo(f'{name}{marker}')


@cli.command()
@click.argument('tree_file', type=click.Path(exists=False, dir_okay=False))
@click.option('--title', default='New Attack Tree', help='Title for the attack tree')
def new(tree_file: str, title: str):
    """Create a new attack tree file from the starter template."""
    path = Path(tree_file)
    if path.exists():
        click.echo(click.style(f'File already exists: {tree_file}', fg='red'), err=True)
        sys.exit(1)
    content = SEED_DOCUMENT.replace('title: New Attack Tree', yaml.safe_dump({'title': title}, allow_unicode=True).strip(), 1)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8')
    click.echo(click.style('Attack tree created!', fg='green'))
    click.echo(f'  Location: {path}')
    click.echo(f'\nNext steps:')
    click.echo(f'  1. Edit the facts, attacks, mitigations and goals in {path.name}')
    click.echo(f'  2. Run: attacktree preview {tree_file}')


@cli.command()
@click.argument('tree_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--theme', '-t', help='Theme name')
@click.option('--output', '-o', type=click.Path(), help='Output HTML file path')
@click.pass_obj
def preview(settings, tree_file: str, theme: str, output: str):
    """Write an HTML preview with click-to-source navigation.

    When Graphviz cannot lay the graph out, the page is still written with the
    source text and the layout error in place of the diagram.
    """
    try:
        text, document = load_document(tree_file)
        graph = GraphCompiler(THEMES).compile(document, theme or document.theme or settings.default_theme)
        index = LocationIndex.build(text, document)
    except AttackTreeError as e:
        _fail('Preview', e)

    svg, error = None, None
    try:
        svg = GraphvizLayout(settings.layout_engine).render_svg(graph.dot)
    except LayoutError as e:
        error = str(e)

    output_path = Path(output) if output else Path(tree_file).with_suffix('.html')
    PreviewGenerator().generate_to_file(output_path, text, graph, index, svg,
                                        source_name=Path(tree_file).name, error=error)
    if error:
        click.echo(click.style(f'Preview generated without a diagram: {error}', fg='yellow'))
    else:
        click.echo(click.style('Preview generated successfully!', fg='green'))
    click.echo(f'  Output: {output_path}')


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
