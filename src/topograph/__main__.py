"""CLI entry point for topology diagram generator."""

import logging
from collections import Counter
from pathlib import Path

import click

from .builder import build_graph
from .layout import GraphvizLayout, LayoutConfig
from .models import LayoutError, TopologyError
from .svg import THEMES, RenderConfig, render_svg
from .topology import load_topology

fprime_dir_option = click.option(
    "--fprime-dir",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Root of the F Prime checkout; imports are resolved against it",
)


def _load(fprime_dir: str, app_xml: str):
    try:
        return load_topology(fprime_dir, app_xml)
    except TopologyError as e:
        click.echo(f"❌ Error parsing input: {e}", err=True)
        raise click.exceptions.Exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
def cli(verbose: bool) -> None:
    """Topology diagram generator - render component topology XML as SVG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@cli.command()
@click.argument("app_xml", type=click.Path())
@click.argument("output_file", type=click.Path())
@fprime_dir_option
@click.option(
    "--theme",
    type=click.Choice(sorted(THEMES)),
    default="solarized",
    show_default=True,
    help="Colour scheme",
)
@click.option(
    "--splines",
    type=click.Choice(["polyline", "line"]),
    default="polyline",
    show_default=True,
    help="Edge routing style",
)
def render(app_xml: str, output_file: str, fprime_dir: str, theme: str, splines: str) -> None:
    """Generate SVG diagram from a topology XML file."""
    topology = _load(fprime_dir, app_xml)

    # Configure
    layout_config = LayoutConfig()
    layout_config.SPLINES = splines
    render_config = RenderConfig()
    render_config.THEME = theme

    graph = build_graph(topology, layout_config)

    # Layout
    click.echo(f"📐 Laying out {len(graph.nodes)} instances, {len(graph.edges)} connections...")

    try:
        GraphvizLayout(layout_config).layout(graph)
    except LayoutError as e:
        click.echo(f"❌ Layout error: {e}", err=True)
        raise click.exceptions.Exit(1)

    # Render
    click.echo("🎨 Rendering SVG...")
    svg_content = render_svg(graph, render_config)

    # Write
    Path(output_file).write_text(svg_content)

    # Summary
    click.echo(f"✓ {output_file}")
    click.echo(f"  Diagram size: {graph.width:.0f}×{graph.height:.0f} px")
    skipped = len(topology.connections) - len(graph.edges)
    if skipped:
        click.echo(f"  Skipped connections: {skipped}")


@cli.command()
@click.argument("app_xml", type=click.Path())
@fprime_dir_option
def info(app_xml: str, fprime_dir: str) -> None:
    """Display information about a topology file."""
    topology = _load(fprime_dir, app_xml)

    click.echo(f"Topology: {topology.name or '(unnamed)'}")
    click.echo(f"Component types: {len(topology.component_types)}")
    click.echo(f"Instances: {len(topology.instances)}")
    click.echo(f"Connections: {len(topology.connections)}")

    # Instance kinds breakdown
    kind_counts = Counter(c.kind or "(none)" for c in topology.instances.values())
    click.echo("\nInstance kinds:")
    for kind, count in sorted(kind_counts.items()):
        click.echo(f"  {kind}: {count}")

    unresolved = topology.unresolved_connections()
    if unresolved:
        click.echo("\nUnresolved connections:")
        for connection in unresolved:
            click.echo(f"  {connection}")


@cli.command()
@click.argument("app_xml", type=click.Path())
@fprime_dir_option
def dot(app_xml: str, fprime_dir: str) -> None:
    """Print the Graphviz source handed to the layout engine."""
    topology = _load(fprime_dir, app_xml)
    layout_config = LayoutConfig()
    graph = build_graph(topology, layout_config)
    click.echo(GraphvizLayout(layout_config).to_dot(graph).source)


if __name__ == "__main__":
    cli()
