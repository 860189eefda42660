"""SVG generation for laid-out topology graphs."""

from dataclasses import dataclass
from typing import Optional

from .models import Graph, GraphEdge, GraphNode, GraphPort, PortSide

SOLARIZED_CSS = """\
  svg {
    background-color: #fdf6e3;
  }
  #arrow {
    fill: #586e75;
  }
  text {
    fill: #586e75;
    font-family: "Fira Sans", "Calibri";
  }
  .node, .port {
    stroke: #657b83;
  }
  .edge {
    stroke: #586e75;
  }
  a:focus .edge {
    stroke: #6c71c4;
    stroke-width: 5px;
  }
  .junction {
    fill: #586e75;
  }
  .node {
    fill: #eee8d5;
  }
  .port {
    fill: #eee8d5;
  }
  .node.active {
    fill: #2aa198;
  }
  .port.async_input {
    fill: #d33682;
  }
  .port.guarded_input {
    fill: #b58900;
  }"""

# Print-friendly black and white
MONO_CSS = """\
  svg {
    background-color: white;
  }
  #arrow {
    fill: black;
  }
  text {
    fill: black;
    font-family: "Fira Sans", "Calibri";
  }
  .node, .port {
    fill: white;
    stroke: black;
  }
  .edge {
    stroke: black;
  }
  a:focus .edge {
    stroke-width: 5px;
  }
  .junction {
    fill: black;
  }
  .node.active {
    fill: silver;
  }
  .port.async_input {
    fill: silver;
  }
  .port.guarded_input {
    fill: black;
  }"""

THEMES = {
    "solarized": SOLARIZED_CSS,
    "mono": MONO_CSS,
}


@dataclass
class RenderConfig:
    """SVG output settings."""

    THEME: str = "solarized"
    LABEL2_OFFSET: float = 6.0  # Baseline shift of the component type label
    JUNCTION_RADIUS: float = 2.0

    def theme_css(self) -> str:
        try:
            return THEMES[self.THEME]
        except KeyError:
            raise ValueError(
                f"Unknown theme '{self.THEME}' (choose from {', '.join(sorted(THEMES))})"
            ) from None


def escape_xml(text: str) -> str:
    """Escape XML special characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def fmt(value: float) -> str:
    """Format a coordinate compactly."""
    return f"{round(value, 2):g}"


def class_list(classes: set[str], base: str) -> str:
    return " ".join([*sorted(classes), base])


def render_edge(edge: GraphEdge) -> str:
    """Render one edge as a focusable group of polylines."""
    lines = ['<a href="#0">']
    for section in edge.sections:
        points = ", ".join(f"{fmt(p.x)} {fmt(p.y)}" for p in section.points())
        lines.append(
            f'  <polyline points="{points}" fill="none" marker-end="url(#arrow)" class="edge" />'
        )
    lines.append("</a>")
    return "\n".join(lines)


def render_junctions(edges: list[GraphEdge], radius: float) -> list[str]:
    """Render junction markers, once per distinct point."""
    seen = set()
    circles = []
    for edge in edges:
        for j in edge.junction_points:
            key = (fmt(j.x), fmt(j.y))
            if key in seen:
                continue
            seen.add(key)
            circles.append(
                f'<circle cx="{key[0]}" cy="{key[1]}" r="{fmt(radius)}" class="junction" />'
            )
    return circles


def render_port(port: GraphPort) -> str:
    """Render a port square and its label, relative to the node."""
    lines = [
        f'<rect x="{fmt(port.x)}" y="{fmt(port.y)}" width="{fmt(port.width)}" '
        f'height="{fmt(port.height)}" class="{class_list(port.classes, "port")}" />'
    ]

    lab = port.label
    y = port.y + lab.y + lab.height
    if port.side == PortSide.WEST:
        lines.append(f'<text x="{fmt(port.x + lab.x)}" y="{fmt(y)}">{escape_xml(lab.text)}</text>')
    else:
        lines.append(
            f'<text x="{fmt(port.x + lab.x + lab.width)}" y="{fmt(y)}" text-anchor="end">'
            f"{escape_xml(lab.text)}</text>"
        )
    return "\n".join(lines)


def render_node(node: GraphNode, config: RenderConfig) -> str:
    """Render a node with its labels and ports."""
    lines = [f'<g transform="translate({fmt(node.x)} {fmt(node.y)})" class="node-group">']
    lines.append(
        f'<rect width="{fmt(node.width)}" height="{fmt(node.height)}" '
        f'class="{class_list(node.classes, "node")}" />'
    )

    lab = node.label
    lines.append(
        f'<text x="{fmt(lab.x + lab.width / 2)}" y="{fmt(lab.y + lab.height)}" '
        f'text-anchor="middle" class="label">{escape_xml(lab.text)}</text>'
    )

    lab2 = node.label2
    if lab2 is not None:
        if lab2.width:
            x, y = lab2.x + lab2.width / 2, lab2.y + lab2.height
        else:
            # Not placed by the layout: centre in the node
            x, y = node.width / 2, node.height / 2 + config.LABEL2_OFFSET
        lines.append(
            f'<text x="{fmt(x)}" y="{fmt(y)}" text-anchor="middle" class="label2">'
            f"{escape_xml(lab2.text)}</text>"
        )

    for port in node.ports.values():
        lines.append(render_port(port))

    lines.append("</g>")
    return "\n".join(lines)


def render_svg(graph: Graph, config: Optional[RenderConfig] = None) -> str:
    """
    Generate complete SVG document.

    Args:
        graph: Graph with coordinates assigned by the layout engine
        config: Output settings (theme)
    """
    config = config or RenderConfig()
    css = config.theme_css()
    w, h = fmt(graph.width), fmt(graph.height)

    svg = [
        f'<svg version="1.1" xmlns="http://www.w3.org/2000/svg" width="{w}px" height="{h}px" '
        f'viewBox="{fmt(graph.x)} {fmt(graph.y)} {w} {h}">',
    ]
    if graph.name:
        svg.append(f"<title>{escape_xml(graph.name)}</title>")

    svg += [
        "  <defs>",
        '    <marker id="arrow" markerWidth="10" markerHeight="7" refX="8" refY="3" '
        'orient="auto" markerUnits="strokeWidth">',
        '      <path d="M0,0 L0,6 L9,3 z" />',
        "    </marker>",
        "  </defs>",
        "<style>",
        css,
        "</style>",
    ]

    # Layer 1: Edges
    svg.append('<g stroke="black">')
    for edge in graph.edges:
        svg.append(render_edge(edge))
    svg.append("</g>")

    # Layer 2: Junction markers
    svg.extend(render_junctions(graph.edges, config.JUNCTION_RADIUS))

    # Layer 3: Nodes and ports
    for node in graph.nodes.values():
        svg.append(render_node(node, config))

    svg.append("</svg>")
    return "\n".join(svg)
