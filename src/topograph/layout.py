"""Layout invocation: hand the graph to Graphviz and read back coordinates."""

import json
import logging
import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

import graphviz

from .models import (
    EdgeSection,
    Graph,
    GraphEdge,
    GraphNode,
    GraphPort,
    LayoutError,
    PortSide,
    Vec2,
)

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0

_RECORD_SPECIAL = re.compile(r'[{}|<>"\\]')

# (field id, port) in record leaf order; the caption field has no port
RecordFields = list[tuple[str, Optional[GraphPort]]]


@dataclass
class LayoutConfig:
    """Layout engine settings, in points unless noted."""

    ENGINE: str = "dot"
    SPLINES: str = "polyline"  # polyline or line
    NODE_SEP: float = 20.0  # Between nodes in the same rank
    RANK_SEP: float = 60.0  # Between ranks
    PADDING: float = 12.0  # Around the whole graph

    # Typography (Graphviz sizes records from these)
    FONT_NAME: str = "Helvetica"
    FONT_SIZE: float = 10.0
    LABEL_GAP: float = 3.0  # Port square to port label

    # Nodes and ports
    MIN_NODE_SIZE: float = 25.0
    PORT_SIZE: float = 10.0
    PORT_BORDER_OFFSET: float = -5.0


def escape_record(text: str) -> str:
    """Escape characters with meaning inside a record label."""
    return _RECORD_SPECIAL.sub(lambda m: "\\" + m.group(0), text)


def parse_floats(text: str) -> list[float]:
    """Parse a Graphviz comma/space separated number list."""
    return [float(v) for v in re.split(r"[,\s]+", text.strip()) if v]


def record_fields(node: GraphNode) -> RecordFields:
    """Record fields of a node: inputs, caption, outputs."""
    inputs = [p for p in node.ports.values() if p.side == PortSide.WEST]
    outputs = [p for p in node.ports.values() if p.side == PortSide.EAST]

    fields: RecordFields = [(f"i{i}", p) for i, p in enumerate(inputs)]
    fields.append(("c", None))
    fields.extend((f"o{i}", p) for i, p in enumerate(outputs))
    return fields


def record_label(node: GraphNode, fields: RecordFields) -> str:
    """
    Build the record label for a node.

    The outer braces turn the three columns horizontal under rankdir=LR;
    the inner braces stack the ports of each column vertically.
    """
    inputs = [f"<{fid}> {escape_record(p.id)}" for fid, p in fields if p and p.side == PortSide.WEST]
    outputs = [f"<{fid}> {escape_record(p.id)}" for fid, p in fields if p and p.side == PortSide.EAST]

    caption = escape_record(node.label.text)
    if node.label2 is not None:
        caption += "\\n" + escape_record(node.label2.text)

    columns = []
    if inputs:
        columns.append("{" + "|".join(inputs) + "}")
    columns.append(f"<c> {caption}")
    if outputs:
        columns.append("{" + "|".join(outputs) + "}")

    return "{" + "|".join(columns) + "}"


def parse_section(pos: str, transform: Callable[[float, float], Vec2]) -> EdgeSection:
    """
    Convert one Graphviz spline into a polyline section.

    Spline points come in groups of three after the first; every third
    point is a vertex of the route.
    """
    start: Optional[Vec2] = None
    end: Optional[Vec2] = None
    points = []
    for token in pos.split():
        if token.startswith("s,"):
            start = transform(*parse_floats(token[2:]))
        elif token.startswith("e,"):
            end = transform(*parse_floats(token[2:]))
        else:
            points.append(transform(*parse_floats(token)))

    vertices = points[::3]
    if start is not None:
        vertices.insert(0, start)
    if end is not None:
        vertices.append(end)
    if len(vertices) < 2:
        raise LayoutError(f"Edge route has fewer than two points: {pos!r}")

    return EdgeSection(start=vertices[0], end=vertices[-1], bend_points=vertices[1:-1])


def mark_junctions(edges: list[GraphEdge]) -> None:
    """Record bend points shared by edges that leave the same port."""
    by_source = defaultdict(list)
    for edge in edges:
        by_source[(edge.source_node, edge.source_port)].append(edge)

    def key(p: Vec2) -> tuple[float, float]:
        return (round(p.x, 2), round(p.y, 2))

    for siblings in by_source.values():
        if len(siblings) < 2:
            continue

        counts: Counter = Counter()
        for edge in siblings:
            counts.update({key(p) for s in edge.sections for p in s.bend_points})

        for edge in siblings:
            edge.junction_points = [
                p for s in edge.sections for p in s.bend_points if counts[key(p)] > 1
            ]


class GraphvizLayout:
    """Layered left-to-right layout delegated to Graphviz."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()
        self.fields_by_node: dict[str, RecordFields] = {}

    def _inches(self, points: float) -> str:
        return f"{points / POINTS_PER_INCH:.4f}"

    def to_dot(self, graph: Graph) -> graphviz.Digraph:
        """Describe the graph as a Graphviz digraph of record nodes."""
        cfg = self.config
        dot = graphviz.Digraph(
            name=graph.name or "topology",
            engine=cfg.ENGINE,
            graph_attr={
                "rankdir": "LR",
                "splines": cfg.SPLINES,
                "nodesep": self._inches(cfg.NODE_SEP),
                "ranksep": self._inches(cfg.RANK_SEP),
            },
            node_attr={
                "shape": "record",
                "fontname": cfg.FONT_NAME,
                "fontsize": f"{cfg.FONT_SIZE:g}",
            },
            edge_attr={"arrowhead": "none"},
        )

        self.fields_by_node = {}
        field_ids: dict[tuple[str, str], str] = {}
        for node in graph.nodes.values():
            fields = record_fields(node)
            self.fields_by_node[node.id] = fields
            for fid, port in fields:
                if port is not None:
                    field_ids[(node.id, port.id)] = fid

            dot.node(
                node.id,
                label=record_label(node, fields),
                width=self._inches(node.min_size.x),
                height=self._inches(node.min_size.y),
            )

        for edge in graph.edges:
            dot.edge(
                edge.source_node,
                edge.target_node,
                tailport=field_ids[(edge.source_node, edge.source_port)] + ":e",
                headport=field_ids[(edge.target_node, edge.target_port)] + ":w",
            )

        return dot

    def run(self, dot: graphviz.Digraph) -> dict:
        """Invoke the engine and decode its JSON output."""
        logger.debug("Running %s on %d-line graph", self.config.ENGINE, len(dot.body))
        try:
            output = dot.pipe(format="json", encoding="utf-8")
        except graphviz.ExecutableNotFound as e:
            raise LayoutError(f"Graphviz executable '{self.config.ENGINE}' not found") from e
        except graphviz.CalledProcessError as e:
            raise LayoutError(f"Graphviz failed: {e.stderr or e}") from e

        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise LayoutError(f"Unreadable Graphviz output: {e}") from e

    def _place_port(self, node: GraphNode, port: GraphPort, rect: list[float]) -> None:
        """Put the port square on the node border beside its record field."""
        x0, y0, x1, y1 = rect
        center_y = (y0 + y1) / 2
        font_size = self.config.FONT_SIZE
        gap = self.config.LABEL_GAP

        port.y = center_y - port.height / 2
        port.label.y = port.height / 2 - font_size / 2
        port.label.height = font_size

        if port.side == PortSide.WEST:
            port.x = -port.width - port.border_offset
            port.label.x = port.width + gap
            port.label.width = max(0.0, x1 - (port.x + port.width + gap))
        else:
            port.x = node.width + port.border_offset
            port.label.x = x0 - port.x
            port.label.width = max(0.0, (port.x - gap) - x0)

    def _place_caption(self, node: GraphNode, rect: list[float]) -> None:
        x0, y0, x1, y1 = rect
        center_y = (y0 + y1) / 2
        font_size = self.config.FONT_SIZE

        node.label.x, node.label.width = x0, x1 - x0
        node.label.height = font_size
        if node.label2 is None:
            node.label.y = center_y - font_size / 2
            return

        node.label.y = center_y - font_size - 1
        node.label2.x, node.label2.width = x0, x1 - x0
        node.label2.y = center_y + 1
        node.label2.height = font_size

    def _place_node(
        self, node: GraphNode, obj: dict, transform: Callable[[float, float], Vec2]
    ) -> None:
        center = transform(*parse_floats(obj["pos"]))
        node.width = float(obj["width"]) * POINTS_PER_INCH
        node.height = float(obj["height"]) * POINTS_PER_INCH
        node.x = center.x - node.width / 2
        node.y = center.y - node.height / 2

        origin = Vec2(node.x, node.y)
        fields = self.fields_by_node[node.id]
        rects = obj.get("rects", "").split()
        if len(rects) != len(fields):
            raise LayoutError(
                f"Node '{node.id}' has {len(rects)} record fields, expected {len(fields)}"
            )

        for (_, port), rect in zip(fields, rects):
            llx, lly, urx, ury = parse_floats(rect)
            top_left = transform(llx, ury) - origin
            bottom_right = transform(urx, lly) - origin
            local = [top_left.x, top_left.y, bottom_right.x, bottom_right.y]
            if port is None:
                self._place_caption(node, local)
            else:
                self._place_port(node, port, local)

    def apply(self, graph: Graph, data: dict) -> Graph:
        """Copy coordinates from Graphviz JSON output onto the graph."""
        pad = self.config.PADDING
        llx, lly, urx, ury = parse_floats(data.get("bb", "0,0,0,0"))

        def transform(x: float, y: float) -> Vec2:
            # Graphviz is y-up; SVG is y-down
            return Vec2(x - llx + pad, ury - y + pad)

        graph.x = graph.y = 0
        graph.width = urx - llx + 2 * pad
        graph.height = ury - lly + 2 * pad

        placed = set()
        for obj in data.get("objects", []):
            node = graph.nodes.get(obj.get("name"))
            if node is None or "pos" not in obj:
                continue
            self._place_node(node, obj, transform)
            placed.add(node.id)

        missing = set(graph.nodes) - placed
        if missing:
            raise LayoutError(f"Layout is missing nodes: {', '.join(sorted(missing))}")

        routes = sorted(data.get("edges", []), key=lambda e: e["_gvid"])
        if len(routes) != len(graph.edges):
            raise LayoutError(f"Layout returned {len(routes)} edges, expected {len(graph.edges)}")

        for edge, route in zip(graph.edges, routes):
            edge.sections = [parse_section(pos, transform) for pos in route["pos"].split(";")]

        mark_junctions(graph.edges)
        return graph

    def layout(self, graph: Graph) -> Graph:
        """
        Execute the complete layout.

        Steps:
        1. Describe the graph as record nodes and port-to-port edges
        2. Run Graphviz with JSON output
        3. Copy node, port, label and edge coordinates back onto the graph
        """
        dot = self.to_dot(graph)
        data = self.run(dot)
        return self.apply(graph, data)
