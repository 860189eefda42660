"""Map a loaded topology onto a node-port-edge graph."""

import logging
from typing import Optional

from .layout import LayoutConfig
from .models import (
    ComponentType,
    Graph,
    GraphEdge,
    GraphNode,
    GraphPort,
    Label,
    PortSide,
    Topology,
    Vec2,
)

logger = logging.getLogger(__name__)


def _classes(*names: str) -> set[str]:
    return {n for n in names if n}


def build_node(name: str, component: ComponentType, config: LayoutConfig) -> GraphNode:
    """Create the node for one instance, with a port per declared port."""
    node = GraphNode(
        id=name,
        classes=_classes(component.kind),
        label=Label(name),
        label2=Label(component.short_name),
        min_size=Vec2(config.MIN_NODE_SIZE, config.MIN_NODE_SIZE),
    )

    for port_name, port in component.ports.items():
        node.ports[port_name] = GraphPort(
            id=port_name,
            side=PortSide.EAST if port.is_output else PortSide.WEST,
            classes=_classes(port.kind),
            label=Label(port_name),
            width=config.PORT_SIZE,
            height=config.PORT_SIZE,
            border_offset=config.PORT_BORDER_OFFSET,
        )

    return node


def build_graph(topology: Topology, config: Optional[LayoutConfig] = None) -> Graph:
    """
    Create a graph for the connections between instance ports.

    Connections whose ports are not declared are skipped with a warning.
    """
    config = config or LayoutConfig()
    graph = Graph(name=topology.name)

    for name, component in topology.instances.items():
        graph.nodes[name] = build_node(name, component, config)

    for connection in topology.connections:
        if not (
            topology.resolves(connection.source_component, connection.source_port)
            and topology.resolves(connection.target_component, connection.target_port)
        ):
            logger.warning("Missing: %s", connection)
            continue

        graph.edges.append(
            GraphEdge(
                source_node=connection.source_component,
                source_port=connection.source_port,
                target_node=connection.target_component,
                target_port=connection.target_port,
            )
        )

    logger.debug("Built graph with %d nodes, %d edges", len(graph.nodes), len(graph.edges))
    return graph
