"""Topology diagram generator - render component topology XML as SVG."""

from .models import (
    ComponentType,
    Connection,
    Fqn,
    Graph,
    LayoutError,
    Port,
    Topology,
    TopologyError,
    UnknownComponentTypeError,
)

__version__ = "0.1.0"

__all__ = [
    "ComponentType",
    "Connection",
    "Fqn",
    "Graph",
    "LayoutError",
    "Port",
    "Topology",
    "TopologyError",
    "UnknownComponentTypeError",
]
