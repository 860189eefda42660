"""Data models for topology diagram generation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

FQN_DELIMITER = "::"


class TopologyError(ValueError):
    """Raised when a topology or component file cannot be loaded."""


class UnknownComponentTypeError(TopologyError):
    """Raised when an instance refers to a component type that was never imported."""


class LayoutError(RuntimeError):
    """Raised when the layout engine fails or returns unusable output."""


class Fqn(BaseModel):
    """Fully qualified name of a type (namespace + short name)."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @classmethod
    def from_string(cls, text: str, namespace: str) -> "Fqn":
        """Split on the last delimiter; bare names take the default namespace."""
        i = text.rfind(FQN_DELIMITER)
        if i == -1:
            return cls(namespace=namespace, name=text)
        return cls(namespace=text[:i], name=text[i + len(FQN_DELIMITER) :])

    def __str__(self) -> str:
        return f"{self.namespace}{FQN_DELIMITER}{self.name}"


class Port(BaseModel):
    """A port declared by a component type."""

    name: str
    data_type: Fqn
    kind: str = ""  # output, async_input, guarded_input, sync_input

    @property
    def is_output(self) -> bool:
        return self.kind == "output"


class ComponentType(BaseModel):
    """A component definition imported by a topology."""

    name: Fqn
    kind: str = ""  # active, passive, queued
    ports: dict[str, Port] = {}  # Declaration order

    @property
    def short_name(self) -> str:
        return self.name.name


class Connection(BaseModel):
    """Directed connection between two instance ports."""

    source_component: str
    source_port: str
    target_component: str
    target_port: str

    def __str__(self) -> str:
        return (
            f"{self.source_component}.{self.source_port} -> "
            f"{self.target_component}.{self.target_port}"
        )


class Topology(BaseModel):
    """Complete loaded topology."""

    name: str = ""
    component_types: dict[Fqn, ComponentType] = {}
    instances: dict[str, ComponentType]  # Instance name -> definition
    connections: list[Connection]

    def resolves(self, component: str, port: str) -> bool:
        """Check that an instance exists and declares the given port."""
        definition = self.instances.get(component)
        return definition is not None and port in definition.ports

    def unresolved_connections(self) -> list[Connection]:
        """Connections with an endpoint that no instance declares."""
        return [
            c
            for c in self.connections
            if not (
                self.resolves(c.source_component, c.source_port)
                and self.resolves(c.target_component, c.target_port)
            )
        ]


# Graph data structures


@dataclass
class Vec2:
    """2D vector for positions and sizes."""

    x: float
    y: float

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.y - other.y)


class PortSide(str, Enum):
    """Node side a port is attached to."""

    WEST = "west"  # Inputs
    EAST = "east"  # Outputs


@dataclass
class Label:
    """Text with a bounding box relative to its owner."""

    text: str
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


@dataclass
class GraphPort:
    """Port on a graph node; position is relative to the node."""

    id: str
    side: PortSide
    classes: set[str]
    label: Label
    x: float = 0
    y: float = 0
    width: float = 10
    height: float = 10
    border_offset: float = -5  # Negative moves the port into the node


@dataclass
class GraphNode:
    """Graph node; position is absolute within the graph."""

    id: str
    classes: set[str]
    label: Label  # Instance name
    label2: Optional[Label] = None  # Component type
    ports: dict[str, GraphPort] = field(default_factory=dict)  # Fixed order
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    min_size: Vec2 = field(default_factory=lambda: Vec2(25, 25))


@dataclass
class EdgeSection:
    """One routed piece of an edge."""

    start: Vec2
    end: Vec2
    bend_points: list[Vec2] = field(default_factory=list)

    def points(self) -> list[Vec2]:
        return [self.start, *self.bend_points, self.end]


@dataclass
class GraphEdge:
    """Edge from a source port to a target port."""

    source_node: str
    source_port: str
    target_node: str
    target_port: str
    sections: list[EdgeSection] = field(default_factory=list)
    junction_points: list[Vec2] = field(default_factory=list)


@dataclass
class Graph:
    """Node-port-edge graph handed to the layout engine."""

    name: str = ""
    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
