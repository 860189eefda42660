"""Loader for topology assembly XML and the component XML it imports."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from .models import (
    ComponentType,
    Connection,
    Fqn,
    Port,
    Topology,
    TopologyError,
    UnknownComponentTypeError,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _parse_file(path: Path) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except OSError as e:
        raise TopologyError(f"Cannot read {path}: {e}") from e
    except ET.ParseError as e:
        raise TopologyError(f"Malformed XML in {path}: {e}") from e


def load_assembly(fprime_dir: PathLike, app_xml: PathLike) -> ET.Element:
    """
    Parse a topology assembly into an XML tree.

    Args:
        fprime_dir: Root directory of the F Prime checkout
        app_xml: Path to the topology XML (may be relative to fprime_dir)
    """
    path = Path(fprime_dir) / app_xml
    logger.debug("Loading assembly %s", path)
    return _parse_file(path)


def load_component_defs(
    fprime_dir: PathLike, assembly: ET.Element
) -> dict[Fqn, ComponentType]:
    """
    Load component definitions imported by a topology.

    Returns:
        Map from component type names to component definitions
    """
    component_defs: dict[Fqn, ComponentType] = {}

    for ict in assembly.findall("import_component_type"):
        path = Path(fprime_dir) / (ict.text or "").strip()
        logger.debug("Loading component %s", path)
        component = _parse_file(path)

        namespace = component.get("namespace", "")
        ports = {}
        for port in component.findall("ports/port"):
            name = port.get("name", "")
            ports[name] = Port(
                name=name,
                data_type=Fqn.from_string(port.get("data_type", ""), namespace),
                kind=port.get("kind", ""),
            )

        definition = ComponentType(
            name=Fqn(namespace=namespace, name=component.get("name", "")),
            kind=component.get("kind", ""),
            ports=ports,
        )
        component_defs[definition.name] = definition

    return component_defs


def load_instances(
    assembly: ET.Element, component_defs: dict[Fqn, ComponentType]
) -> dict[str, ComponentType]:
    """
    Load component instances declared in a topology.

    Returns:
        Map from instance names to the definitions of those instances
    """
    instances = {}
    for instance in assembly.findall("instance"):
        name = instance.get("name", "")
        type_name = Fqn(namespace=instance.get("namespace", ""), name=instance.get("type", ""))
        if type_name not in component_defs:
            raise UnknownComponentTypeError(
                f"Instance '{name}' has type '{type_name}' which is not imported"
            )
        instances[name] = component_defs[type_name]
    return instances


def load_connections(assembly: ET.Element) -> list[Connection]:
    """Load connections between component ports declared in a topology."""
    connections = []
    for connection in assembly.findall("connection"):
        src = connection.find("source")
        target = connection.find("target")
        if src is None or target is None:
            label = connection.get("name") or f"#{len(connections)}"
            raise TopologyError(f"Connection {label} needs a source and a target")

        connections.append(
            Connection(
                source_component=src.get("component", ""),
                source_port=src.get("port", ""),
                target_component=target.get("component", ""),
                target_port=target.get("port", ""),
            )
        )
    return connections


def load_topology(fprime_dir: PathLike, app_xml: PathLike) -> Topology:
    """Load an assembly together with every component it imports."""
    assembly = load_assembly(fprime_dir, app_xml)
    component_defs = load_component_defs(fprime_dir, assembly)

    return Topology(
        name=assembly.get("name", ""),
        component_types=component_defs,
        instances=load_instances(assembly, component_defs),
        connections=load_connections(assembly),
    )
